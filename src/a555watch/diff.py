"""Sequence diff: Myers' O(ND) bisection plus cleanup passes.

Everything here is pure.  The core works on any sliceable sequence whose
elements compare with ``==`` (``str`` for character diffs, ``tuple`` of line
symbols for line diffs).  A diff is a list of ``(op, run)`` pairs where *run*
has the same type as the inputs.

Based on Neil Fraser's diff-match-patch.  Where that library stops searching
after a time budget, the bisection here stops at a fixed edit depth, so the
result for a given pair of inputs is always the same.
"""

from __future__ import annotations

import re
from typing import Sequence, TypeVar

__all__ = [
    "DELETE",
    "EQUAL",
    "INSERT",
    "cleanup_merge",
    "cleanup_semantic",
    "cleanup_semantic_lossless",
    "diff_chars",
    "diff_lines",
    "diff_sequences",
    "levenshtein",
    "lines_to_symbols",
    "pretty_text",
    "split_lines",
    "symbols_to_lines",
]

S = TypeVar("S", bound=Sequence)

DELETE = -1
EQUAL = 0
INSERT = 1

Diff = tuple[int, S]

_GREEN = "\x1b[32m"
_RED = "\x1b[31m"
_RESET = "\x1b[0m"

# edit depth past which a block is replaced wholesale
_MAX_EDIT_DEPTH = 500

# shorter texts go straight to the character diff
_LINE_MODE_MIN = 100

# ---------------------------------------------------------------------------
# Small sequence helpers
# ---------------------------------------------------------------------------

def common_prefix_length(a: Sequence, b: Sequence) -> int:
    n = min(len(a), len(b))
    i = 0
    while i < n and a[i] == b[i]:
        i += 1
    return i


def common_suffix_length(a: Sequence, b: Sequence) -> int:
    n = min(len(a), len(b))
    i = 0
    while i < n and a[len(a) - 1 - i] == b[len(b) - 1 - i]:
        i += 1
    return i


def _find(haystack: Sequence, needle: Sequence, start: int = 0) -> int:
    """Index of the first occurrence of *needle* in *haystack* at or after
    *start*, or -1."""
    if isinstance(haystack, str):
        return haystack.find(needle, start)
    n = len(needle)
    first = needle[0]
    for i in range(start, len(haystack) - n + 1):
        if haystack[i] == first and haystack[i:i + n] == needle:
            return i
    return -1


def _endswith(seq: Sequence, tail: Sequence) -> bool:
    return len(tail) <= len(seq) and seq[len(seq) - len(tail):] == tail


def _startswith(seq: Sequence, head: Sequence) -> bool:
    return len(head) <= len(seq) and seq[:len(head)] == head

# ---------------------------------------------------------------------------
# Core diff
# ---------------------------------------------------------------------------

def diff_sequences(a: S, b: S, checklines: bool = False) -> list[Diff]:
    """Edit script turning *a* into *b*.

    With *checklines*, long texts are first diffed line by line and only the
    replaced blocks are refined character by character.
    """
    if a == b:
        return [(EQUAL, a)] if a else []

    k = common_prefix_length(a, b)
    prefix = a[:k]
    a, b = a[k:], b[k:]

    k = common_suffix_length(a, b)
    suffix = a[len(a) - k:]
    a, b = a[:len(a) - k], b[:len(b) - k]

    diffs = _compute(a, b, checklines)
    if prefix:
        diffs.insert(0, (EQUAL, prefix))
    if suffix:
        diffs.append((EQUAL, suffix))
    return cleanup_merge(diffs)


def _compute(a: S, b: S, checklines: bool) -> list[Diff]:
    # inputs share no common prefix or suffix
    if not a:
        return [(INSERT, b)]
    if not b:
        return [(DELETE, a)]

    longer, shorter = (a, b) if len(a) > len(b) else (b, a)
    i = _find(longer, shorter)
    if i != -1:
        op = DELETE if len(a) > len(b) else INSERT
        return [
            (op, longer[:i]),
            (EQUAL, shorter),
            (op, longer[i + len(shorter):]),
        ]

    if len(shorter) == 1:
        # not contained, so nothing in common
        return [(DELETE, a), (INSERT, b)]

    hm = _half_match(a, b)
    if hm is not None:
        a1, a2, b1, b2, common = hm
        return (
            diff_sequences(a1, b1, checklines)
            + [(EQUAL, common)]
            + diff_sequences(a2, b2, checklines)
        )

    if (checklines and isinstance(a, str)
            and len(a) > _LINE_MODE_MIN and len(b) > _LINE_MODE_MIN):
        return _line_mode(a, b)

    return _bisect(a, b)


def _half_match(a: S, b: S) -> tuple[S, S, S, S, S] | None:
    """Split on a common run at least half as long as the longer input.

    Returns ``(a_prefix, a_suffix, b_prefix, b_suffix, common)`` or None.
    The split is fast but may not give the minimal diff.
    """
    longer, shorter = (a, b) if len(a) > len(b) else (b, a)
    if len(longer) < 4 or len(shorter) * 2 < len(longer):
        return None

    # seeds from the second and the third quarter of the longer input
    hm1 = _half_match_at(longer, shorter, (len(longer) + 3) // 4)
    hm2 = _half_match_at(longer, shorter, (len(longer) + 1) // 2)
    if hm1 is None and hm2 is None:
        return None
    if hm2 is None:
        hm = hm1
    elif hm1 is None:
        hm = hm2
    else:
        hm = hm1 if len(hm1[4]) > len(hm2[4]) else hm2

    if len(a) > len(b):
        return hm
    return hm[2], hm[3], hm[0], hm[1], hm[4]


def _half_match_at(longer: S, shorter: S, i: int) -> tuple[S, S, S, S, S] | None:
    seed = longer[i:i + len(longer) // 4]
    best_common = shorter[:0]
    best = None
    j = _find(shorter, seed)
    while j != -1:
        prefix_length = common_prefix_length(longer[i:], shorter[j:])
        suffix_length = common_suffix_length(longer[:i], shorter[:j])
        if len(best_common) < suffix_length + prefix_length:
            best_common = shorter[j - suffix_length:j + prefix_length]
            best = (
                longer[:i - suffix_length],
                longer[i + prefix_length:],
                shorter[:j - suffix_length],
                shorter[j + prefix_length:],
            )
        j = _find(shorter, seed, j + 1)

    if best is None or len(best_common) * 2 < len(longer):
        return None
    return best + (best_common,)


def _line_mode(text1: str, text2: str) -> list[tuple[int, str]]:
    """Diff by lines, then re-diff each replaced block by characters."""
    sym1, sym2, table = lines_to_symbols(text1, text2)
    coarse = cleanup_semantic(symbols_to_lines(diff_sequences(sym1, sym2), table))

    diffs: list[tuple[int, str]] = []
    text_delete = text_insert = ""
    for op, text in coarse + [(EQUAL, "")]:
        if op == INSERT:
            text_insert += text
            continue
        if op == DELETE:
            text_delete += text
            continue
        if text_delete and text_insert:
            diffs.extend(diff_sequences(text_delete, text_insert))
        elif text_delete:
            diffs.append((DELETE, text_delete))
        elif text_insert:
            diffs.append((INSERT, text_insert))
        if text:
            diffs.append((EQUAL, text))
        text_delete = text_insert = ""
    return diffs


def _bisect(a: S, b: S) -> list[Diff]:
    """Find the middle snake and recurse on both halves."""
    n, m = len(a), len(b)
    max_d = (n + m + 1) // 2
    v_offset = max_d
    v_length = 2 * max_d
    v1 = [-1] * v_length
    v2 = [-1] * v_length
    v1[v_offset + 1] = 0
    v2[v_offset + 1] = 0
    delta = n - m
    # odd delta: the forward path collides with the reverse path
    front = delta % 2 != 0
    k1start = k1end = k2start = k2end = 0

    for d in range(min(max_d, _MAX_EDIT_DEPTH)):
        for k1 in range(-d + k1start, d + 1 - k1end, 2):
            k1_offset = v_offset + k1
            if k1 == -d or (k1 != d and v1[k1_offset - 1] < v1[k1_offset + 1]):
                x1 = v1[k1_offset + 1]
            else:
                x1 = v1[k1_offset - 1] + 1
            y1 = x1 - k1
            while x1 < n and y1 < m and a[x1] == b[y1]:
                x1 += 1
                y1 += 1
            v1[k1_offset] = x1
            if x1 > n:
                k1end += 2
            elif y1 > m:
                k1start += 2
            elif front:
                k2_offset = v_offset + delta - k1
                if 0 <= k2_offset < v_length and v2[k2_offset] != -1:
                    x2 = n - v2[k2_offset]
                    if x1 >= x2:
                        return _bisect_split(a, b, x1, y1)

        for k2 in range(-d + k2start, d + 1 - k2end, 2):
            k2_offset = v_offset + k2
            if k2 == -d or (k2 != d and v2[k2_offset - 1] < v2[k2_offset + 1]):
                x2 = v2[k2_offset + 1]
            else:
                x2 = v2[k2_offset - 1] + 1
            y2 = x2 - k2
            while x2 < n and y2 < m and a[n - x2 - 1] == b[m - y2 - 1]:
                x2 += 1
                y2 += 1
            v2[k2_offset] = x2
            if x2 > n:
                k2end += 2
            elif y2 > m:
                k2start += 2
            elif not front:
                k1_offset = v_offset + delta - k2
                if 0 <= k1_offset < v_length and v1[k1_offset] != -1:
                    x1 = v1[k1_offset]
                    y1 = v_offset + x1 - k1_offset
                    x2 = n - x2
                    if x1 >= x2:
                        return _bisect_split(a, b, x1, y1)

    # nothing in common, or too far apart to search
    return [(DELETE, a), (INSERT, b)]


def _bisect_split(a: S, b: S, x: int, y: int) -> list[Diff]:
    return diff_sequences(a[:x], b[:y]) + diff_sequences(a[x:], b[y:])

# ---------------------------------------------------------------------------
# Cleanup
# ---------------------------------------------------------------------------

def cleanup_merge(diffs: list[Diff]) -> list[Diff]:
    """Merge adjacent runs of the same op, factor out edits' shared prefix
    and suffix, and slide single edits sideways to swallow equalities."""
    diffs = [d for d in diffs if d[1]]
    if not diffs:
        return diffs
    empty = diffs[0][1][:0]
    diffs.append((EQUAL, empty))

    pointer = 0
    count_delete = count_insert = 0
    text_delete = text_insert = empty
    while pointer < len(diffs):
        op, data = diffs[pointer]
        if op == INSERT:
            count_insert += 1
            text_insert += data
            pointer += 1
            continue
        if op == DELETE:
            count_delete += 1
            text_delete += data
            pointer += 1
            continue

        if count_delete + count_insert > 1:
            if count_delete and count_insert:
                k = common_prefix_length(text_insert, text_delete)
                if k:
                    x = pointer - count_delete - count_insert - 1
                    if x >= 0 and diffs[x][0] == EQUAL:
                        diffs[x] = (EQUAL, diffs[x][1] + text_insert[:k])
                    else:
                        diffs.insert(0, (EQUAL, text_insert[:k]))
                        pointer += 1
                    text_insert = text_insert[k:]
                    text_delete = text_delete[k:]
                k = common_suffix_length(text_insert, text_delete)
                if k:
                    diffs[pointer] = (
                        EQUAL,
                        text_insert[len(text_insert) - k:] + diffs[pointer][1],
                    )
                    text_insert = text_insert[:len(text_insert) - k]
                    text_delete = text_delete[:len(text_delete) - k]
            new_ops: list[Diff] = []
            if text_delete:
                new_ops.append((DELETE, text_delete))
            if text_insert:
                new_ops.append((INSERT, text_insert))
            pointer -= count_delete + count_insert
            diffs[pointer:pointer + count_delete + count_insert] = new_ops
            pointer += len(new_ops) + 1
        elif pointer != 0 and diffs[pointer - 1][0] == EQUAL:
            diffs[pointer - 1] = (EQUAL, diffs[pointer - 1][1] + data)
            del diffs[pointer]
        else:
            pointer += 1
        count_delete = count_insert = 0
        text_delete = text_insert = empty

    if not diffs[-1][1]:
        diffs.pop()

    # second pass: A<ins>BA</ins>C -> <ins>AB</ins>AC
    changes = False
    pointer = 1
    while pointer < len(diffs) - 1:
        prev_op, prev = diffs[pointer - 1]
        op, cur = diffs[pointer]
        next_op, nxt = diffs[pointer + 1]
        if prev_op == EQUAL and next_op == EQUAL:
            if prev and _endswith(cur, prev):
                diffs[pointer] = (op, prev + cur[:len(cur) - len(prev)])
                diffs[pointer + 1] = (EQUAL, prev + nxt)
                del diffs[pointer - 1]
                changes = True
            elif nxt and _startswith(cur, nxt):
                diffs[pointer - 1] = (EQUAL, prev + nxt)
                diffs[pointer] = (op, cur[len(nxt):] + nxt)
                del diffs[pointer + 1]
                changes = True
        pointer += 1

    if changes:
        return cleanup_merge(diffs)
    return diffs


_BLANKLINE_END = re.compile(r"\n\r?\n\Z")
_BLANKLINE_START = re.compile(r"\A\r?\n\r?\n")


def _boundary_score(one: str, two: str) -> int:
    """How natural the split between *one* and *two* reads, 0 (mid-word)
    up to 6 (edge of the text)."""
    if not one or not two:
        return 6

    char1 = one[-1]
    char2 = two[0]
    non_alnum1 = not char1.isalnum()
    non_alnum2 = not char2.isalnum()
    whitespace1 = non_alnum1 and char1.isspace()
    whitespace2 = non_alnum2 and char2.isspace()
    linebreak1 = whitespace1 and char1 in "\r\n"
    linebreak2 = whitespace2 and char2 in "\r\n"
    blankline1 = linebreak1 and _BLANKLINE_END.search(one) is not None
    blankline2 = linebreak2 and _BLANKLINE_START.match(two) is not None

    if blankline1 or blankline2:
        return 5
    if linebreak1 or linebreak2:
        return 4
    if non_alnum1 and not whitespace1 and whitespace2:
        return 3
    if whitespace1 or whitespace2:
        return 2
    if non_alnum1 or non_alnum2:
        return 1
    return 0


def cleanup_semantic_lossless(diffs: list[Diff]) -> list[Diff]:
    """Slide single edits bounded by equalities onto word boundaries.

    ``The c<ins>at c</ins>ame.`` becomes ``The <ins>cat </ins>came.``.  The
    texts on both sides are unchanged; only where the edit sits moves.
    """
    diffs = list(diffs)
    pointer = 1
    while pointer < len(diffs) - 1:
        if diffs[pointer - 1][0] == EQUAL and diffs[pointer + 1][0] == EQUAL:
            equality1 = diffs[pointer - 1][1]
            edit = diffs[pointer][1]
            equality2 = diffs[pointer + 1][1]

            # shift the edit as far left as possible
            offset = common_suffix_length(equality1, edit)
            if offset:
                common = edit[len(edit) - offset:]
                equality1 = equality1[:len(equality1) - offset]
                edit = common + edit[:len(edit) - offset]
                equality2 = common + equality2

            # then step right, keeping the best-scoring position
            best_equality1 = equality1
            best_edit = edit
            best_equality2 = equality2
            best_score = _boundary_score(equality1, edit) + _boundary_score(edit, equality2)
            while edit and equality2 and edit[0] == equality2[0]:
                equality1 += edit[0]
                edit = edit[1:] + equality2[0]
                equality2 = equality2[1:]
                score = _boundary_score(equality1, edit) + _boundary_score(edit, equality2)
                # >= favours the rightmost of equally good positions
                if score >= best_score:
                    best_score = score
                    best_equality1 = equality1
                    best_edit = edit
                    best_equality2 = equality2

            if diffs[pointer - 1][1] != best_equality1:
                if best_equality1:
                    diffs[pointer - 1] = (EQUAL, best_equality1)
                else:
                    del diffs[pointer - 1]
                    pointer -= 1
                diffs[pointer] = (diffs[pointer][0], best_edit)
                if best_equality2:
                    diffs[pointer + 1] = (EQUAL, best_equality2)
                else:
                    del diffs[pointer + 1]
                    pointer -= 1
        pointer += 1
    return diffs


def _common_overlap(one: str, two: str) -> int:
    """Length of the longest suffix of *one* that is a prefix of *two*."""
    if not one or not two:
        return 0
    if len(one) > len(two):
        one = one[len(one) - len(two):]
    elif len(one) < len(two):
        two = two[:len(one)]
    if one == two:
        return len(one)

    best = 0
    length = 1
    while True:
        pattern = one[len(one) - length:]
        found = two.find(pattern)
        if found == -1:
            return best
        length += found
        if found == 0 or one[len(one) - length:] == two[:length]:
            best = length
            length += 1


def cleanup_semantic(diffs: list[tuple[int, str]]) -> list[tuple[int, str]]:
    """Fold short equalities into the edits around them.

    An equality no longer than the edits on either side of it is turned into
    a deletion plus an insertion, so ``<del>a</del>b<del>c</del>`` reads as
    ``<del>abc</del><ins>b</ins>``.  Afterwards a deletion and insertion that
    overlap by at least half of either one are split around the overlap.
    """
    diffs = list(diffs)
    changes = False
    equalities: list[int] = []
    last_equality = ""
    insertions1 = deletions1 = 0
    insertions2 = deletions2 = 0
    pointer = 0
    while pointer < len(diffs):
        op, text = diffs[pointer]
        if op == EQUAL:
            equalities.append(pointer)
            insertions1, insertions2 = insertions2, 0
            deletions1, deletions2 = deletions2, 0
            last_equality = text
        else:
            if op == INSERT:
                insertions2 += len(text)
            else:
                deletions2 += len(text)
            if (last_equality
                    and len(last_equality) <= max(insertions1, deletions1)
                    and len(last_equality) <= max(insertions2, deletions2)):
                at = equalities.pop()
                diffs[at] = (INSERT, last_equality)
                diffs.insert(at, (DELETE, last_equality))
                # the previous equality has to be looked at again
                if equalities:
                    equalities.pop()
                pointer = equalities[-1] if equalities else -1
                insertions1 = deletions1 = 0
                insertions2 = deletions2 = 0
                last_equality = ""
                changes = True
        pointer += 1

    if changes:
        diffs = cleanup_merge(diffs)
    diffs = cleanup_semantic_lossless(diffs)

    # <del>abcxxx</del><ins>xxxdef</ins> -> <del>abc</del>xxx<ins>def</ins>
    # <del>xxxabc</del><ins>defxxx</ins> -> <ins>def</ins>xxx<del>abc</del>
    pointer = 1
    while pointer < len(diffs):
        if diffs[pointer - 1][0] == DELETE and diffs[pointer][0] == INSERT:
            deletion = diffs[pointer - 1][1]
            insertion = diffs[pointer][1]
            overlap1 = _common_overlap(deletion, insertion)
            overlap2 = _common_overlap(insertion, deletion)
            if overlap1 >= overlap2:
                if overlap1 * 2 >= len(deletion) or overlap1 * 2 >= len(insertion):
                    diffs[pointer - 1:pointer + 1] = [
                        (DELETE, deletion[:len(deletion) - overlap1]),
                        (EQUAL, insertion[:overlap1]),
                        (INSERT, insertion[overlap1:]),
                    ]
                    pointer += 1
            elif overlap2 * 2 >= len(deletion) or overlap2 * 2 >= len(insertion):
                diffs[pointer - 1:pointer + 1] = [
                    (INSERT, insertion[:len(insertion) - overlap2]),
                    (EQUAL, deletion[:overlap2]),
                    (DELETE, deletion[overlap2:]),
                ]
                pointer += 1
            pointer += 1
        pointer += 1
    return diffs

# ---------------------------------------------------------------------------
# Line tokens
# ---------------------------------------------------------------------------

def split_lines(text: str) -> list[str]:
    """Split on ``\\n`` only, keeping the terminator on each line."""
    lines = []
    start = 0
    while start < len(text):
        end = text.find("\n", start)
        if end == -1:
            end = len(text) - 1
        lines.append(text[start:end + 1])
        start = end + 1
    return lines


def lines_to_symbols(
    text1: str, text2: str,
) -> tuple[tuple[int, ...], tuple[int, ...], list[str]]:
    """Encode both texts as tuples of line symbols sharing one table.

    Returns the two symbol tuples and the table mapping symbol → line.
    """
    table: list[str] = []
    index: dict[str, int] = {}

    def encode(text: str) -> tuple[int, ...]:
        out = []
        for line in split_lines(text):
            sym = index.get(line)
            if sym is None:
                sym = index[line] = len(table)
                table.append(line)
            out.append(sym)
        return tuple(out)

    return encode(text1), encode(text2), table


def symbols_to_lines(diffs: list[Diff], table: list[str]) -> list[tuple[int, str]]:
    return [(op, "".join(table[sym] for sym in run)) for op, run in diffs]

# ---------------------------------------------------------------------------
# Entry points and statistics
# ---------------------------------------------------------------------------

def diff_lines(text1: str, text2: str) -> list[tuple[int, str]]:
    """Line-granular diff, expanded back to text runs."""
    sym1, sym2, table = lines_to_symbols(text1, text2)
    return symbols_to_lines(diff_sequences(sym1, sym2), table)


def diff_chars(text1: str, text2: str) -> list[tuple[int, str]]:
    """Character-granular diff with edits aligned on readable boundaries."""
    return cleanup_semantic_lossless(diff_sequences(text1, text2, checklines=True))


def levenshtein(diffs: list[Diff]) -> int:
    """Edit distance implied by *diffs*: a substitution counts once."""
    distance = 0
    insertions = deletions = 0
    for op, run in diffs:
        if op == INSERT:
            insertions += len(run)
        elif op == DELETE:
            deletions += len(run)
        else:
            distance += max(insertions, deletions)
            insertions = deletions = 0
    return distance + max(insertions, deletions)


def pretty_text(diffs: list[tuple[int, str]]) -> str:
    """Render *diffs* with ANSI colours: insertions green, deletions red."""
    parts = []
    for op, text in diffs:
        if op == INSERT:
            parts.append(f"{_GREEN}{text}{_RESET}")
        elif op == DELETE:
            parts.append(f"{_RED}{text}{_RESET}")
        else:
            parts.append(text)
    return "".join(parts)
