"""a555watch — a `watch` that remembers.

Re-runs a command on an interval, keeps every distinct output and shows
what changed between them.
"""

import logging

__version__ = "0.3.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())
