# path: crowdsense/errors.py
"""Error types raised by the query components.

The core never handles these itself; the HTTP layer in `main.py` maps them
onto responses.
"""


class CrowdSenseError(Exception):
    """Base class for all errors raised by this package."""


class NotFound(CrowdSenseError):
    """A point lookup matched no record."""


class StoreUnavailable(CrowdSenseError):
    """The backing store failed to answer or timed out."""


class InvalidArgument(CrowdSenseError, ValueError):
    """An input value the core cannot compute anything sensible from."""
