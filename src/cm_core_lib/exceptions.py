"""Exception taxonomy for the Corruption Monitor core library.

None of these are fatal to a host process. Each one maps to a "no data" or
"stale data" state the presentation layer can render explicitly:

- DataFetchError: bulk read failed, no snapshot is available
- SubscriptionError: live-update channel failed, snapshot may be stale
- MalformedRecordError: a single row could not be normalized
"""

from typing import Any, Dict, Optional


class CoreLibError(Exception):
    """Base class for all errors raised by cm_core_lib."""
    pass


class DataFetchError(CoreLibError):
    """Raised when the bulk read of case records fails.

    Callers must treat this as "no snapshot available", never as an empty
    snapshot. The library does not retry internally.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class SubscriptionError(CoreLibError):
    """Raised by change-event sources when the live channel cannot be opened.

    The reducer converts it into ``is_connected = False`` plus an error string.
    """
    pass


class MalformedRecordError(CoreLibError):
    """Raised by the strict row parser when a row cannot become a CaseRecord."""

    def __init__(self, message: str, row: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.row = row
