"""
Exception types shared by the Notion and Calendar clients.
"""

from typing import Optional


class SyncError(Exception):
    """Base class for everything the sync run can fail with."""


class NotionQueryError(SyncError):
    """A database query did not come back with a 2xx response."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class NotionUpdateError(SyncError):
    """Patching a page's properties failed."""

    def __init__(self, page_id: str, message: str, status: Optional[int] = None):
        super().__init__(f"{page_id}: {message}")
        self.page_id = page_id
        self.status = status


class CalendarNotFoundError(SyncError):
    """The calendar does not exist or is not shared with these credentials."""


class CalendarError(SyncError):
    """An event could not be created, listed or updated."""
