"""
Sync Engine Exceptions

Pass-fatal conditions raise; row-level problems never do (they end up
in SyncStats).
"""
from typing import Optional


class SyncError(Exception):
    """Base class for every sync engine error."""


# ---------------------------------------------------------------------------
# Spreadsheet source
# ---------------------------------------------------------------------------

class SheetReadError(SyncError):
    """The spreadsheet export could not be turned into rows."""

    def __init__(self, message: str, source_id: str = '', sheet_name: str = '',
                 status_code: Optional[int] = None):
        super().__init__(message)
        self.source_id = source_id
        self.sheet_name = sheet_name
        self.status_code = status_code


class SourceUnavailable(SheetReadError):
    """Network failure, timeout, missing spreadsheet or server error."""


class AccessDenied(SheetReadError):
    """The spreadsheet is not shared as 'Anyone with the link can view'."""


class EmptySource(SheetReadError):
    """Header row present but no data rows."""


class FormatError(SheetReadError):
    """Response body is neither CSV nor a gviz JSON table."""


# ---------------------------------------------------------------------------
# Order store
# ---------------------------------------------------------------------------

class StoreError(SyncError):
    """The order store rejected or failed an operation."""


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------

class IntegrationSyncError(SyncError):
    """A whole sync pass for one integration was aborted."""

    def __init__(self, integration_id, cause: BaseException):
        self.integration_id = integration_id
        self.cause = cause
        detail = str(cause) or cause.__class__.__name__
        super().__init__(f"Sync failed for integration {integration_id}: {detail}")
