"""ptc_dashboard.errors

Error taxonomy for imports, status changes and the sheet fetch. Every error
is terminal for the operation that raised it; callers decide whether to retry.
"""

from __future__ import annotations

from typing import Iterable, Optional


class DashboardError(Exception):
    """Base class for errors surfaced to the web app and CLI."""


class ValidationError(DashboardError, ValueError):
    """Raised for a bad status value, an empty slot key or a malformed row."""


class SchemaError(DashboardError):
    """Raised when incoming data lacks a required identity column."""

    def __init__(self, missing: Iterable[str], found: Iterable[str]) -> None:
        self.missing = list(missing)
        self.found = list(found)
        super().__init__(
            f"missing required column(s) {self.missing}; found headers {self.found}"
        )


class EmptyInputError(DashboardError):
    """Raised when an import batch has no header row or no data rows."""


class AuthorizationError(DashboardError):
    """Raised when a non-admin identity attempts a mutating call."""


class UpstreamFetchError(DashboardError):
    """Raised when the spreadsheet export cannot be fetched."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(message)
