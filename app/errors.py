from __future__ import annotations


class FrontDeskError(Exception):
    """Base class for failures raised by the front office core."""


class StoreError(FrontDeskError):
    """Raised when the record store cannot complete an operation."""

    def __init__(self, message: str, *, table: str | None = None) -> None:
        super().__init__(message)
        self.table = table


class StoreReadError(StoreError):
    """A read failed. Callers on load paths recover with defaults."""


class StoreWriteError(StoreError):
    """A write failed. Always surfaced; in-memory state must stay untouched."""


class AuthorizationError(FrontDeskError):
    """Raised when the acting user's role does not permit the action."""


class ShiftStateError(FrontDeskError):
    """Raised when a shift transition is attempted from the wrong status."""


class InvalidTransitionError(FrontDeskError):
    """Raised by callers that guard guest request status edges."""
