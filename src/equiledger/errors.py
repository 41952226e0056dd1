"""Domain exceptions shared across EquiLedger."""

from typing import Any


class LedgerError(Exception):
    """Base exception for ledger operations."""

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.details = details


class NotFoundError(LedgerError):
    """Record does not exist within the current business."""

    pass


class ValidationError(LedgerError):
    """Input failed a business rule (amount, date, status)."""

    pass
