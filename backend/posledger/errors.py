# Overview: Error kinds raised by the ledger services and surfaced to callers.

"""
Every error carries a human-readable message plus a ``details`` dict with the
context a caller needs to render a specific message (item name, requested vs
available quantity, offending currency, ...).

status_code is the HTTP status the JSON routes answer with.
"""


class LedgerError(Exception):
    """Base class for ledger engine errors."""
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.message, "details": self.details}


class ValidationError(LedgerError, ValueError):
    """400-level input problem (missing or malformed fields)."""


class InsufficientStock(LedgerError):
    """A cart operation would reserve more than the item has on hand."""
    status_code = 409


class InvalidRate(LedgerError):
    """Currency conversion against an unknown or non-positive rate."""


class PayloadTooLarge(LedgerError):
    status_code = 413


class NotFound(LedgerError):
    status_code = 404


class PersistenceFailure(LedgerError):
    """Durable write failed; nothing was committed."""
    status_code = 500
