# Overview: Domain error taxonomy shared by the sale, payment and catalog services.

from __future__ import annotations


class PosError(Exception):
    """Base class for business errors surfaced to the caller verbatim."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotFoundError(PosError):
    """Product, variant, customer, sale or profile missing."""


class InsufficientStockError(PosError):
    """A product or variant counter cannot cover the requested quantity."""


class InsufficientBalanceError(PosError):
    """Customer prepaid balance cannot cover the amount."""


class InvalidAmountError(PosError):
    """Payment or deposit amount is not positive or exceeds what is due."""


class ConflictAbortError(PosError):
    """Concurrent writers kept invalidating the transaction; retries exhausted."""


class PersistenceError(PosError):
    """Generic store failure."""
