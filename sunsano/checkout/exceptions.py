"""Checkout orchestration errors."""


class CheckoutError(Exception):
    """Base class for checkout orchestration errors."""


class PaymentProviderError(CheckoutError):
    """A remote payment call failed (transport, non-2xx or malformed body)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class StorageError(CheckoutError):
    """Session storage is unavailable."""
