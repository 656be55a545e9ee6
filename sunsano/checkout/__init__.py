"""Checkout orchestration: wizard, payment session and monitoring."""

from sunsano.checkout.draft import CartItem, CustomerData, OrderDraft, PaymentMethod, WizardStep
from sunsano.checkout.exceptions import CheckoutError, PaymentProviderError, StorageError
from sunsano.checkout.fake import FakePaymentProvider
from sunsano.checkout.logger import PaymentLogger
from sunsano.checkout.provider import (
    CheckoutSessionResult,
    HttpPaymentProvider,
    PaymentInitiation,
    PaymentProvider,
    SessionStatus,
)
from sunsano.checkout.storage import MemorySessionStorage, RedisSessionStorage, SessionStorage
from sunsano.checkout.system import CheckoutConfig, CheckoutSystem, PaymentSession
from sunsano.checkout.view import CheckoutView, LoggingCheckoutView

__all__ = [
    "CartItem",
    "CheckoutConfig",
    "CheckoutError",
    "CheckoutSessionResult",
    "CheckoutSystem",
    "CheckoutView",
    "CustomerData",
    "FakePaymentProvider",
    "HttpPaymentProvider",
    "LoggingCheckoutView",
    "MemorySessionStorage",
    "OrderDraft",
    "PaymentInitiation",
    "PaymentLogger",
    "PaymentMethod",
    "PaymentProvider",
    "PaymentProviderError",
    "PaymentSession",
    "RedisSessionStorage",
    "SessionStatus",
    "SessionStorage",
    "StorageError",
    "WizardStep",
]
