"""Core utilities: exceptions, middleware, security and idempotency."""

from sunsano.core.exceptions import (
    AppException,
    AuthorizationError,
    ExternalServiceError,
    InvalidOrderStatus,
    NotFoundError,
    PaymentError,
    RateLimitExceeded,
    ValidationError,
    WebhookSignatureError,
)
from sunsano.core.security import sign_payload, verify_admin_key, verify_signature

__all__ = [
    "AppException",
    "AuthorizationError",
    "ExternalServiceError",
    "InvalidOrderStatus",
    "NotFoundError",
    "PaymentError",
    "RateLimitExceeded",
    "ValidationError",
    "WebhookSignatureError",
    "sign_payload",
    "verify_admin_key",
    "verify_signature",
]
