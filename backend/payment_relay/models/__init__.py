"""
Pydantic models for the payment relay.
"""
from .payments import (
    InitiatePaymentRequest,
    InitiatePaymentResponse,
    PaymentRequest,
    PaymentResult,
    PaymentStatus,
)
from .webhooks import STATUS_UPDATED, WebhookEvent

__all__ = [
    "InitiatePaymentRequest",
    "InitiatePaymentResponse",
    "PaymentRequest",
    "PaymentResult",
    "PaymentStatus",
    "STATUS_UPDATED",
    "WebhookEvent",
]
