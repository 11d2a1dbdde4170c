"""
Pydantic Payment Models

Request and response shapes for one-off payment initiation,
payment lookup and the frontend result page.
"""
from typing import Optional
from pydantic import BaseModel, Field


class InitiatePaymentRequest(BaseModel):
    """
    Body of POST /initiate-payment as sent by the merchant frontend.

    Amount is forwarded to the processor unchanged.
    """
    amount: int = Field(gt=0, description="Payment amount in minor units")
    order_reference: str = Field(min_length=1, description="Merchant order identifier")
    email: str = Field(pattern=r"^[^@\s]+@[^@\s]+$", description="Customer email")

    model_config = {
        "json_schema_extra": {
            "example": {
                "amount": 1000,
                "order_reference": "ORD1",
                "email": "a@b.com"
            }
        }
    }


class PaymentRequest(InitiatePaymentRequest):
    """Initiate request enriched with the caller's address."""
    customer_ip: str = ""


class InitiatePaymentResponse(BaseModel):
    """Processor payment session returned to the frontend."""
    payment_link: str
    payment_reference: str


class PaymentStatus(BaseModel):
    """Authoritative payment state as reported by the processor."""
    payment_reference: str
    payment_state: str = Field(min_length=1)
    order_reference: Optional[str] = None


class PaymentResult(BaseModel):
    """Terminal status rendered by GET /payment-result."""
    paymentStatus: Optional[str] = None
    paymentReference: Optional[str] = None
    errorMessage: Optional[str] = None
