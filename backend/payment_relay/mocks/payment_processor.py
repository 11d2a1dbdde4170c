"""
Mock EveryPay Processor

In-memory stand-in for the EveryPay v4 API, served as an ASGI app.
Used when PROCESSOR_MODE=mock and by the test suite.

Mock Behavior:
- Requires the configured Basic credentials on every call
- Special order references trigger specific outcomes (see scenarios below)
- Lookups without api_username are rejected, like the real API
"""
import json
import uuid
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from urllib.parse import urlsplit

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..config import Settings
from ..services.gateway_client import build_auth_header
from ..services.signature_service import compute_signature


# Order references that make initiation fail with the given message
REJECTED_ORDERS = {
    "ORD_BAD_ACCOUNT": "bad account",
    "ORD_DUPLICATE": "Order reference already used",
}

# Order references whose payments end in a non-settled state
ORDER_STATE_SCENARIOS = {
    "ORD_FAILED": "failed",
    "ORD_ABANDONED": "abandoned",
    "ORD_PENDING": "waiting_for_3ds_response",
}

DEFAULT_FINAL_STATE = "settled"


def _error(status_code: int, code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": message}}
    )


class MockPaymentProcessor:
    """
    Stub processor holding payments in a dict keyed by payment_reference.

    Attributes:
        app: FastAPI application exposing the v4 endpoints
        payments: Created payments, inspectable by tests
    """

    def __init__(self, settings: Settings, link_base: str = "https://igw-demo.every-pay.com/lp"):
        self.settings = settings
        self.link_base = link_base
        self.payments: Dict[str, Dict[str, Any]] = {}
        # Served under the path of everypay_api_url, e.g. /api/v4/...
        self.prefix = urlsplit(settings.everypay_api_url).path.rstrip("/")
        self.app = FastAPI(title="Mock EveryPay")
        self._register_routes()

    def _authorized(self, request: Request) -> bool:
        expected = build_auth_header(self.settings.everypay_username, self.settings.everypay_secret)
        return request.headers.get("authorization") == expected

    def _register_routes(self) -> None:
        app = self.app

        @app.post(self.prefix + "/v4/payments/oneoff")
        async def create_oneoff(request: Request):
            if not self._authorized(request):
                return _error(401, 4001, "Unauthorized")

            body = await request.json()

            if body.get("api_username") != self.settings.everypay_username:
                return _error(422, 4024, "Invalid api_username")
            if body.get("account_name") != self.settings.everypay_account:
                return _error(422, 4028, "bad account")
            if not body.get("nonce") or not body.get("timestamp"):
                return _error(422, 4030, "Nonce and timestamp are required")

            order_reference = body.get("order_reference")
            if order_reference in REJECTED_ORDERS:
                return _error(422, 4099, REJECTED_ORDERS[order_reference])

            payment = self.create_payment(order_reference, body.get("amount"), body.get("email"))
            return {
                "payment_reference": payment["payment_reference"],
                "payment_link": payment["payment_link"],
                "payment_state": "initial",
                "order_reference": order_reference,
                "customer_url": body.get("customer_url"),
            }

        @app.get(self.prefix + "/v4/payments/{payment_reference}")
        async def get_payment(payment_reference: str, request: Request):
            if not self._authorized(request):
                return _error(401, 4001, "Unauthorized")
            if request.query_params.get("api_username") != self.settings.everypay_username:
                return _error(400, 4024, "Api username is missing")

            payment = self.payments.get(payment_reference)
            if payment is None:
                return _error(404, 4040, "Payment not found")

            return {
                "payment_reference": payment_reference,
                "order_reference": payment["order_reference"],
                "payment_state": payment["payment_state"],
                "amount": payment["amount"],
            }

    def create_payment(
        self,
        order_reference: Optional[str],
        amount: Any,
        email: Optional[str] = None
    ) -> Dict[str, Any]:
        """Register a payment directly, bypassing HTTP."""
        payment_reference = uuid.uuid4().hex
        payment = {
            "payment_reference": payment_reference,
            "payment_link": f"{self.link_base}/{payment_reference}",
            "order_reference": order_reference,
            "amount": amount,
            "email": email,
            "payment_state": ORDER_STATE_SCENARIOS.get(order_reference, DEFAULT_FINAL_STATE),
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        self.payments[payment_reference] = payment
        return payment

    def build_webhook(self, payment_reference: str, event_name: str = "status_updated") -> Dict[str, Any]:
        """
        Build a signed notification for a stored payment.

        Returns:
            {"body": bytes, "headers": {"everypay-signature": str}}
        """
        payment = self.payments[payment_reference]
        body = json.dumps({
            "event_name": event_name,
            "payment_reference": payment_reference,
            "order_reference": payment["order_reference"],
            "payment_state": payment["payment_state"],
        }).encode("utf-8")
        signature = compute_signature(
            body,
            self.settings.everypay_shared_key.encode("utf-8"),
            self.settings.webhook_signature_scheme
        )
        return {"body": body, "headers": {"everypay-signature": signature}}
