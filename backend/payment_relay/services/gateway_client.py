"""
EveryPay Gateway Client

Builds authenticated requests to the EveryPay v4 API and parses its
responses for one-off payment creation and payment lookup.

Replay protection: every payment creation carries a fresh nonce (uuid4)
and an ISO-8601 timestamp. Nothing here is retried, since the processor
defines no idempotency key for payment creation.
"""
import base64
import uuid
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from urllib.parse import quote
import logging

import httpx

from ..config import Settings
from ..exceptions import MalformedRequestError, UpstreamError
from ..models.payments import InitiatePaymentResponse, PaymentRequest, PaymentStatus

logger = logging.getLogger(__name__)


INITIATE_FALLBACK_MESSAGE = "Payment initiation failed"
UNREACHABLE_MESSAGE = "Payment processor unreachable"


def build_auth_header(username: str, secret: str) -> str:
    """Basic authentication credential for the processor API."""
    token = base64.b64encode(f"{username}:{secret}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


def generate_nonce() -> str:
    return str(uuid.uuid4())


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _json_or_none(response: httpx.Response) -> Optional[Any]:
    try:
        return response.json()
    except ValueError:
        return None


def _processor_message(payload: Any) -> Optional[str]:
    """Extract error.message from an EveryPay error body."""
    if not isinstance(payload, dict):
        return None
    error = payload.get("error")
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return None


class EveryPayClient:
    """
    Async client for the EveryPay v4 REST API.

    The httpx client is owned by the application lifespan and shared across
    requests; this class holds no per-request state.
    """

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self.settings = settings
        self.http_client = http_client
        self.api_url = settings.everypay_api_url
        self.timeout = httpx.Timeout(settings.upstream_timeout_seconds)

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": build_auth_header(
                self.settings.everypay_username,
                self.settings.everypay_secret
            ),
            "Content-Type": "application/json",
        }

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            return await self.http_client.request(
                method,
                url,
                headers=self._headers(),
                timeout=self.timeout,
                **kwargs
            )
        except httpx.HTTPError as e:
            logger.error(f"Transport error calling processor {method} {url}: {e!r}")
            raise UpstreamError(UNREACHABLE_MESSAGE, details={"error_type": type(e).__name__})

    async def initiate(self, request: PaymentRequest) -> InitiatePaymentResponse:
        """
        Create a one-off payment session.

        Args:
            request: Validated payment request with the customer IP

        Returns:
            InitiatePaymentResponse with payment_link and payment_reference

        Raises:
            UpstreamError: Processor rejected the request or was unreachable
        """
        body = {
            "account_name": self.settings.everypay_account,
            "amount": request.amount,
            "order_reference": request.order_reference,
            "nonce": generate_nonce(),
            "timestamp": utc_timestamp(),
            "customer_url": self.settings.callback_url,
            "email": request.email,
            "customer_ip": request.customer_ip,
            "api_username": self.settings.everypay_username,
        }

        logger.info(f"Initiating payment: order={request.order_reference}, amount={request.amount}")

        response = await self._send("POST", f"{self.api_url}/v4/payments/oneoff", json=body)
        payload = _json_or_none(response)

        if not response.is_success:
            logger.error(
                f"Payment initiation rejected: status={response.status_code}, body={payload!r}"
            )
            raise UpstreamError(
                _processor_message(payload) or INITIATE_FALLBACK_MESSAGE,
                upstream_status=response.status_code,
                details={"body": payload}
            )

        if not isinstance(payload, dict) or not payload.get("payment_link") or not payload.get("payment_reference"):
            logger.error(f"Payment initiation returned incomplete body: {payload!r}")
            raise UpstreamError(INITIATE_FALLBACK_MESSAGE, upstream_status=response.status_code)

        logger.info(
            f"Payment created: order={request.order_reference}, "
            f"reference={payload['payment_reference']}"
        )

        return InitiatePaymentResponse(
            payment_link=payload["payment_link"],
            payment_reference=payload["payment_reference"]
        )

    async def lookup(self, payment_reference: Optional[str]) -> PaymentStatus:
        """
        Fetch the current state of a payment.

        The api_username query parameter is missing from the public API
        documentation but lookups fail without it.

        Raises:
            MalformedRequestError: payment_reference is empty or a dot segment
            UpstreamError: Processor rejected the lookup or was unreachable
        """
        if not payment_reference:
            raise MalformedRequestError("payment_reference is required")
        if payment_reference in (".", ".."):
            raise MalformedRequestError("payment_reference is invalid")

        response = await self._send(
            "GET",
            f"{self.api_url}/v4/payments/{quote(payment_reference, safe='')}",
            params={"api_username": self.settings.everypay_username}
        )
        payload = _json_or_none(response)

        if not response.is_success:
            logger.error(
                f"Payment lookup failed: reference={payment_reference}, "
                f"status={response.status_code}, body={payload!r}"
            )
            message = _processor_message(payload)
            raise UpstreamError(
                f"Payment lookup failed with status {response.status_code}"
                + (f": {message}" if message else ""),
                upstream_status=response.status_code,
                details={"body": payload}
            )

        if not isinstance(payload, dict) or not payload.get("payment_state"):
            logger.error(f"Payment lookup returned no payment_state: {payload!r}")
            raise UpstreamError("Payment state missing from processor response")

        order_reference = payload.get("order_reference")

        return PaymentStatus(
            payment_reference=str(payload.get("payment_reference") or payment_reference),
            payment_state=str(payload["payment_state"]),
            order_reference=None if order_reference is None else str(order_reference)
        )
