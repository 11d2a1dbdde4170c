"""
Webhook API Endpoint

Receives asynchronous processor notifications. The signature is checked
against the raw body before anything in it is read.
"""
import json
import logging

from fastapi import APIRouter, Depends, Header, Request, Response
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError
from typing import Optional

from ..config import Settings
from ..exceptions import MalformedRequestError
from ..models.webhooks import WebhookEvent
from ..services.reconciliation_service import ReconciliationHandler
from ..services.signature_service import verify_signature
from .deps import get_reconciliation_handler, get_settings

logger = logging.getLogger(__name__)

router = APIRouter()


def parse_event(raw_body: bytes) -> WebhookEvent:
    """Parse a verified webhook body into a WebhookEvent."""
    try:
        data = json.loads(raw_body)
    except ValueError:
        raise MalformedRequestError("Webhook body is not valid JSON")

    if not isinstance(data, dict):
        raise MalformedRequestError("Webhook body must be a JSON object")

    try:
        return WebhookEvent(**data)
    except ValidationError as e:
        raise MalformedRequestError("Webhook event is invalid", details={"errors": e.errors()})


@router.post("/webhook")
async def webhook_endpoint(
    request: Request,
    everypay_signature: Optional[str] = Header(None, alias="everypay-signature"),
    settings: Settings = Depends(get_settings),
    reconciler: ReconciliationHandler = Depends(get_reconciliation_handler)
) -> Response:
    """
    Verify and dispatch a processor notification.

    Headers:
        everypay-signature: hex digest of the raw body

    Returns:
        400 "Invalid signature" on mismatch (nothing else happens)
        200 empty body once the event is accepted
    """
    raw_body = await request.body()

    if not settings.everypay_shared_key:
        logger.error("Rejected webhook: EVERYPAY_SHARED_KEY is not configured")
        return PlainTextResponse("Invalid signature", status_code=400)

    if not verify_signature(
        raw_body,
        everypay_signature,
        settings.everypay_shared_key.encode("utf-8"),
        settings.webhook_signature_scheme
    ):
        logger.warning(
            f"Rejected webhook with invalid signature from "
            f"{request.client.host if request.client else 'unknown'}"
        )
        return PlainTextResponse("Invalid signature", status_code=400)

    event = parse_event(raw_body)

    if event.is_status_update:
        logger.info(f"Webhook status_updated: reference={event.payment_reference}")
        await reconciler.handle_status_update(event)
    else:
        logger.info(f"Webhook event ignored: {event.event_name}")

    return Response(status_code=200)
