"""
Reconciliation Service

Receives verified status_updated notifications.

The relay keeps no order or payment storage, so the default handler
confirms the authoritative state with the processor and logs it. A
storage-backed handler can be swapped in through app state.
"""
import logging

from ..exceptions import RelayError
from ..models.webhooks import WebhookEvent
from .gateway_client import EveryPayClient

logger = logging.getLogger(__name__)


class ReconciliationHandler:
    """Seam for applying processor state changes."""

    async def handle_status_update(self, event: WebhookEvent) -> None:
        raise NotImplementedError


class LookupReconciliationHandler(ReconciliationHandler):
    """
    Confirms webhook-reported state via a payment lookup.

    The webhook body is never trusted for the final state; the lookup
    result is what gets logged. A failed lookup is logged and the event
    is still acknowledged.
    """

    def __init__(self, client: EveryPayClient):
        self.client = client

    async def handle_status_update(self, event: WebhookEvent) -> None:
        if not event.payment_reference:
            logger.warning(f"status_updated event without payment_reference: {event.model_dump()}")
            return

        try:
            payment = await self.client.lookup(event.payment_reference)
        except RelayError as e:
            logger.error(
                f"Could not confirm state for {event.payment_reference}: {e.message}",
                extra={"details": e.details}
            )
            return

        if event.payment_state and event.payment_state != payment.payment_state:
            logger.warning(
                f"Webhook state {event.payment_state!r} differs from processor state "
                f"{payment.payment_state!r} for {payment.payment_reference}"
            )

        logger.info(
            f"Payment state confirmed: reference={payment.payment_reference}, "
            f"order={payment.order_reference or event.order_reference}, "
            f"state={payment.payment_state}"
        )
