"""
Callback Translation Service

Turns the processor's redirect-back into a second redirect to the
frontend result page.

The caller is a browser in the middle of a redirect chain, so every
outcome, including failures, ends in a redirect URL rather than an
error response.
"""
from typing import Optional
from urllib.parse import urlencode
import logging

from ..exceptions import RelayError
from .gateway_client import EveryPayClient

logger = logging.getLogger(__name__)


GENERIC_FAILURE_MESSAGE = "Payment status could not be determined"


def build_result_url(result_url: str, params: dict) -> str:
    """Append query parameters to the frontend result URL."""
    return f"{result_url}?{urlencode(params)}"


async def translate_callback(
    client: EveryPayClient,
    result_url: str,
    payment_reference: Optional[str],
    order_reference: Optional[str]
) -> str:
    """
    Resolve a processor callback into a frontend redirect target.

    Args:
        client: Gateway client used for the status lookup
        result_url: Frontend result page (settings.result_url)
        payment_reference: Processor reference from the callback query
        order_reference: Merchant reference from the callback query

    Returns:
        Redirect URL with status/reference/order on success, or
        status=error/message/order on failure. Absent references render
        as empty strings.
    """
    order = order_reference or ""

    try:
        payment = await client.lookup(payment_reference)
    except RelayError as e:
        logger.warning(
            f"Payment callback failed: reference={payment_reference!r}, "
            f"order={order_reference!r}, error={e.message}"
        )
        return build_result_url(result_url, {
            "status": "error",
            "message": e.message,
            "order": order,
        })
    except Exception as e:
        logger.error(f"Unexpected error processing payment callback: {e}", exc_info=True)
        return build_result_url(result_url, {
            "status": "error",
            "message": GENERIC_FAILURE_MESSAGE,
            "order": order,
        })

    logger.info(
        f"Payment callback resolved: reference={payment_reference}, "
        f"order={order_reference}, state={payment.payment_state}"
    )

    return build_result_url(result_url, {
        "status": payment.payment_state,
        "reference": payment_reference or "",
        "order": order,
    })
