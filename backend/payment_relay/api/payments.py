"""
Payments API Endpoints

One-off payment initiation, the processor's redirect callback and the
terminal result consumed by the frontend.
"""
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse
from typing import Optional
import logging

from ..config import Settings
from ..exceptions import UpstreamError
from ..models.payments import InitiatePaymentRequest, PaymentRequest, PaymentResult
from ..services.callback_service import translate_callback
from ..services.gateway_client import EveryPayClient
from .deps import get_gateway_client, get_settings

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/initiate-payment")
async def initiate_payment_endpoint(
    payload: InitiatePaymentRequest,
    request: Request,
    client: EveryPayClient = Depends(get_gateway_client)
):
    """
    Create a one-off payment with the processor.

    Request Body:
        {"amount": int, "order_reference": str, "email": str}

    Returns:
        200 {"payment_link": str, "payment_reference": str}
        400 {"error": "Payment initiation failed", "details": str}

    Example:
        POST /initiate-payment
        {"amount": 1000, "order_reference": "ORD1", "email": "a@b.com"}
    """
    payment_request = PaymentRequest(
        **payload.model_dump(),
        customer_ip=request.client.host if request.client else ""
    )

    try:
        session = await client.initiate(payment_request)
    except UpstreamError as e:
        logger.error(
            f"Payment initiation error: order={payload.order_reference}, "
            f"status={e.upstream_status}, message={e.message}",
            extra={"details": e.details}
        )
        return JSONResponse(
            status_code=400,
            content={
                "error": "Payment initiation failed",
                "details": e.message
            }
        )

    return session.model_dump()


@router.get("/payment-callback")
async def payment_callback_endpoint(
    payment_reference: Optional[str] = Query(None),
    order_reference: Optional[str] = Query(None),
    settings: Settings = Depends(get_settings),
    client: EveryPayClient = Depends(get_gateway_client)
) -> RedirectResponse:
    """
    Processor redirect-back after the customer leaves the payment page.

    Always answers with a redirect to {frontend}/payment-result, carrying
    either status/reference/order or status=error/message/order.
    """
    redirect_url = await translate_callback(
        client,
        settings.result_url,
        payment_reference,
        order_reference
    )
    return RedirectResponse(redirect_url, status_code=302)


@router.get("/payment-result")
async def payment_result_endpoint(
    status: Optional[str] = Query(None),
    reference: Optional[str] = Query(None),
    message: Optional[str] = Query(None)
) -> PaymentResult:
    """
    Terminal payment status for the frontend.

    Returns:
        {"paymentStatus": str | null, "paymentReference": str | null,
         "errorMessage": str | null}
    """
    return PaymentResult(
        paymentStatus=status,
        paymentReference=reference,
        errorMessage=message
    )
