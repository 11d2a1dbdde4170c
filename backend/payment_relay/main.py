"""
Payment Relay Backend - FastAPI Application

Relays one-off card payments between the merchant frontend and EveryPay:
payment initiation, redirect callback, result reporting and webhook
verification.
"""
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from typing import Optional
import logging

import httpx

from . import __version__
from .config import CorsMode, Settings, get_settings
from .exceptions import RelayError
from .mocks.payment_processor import MockPaymentProcessor
from .services.gateway_client import EveryPayClient
from .services.reconciliation_service import LookupReconciliationHandler, ReconciliationHandler
from .api.payments import router as payments_router
from .api.webhooks import router as webhooks_router


VERSION = __version__

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def build_http_client(settings: Settings) -> httpx.AsyncClient:
    """
    Shared upstream HTTP client.

    In mock mode requests are served in-process by MockPaymentProcessor.
    """
    timeout = httpx.Timeout(settings.upstream_timeout_seconds)
    if settings.processor_mode == "mock":
        processor = MockPaymentProcessor(settings)
        return httpx.AsyncClient(transport=httpx.ASGITransport(app=processor.app), timeout=timeout)
    return httpx.AsyncClient(timeout=timeout)


def configure_cors(app: FastAPI, settings: Settings) -> None:
    """
    Install CORS middleware for the configured mode.

    strict: only allowed_origins are echoed back
    permissive: any origin is echoed back
    """
    if settings.cors_mode == CorsMode.PERMISSIVE:
        logger.warning(
            f"CORS is permissive (environment={settings.environment}): "
            f"origins outside {settings.allowed_origins} are allowed"
        )
        origin_options = {"allow_origin_regex": ".*"}
    else:
        origin_options = {"allow_origins": settings.allowed_origins}

    app.add_middleware(
        CORSMiddleware,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
        **origin_options
    )


def create_app(
    settings: Optional[Settings] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    reconciliation_handler: Optional[ReconciliationHandler] = None
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Configuration; read from the environment when omitted
        http_client: Upstream client; created and closed by the lifespan when omitted
        reconciliation_handler: Receiver of status_updated events;
            LookupReconciliationHandler when omitted
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan manager.

        - Startup: create the upstream client and wire components into app state
        - Shutdown: close the upstream client if it was created here
        """
        logger.info("Starting payment relay backend...")
        logger.info(f"Processor: {settings.everypay_api_url} (mode={settings.processor_mode})")

        owns_client = http_client is None
        client = http_client or build_http_client(settings)
        gateway_client = EveryPayClient(settings, client)

        app.state.settings = settings
        app.state.gateway_client = gateway_client
        app.state.reconciliation_handler = (
            reconciliation_handler or LookupReconciliationHandler(gateway_client)
        )

        logger.info("Server startup complete")

        yield

        logger.info("Shutting down payment relay backend...")
        if owns_client:
            await client.aclose()

    app = FastAPI(
        title="Payment Relay API",
        description="EveryPay one-off payment relay",
        version=VERSION,
        lifespan=lifespan,
    )

    configure_cors(app, settings)

    @app.exception_handler(RelayError)
    async def relay_error_handler(request: Request, exc: RelayError):
        """
        Handle relay errors with the standard {error, details} body.

        Server-side details are logged, never returned.
        """
        logger.warning(
            f"Relay error: {exc.error_code} - {exc.message}",
            extra={"details": exc.details}
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        """
        Reject malformed bodies with 400 before any upstream call.
        """
        logger.warning(f"Validation error on {request.url.path}: {exc.errors()}")
        fields = sorted({".".join(str(p) for p in err["loc"][1:]) or "body" for err in exc.errors()})
        return JSONResponse(
            status_code=400,
            content={
                "error": "Invalid request",
                "details": f"Invalid or missing fields: {', '.join(fields)}"
            }
        )

    @app.exception_handler(Exception)
    async def general_error_handler(request: Request, exc: Exception):
        """
        Catch-all handler for unexpected errors.

        Logs full exception for debugging but returns generic message to client.
        """
        logger.error(f"Unexpected error: {str(exc)}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_error",
                "details": "An unexpected error occurred"
            }
        )

    @app.get("/health")
    async def health_check():
        """Health check endpoint for monitoring and load balancers."""
        return {
            "status": "healthy",
            "version": VERSION,
            "processor_mode": settings.processor_mode,
        }

    app.include_router(payments_router, tags=["Payments"])
    app.include_router(webhooks_router, tags=["Webhooks"])

    return app


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    settings = get_settings()
    configure_logging(settings)
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower()
    )


if __name__ == "__main__":
    run()
