"""
Request dependencies resolving components built in the app lifespan.
"""
from fastapi import Request

from ..config import Settings
from ..services.gateway_client import EveryPayClient
from ..services.reconciliation_service import ReconciliationHandler


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_gateway_client(request: Request) -> EveryPayClient:
    return request.app.state.gateway_client


def get_reconciliation_handler(request: Request) -> ReconciliationHandler:
    return request.app.state.reconciliation_handler
