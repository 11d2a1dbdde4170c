"""
Shared fixtures: settings, a scriptable upstream processor and app builders.
"""
import json
from typing import Callable, List

import httpx
import pytest
from fastapi.testclient import TestClient

from payment_relay.config import Settings
from payment_relay.main import create_app
from payment_relay.models.webhooks import WebhookEvent
from payment_relay.services.reconciliation_service import ReconciliationHandler


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        everypay_api_url="https://processor.test/api",
        everypay_username="api_user",
        everypay_secret="api_secret",
        everypay_account="EUR3D1",
        everypay_shared_key="shared_key",
        backend_app_url="https://relay.test",
        frontend_app_url="https://shop.test",
        allowed_origins=["https://shop.test"],
        environment="production",
    )


class Upstream:
    """
    Scriptable processor behind httpx.MockTransport.

    Set `handler` to a callable(request) -> httpx.Response; every request
    is recorded in `requests`.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.handler: Callable[[httpx.Request], httpx.Response] = lambda request: httpx.Response(
            500, json={"error": {"message": "no handler configured"}}
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))

    @property
    def last_json(self) -> dict:
        return json.loads(self.requests[-1].content)


class RecordingReconciler(ReconciliationHandler):
    def __init__(self):
        self.events: List[WebhookEvent] = []

    async def handle_status_update(self, event: WebhookEvent) -> None:
        self.events.append(event)


@pytest.fixture
def upstream() -> Upstream:
    return Upstream()


@pytest.fixture
def reconciler() -> RecordingReconciler:
    return RecordingReconciler()


@pytest.fixture
def api(settings, upstream, reconciler):
    """TestClient wired to the scripted upstream and recording reconciler."""
    app = create_app(settings, http_client=upstream.client(), reconciliation_handler=reconciler)
    with TestClient(app) as client:
        yield client
