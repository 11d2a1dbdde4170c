"""
Tests for the EveryPay gateway client against a scripted upstream.
"""
import base64
import uuid
from datetime import datetime
from urllib.parse import quote

import httpx
import pytest

from payment_relay.exceptions import MalformedRequestError, UpstreamError
from payment_relay.models.payments import PaymentRequest
from payment_relay.services.gateway_client import EveryPayClient, build_auth_header


@pytest.fixture
def client(settings, upstream):
    return EveryPayClient(settings, upstream.client())


@pytest.fixture
def payment_request():
    return PaymentRequest(amount=1000, order_reference="ORD1", email="a@b.com", customer_ip="10.0.0.1")


def test_auth_header_is_basic_base64():
    header = build_auth_header("api_user", "api_secret")
    assert header == "Basic " + base64.b64encode(b"api_user:api_secret").decode()


async def test_initiate_sends_authenticated_oneoff_request(client, upstream, payment_request):
    upstream.handler = lambda request: httpx.Response(
        201, json={"payment_link": "https://pay/x", "payment_reference": "PR1"}
    )

    session = await client.initiate(payment_request)

    assert session.payment_link == "https://pay/x"
    assert session.payment_reference == "PR1"

    request = upstream.requests[-1]
    assert request.method == "POST"
    assert str(request.url) == "https://processor.test/api/v4/payments/oneoff"
    assert request.headers["authorization"] == build_auth_header("api_user", "api_secret")
    assert request.headers["content-type"] == "application/json"

    body = upstream.last_json
    assert body["account_name"] == "EUR3D1"
    assert body["amount"] == 1000
    assert body["order_reference"] == "ORD1"
    assert body["email"] == "a@b.com"
    assert body["customer_ip"] == "10.0.0.1"
    assert body["customer_url"] == "https://relay.test/payment-callback"
    assert body["api_username"] == "api_user"
    assert uuid.UUID(body["nonce"]).version == 4
    assert datetime.fromisoformat(body["timestamp"]).tzinfo is not None


async def test_initiate_uses_fresh_nonce_per_request(client, upstream, payment_request):
    upstream.handler = lambda request: httpx.Response(
        200, json={"payment_link": "https://pay/x", "payment_reference": "PR1"}
    )

    await client.initiate(payment_request)
    first = upstream.last_json["nonce"]
    await client.initiate(payment_request)

    assert upstream.last_json["nonce"] != first


async def test_initiate_rejection_carries_processor_message(client, upstream, payment_request):
    upstream.handler = lambda request: httpx.Response(422, json={"error": {"message": "bad account"}})

    with pytest.raises(UpstreamError) as exc_info:
        await client.initiate(payment_request)

    assert exc_info.value.message == "bad account"
    assert exc_info.value.upstream_status == 422


@pytest.mark.parametrize("response", [
    httpx.Response(500, text="<html>Internal Server Error</html>"),
    httpx.Response(400, json={"error": {}}),
    httpx.Response(400, json=["unexpected"]),
])
async def test_initiate_rejection_falls_back_to_generic_message(client, upstream, payment_request, response):
    upstream.handler = lambda request: response

    with pytest.raises(UpstreamError) as exc_info:
        await client.initiate(payment_request)

    assert exc_info.value.message == "Payment initiation failed"


async def test_initiate_incomplete_success_body_is_an_error(client, upstream, payment_request):
    upstream.handler = lambda request: httpx.Response(200, json={"payment_reference": "PR1"})

    with pytest.raises(UpstreamError):
        await client.initiate(payment_request)


@pytest.mark.parametrize("error", [httpx.ConnectError, httpx.ReadTimeout])
async def test_transport_failure_is_upstream_error(client, upstream, payment_request, error):
    def handler(request):
        raise error("boom", request=request)

    upstream.handler = handler

    with pytest.raises(UpstreamError) as exc_info:
        await client.initiate(payment_request)

    assert exc_info.value.message == "Payment processor unreachable"
    assert len(upstream.requests) == 1


async def test_lookup_sends_api_username(client, upstream):
    upstream.handler = lambda request: httpx.Response(
        200, json={"payment_reference": "PR1", "payment_state": "settled", "order_reference": "ORD1"}
    )

    status = await client.lookup("PR1")

    assert status.payment_state == "settled"
    assert status.order_reference == "ORD1"

    request = upstream.requests[-1]
    assert request.method == "GET"
    assert request.url.path == "/api/v4/payments/PR1"
    assert request.url.params["api_username"] == "api_user"
    assert request.headers["authorization"] == build_auth_header("api_user", "api_secret")


async def test_lookup_without_reference_makes_no_call(client, upstream):
    for reference in (None, ""):
        with pytest.raises(MalformedRequestError):
            await client.lookup(reference)

    assert upstream.requests == []


async def test_lookup_failure_reports_status(client, upstream):
    upstream.handler = lambda request: httpx.Response(404, json={"error": {"message": "Payment not found"}})

    with pytest.raises(UpstreamError) as exc_info:
        await client.lookup("PR404")

    assert exc_info.value.upstream_status == 404
    assert "404" in exc_info.value.message
    assert "Payment not found" in exc_info.value.message
    assert exc_info.value.details["body"] == {"error": {"message": "Payment not found"}}


async def test_lookup_without_state_is_an_error(client, upstream):
    upstream.handler = lambda request: httpx.Response(200, json={"payment_reference": "PR1"})

    with pytest.raises(UpstreamError):
        await client.lookup("PR1")


@pytest.mark.parametrize("reference", [
    "x/../oneoff?api_username=evil#",
    "../oneoff",
    "PR1/refund",
    "PR1?api_username=other",
    "PR1#fragment",
])
async def test_lookup_keeps_reference_in_one_path_segment(client, upstream, reference):
    upstream.handler = lambda request: httpx.Response(200, json={"payment_state": "settled"})

    await client.lookup(reference)

    request = upstream.requests[-1]
    path, _, query = request.url.raw_path.partition(b"?")
    assert path == b"/api/v4/payments/" + quote(reference, safe="").encode("ascii")
    assert query == b"api_username=api_user"
    assert request.url.fragment == ""


@pytest.mark.parametrize("reference", [".", ".."])
async def test_lookup_rejects_dot_segments(client, upstream, reference):
    with pytest.raises(MalformedRequestError):
        await client.lookup(reference)

    assert upstream.requests == []


async def test_lookup_coerces_non_string_references(client, upstream):
    upstream.handler = lambda request: httpx.Response(
        200, json={"payment_reference": 12345, "payment_state": "settled", "order_reference": 77}
    )

    status = await client.lookup("12345")

    assert status.payment_reference == "12345"
    assert status.order_reference == "77"
