import asyncio

import httpx
import pytest

from services.payment_api import (
    NETWORK_ERROR_MESSAGE,
    PaymentApiClient,
    PaymentApiConfig,
    PaymentApiError,
)

PAYMENT_BODY = {
    "id": 7,
    "orderId": 31,
    "status": "SUCCEEDED",
    "amount": 150000,
    "resultCode": 0,
    "resultMessage": "Successful.",
    "paidAt": "2024-01-01T10:00:00Z",
}


def call(handler, operation, token="secret-token"):
    """Run one client operation against a mocked transport."""
    client = PaymentApiClient(
        PaymentApiConfig(base_url="http://backend.test", token=token),
        transport=httpx.MockTransport(handler),
    )

    async def run():
        async with client:
            return await operation(client)

    return asyncio.run(run())


def test_sync_posts_to_sync_endpoint():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"ok": True})

    call(handler, lambda api: api.sync_payment(7))

    assert seen[0].method == "POST"
    assert seen[0].url.path == "/payment/7/sync"
    assert seen[0].headers["Authorization"] == "Bearer secret-token"


def test_no_auth_header_without_token():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(204)

    call(handler, lambda api: api.sync_payment(7), token="")

    assert "Authorization" not in seen[0].headers


def test_get_payment_parses_snapshot():
    def handler(request):
        assert request.method == "GET"
        assert request.url.path == "/payment/7"
        return httpx.Response(200, json=PAYMENT_BODY)

    snapshot = call(handler, lambda api: api.get_payment(7))

    assert snapshot.payment_id == 7
    assert snapshot.order_id == 31
    assert snapshot.raw_status == "SUCCEEDED"
    assert snapshot.amount == "150000"
    assert snapshot.result_code == 0
    assert snapshot.paid_at.isoformat().startswith("2024-01-01T10:00:00")


def test_error_response_surfaces_backend_message():
    def handler(request):
        return httpx.Response(404, json={"message": "Payment not found"})

    with pytest.raises(PaymentApiError) as exc:
        call(handler, lambda api: api.get_payment(7))

    assert exc.value.status_code == 404
    assert exc.value.message == "Payment not found"
    assert not exc.value.is_transport_error


def test_error_response_without_body():
    def handler(request):
        return httpx.Response(500, text="<html>oops</html>")

    with pytest.raises(PaymentApiError) as exc:
        call(handler, lambda api: api.sync_payment(7))

    assert exc.value.message == "Payment service responded with HTTP 500"


def test_transport_error_becomes_network_message():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(PaymentApiError) as exc:
        call(handler, lambda api: api.get_payment(7))

    assert exc.value.is_transport_error
    assert exc.value.message == NETWORK_ERROR_MESSAGE


def test_unreadable_payment_body():
    def handler(request):
        return httpx.Response(200, json={"status": "SUCCEEDED"})

    with pytest.raises(PaymentApiError) as exc:
        call(handler, lambda api: api.get_payment(7))

    assert exc.value.status_code == 200


def test_redirect_response_is_a_failure():
    def handler(request):
        return httpx.Response(302, headers={"Location": "http://login.test/"})

    with pytest.raises(PaymentApiError) as exc:
        call(handler, lambda api: api.sync_payment(7))

    assert exc.value.status_code == 302
    assert exc.value.message == "Payment service responded with HTTP 302"
