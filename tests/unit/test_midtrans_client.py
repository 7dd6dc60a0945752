"""Unit tests for the Midtrans client against an httpx MockTransport."""

import base64
import hashlib
import json

import httpx
import pytest
from services.store_service.midtrans_client import (
    MidtransClient,
    MidtransError,
    compute_signature,
    verify_signature,
)

SERVER_KEY = "SB-Mid-server-test"


def _client(handler) -> MidtransClient:
    return MidtransClient(
        server_key=SERVER_KEY,
        base_url="https://api.sandbox.midtrans.com",
        transport=httpx.MockTransport(handler),
    )


# ---------------------------------------------------------------------------
# Signatures
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_signature_is_sha512_of_concatenated_fields():
    expected = hashlib.sha512(
        f"ORDER-1-17000000002001500000.00{SERVER_KEY}".encode()
    ).hexdigest()

    assert compute_signature("ORDER-1-1700000000", "200", "1500000.00", SERVER_KEY) == (
        expected
    )


@pytest.mark.unit
def test_verify_signature():
    payload = {
        "order_id": "ORDER-1-1700000000",
        "status_code": "200",
        "gross_amount": "150000.00",
    }
    payload["signature_key"] = compute_signature(
        payload["order_id"], "200", "150000.00", SERVER_KEY
    )

    assert verify_signature(payload, SERVER_KEY)
    assert not verify_signature(payload, "another-key")
    assert not verify_signature({**payload, "gross_amount": "1.00"}, SERVER_KEY)
    assert not verify_signature({**payload, "signature_key": ""}, SERVER_KEY)
    assert not verify_signature(payload, "")


@pytest.mark.unit
def test_client_requires_server_key(monkeypatch):
    from libs.common.config import get_settings

    monkeypatch.setattr(get_settings(), "MIDTRANS_SERVER_KEY", "")

    with pytest.raises(ValueError):
        MidtransClient()


# ---------------------------------------------------------------------------
# charge_qris
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_charge_qris_sends_core_api_request():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["request"] = request
        return httpx.Response(
            201,
            json={
                "status_code": "201",
                "transaction_id": "trx-1",
                "transaction_status": "pending",
                "actions": [
                    {"name": "generate-qr-code-v2", "url": "https://qr.example/v2"},
                    {"name": "get-status", "url": "https://status.example"},
                ],
            },
        )

    charge = await _client(handler).charge_qris(
        gateway_order_id="ORDER-7-1700000000",
        gross_amount=884000,
        customer_name="Ayu",
        customer_email="ayu@test.com",
        customer_phone="+6281234567890",
        expiry_minutes=5,
    )

    request = seen["request"]
    assert request.method == "POST"
    assert str(request.url) == "https://api.sandbox.midtrans.com/v2/charge"
    token = base64.b64encode(f"{SERVER_KEY}:".encode()).decode()
    assert request.headers["Authorization"] == f"Basic {token}"

    body = json.loads(request.content)
    assert body["payment_type"] == "qris"
    assert body["transaction_details"] == {
        "order_id": "ORDER-7-1700000000",
        "gross_amount": 884000,
    }
    assert body["custom_expiry"] == {"expiry_duration": 5, "unit": "minute"}

    assert charge.qr_url == "https://qr.example/v2"
    assert charge.transaction_id == "trx-1"
    assert charge.gross_amount == 884000


@pytest.mark.asyncio
@pytest.mark.unit
async def test_charge_without_qr_action_is_an_error():
    def handler(request):
        return httpx.Response(201, json={"status_code": "201", "actions": []})

    with pytest.raises(MidtransError) as exc:
        await _client(handler).charge_qris(
            gateway_order_id="ORDER-7-1700000000", gross_amount=1000
        )

    assert "QR code URL" in exc.value.message


@pytest.mark.asyncio
@pytest.mark.unit
async def test_error_status_in_body_is_rejected():
    """Midtrans sometimes answers HTTP 200 with an error status_code."""

    def handler(request):
        return httpx.Response(
            200,
            json={"status_code": "500", "status_message": "Sorry. Our system is busy"},
        )

    with pytest.raises(MidtransError) as exc:
        await _client(handler).charge_qris(
            gateway_order_id="ORDER-7-1700000000", gross_amount=1000
        )

    assert exc.value.message == "Sorry. Our system is busy"
    assert exc.value.response_data["status_code"] == "500"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_transport_failure_becomes_midtrans_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(MidtransError) as exc:
        await _client(handler).charge_qris(
            gateway_order_id="ORDER-7-1700000000", gross_amount=1000
        )

    assert "Could not reach payment gateway" in exc.value.message


# ---------------------------------------------------------------------------
# get_status
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_get_status_tolerates_error_status_codes_in_body():
    def handler(request):
        assert request.url.path == "/v2/ORDER-7-1700000000/status"
        return httpx.Response(
            200, json={"status_code": "407", "transaction_status": "expire"}
        )

    data = await _client(handler).get_status("ORDER-7-1700000000")

    assert data["transaction_status"] == "expire"
