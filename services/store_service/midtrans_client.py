"""
Midtrans Core API client for QRIS charges.

Provides async methods for:
- Creating a QRIS charge (returns the QR image URL and expiry)
- Querying a transaction's status
- Verifying HTTP notification signatures
"""

import base64
import hashlib
import hmac
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

import httpx
from libs.common.config import get_settings
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger

logger = get_logger(__name__)

QR_ACTION_NAMES = ("generate-qr-code", "generate-qr-code-v2")


@dataclass
class QrisCharge:
    """Result of a successful QRIS charge."""

    gateway_order_id: str
    transaction_id: Optional[str]
    gross_amount: int
    qr_url: str
    expires_at: datetime
    raw: dict


class MidtransError(Exception):
    """Raised when Midtrans rejects a request or cannot be reached."""

    def __init__(
        self, message: str, status_code: int = None, response_data: dict = None
    ):
        self.message = message
        self.status_code = status_code
        self.response_data = response_data or {}
        super().__init__(message)


def compute_signature(
    order_id: str, status_code: str, gross_amount: str, server_key: str
) -> str:
    """SHA512(order_id + status_code + gross_amount + server_key), hex encoded."""
    raw = f"{order_id}{status_code}{gross_amount}{server_key}"
    return hashlib.sha512(raw.encode("utf-8")).hexdigest()


def verify_signature(payload: dict, server_key: str) -> bool:
    """Check a notification's ``signature_key`` in constant time."""
    signature = payload.get("signature_key")
    if not signature or not server_key:
        return False
    expected = compute_signature(
        str(payload.get("order_id", "")),
        str(payload.get("status_code", "")),
        str(payload.get("gross_amount", "")),
        server_key,
    )
    return hmac.compare_digest(expected, str(signature))


class MidtransClient:
    """Async client for the Midtrans Core API."""

    def __init__(
        self,
        server_key: str = None,
        base_url: str = None,
        transport: httpx.AsyncBaseTransport = None,
    ):
        settings = get_settings()
        self.server_key = server_key or settings.MIDTRANS_SERVER_KEY
        if not self.server_key:
            raise ValueError("MIDTRANS_SERVER_KEY is required")
        self.base_url = base_url or settings.midtrans_base_url
        self._transport = transport
        token = base64.b64encode(f"{self.server_key}:".encode()).decode()
        self._headers = {
            "Authorization": f"Basic {token}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

    async def _request(
        self,
        method: str,
        endpoint: str,
        json_data: dict = None,
        strict: bool = True,
    ) -> dict:
        url = f"{self.base_url}{endpoint}"
        try:
            async with httpx.AsyncClient(
                timeout=30.0, transport=self._transport
            ) as client:
                response = await client.request(
                    method=method, url=url, headers=self._headers, json=json_data
                )
        except httpx.HTTPError as exc:
            logger.error("Midtrans request to %s failed: %s", endpoint, exc)
            raise MidtransError(f"Could not reach payment gateway: {exc}") from exc

        try:
            data = response.json()
        except ValueError:
            data = {"raw": response.text}

        # Midtrans reports some failures as HTTP 200 with an error status_code
        gateway_status = str(data.get("status_code", response.status_code))
        rejected = strict and not gateway_status.startswith("2")
        if not response.is_success or rejected:
            logger.error(
                "Midtrans API error: %s - %s", response.status_code, data
            )
            raise MidtransError(
                message=data.get("status_message", "Payment gateway error"),
                status_code=response.status_code,
                response_data=data,
            )
        return data

    async def charge_qris(
        self,
        *,
        gateway_order_id: str,
        gross_amount: int,
        customer_name: Optional[str] = None,
        customer_email: Optional[str] = None,
        customer_phone: Optional[str] = None,
        expiry_minutes: int = None,
    ) -> QrisCharge:
        """Create a QRIS charge and return the QR URL the customer scans."""
        settings = get_settings()
        expiry_minutes = expiry_minutes or settings.QRIS_EXPIRY_MINUTES
        payload = {
            "payment_type": "qris",
            "transaction_details": {
                "order_id": gateway_order_id,
                "gross_amount": gross_amount,
            },
            "customer_details": {
                "first_name": customer_name or "Customer",
                "email": customer_email,
                "phone": customer_phone,
            },
            "qris": {"acquirer": settings.QRIS_ACQUIRER},
            "custom_expiry": {"expiry_duration": expiry_minutes, "unit": "minute"},
        }

        data = await self._request("POST", "/v2/charge", json_data=payload)

        qr_url = next(
            (
                action.get("url")
                for action in data.get("actions", [])
                if action.get("name") in QR_ACTION_NAMES
            ),
            None,
        )
        if not qr_url:
            raise MidtransError(
                message="QR code URL missing from gateway response",
                response_data=data,
            )

        logger.info(
            "QRIS charge created for %s (amount=%d)", gateway_order_id, gross_amount
        )
        return QrisCharge(
            gateway_order_id=gateway_order_id,
            transaction_id=data.get("transaction_id"),
            gross_amount=gross_amount,
            qr_url=qr_url,
            expires_at=utc_now() + timedelta(minutes=expiry_minutes),
            raw=data,
        )

    async def get_status(self, gateway_order_id: str) -> dict:
        """Fetch the gateway's current view of a transaction."""
        # Expired or failed transactions come back with a 4xx status_code body
        return await self._request(
            "GET", f"/v2/{gateway_order_id}/status", strict=False
        )


def get_midtrans_client() -> Optional[MidtransClient]:
    """FastAPI dependency. None when the gateway is not configured."""
    if not get_settings().MIDTRANS_SERVER_KEY:
        return None
    return MidtransClient()
