"""Human-facing codes for orders, POS sales and gateway charges."""

from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import ensure_utc, to_store_time, utc_now


def format_order_code(order_id: Optional[int], created_at: Optional[datetime]) -> str:
    """``#ORD-DD-MM-YYYY-NNN`` using the store-local order date.

    The id is zero-padded to three digits and never truncated.
    """
    local = to_store_time(created_at or utc_now())
    return f"#ORD-{local:%d-%m-%Y}-{order_id or 0:03d}"


def format_pos_code(created_at: datetime, sequence: int) -> str:
    """``#POS-DD-MM-YYYY-NNN`` where NNN is the sale's number within the day."""
    local = to_store_time(created_at)
    return f"#POS-{local:%d-%m-%Y}-{sequence:03d}"


def make_gateway_order_id(order_id: int, at: Optional[datetime] = None) -> str:
    """Gateway order ids must be unique per charge, so a re-issued QRIS gets a new one."""
    moment = ensure_utc(at or utc_now())
    return f"ORDER-{order_id}-{int(moment.timestamp())}"


def parse_gateway_order_id(gateway_order_id: str) -> Optional[int]:
    """Recover the shop order id from ``ORDER-<id>-<epoch>``."""
    parts = gateway_order_id.split("-")
    if len(parts) != 3 or parts[0] != "ORDER" or not parts[1].isdigit():
        return None
    return int(parts[1])
