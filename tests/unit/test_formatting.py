"""Unit tests for order codes, Rupiah formatting and phone normalisation."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from libs.common.currency import format_rupiah, to_decimal, to_whole_rupiah
from libs.common.phone import is_valid_phone, normalize_phone
from services.store_service.services.order_codes import (
    format_order_code,
    format_pos_code,
    make_gateway_order_id,
    parse_gateway_order_id,
)

# ---------------------------------------------------------------------------
# Order codes
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_order_code_uses_store_local_date_and_pads_id():
    created_at = datetime(2025, 12, 10, 3, 0, tzinfo=timezone.utc)

    assert format_order_code(25, created_at) == "#ORD-10-12-2025-025"


@pytest.mark.unit
def test_order_code_rolls_over_at_jakarta_midnight():
    """18:30 UTC on the 9th is already the 10th in Jakarta (UTC+7)."""
    created_at = datetime(2025, 12, 9, 18, 30, tzinfo=timezone.utc)

    assert format_order_code(7, created_at) == "#ORD-10-12-2025-007"


@pytest.mark.unit
def test_order_code_never_truncates_long_ids():
    created_at = datetime(2025, 1, 5, 5, 0, tzinfo=timezone.utc)

    assert format_order_code(12345, created_at) == "#ORD-05-01-2025-12345"


@pytest.mark.unit
def test_order_code_treats_naive_timestamps_as_utc():
    assert format_order_code(1, datetime(2025, 6, 1, 20, 0)) == "#ORD-02-06-2025-001"


@pytest.mark.unit
def test_pos_code_uses_daily_sequence():
    created_at = datetime(2025, 12, 10, 3, 0, tzinfo=timezone.utc)

    assert format_pos_code(created_at, 3) == "#POS-10-12-2025-003"


@pytest.mark.unit
def test_gateway_order_id_round_trip():
    at = datetime(2025, 12, 10, 3, 0, tzinfo=timezone.utc)
    gateway_order_id = make_gateway_order_id(42, at)

    assert gateway_order_id == f"ORDER-42-{int(at.timestamp())}"
    assert parse_gateway_order_id(gateway_order_id) == 42


@pytest.mark.unit
@pytest.mark.parametrize("value", ["", "ORDER-x-1", "INV-1-2", "ORDER-1"])
def test_parse_gateway_order_id_rejects_foreign_ids(value):
    assert parse_gateway_order_id(value) is None


# ---------------------------------------------------------------------------
# Currency
# ---------------------------------------------------------------------------


@pytest.mark.unit
@pytest.mark.parametrize(
    "amount, expected",
    [
        (0, "Rp0"),
        (884000, "Rp884.000"),
        (Decimal("884000.00"), "Rp884.000"),
        (1250000, "Rp1.250.000"),
        (999, "Rp999"),
        (Decimal("1500.50"), "Rp1.501"),
    ],
)
def test_format_rupiah(amount, expected):
    assert format_rupiah(amount) == expected


@pytest.mark.unit
def test_to_whole_rupiah_rounds_half_up():
    assert to_whole_rupiah(Decimal("221000.50")) == 221001
    assert to_whole_rupiah(Decimal("221000.49")) == 221000
    assert to_whole_rupiah("150000") == 150000


@pytest.mark.unit
def test_to_decimal_keeps_two_places():
    assert to_decimal(1.005) == Decimal("1.01")
    assert to_decimal("150000") == Decimal("150000.00")


# ---------------------------------------------------------------------------
# Phone numbers
# ---------------------------------------------------------------------------


@pytest.mark.unit
@pytest.mark.parametrize(
    "raw, expected",
    [
        ("081234567890", "+6281234567890"),
        ("6281234567890", "+6281234567890"),
        ("+6281234567890", "+6281234567890"),
        ("81234567890", "+6281234567890"),
        ("+62 812-3456-7890", "+6281234567890"),
        ("0812 3456 7890", "+6281234567890"),
    ],
)
def test_normalize_phone(raw, expected):
    normalized = normalize_phone(raw)

    assert normalized == expected
    assert is_valid_phone(normalized)


@pytest.mark.unit
def test_normalize_phone_passes_through_empty_values():
    assert normalize_phone(None) is None
    assert normalize_phone("") == ""


@pytest.mark.unit
@pytest.mark.parametrize("value", ["+62812", "+1 555 1234567", "phone", None, ""])
def test_invalid_phone_numbers(value):
    assert not is_valid_phone(normalize_phone(value))
