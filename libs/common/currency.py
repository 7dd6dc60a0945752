"""Rupiah helpers for 5SCENT.

Internal storage unit: Rupiah as ``Decimal`` with two places
(``Numeric(12, 2)``). The gateway expects whole Rupiah as an integer and
the shop never prices in sen, so amounts are rounded half-up when sent
out or displayed.

Display format
--------------
0        -> "Rp0"
884000   -> "Rp884.000"
1250000  -> "Rp1.250.000"
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Union

Number = Union[int, float, Decimal, str]

# ─── conversion helpers ───────────────────────────────────────────────────────


def to_decimal(amount: Number) -> Decimal:
    """Normalise any numeric input to a two-place Decimal."""
    return Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def to_whole_rupiah(amount: Number) -> int:
    """Round to whole Rupiah (half-up). The gateway rejects fractional amounts."""
    return int(Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


# ─── display ──────────────────────────────────────────────────────────────────


def format_rupiah(amount: Number) -> str:
    """Format an amount as ``Rp`` with ``.`` thousands separators and no decimals."""
    whole = to_whole_rupiah(amount)
    if whole == 0:
        return "Rp0"
    sign = "-" if whole < 0 else ""
    return f"{sign}Rp{abs(whole):,}".replace(",", ".")
