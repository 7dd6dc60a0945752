"""Sales aggregation and the PDF/XLSX exports built from it.

Both exports are rendered from the same ``build_sheet_rows`` output, so the
figures in the PDF and the spreadsheet cannot drift apart.
"""

import calendar
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Literal, Optional

from libs.common.config import get_settings
from libs.common.currency import format_rupiah, to_whole_rupiah
from libs.common.datetime_utils import store_timezone, to_store_time
from libs.common.pdf import generate_table_report_pdf
from libs.common.spreadsheet import generate_workbook
from services.store_service.models import COMPLETED_ORDER_STATUSES, Order
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

Period = Literal["day", "week", "month", "year"]
PERIODS: tuple[Period, ...] = ("day", "week", "month", "year")
YEARS_BACK = 10

SHEETS = {
    "day": ("Daily Sales", "Day", "Total (Daily)"),
    "week": ("Weekly Sales", "Week", "Total (Weekly)"),
    "month": ("Monthly Sales", "Month", "Total (Monthly)"),
    "year": ("Yearly Sales", "Year", "Total (Yearly)"),
}


@dataclass
class Bucket:
    label: str
    start: date
    end: date  # exclusive
    orders: int = 0
    revenue: Decimal = field(default_factory=lambda: Decimal("0"))

    @property
    def avg_revenue(self) -> int:
        if not self.orders:
            return 0
        return round(to_whole_rupiah(self.revenue) / self.orders)


@dataclass
class SalesReport:
    reference_date: date
    exported_by: str
    generated_at: datetime
    periods: dict[str, list[Bucket]]


# ---------------------------------------------------------------------------
# Bucketing
# ---------------------------------------------------------------------------


def build_buckets(
    period: Period, reference: date, earliest_year: Optional[int] = None
) -> list[Bucket]:
    """Empty buckets covering the period around ``reference`` (store-local dates)."""
    if period == "day":
        monday = reference - timedelta(days=reference.weekday())
        return [
            Bucket(
                label=calendar.day_name[i],
                start=monday + timedelta(days=i),
                end=monday + timedelta(days=i + 1),
            )
            for i in range(7)
        ]

    if period == "week":
        first = reference.replace(day=1)
        last_day = calendar.monthrange(reference.year, reference.month)[1]
        month_end = first + timedelta(days=last_day)
        buckets = []
        start = first
        while start < month_end:
            next_monday = start + timedelta(days=7 - start.weekday())
            end = min(next_monday, month_end)
            buckets.append(
                Bucket(label=f"Week {len(buckets) + 1}", start=start, end=end)
            )
            start = end
        return buckets

    if period == "month":
        return [
            Bucket(
                label=calendar.month_name[m],
                start=date(reference.year, m, 1),
                end=(
                    date(reference.year + 1, 1, 1)
                    if m == 12
                    else date(reference.year, m + 1, 1)
                ),
            )
            for m in range(1, 13)
        ]

    if period == "year":
        first_year = reference.year - YEARS_BACK
        if earliest_year is not None:
            first_year = min(first_year, earliest_year)
        return [
            Bucket(label=str(y), start=date(y, 1, 1), end=date(y + 1, 1, 1))
            for y in range(first_year, reference.year + 1)
        ]

    raise ValueError(f"Unknown period: {period}")


def _local_midnight_utc(day: date) -> datetime:
    local = datetime.combine(day, time.min, tzinfo=store_timezone())
    return local.astimezone(timezone.utc)


async def _earliest_order_year(db: AsyncSession) -> Optional[int]:
    result = await db.execute(
        select(func.min(Order.created_at)).where(
            Order.status.in_(COMPLETED_ORDER_STATUSES)
        )
    )
    earliest = result.scalar_one_or_none()
    return to_store_time(earliest).year if earliest else None


async def aggregate(
    db: AsyncSession, period: Period, reference_date: date
) -> list[Bucket]:
    """Order count and revenue of completed orders per bucket.

    POS sales are included through the Delivered order each one creates.
    """
    earliest_year = await _earliest_order_year(db) if period == "year" else None
    buckets = build_buckets(period, reference_date, earliest_year)

    result = await db.execute(
        select(Order.created_at, Order.total_price)
        .where(Order.status.in_(COMPLETED_ORDER_STATUSES))
        .where(Order.created_at >= _local_midnight_utc(buckets[0].start))
        .where(Order.created_at < _local_midnight_utc(buckets[-1].end))
    )
    for created_at, total_price in result.all():
        local_day = to_store_time(created_at).date()
        for bucket in buckets:
            if bucket.start <= local_day < bucket.end:
                bucket.orders += 1
                bucket.revenue += Decimal(total_price)
                break
    return buckets


async def build_report(
    db: AsyncSession,
    *,
    reference_date: date,
    exported_by: str,
    generated_at: datetime,
) -> SalesReport:
    periods = {}
    for period in PERIODS:
        periods[period] = await aggregate(db, period, reference_date)
    return SalesReport(
        reference_date=reference_date,
        exported_by=exported_by,
        generated_at=generated_at,
        periods=periods,
    )


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def header_rows(report: SalesReport) -> list[list]:
    generated = to_store_time(report.generated_at)
    return [
        [get_settings().STORE_NAME],
        ["SALES REPORTS"],
        [f"Exported by: {report.exported_by}"],
        [f"Generated at: {generated:%d-%m-%Y %H:%M}"],
    ]


def build_sheet_rows(period: Period, buckets: list[Bucket]) -> list[list]:
    """Table rows for one period: column header, one row per bucket, total row.

    Revenue cells are whole Rupiah integers.
    """
    _, label_header, total_label = SHEETS[period]
    rows: list[list] = [[label_header, "Orders", "Revenue", "Avg Revenue"]]
    total_orders = 0
    total_revenue = 0
    for bucket in buckets:
        revenue = to_whole_rupiah(bucket.revenue)
        rows.append([bucket.label, bucket.orders, revenue, bucket.avg_revenue])
        total_orders += bucket.orders
        total_revenue += revenue
    total_avg = round(total_revenue / total_orders) if total_orders else 0
    rows.append([total_label, total_orders, total_revenue, total_avg])
    return rows


def format_row_for_display(row: list) -> list[str]:
    """Body rows carry Rupiah amounts in columns 2 and 3."""
    label, orders, revenue, avg = row
    if isinstance(revenue, int):
        return [str(label), str(orders), format_rupiah(revenue), format_rupiah(avg)]
    return [str(cell) for cell in row]


def export_filename(extension: str, generated_at: datetime) -> str:
    return f"SALES-REPORT-DATA-{to_store_time(generated_at):%d-%m-%Y}.{extension}"


def render_pdf(report: SalesReport) -> bytes:
    sections = [
        (
            SHEETS[period][0],
            [format_row_for_display(row) for row in build_sheet_rows(period, buckets)],
        )
        for period, buckets in report.periods.items()
    ]
    header = header_rows(report)
    return generate_table_report_pdf(
        title=header[0][0],
        subtitle=header[1][0],
        meta_lines=[line[0] for line in header[2:]],
        sections=sections,
    )


def render_xlsx(report: SalesReport) -> bytes:
    header = header_rows(report) + [[]]
    sheets = {
        SHEETS[period][0]: header + build_sheet_rows(period, buckets)
        for period, buckets in report.periods.items()
    }
    return generate_workbook(sheets, money_columns=(3, 4), header_row=len(header) + 1)
