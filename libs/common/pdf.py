"""
PDF generation utilities using ReportLab.
"""

import io
from datetime import datetime
from typing import List, Optional, Sequence

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, A6
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch, mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

BRAND_COLOR = colors.HexColor("#1f2937")
MUTED_COLOR = colors.HexColor("#64748b")
GRID_COLOR = colors.HexColor("#e2e8f0")


def generate_table_report_pdf(
    title: str,
    subtitle: str,
    meta_lines: Sequence[str],
    sections: Sequence[tuple[str, List[List[str]]]],
) -> bytes:
    """
    Generate a tabular report: a heading block, then one table per section.

    Each section's first row is the column header and its last row is a
    total, which is rendered bold.

    Returns PDF as bytes for download.
    """
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=0.75 * inch,
        leftMargin=0.75 * inch,
        topMargin=0.75 * inch,
        bottomMargin=0.75 * inch,
        title=f"{title} {subtitle}",
    )

    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        "ReportTitle",
        parent=styles["Heading1"],
        fontSize=22,
        textColor=BRAND_COLOR,
        spaceAfter=4,
    )
    heading_style = ParagraphStyle(
        "ReportHeading",
        parent=styles["Heading2"],
        fontSize=13,
        textColor=BRAND_COLOR,
        spaceBefore=18,
        spaceAfter=8,
    )
    meta_style = ParagraphStyle(
        "ReportMeta", parent=styles["Normal"], fontSize=9, textColor=MUTED_COLOR
    )

    elements = [
        Paragraph(title, title_style),
        Paragraph(subtitle, styles["Heading2"]),
    ]
    for line in meta_lines:
        elements.append(Paragraph(line, meta_style))
    elements.append(Spacer(1, 12))

    for heading, rows in sections:
        elements.append(Paragraph(heading, heading_style))
        table = Table(
            rows, colWidths=[2 * inch, 1 * inch, 1.75 * inch, 1.75 * inch]
        )
        table.setStyle(
            TableStyle(
                [
                    # Header
                    ("BACKGROUND", (0, 0), (-1, 0), BRAND_COLOR),
                    ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
                    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                    # Body
                    ("FONTSIZE", (0, 0), (-1, -1), 9),
                    ("ALIGN", (1, 1), (-1, -1), "RIGHT"),
                    ("GRID", (0, 0), (-1, -1), 0.5, GRID_COLOR),
                    ("PADDING", (0, 0), (-1, -1), 6),
                    # Total
                    ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
                    ("BACKGROUND", (0, -1), (-1, -1), colors.HexColor("#f8fafc")),
                ]
            )
        )
        elements.append(table)

    doc.build(elements)
    buffer.seek(0)
    return buffer.getvalue()


def generate_receipt_pdf(
    store_name: str,
    receipt_code: str,
    issued_at: datetime,
    customer_name: str,
    cashier: Optional[str],
    lines: Sequence[tuple[str, int, str, str]],  # (item, qty, price, subtotal)
    totals: Sequence[tuple[str, str]],  # [("Total", "Rp100.000"), ...]
) -> bytes:
    """
    Generate a compact point-of-sale receipt (A6 portrait).
    """
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A6,
        rightMargin=6 * mm,
        leftMargin=6 * mm,
        topMargin=6 * mm,
        bottomMargin=6 * mm,
        title=receipt_code,
    )

    styles = getSampleStyleSheet()
    center = ParagraphStyle(
        "ReceiptCenter", parent=styles["Normal"], alignment=1, fontSize=8
    )
    heading = ParagraphStyle(
        "ReceiptHeading",
        parent=styles["Heading2"],
        alignment=1,
        fontSize=14,
        spaceAfter=2,
    )

    elements = [
        Paragraph(store_name, heading),
        Paragraph(receipt_code, center),
        Paragraph(issued_at.strftime("%d-%m-%Y %H:%M"), center),
        Spacer(1, 6),
    ]

    info = [["Customer", customer_name]]
    if cashier:
        info.append(["Cashier", cashier])
    info_table = Table(info, colWidths=[22 * mm, 62 * mm])
    info_table.setStyle(
        TableStyle(
            [
                ("FONTSIZE", (0, 0), (-1, -1), 7),
                ("TEXTCOLOR", (0, 0), (0, -1), MUTED_COLOR),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 2),
            ]
        )
    )
    elements.append(info_table)
    elements.append(Spacer(1, 4))

    item_rows = [["Item", "Qty", "Price", "Subtotal"]]
    for name, qty, price, subtotal in lines:
        item_rows.append([name, str(qty), price, subtotal])
    item_rows.extend(["", "", label, value] for label, value in totals)

    first_total = len(lines) + 1
    items_table = Table(item_rows, colWidths=[32 * mm, 8 * mm, 22 * mm, 22 * mm])
    items_table.setStyle(
        TableStyle(
            [
                ("FONTSIZE", (0, 0), (-1, -1), 7),
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("LINEBELOW", (0, 0), (-1, 0), 0.5, BRAND_COLOR),
                ("LINEABOVE", (0, first_total), (-1, first_total), 0.5, BRAND_COLOR),
                ("ALIGN", (1, 0), (-1, -1), "RIGHT"),
                ("FONTNAME", (2, first_total), (-1, -1), "Helvetica-Bold"),
            ]
        )
    )
    elements.append(items_table)
    elements.append(Spacer(1, 8))
    elements.append(Paragraph("Thank you for shopping with us.", center))

    doc.build(elements)
    buffer.seek(0)
    return buffer.getvalue()
