"""
XLSX generation utilities using openpyxl.
"""

import io
from typing import Iterable, Mapping, Sequence

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter

RUPIAH_FORMAT = '"Rp"#,##0'
HEADER_FILL = PatternFill("solid", fgColor="1F2937")


def generate_workbook(
    sheets: Mapping[str, Sequence[Sequence]],
    money_columns: Iterable[int] = (),
    header_row: int = 1,
) -> bytes:
    """
    Build a workbook with one sheet per entry, rows written as given.

    ``header_row`` (1-based) is styled as the column header; the last row of
    each sheet is the total and is bolded. ``money_columns`` (1-based) get a
    Rupiah number format so cells stay numeric.
    """
    money_columns = tuple(money_columns)
    workbook = Workbook()
    workbook.remove(workbook.active)

    for name, rows in sheets.items():
        sheet = workbook.create_sheet(title=name[:31])
        for row in rows:
            sheet.append(list(row))

        sheet["A1"].font = Font(bold=True, size=14)
        for cell in sheet[header_row]:
            cell.font = Font(bold=True, color="FFFFFF")
            cell.fill = HEADER_FILL
        for cell in sheet[sheet.max_row]:
            cell.font = Font(bold=True)

        for column in money_columns:
            for (cell,) in sheet.iter_rows(
                min_row=header_row + 1, min_col=column, max_col=column
            ):
                cell.number_format = RUPIAH_FORMAT

        for index in range(1, sheet.max_column + 1):
            sheet.column_dimensions[get_column_letter(index)].width = 18

    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()
