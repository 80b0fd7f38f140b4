import openpyxl
from openpyxl.styles import (
    Font, Alignment, Border, Side, PatternFill,
)
from openpyxl.utils import get_column_letter
import io

from reconciliation import ImportReport, RowStatus


# Styles
THIN = Side(border_style="thin", color="000000")
THIN_BORDER = Border(left=THIN, right=THIN, top=THIN, bottom=THIN)
HEADER_FILL = PatternFill(start_color="D9E1F2", end_color="D9E1F2", fill_type="solid")
SUBHEADER_FILL = PatternFill(start_color="BDD7EE", end_color="BDD7EE", fill_type="solid")
BOLD_FONT = Font(bold=True, size=10)
TITLE_FONT = Font(bold=True, size=12)
BODY_FONT = Font(size=9)

CENTER = Alignment(horizontal="center", vertical="center", wrap_text=True)
LEFT = Alignment(horizontal="left", vertical="center", wrap_text=True)

# Same colours as the review table status chips
STATUS_FILLS = {
    RowStatus.NEW:                PatternFill(start_color="E6F4EA", end_color="E6F4EA", fill_type="solid"),
    RowStatus.UPDATE:             PatternFill(start_color="DDEBF7", end_color="DDEBF7", fill_type="solid"),
    RowStatus.DUPLICATE:          PatternFill(start_color="FFF2CC", end_color="FFF2CC", fill_type="solid"),
    RowStatus.NO_ACCESS:          PatternFill(start_color="FCE4D6", end_color="FCE4D6", fill_type="solid"),
    RowStatus.ROLL_NUMBER_FAILED: PatternFill(start_color="FFE0E0", end_color="FFE0E0", fill_type="solid"),
    RowStatus.NOT_FOUND:          PatternFill(start_color="FFE0E0", end_color="FFE0E0", fill_type="solid"),
    RowStatus.MALFORMED:          PatternFill(start_color="FFE0E0", end_color="FFE0E0", fill_type="solid"),
}


def _set_cell(ws, row, col, value, font=None, alignment=None, fill=None, border=THIN_BORDER):
    cell = ws.cell(row=row, column=col, value=value)
    if font:
        cell.font = font
    if alignment:
        cell.alignment = alignment
    if fill:
        cell.fill = fill
    if border:
        cell.border = border
    return cell


def _write_review_sheet(ws, report: ImportReport):
    df = report.to_dataframe()
    columns = list(df.columns)
    last_col = get_column_letter(max(len(columns), 1))

    # ---- ROW 1: Title ----
    ws.merge_cells(f"A1:{last_col}1")
    title = "Student Import Review" if report.kind == "students" else "Attendance Import Review"
    _set_cell(ws, 1, 1, title, TITLE_FONT, CENTER, HEADER_FILL)

    # ---- ROW 2: Summary line ----
    ws.merge_cells(f"A2:{last_col}2")
    _set_cell(ws, 2, 1, report.summary(), BOLD_FONT, LEFT)
    ws.row_dimensions[2].height = 30

    # ---- ROW 3: Column headers ----
    for ci, col in enumerate(columns, 1):
        _set_cell(ws, 3, ci, col, BOLD_FONT, CENTER, SUBHEADER_FILL)

    # ---- Data rows ----
    START_ROW = 4
    for ri, (row, values) in enumerate(zip(report.rows, df.itertuples(index=False))):
        excel_row = START_ROW + ri
        for ci, val in enumerate(values, 1):
            fill = STATUS_FILLS.get(row.status) if ci == 1 else None
            _set_cell(ws, excel_row, ci, None if val != val else val, BODY_FONT, CENTER, fill)

    # ---- Column widths ----
    for ci, col in enumerate(columns, 1):
        max_len = max(len(str(col)), max((len(str(v)) for v in df[col]), default=0))
        ws.column_dimensions[get_column_letter(ci)].width = min(max_len + 4, 36)


def _write_summary_sheet(ws, report: ImportReport):
    _set_cell(ws, 1, 1, "Status", BOLD_FONT, CENTER, SUBHEADER_FILL)
    _set_cell(ws, 1, 2, "Records", BOLD_FONT, CENTER, SUBHEADER_FILL)
    counts = report.counts()
    row = 2
    for status in RowStatus:
        if counts[status]:
            _set_cell(ws, row, 1, status.value, None, LEFT, STATUS_FILLS.get(status))
            _set_cell(ws, row, 2, counts[status], None, CENTER)
            row += 1
    _set_cell(ws, row, 1, "Total", BOLD_FONT, LEFT)
    _set_cell(ws, row, 2, len(report.rows), BOLD_FONT, CENTER)
    _set_cell(ws, row + 1, 1, "Can be imported", BOLD_FONT, LEFT)
    _set_cell(ws, row + 1, 2, len(report.eligible), BOLD_FONT, CENTER)
    ws.column_dimensions["A"].width = 22
    ws.column_dimensions["B"].width = 12


def generate_review_excel(report: ImportReport) -> bytes:
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Review"
    _write_review_sheet(ws, report)
    _write_summary_sheet(wb.create_sheet("Summary"), report)

    # Save to bytes
    output = io.BytesIO()
    wb.save(output)
    output.seek(0)
    return output.read()
