"""Built-in MO template layout (sheet MO_TEMPLATE with every {{TOKEN}})."""
import openpyxl
from openpyxl.styles import Alignment, Border, Font, Side

from utils.config import SHEET_NAMES, STATION_SLOTS


def build_template_workbook():
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = SHEET_NAMES["MO_TEMPLATE"]

    thin = Side(border_style="thin", color="000000")
    border = Border(left=thin, right=thin, top=thin, bottom=thin)
    center = Alignment(horizontal="center", vertical="center", wrap_text=True)

    for col, width in zip("ABCDEFGH", (14, 22, 14, 22, 14, 22, 26, 26)):
        ws.column_dimensions[col].width = width

    # Title + scan code
    ws.merge_cells("A1:F1")
    ws["A1"] = "MANUFACTURING ORDER"
    ws["A1"].font = Font(size=18, bold=True)
    ws["A1"].alignment = center
    ws["H1"] = "{{QR_CODE}}"

    # Header fields
    header = [
        ("MO No.", "{{MO_ID}}", "Date", "{{DATE}}", "Order No.", "{{ORDER_NO}}"),
        ("Part No.", "{{PART_NO}}", "Cust. Part", "{{CUST_PART}}", "Model", "{{MODEL}}"),
        ("Name", "{{NAME}}", "Material", "{{MATERIAL}}", "Quantity", "{{QTY}}"),
    ]
    for r, values in enumerate(header, start=3):
        for c, value in enumerate(values, start=1):
            cell = ws.cell(row=r, column=c, value=value)
            cell.border = border
            cell.alignment = center
            if c % 2 == 1:
                cell.font = Font(bold=True)

    # Part image
    ws["G3"] = "{{IMAGE}}"

    # Stations
    ws.cell(row=7, column=1, value="No.").font = Font(bold=True)
    ws.cell(row=7, column=2, value="Station").font = Font(bold=True)
    ws.cell(row=7, column=3, value="Standard time").font = Font(bold=True)
    ws.cell(row=7, column=4, value="Operator").font = Font(bold=True)
    ws.cell(row=7, column=5, value="Qty done").font = Font(bold=True)
    ws.cell(row=7, column=6, value="Sign-off").font = Font(bold=True)
    for i in range(1, STATION_SLOTS + 1):
        r = 7 + i
        ws.cell(row=r, column=1, value=i)
        ws.cell(row=r, column=2, value=f"{{{{STATION_{i}}}}}")
        ws.cell(row=r, column=3, value=f"{{{{TIME_{i}}}}}")
        for c in range(1, 7):
            ws.cell(row=r, column=c).border = border
            ws.cell(row=r, column=c).alignment = center
    return wb
