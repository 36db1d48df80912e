# utils/config.py - Central Configuration for MO Ledger

# --- SHEET NAMES ---
# Sheet names inside the main spreadsheet
SHEET_NAMES = {
    "PRODUCTS": "PRODUCTS",        # Catalog (part master + stations)
    "MO_RECORDS": "MO_RECORDS",    # Ledger (append-only)
    "MO_TEMPLATE": "MO_TEMPLATE",  # Template sheet inside the XLSX template
}

# --- MO ID FORMAT ---
# MO-{YYYY}{MM}{NNNN}, e.g. MO-2026100001
MO_ID_PREFIX = "MO-"
MO_SEQ_WIDTH = 4

# --- CATALOG / LEDGER LAYOUT ---
STATION_SLOTS = 9

# Ledger columns (row 1 of MO_RECORDS). Station columns are inserted between
# 'quantity' and 'model'.
LEDGER_HEAD_COLUMNS = [
    "mo_id", "date", "part_no", "order_no", "name",
    "customer_part_no", "material", "quantity",
]
LEDGER_TAIL_COLUMNS = ["model"]


def ledger_header():
    """Header row of the MO_RECORDS sheet."""
    stations = []
    for i in range(1, STATION_SLOTS + 1):
        stations += [f"station_{i}", f"time_{i}"]
    return LEDGER_HEAD_COLUMNS + stations + LEDGER_TAIL_COLUMNS


# --- CONCURRENCY ---
# Bounded wait (seconds) for the issuance critical section
LOCK_TIMEOUT_SINGLE = 30
LOCK_TIMEOUT_BATCH = 60

# --- IMAGE / QR ---
IMAGE_EXTENSIONS = ("jpg", "jpeg")
IMAGE_WIDTH_BATCH = 175                 # width-only mode (combined documents)
IMAGE_BOX_SINGLE = (300, 200)           # width/height box (standalone documents)
NO_IMAGE_MARKER = "(no image)"

QR_RENDER_SIZE = 300
QR_INSERT_SIZE = 175
QR_PROVIDERS = ("quickchart", "local")
QUICKCHART_QR_URL = "https://quickchart.io/qr"
HTTP_TIMEOUT = 15

# --- TEXT ---
DATE_DISPLAY_FORMAT = "%Y/%m/%d"
DATE_STORAGE_FORMAT = "%Y-%m-%d"
STANDARD_TIME_TEXT = "standard time {seconds} sec"
DEFAULT_TIMEZONE = "Asia/Taipei"

# --- EXPORT (PDF) ---
EXPORT_OPTIONS = {
    "size": "A4",
    "landscape": True,
    "scale_mode": 3,   # 3 = fit to height
    "margin": 0.10,
}
SHEETS_EXPORT_URL = "https://docs.google.com/spreadsheets/d/{file_id}/export"
GOOGLE_SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
]

# --- TEMPLATE ---
DEFAULT_TEMPLATE_PATH = "templates/Template_MO.xlsx"
