"""
Template merge for MO documents.

A template page is an openpyxl worksheet whose cells carry {{TOKEN}} placeholders:
9 scalar tokens, 9 STATION_i/TIME_i pairs, and the IMAGE / QR_CODE asset tokens.
Every token resolves to a value or an explicit fallback; nothing is left behind.
"""
import io
import logging
import re
from dataclasses import dataclass, field
from typing import Optional

from openpyxl.cell.cell import MergedCell
from openpyxl.drawing.image import Image as XLImage

from core.errors import AssetUnavailable, TemplateStructureError
from core.services.assets import find_part_image
from utils.config import (
    DATE_DISPLAY_FORMAT,
    IMAGE_WIDTH_BATCH,
    NO_IMAGE_MARKER,
    QR_INSERT_SIZE,
    QR_RENDER_SIZE,
    STANDARD_TIME_TEXT,
    STATION_SLOTS,
)

logger = logging.getLogger(__name__)

SCALAR_TOKENS = ("MO_ID", "DATE", "PART_NO", "ORDER_NO", "NAME", "CUST_PART", "MATERIAL", "QTY", "MODEL")
STATION_TOKENS = tuple(f"STATION_{i}" for i in range(1, STATION_SLOTS + 1))
TIME_TOKENS = tuple(f"TIME_{i}" for i in range(1, STATION_SLOTS + 1))
IMAGE_TOKEN = "IMAGE"
QR_TOKEN = "QR_CODE"
ASSET_TOKENS = (IMAGE_TOKEN, QR_TOKEN)


def token(name):
    return "{{" + name + "}}"


def asset_pattern(name):
    # {{IMAGE}}, {{ IMAGE }}, ...
    return re.compile(r"\{\{\s*" + re.escape(name) + r"\s*\}\}")


TEXT_TOKENS = tuple(token(t) for t in SCALAR_TOKENS + STATION_TOKENS + TIME_TOKENS)
ALL_TOKENS = TEXT_TOKENS + tuple(token(t) for t in ASSET_TOKENS)
_TEXT_TOKEN_RE = re.compile("|".join(re.escape(t) for t in TEXT_TOKENS))


# --- IMAGE SIZING ---
@dataclass(frozen=True)
class ImageBounds:
    """
    Target size for inserted images, aspect ratio always preserved.

    max_height=None selects width-only mode: the image is scaled to exactly
    max_width (up or down). With both bounds the image only ever shrinks:
    the dimension overflowing the most is fitted first, then the other.
    """
    max_width: int
    max_height: Optional[int] = None

    def fit(self, width, height):
        if width <= 0 or height <= 0:
            raise ValueError(f"invalid image size {width}x{height}")
        if self.max_height is None:
            return self.max_width, max(1, round(height * self.max_width / width))

        w, h = float(width), float(height)
        width_first = (w / self.max_width) >= (h / self.max_height)
        for axis in (("w", "h") if width_first else ("h", "w")):
            if axis == "w" and w > self.max_width:
                h, w = h * self.max_width / w, float(self.max_width)
            elif axis == "h" and h > self.max_height:
                w, h = w * self.max_height / h, float(self.max_height)
        return max(1, round(w)), max(1, round(h))


BATCH_IMAGE_BOUNDS = ImageBounds(IMAGE_WIDTH_BATCH)


# --- RESULT VALUES ---
@dataclass(frozen=True)
class AssetOutcome:
    """What happened to one asset token on one page."""
    token: str
    status: str  # inserted | fallback | skipped | absent
    detail: str = ""
    cells: tuple = ()


@dataclass
class MergeResult:
    page_id: str
    worksheet: object
    replacements: dict = field(default_factory=dict)
    image: Optional[AssetOutcome] = None
    qr_code: Optional[AssetOutcome] = None


# --- PURE HELPERS ---
def build_replacements(record):
    """Token -> text for every scalar and station token of a record."""
    created = record.created_at.strftime(DATE_DISPLAY_FORMAT) if record.created_at else ""
    replacements = {
        token("MO_ID"): record.mo_id,
        token("DATE"): created,
        token("PART_NO"): record.part_no,
        token("ORDER_NO"): record.order_no,
        token("NAME"): record.name,
        token("CUST_PART"): record.customer_part_no,
        token("MATERIAL"): record.material,
        token("QTY"): str(record.quantity),
        token("MODEL"): record.model,
    }
    # All 9 slots, so unused template rows are blanked too
    for i in range(1, STATION_SLOTS + 1):
        station = record.stations[i - 1] if i - 1 < len(record.stations) else None
        if station is not None and station.name:
            replacements[token(f"STATION_{i}")] = station.name
            replacements[token(f"TIME_{i}")] = (
                STANDARD_TIME_TEXT.format(seconds=station.standard_time_seconds)
                if station.standard_time_seconds else ""
            )
        else:
            replacements[token(f"STATION_{i}")] = ""
            replacements[token(f"TIME_{i}")] = ""
    return replacements


def replace_tokens(text, replacements):
    """Single-pass literal replacement; inserted values are never re-scanned."""
    return _TEXT_TOKEN_RE.sub(lambda m: str(replacements.get(m.group(0), m.group(0))), text)


def iter_text_cells(sheet):
    for row in sheet.iter_rows():
        for cell in row:
            if isinstance(cell, MergedCell):
                continue
            if isinstance(cell.value, str) and "{{" in cell.value:
                yield cell


def find_asset_cells(sheet, name):
    pattern = asset_pattern(name)
    return [cell for cell in iter_text_cells(sheet) if pattern.search(cell.value)]


def load_image(data: bytes):
    """openpyxl image from raw bytes (decoded by Pillow)."""
    try:
        return XLImage(io.BytesIO(data))
    except Exception as e:
        raise AssetUnavailable(f"unreadable image ({e})")


# --- ENGINE ---
class TemplateMergeEngine:
    """
    Fills one page from one MORecord.

    Asset problems are resolved locally (fallback marker for the part image,
    empty cell for the scan code); a missing template is fatal for the document.
    """

    def __init__(self, asset_store=None, scan_codes=None,
                 qr_render_size=QR_RENDER_SIZE, qr_insert_size=QR_INSERT_SIZE):
        self.asset_store = asset_store
        self.scan_codes = scan_codes
        self.qr_render_size = qr_render_size
        self.qr_insert_size = qr_insert_size

    def merge(self, template_sheet, record, image_bounds=BATCH_IMAGE_BOUNDS, title=None):
        """Clone `template_sheet` inside its workbook and fill the clone."""
        if template_sheet is None:
            raise TemplateStructureError("Template sheet not found")
        clone = template_sheet.parent.copy_worksheet(template_sheet)
        clone.title = title or record.mo_id
        return self.fill(clone, record, image_bounds=image_bounds)

    def fill(self, sheet, record, image_bounds=BATCH_IMAGE_BOUNDS):
        """Fill `sheet` in place. Only call this on a private copy of the template."""
        if sheet is None:
            raise TemplateStructureError("Template sheet not found")

        replacements = build_replacements(record)
        for cell in iter_text_cells(sheet):
            cell.value = replace_tokens(cell.value, replacements)

        image = self._fill_image(sheet, record, image_bounds)
        qr_code = self._fill_qr_code(sheet, record)
        return MergeResult(
            page_id=sheet.title,
            worksheet=sheet,
            replacements=replacements,
            image=image,
            qr_code=qr_code,
        )

    def _fill_image(self, sheet, record, bounds):
        cells = find_asset_cells(sheet, IMAGE_TOKEN)
        if not cells:
            return AssetOutcome(IMAGE_TOKEN, "absent")
        coords = tuple(c.coordinate for c in cells)

        try:
            if self.asset_store is None:
                raise AssetUnavailable("asset store not configured")
            data = find_part_image(self.asset_store, record.part_no)
            if data is None:
                raise AssetUnavailable(f"{record.part_no}.jpg/.jpeg not found")
            for cell in cells:
                img = load_image(data)
                img.width, img.height = bounds.fit(img.width, img.height)
                cell.value = None
                sheet.add_image(img, cell.coordinate)
            return AssetOutcome(IMAGE_TOKEN, "inserted", cells=coords)
        except AssetUnavailable as e:
            logger.warning(f"[{record.mo_id}] image fallback: {e}")
            for cell in cells:
                cell.value = f"{NO_IMAGE_MARKER} {e}"
            return AssetOutcome(IMAGE_TOKEN, "fallback", detail=str(e), cells=coords)

    def _fill_qr_code(self, sheet, record):
        cells = find_asset_cells(sheet, QR_TOKEN)
        if not cells:
            return AssetOutcome(QR_TOKEN, "absent")
        coords = tuple(c.coordinate for c in cells)

        try:
            if self.scan_codes is None:
                raise AssetUnavailable("scan-code service not configured")
            data = self.scan_codes.render(record.mo_id, self.qr_render_size)
            images = [load_image(data) for _ in cells]
        except Exception as e:
            # Scan code is optional: leave the cell empty and carry on
            logger.warning(f"[{record.mo_id}] QR code skipped: {e}")
            for cell in cells:
                cell.value = None
            return AssetOutcome(QR_TOKEN, "skipped", detail=str(e), cells=coords)

        for cell, img in zip(cells, images):
            img.width = img.height = self.qr_insert_size
            cell.value = None
            sheet.add_image(img, cell.coordinate)
        return AssetOutcome(QR_TOKEN, "inserted", cells=coords)
