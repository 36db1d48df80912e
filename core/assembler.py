"""
Document assembly: one filled page for a single MO, or one page per MO
(cloned from the template and named by moId) for combined documents.
"""
import io
import logging
import os
from dataclasses import dataclass, field

import openpyxl
from openpyxl.worksheet.page import PageMargins
from openpyxl.worksheet.properties import PageSetupProperties

from core.default_template import build_template_workbook
from core.errors import MOError, RenderFailure, TemplateStructureError
from core.services.render_service import ExportOptions
from core.template_engine import BATCH_IMAGE_BOUNDS, ImageBounds
from utils.config import IMAGE_BOX_SINGLE, SHEET_NAMES

logger = logging.getLogger(__name__)

SINGLE_IMAGE_BOUNDS = ImageBounds(*IMAGE_BOX_SINGLE)


def single_file_name(mo_id):
    return f"MO_{mo_id}.pdf"


def batch_file_name(count):
    return f"Batch_MO_({count}_records).pdf"


class TemplateSource:
    """
    XLSX template loaded once; every document gets its own fresh workbook,
    so no two documents ever share a template object.
    """

    def __init__(self, data: bytes, sheet_name=SHEET_NAMES["MO_TEMPLATE"]):
        self.data = data
        self.sheet_name = sheet_name

    @classmethod
    def from_path(cls, path, sheet_name=SHEET_NAMES["MO_TEMPLATE"]):
        if not os.path.exists(path):
            raise TemplateStructureError(f"Template file not found: {path}")
        with open(path, "rb") as f:
            return cls(f.read(), sheet_name)

    @classmethod
    def from_workbook(cls, wb, sheet_name=SHEET_NAMES["MO_TEMPLATE"]):
        buffer = io.BytesIO()
        wb.save(buffer)
        return cls(buffer.getvalue(), sheet_name)

    def open(self):
        """Fresh (workbook, template sheet) pair."""
        try:
            wb = openpyxl.load_workbook(io.BytesIO(self.data))
        except Exception as e:
            raise TemplateStructureError(f"Template unreadable: {e}")
        if self.sheet_name not in wb.sheetnames:
            raise TemplateStructureError(f"Template sheet '{self.sheet_name}' not found")
        return wb, wb[self.sheet_name]


def load_template_source(path, sheet_name=SHEET_NAMES["MO_TEMPLATE"]):
    """Template file at `path`; the built-in layout when no file has been deployed."""
    if not os.path.exists(path):
        logger.warning(f"Template file not found: {path}, using the built-in layout")
        return TemplateSource.from_workbook(build_template_workbook())
    return TemplateSource.from_path(path, sheet_name)


@dataclass
class AssembledDocument:
    workbook: object
    file_name: str
    page_ids: list = field(default_factory=list)

    @property
    def page_count(self):
        return len(self.workbook.worksheets)

    def to_bytes(self):
        buffer = io.BytesIO()
        self.workbook.save(buffer)
        return buffer.getvalue()


@dataclass(frozen=True)
class RenderedDocument:
    file_name: str
    content: bytes
    page_ids: tuple = ()


def apply_page_setup(sheet, options):
    sheet.page_setup.orientation = "landscape" if options.landscape else "portrait"
    sheet.page_setup.paperSize = sheet.PAPERSIZE_A4
    sheet.page_setup.fitToWidth = 0
    sheet.page_setup.fitToHeight = 1
    sheet.sheet_properties.pageSetUpPr = PageSetupProperties(fitToPage=True)
    sheet.page_margins = PageMargins(
        left=options.margin, right=options.margin, top=options.margin, bottom=options.margin,
    )


class DocumentAssembler:
    def __init__(self, template_source, engine, renderer, export_options=None):
        self.template_source = template_source
        self.engine = engine
        self.renderer = renderer
        self.export_options = export_options or ExportOptions()

    # --- SINGLE ---
    def assemble_single(self, record):
        if self.template_source is None:
            raise TemplateStructureError("Template not configured")
        wb, template = self.template_source.open()
        for sheet in list(wb.worksheets):
            if sheet is not template:
                wb.remove(sheet)

        result = self.engine.fill(template, record, image_bounds=SINGLE_IMAGE_BOUNDS)
        apply_page_setup(template, self.export_options)
        return AssembledDocument(
            workbook=wb,
            file_name=single_file_name(record.mo_id),
            page_ids=[result.page_id],
        )

    # --- COMBINED ---
    def assemble_combined(self, records, file_name=None):
        records = list(records)
        if not records:
            raise ValueError("combined document needs at least one record")
        if self.template_source is None:
            raise TemplateStructureError("Template not configured")

        wb, scaffold = self.template_source.open()
        built = []
        for record in records:
            result = self.engine.merge(scaffold, record, image_bounds=BATCH_IMAGE_BOUNDS, title=record.mo_id)
            apply_page_setup(result.worksheet, self.export_options)
            built.append(result)

        # Keep only the pages built above, matched by identity, never by position
        for sheet in list(wb.worksheets):
            if not any(sheet is r.worksheet for r in built):
                wb.remove(sheet)
        wb.active = 0

        # A leftover page with the same name forces openpyxl to suffix the clone
        for record, result in zip(records, built):
            if result.worksheet.title != record.mo_id and record.mo_id not in wb.sheetnames:
                result.worksheet.title = record.mo_id
            result.page_id = result.worksheet.title

        return AssembledDocument(
            workbook=wb,
            file_name=file_name or batch_file_name(len(built)),
            page_ids=[r.page_id for r in built],
        )

    # --- RENDER ---
    def render(self, document, target_page_id=None):
        options = self.export_options.for_page(target_page_id) if target_page_id else self.export_options
        try:
            content = self.renderer.export(document, options)
        except MOError:
            raise
        except Exception as e:
            raise RenderFailure(f"PDF generation failed: {e}")
        if not content:
            raise RenderFailure("PDF generation returned no data")
        logger.info(f"Rendered {document.file_name} ({len(document.page_ids)} page(s), {len(content)} bytes)")
        return RenderedDocument(document.file_name, content, tuple(document.page_ids))

    def render_single(self, record):
        document = self.assemble_single(record)
        return self.render(document, target_page_id=document.page_ids[0])

    def render_combined(self, records, file_name=None):
        return self.render(self.assemble_combined(records, file_name=file_name))
