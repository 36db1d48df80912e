"""
Inbound MO operations: createOne, createBatch, lookupProduct, reprintByOrder.

Every operation returns a tagged dict {'status': 'success'|'error', 'message': ..., ...};
no exception escapes to the caller.
"""
import logging
from functools import partial

import streamlit as st

from core.assembler import DocumentAssembler, load_template_source
from core.catalog import SheetCatalog
from core.errors import LockTimeout, NotFound
from core.gsheets import get_client, get_credentials, get_spreadsheet_id, open_worksheet
from core.ledger import SheetLedger
from core.locking import ISSUANCE_LOCK
from core.models import BatchItem
from core.services.assets import DriveAssetStore, LocalAssetStore
from core.services.batch_service import BatchOrchestrator, batch_summary
from core.services.notify_service import SmtpNotifier
from core.services.render_service import DriveSheetsRenderer
from core.services.reprint_service import ReprintQuery
from core.services.scan_code_service import build_scan_code_service
from core.template_engine import TemplateMergeEngine
from utils.config import DEFAULT_TEMPLATE_PATH, DEFAULT_TIMEZONE, LOCK_TIMEOUT_SINGLE, SHEET_NAMES
from utils.mo_helpers import get_today, to_base64

logger = logging.getLogger(__name__)


def _success(message, **payload):
    return {"status": "success", "message": message, **payload}


def _error(message, kind=None, **payload):
    result = {"status": "error", "message": message, **payload}
    if kind:
        result["errorType"] = kind
    return result


def _pdf_payload(document):
    return {"fileName": document.file_name, "pdfBase64": to_base64(document.content)}


class MOService:
    def __init__(self, catalog, ledger, assembler, notifier=None, lock=ISSUANCE_LOCK, clock=get_today):
        self.catalog = catalog
        self.ledger = ledger
        self.assembler = assembler
        self.notifier = notifier
        self.orchestrator = BatchOrchestrator(catalog, ledger, assembler, notifier, lock=lock, clock=clock)
        self.reprints = ReprintQuery(ledger, assembler)

    def _sheets_missing(self):
        return self.catalog is None or self.ledger is None

    # --- createOne ---
    def create_one(self, part_no, order_no, quantity, recipient=None):
        if self._sheets_missing():
            return _error("Sheet not found")
        item = BatchItem(str(part_no).strip(), str(order_no or "").strip(), quantity)
        try:
            outcome = self.orchestrator.issue([item], timeout=LOCK_TIMEOUT_SINGLE)[0]
        except LockTimeout as e:
            return _error(str(e), "LockTimeout")
        except Exception as e:
            logger.error(f"createOne failed: {e}")
            return _error(str(e))

        if not outcome.ok:
            return _error(outcome.error, outcome.kind)

        mo_id = outcome.record.mo_id
        try:
            document = self.assembler.render_single(outcome.record)
        except Exception as e:
            logger.error(f"PDF generation failed for {mo_id}: {e}")
            return _success(f"MO created, but PDF generation failed: {e}", moNumber=mo_id)

        payload = {"moNumber": mo_id, **_pdf_payload(document)}
        if not recipient:
            return _success(f"MO {mo_id} created!", **payload)

        if self.notifier is None:
            logger.warning(f"No notifier configured; {mo_id} not mailed to {recipient}")
            return _success(f"MO {mo_id} created, but mail is not configured", **payload)

        subject = f"MO notice - {mo_id}"
        body = (
            "Hello,\n\n"
            f"Your manufacturing order {mo_id} has been generated; the PDF is attached.\n\n"
            "This message was sent automatically."
        )
        try:
            self.notifier.send(recipient, subject, body, document)
        except Exception as e:
            logger.error(f"Mail for {mo_id} failed: {e}")
            return _success(f"MO {mo_id} created, but mail was not sent: {e}", **payload)
        return _success(f"MO {mo_id} created and sent!", **payload)

    # --- createBatch ---
    def create_batch(self, items, recipient=None):
        if self._sheets_missing():
            return _error("Sheet not found")
        items = list(items or [])
        if not items:
            return _error("No items provided")
        try:
            result = self.orchestrator.run(items, recipient=recipient)
        except LockTimeout as e:
            return _error(str(e), "LockTimeout")
        except Exception as e:
            logger.error(f"Fatal error in createBatch: {e}")
            return _error(str(e))

        message = batch_summary(result)
        if result.notify_error:
            message += f"\n\n(mail not sent: {result.notify_error})"
        payload = {"generatedMOs": result.created_ids, "errors": result.errors}
        if result.document is not None:
            payload.update(_pdf_payload(result.document))
        return _success(message, **payload)

    # --- lookupProduct ---
    def lookup_product(self, part_no):
        if self.catalog is None:
            return _error("Product sheet not found")
        try:
            entry = self.catalog.lookup(str(part_no).strip())
        except NotFound:
            return _error("Product not found", "NotFound")
        except Exception as e:
            return _error(str(e))
        return _success("OK", data=entry.to_dict())

    # --- reprintByOrder ---
    def reprint_by_order(self, order_no):
        if self.ledger is None:
            return _error("MO Records sheet not found")
        order_no = str(order_no or "").strip()
        if not order_no:
            return _error("Please enter an order number")
        try:
            matches, document = self.reprints.reprint(order_no)
        except NotFound as e:
            return _error(str(e), "NotFound")
        except Exception as e:
            logger.error(f"Reprint of order {order_no} failed: {e}")
            return _error(f"PDF generation failed: {e}")
        return _success(
            f"Found {len(matches)} MO record(s), ready to download",
            moIds=[r.mo_id for r in matches],
            **_pdf_payload(document),
        )

    def dispatch(self, data):
        """Route a client request body ({'action': ..., ...}) to an operation."""
        action = (data or {}).get("action")
        if action == "getProductInfo":
            return self.lookup_product(data.get("partNo", ""))
        if action == "createMO":
            return self.create_one(data.get("partNo", ""), data.get("orderNo", ""), data.get("quantity"),
                                   recipient=data.get("email"))
        if action == "batchCreateMO":
            return self.create_batch(data.get("items") or [], recipient=data.get("email"))
        if action == "printMOByOrder":
            return self.reprint_by_order(data.get("orderNo", ""))
        return _error("Invalid action")


# --- WIRING FROM SECRETS ---
def _build_asset_store(credentials):
    drive_conf = st.secrets.get("drive", {})
    if drive_conf.get("image_folder_id"):
        return DriveAssetStore(credentials, drive_conf["image_folder_id"])
    if drive_conf.get("image_dir"):
        return LocalAssetStore(drive_conf["image_dir"])
    logger.warning("No image source configured; documents will show the no-image marker")
    return None


@st.cache_resource
def get_mo_service():
    """MOService wired to the spreadsheet, Drive and SMTP from secrets (Cached)."""
    gc = get_client()
    spreadsheet_id = get_spreadsheet_id()
    products_ws = open_worksheet(spreadsheet_id, SHEET_NAMES["PRODUCTS"], gc)
    records_ws = open_worksheet(spreadsheet_id, SHEET_NAMES["MO_RECORDS"], gc)

    mo_conf = st.secrets.get("mo", {})
    credentials = get_credentials()
    engine = TemplateMergeEngine(
        asset_store=_build_asset_store(credentials),
        scan_codes=build_scan_code_service(mo_conf.get("qr_provider", "quickchart")),
    )
    template = load_template_source(mo_conf.get("template_path", DEFAULT_TEMPLATE_PATH))

    renderer = DriveSheetsRenderer(credentials, gc, temp_folder_id=st.secrets.get("drive", {}).get("temp_folder_id"))
    notifier = SmtpNotifier.from_secrets(st.secrets["smtp"]) if "smtp" in st.secrets else None

    return MOService(
        catalog=SheetCatalog(products_ws) if products_ws else None,
        ledger=SheetLedger(records_ws) if records_ws else None,
        assembler=DocumentAssembler(template, engine, renderer),
        notifier=notifier,
        clock=partial(get_today, mo_conf.get("timezone", DEFAULT_TIMEZONE)),
    )


def create_mo(part_no, order_no, quantity, email=None):
    return get_mo_service().create_one(part_no, order_no, quantity, recipient=email)


def batch_create_mo(items, email=None):
    return get_mo_service().create_batch(items, recipient=email)


def get_product_info(part_no):
    return get_mo_service().lookup_product(part_no)


def print_mo_by_order(order_no):
    return get_mo_service().reprint_by_order(order_no)
