import base64
import os
import sys
import unittest
from unittest.mock import patch

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from core.catalog import SheetCatalog
from core.ledger import SheetLedger
from core.locking import IssuanceLock
from core.services.mo_service import MOService
from mo_fixtures import (
    RecordingNotifier,
    RecordingRenderer,
    fixed_clock,
    ledger_sheet,
    make_assembler,
    make_record,
    product_row,
    products_sheet,
)


class TestMOService(unittest.TestCase):
    def setUp(self):
        self.products = products_sheet(
            product_row("P-100", stations=[("Cutting", "30"), ("Welding", "45")]),
            product_row("P-200", name="Plate"),
        )
        self.records_ws = ledger_sheet()
        self.renderer = RecordingRenderer()
        self.notifier = RecordingNotifier()
        self.lock = IssuanceLock()
        self.service = self.build()

    def build(self, notifier="default"):
        return MOService(
            SheetCatalog(self.products),
            SheetLedger(self.records_ws),
            make_assembler(renderer=self.renderer),
            notifier=self.notifier if notifier == "default" else notifier,
            lock=self.lock,
            clock=fixed_clock(),
        )

    # --- createOne ---
    def test_create_one(self):
        res = self.service.create_one("P-100", "ORD-1", "25")
        self.assertEqual(res["status"], "success")
        self.assertEqual(res["message"], "MO MO-2026100001 created!")
        self.assertEqual(res["moNumber"], "MO-2026100001")
        self.assertEqual(res["fileName"], "MO_MO-2026100001.pdf")
        self.assertTrue(base64.b64decode(res["pdfBase64"]).startswith(b"%PDF"))
        self.assertEqual(self.records_ws.data[1][:4], ["MO-2026100001", "2026-10-17", "P-100", "ORD-1"])
        self.assertEqual(self.records_ws.data[1][7], "25")

    def test_create_one_increments(self):
        self.service.create_one("P-100", "ORD-1", 1)
        res = self.service.create_one("P-200", "ORD-1", 1)
        self.assertEqual(res["moNumber"], "MO-2026100002")

    def test_create_one_unknown_part(self):
        res = self.service.create_one("P-404", "ORD-1", 5)
        self.assertEqual(res["status"], "error")
        self.assertEqual(res["errorType"], "NotFound")
        self.assertEqual(len(self.records_ws.data), 1)

    def test_create_one_invalid_quantity(self):
        res = self.service.create_one("P-100", "ORD-1", "-2")
        self.assertEqual(res["errorType"], "InvalidQuantity")
        self.assertEqual(len(self.records_ws.data), 1)

    def test_create_one_mails_document(self):
        res = self.service.create_one("P-100", "ORD-1", 5, recipient="qc@example.com")
        self.assertEqual(res["message"], "MO MO-2026100001 created and sent!")
        recipient, subject, body, attachment = self.notifier.sent[0]
        self.assertEqual(subject, "MO notice - MO-2026100001")
        self.assertEqual(attachment.file_name, "MO_MO-2026100001.pdf")

    def test_create_one_without_mail_config(self):
        res = self.build(notifier=None).create_one("P-100", "ORD-1", 5, recipient="qc@example.com")
        self.assertEqual(res["status"], "success")
        self.assertIn("mail is not configured", res["message"])
        self.assertIn("pdfBase64", res)

    def test_create_one_mail_failure(self):
        self.notifier.fail = True
        res = self.service.create_one("P-100", "ORD-1", 5, recipient="qc@example.com")
        self.assertEqual(res["status"], "success")
        self.assertIn("mail was not sent", res["message"])

    def test_create_one_render_failure_keeps_record(self):
        self.renderer.fail = True
        res = self.service.create_one("P-100", "ORD-1", 5)
        self.assertEqual(res["status"], "success")
        self.assertTrue(res["message"].startswith("MO created, but PDF generation failed"))
        self.assertEqual(res["moNumber"], "MO-2026100001")
        self.assertNotIn("pdfBase64", res)
        self.assertEqual(len(self.records_ws.data), 2)

    @patch("core.services.mo_service.LOCK_TIMEOUT_SINGLE", 0.05)
    def test_create_one_lock_timeout(self):
        self.lock._lock.acquire()
        try:
            res = self.service.create_one("P-100", "ORD-1", 5)
        finally:
            self.lock._lock.release()
        self.assertEqual(res["status"], "error")
        self.assertEqual(res["errorType"], "LockTimeout")
        self.assertEqual(len(self.records_ws.data), 1)

    def test_missing_sheets(self):
        service = MOService(None, None, make_assembler(), lock=self.lock, clock=fixed_clock())
        self.assertEqual(service.create_one("P-100", "ORD-1", 5), {"status": "error", "message": "Sheet not found"})
        self.assertEqual(service.create_batch([{"partNo": "P-100"}])["message"], "Sheet not found")

    # --- createBatch ---
    def test_create_batch(self):
        res = self.service.create_batch([
            {"partNo": "P-100", "orderNo": "ORD-1", "quantity": 5},
            {"partNo": "P-404", "orderNo": "ORD-1", "quantity": 5},
            {"partNo": "P-200", "orderNo": "ORD-2", "quantity": 7},
        ])
        self.assertEqual(res["status"], "success")
        self.assertEqual(res["generatedMOs"], ["MO-2026100001", "MO-2026100002"])
        self.assertEqual(res["errors"], ["part P-404 not found"])
        self.assertEqual(res["fileName"], "Batch_MO_(2_records).pdf")
        self.assertTrue(res["message"].startswith("Generated 2 MO(s)."))
        self.assertIn("=== Failure details ===", res["message"])

    def test_create_batch_empty(self):
        self.assertEqual(self.service.create_batch([])["message"], "No items provided")

    def test_create_batch_mail_failure_noted(self):
        self.notifier.fail = True
        res = self.service.create_batch([{"partNo": "P-100", "orderNo": "O", "quantity": 1}], recipient="qc@example.com")
        self.assertIn("mail not sent", res["message"])

    def test_create_batch_without_mail_config(self):
        res = self.build(notifier=None).create_batch(
            [{"partNo": "P-100", "orderNo": "O", "quantity": 1}], recipient="qc@example.com")
        self.assertEqual(res["status"], "success")
        self.assertIn("mail is not configured", res["message"])
        self.assertIn("pdfBase64", res)

    def test_create_batch_lock_timeout(self):
        self.service.orchestrator.lock_timeout = 0.05
        self.lock._lock.acquire()
        try:
            res = self.service.create_batch([{"partNo": "P-100", "orderNo": "O", "quantity": 1}])
        finally:
            self.lock._lock.release()
        self.assertEqual(res["errorType"], "LockTimeout")

    # --- lookupProduct ---
    def test_lookup_product(self):
        res = self.service.lookup_product(" P-100 ")
        self.assertEqual(res["status"], "success")
        self.assertEqual(res["data"]["stations"], [{"name": "Cutting", "time": "30"}, {"name": "Welding", "time": "45"}])

    def test_lookup_product_missing(self):
        res = self.service.lookup_product("P-404")
        self.assertEqual(res, {"status": "error", "message": "Product not found", "errorType": "NotFound"})

    # --- reprintByOrder ---
    def test_reprint_by_order(self):
        self.records_ws.data += [
            make_record("MO-2026100001", order_no="ORD-7").to_row(),
            make_record("MO-2026100002", order_no="ORD-8").to_row(),
            make_record("MO-2026100003", order_no="ORD-7").to_row(),
        ]
        res = self.service.reprint_by_order("  ORD-7 ")
        self.assertEqual(res["status"], "success")
        self.assertEqual(res["moIds"], ["MO-2026100001", "MO-2026100003"])
        self.assertEqual(res["fileName"], "Order_ORD-7_MO.pdf")
        self.assertEqual(res["message"], "Found 2 MO record(s), ready to download")

    def test_reprint_not_found(self):
        res = self.service.reprint_by_order("ORD-404")
        self.assertEqual(res["errorType"], "NotFound")
        self.assertIn("ORD-404", res["message"])

    def test_reprint_blank_order(self):
        self.assertEqual(self.service.reprint_by_order("   ")["message"], "Please enter an order number")

    def test_reprint_while_issuance_lock_held(self):
        self.records_ws.data.append(make_record("MO-2026100001", order_no="ORD-7").to_row())
        self.lock._lock.acquire()
        try:
            res = self.service.reprint_by_order("ORD-7")
        finally:
            self.lock._lock.release()
        self.assertEqual(res["status"], "success")

    # --- dispatch ---
    def test_dispatch(self):
        self.assertEqual(self.service.dispatch({"action": "getProductInfo", "partNo": "P-200"})["data"]["name"], "Plate")
        res = self.service.dispatch({"action": "createMO", "partNo": "P-100", "orderNo": "O-1", "quantity": 3})
        self.assertEqual(res["moNumber"], "MO-2026100001")
        res = self.service.dispatch({"action": "batchCreateMO", "items": [{"partNo": "P-100", "orderNo": "O-1", "quantity": 1}]})
        self.assertEqual(res["generatedMOs"], ["MO-2026100002"])
        res = self.service.dispatch({"action": "printMOByOrder", "orderNo": "O-1"})
        self.assertEqual(res["moIds"], ["MO-2026100001", "MO-2026100002"])
        self.assertEqual(self.service.dispatch({"action": "nope"}), {"status": "error", "message": "Invalid action"})


if __name__ == '__main__':
    unittest.main()
