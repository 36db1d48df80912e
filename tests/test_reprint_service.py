import os
import sys
import unittest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from core.errors import NotFound
from core.ledger import SheetLedger
from core.services.reprint_service import ReprintQuery, reprint_file_name
from mo_fixtures import RecordingRenderer, ledger_sheet, make_assembler, make_record


class TestReprintQuery(unittest.TestCase):
    def setUp(self):
        self.ws = ledger_sheet(
            make_record("MO-2026100001", order_no="ORD-1").to_row(),
            make_record("MO-2026100002", order_no="ORD-10").to_row(),
            make_record("MO-2026100003", order_no="ORD-1", part_no="P-200").to_row(),
            make_record("MO-2026100004", order_no="ord-1").to_row(),
            make_record("MO-2026100005", order_no="ORD-1").to_row(),
        )
        self.renderer = RecordingRenderer()
        self.query = ReprintQuery(SheetLedger(self.ws), make_assembler(renderer=self.renderer))

    def test_exact_matches_in_ledger_order(self):
        matches = self.query.find_by_order("ORD-1")
        self.assertEqual([r.mo_id for r in matches], ["MO-2026100001", "MO-2026100003", "MO-2026100005"])

    def test_reprint_builds_one_page_per_match(self):
        matches, document = self.query.reprint("ORD-1")
        self.assertEqual(len(matches), 3)
        self.assertEqual(document.file_name, "Order_ORD-1_MO.pdf")
        self.assertEqual(document.page_ids, ("MO-2026100001", "MO-2026100003", "MO-2026100005"))
        exported, _, _ = self.renderer.exports[0]
        self.assertEqual(exported.workbook.sheetnames, list(document.page_ids))

    def test_reprint_uses_stored_snapshot(self):
        _, document = self.query.reprint("ORD-1")
        exported, _, _ = self.renderer.exports[0]
        self.assertEqual(exported.workbook["MO-2026100003"]["B4"].value, "P-200")

    def test_no_matches(self):
        with self.assertRaises(NotFound):
            self.query.reprint("ORD-404")
        self.assertEqual(self.renderer.exports, [])

    def test_reprint_does_not_write(self):
        before = [list(r) for r in self.ws.data]
        self.query.reprint("ORD-1")
        self.assertEqual(self.ws.data, before)
        self.assertEqual(self.ws.append_calls, 0)

    def test_file_name(self):
        self.assertEqual(reprint_file_name("A-7"), "Order_A-7_MO.pdf")


if __name__ == '__main__':
    unittest.main()
