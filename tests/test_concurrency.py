import os
import sys
import threading
import unittest
from concurrent.futures import ThreadPoolExecutor

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from core.catalog import SheetCatalog
from core.ledger import SheetLedger
from core.locking import IssuanceLock
from core.services.mo_service import MOService
from mo_fixtures import fixed_clock, ledger_sheet, make_assembler, product_row, products_sheet


class SlowLedger(SheetLedger):
    """Widens the scan/append window so interleavings would show up."""

    def __init__(self, worksheet, gate):
        super().__init__(worksheet)
        self.gate = gate

    def scan_ids(self):
        ids = super().scan_ids()
        self.gate.wait(0.01)
        return ids


class TestConcurrentIssuance(unittest.TestCase):
    def setUp(self):
        self.records_ws = ledger_sheet()
        self.service = MOService(
            SheetCatalog(products_sheet(product_row("P-100"), product_row("P-200"))),
            SlowLedger(self.records_ws, threading.Event()),
            make_assembler(),
            lock=IssuanceLock(),
            clock=fixed_clock(),
        )

    def test_ids_are_unique_and_gapless(self):
        def single(i):
            return [self.service.create_one("P-100", f"ORD-{i}", 1)["moNumber"]]

        def batch(i):
            items = [{"partNo": "P-200", "orderNo": f"B-{i}", "quantity": 2}] * 3
            return self.service.create_batch(items)["generatedMOs"]

        with ThreadPoolExecutor(max_workers=6) as pool:
            futures = [pool.submit(single, i) for i in range(8)] + [pool.submit(batch, i) for i in range(2)]
            results = [f.result() for f in futures]

        issued = [mo_id for ids in results for mo_id in ids]
        self.assertEqual(len(issued), 14)
        self.assertEqual(sorted(issued), [f"MO-202610{n:04d}" for n in range(1, 15)])
        self.assertEqual(SheetLedger(self.records_ws).scan_ids(), sorted(issued))

        # Every batch holds the lock for all of its items
        for ids in results[8:]:
            numbers = [int(mo_id[-4:]) for mo_id in ids]
            self.assertEqual(numbers, list(range(numbers[0], numbers[0] + 3)))


if __name__ == '__main__':
    unittest.main()
