import logging

from core.errors import NotFound

logger = logging.getLogger(__name__)


def reprint_file_name(order_no):
    return f"Order_{order_no}_MO.pdf"


class ReprintQuery:
    """
    Regenerates the combined document for every MO issued against an order.
    Read-only: never takes the issuance lock.
    """

    def __init__(self, ledger, assembler):
        self.ledger = ledger
        self.assembler = assembler

    def find_by_order(self, order_no):
        """Exact match on the stored order number, in ledger order."""
        order_no = str(order_no)
        return [r for r in self.ledger.scan() if r.order_no == order_no]

    def reprint(self, order_no):
        matches = self.find_by_order(order_no)
        if not matches:
            raise NotFound(f"No MO records found for order {order_no}")
        logger.info(f"Reprint order {order_no}: {len(matches)} record(s)")
        return matches, self.assembler.render_combined(matches, file_name=reprint_file_name(order_no))
