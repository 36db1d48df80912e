import logging
from dataclasses import dataclass, field
from typing import Optional

from core.ledger import LedgerWriter, SequenceAllocator, period_prefix
from core.locking import ISSUANCE_LOCK
from core.models import BatchItem, MORecord, parse_quantity
from utils.config import LOCK_TIMEOUT_BATCH
from utils.mo_helpers import get_today, id_range

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ItemOutcome:
    """Result of one batch item: either a record or an error text."""
    item: BatchItem
    record: Optional[MORecord] = None
    error: Optional[str] = None
    kind: Optional[str] = None

    @property
    def ok(self):
        return self.record is not None


@dataclass
class BatchResult:
    outcomes: list = field(default_factory=list)
    document: object = None
    document_error: Optional[str] = None
    notify_error: Optional[str] = None

    @property
    def records(self):
        return [o.record for o in self.outcomes if o.ok]

    @property
    def created_ids(self):
        return [r.mo_id for r in self.records]

    @property
    def errors(self):
        errors = [o.error for o in self.outcomes if not o.ok]
        if self.document_error:
            errors.append(self.document_error)
        return errors


def batch_summary(result: BatchResult):
    msg = f"Generated {len(result.created_ids)} MO(s)."
    if result.errors:
        msg += "\n\n=== Failure details ===\n" + "\n".join(result.errors)
    return msg


def batch_mail(result: BatchResult):
    ids = result.created_ids
    subject = f"Batch MO notice - {len(ids)} created (combined)"
    body = (
        "Hello,\n\n"
        f"{len(ids)} MO(s) have been generated for you.\n"
        f"MO range: {id_range(ids)}\n"
        f"Errors: {len(result.errors)}\n\n"
        "The combined PDF is attached.\n\n"
        "This message was sent automatically."
    )
    return subject, body


class BatchOrchestrator:
    """
    Issues MOs for a list of items inside one hold of the issuance lock
    (contiguous ids), then builds one combined document outside the lock.
    Item failures are collected; they never stop sibling items.
    """

    def __init__(self, catalog, ledger, assembler=None, notifier=None, lock=ISSUANCE_LOCK,
                 clock=get_today, lock_timeout=LOCK_TIMEOUT_BATCH):
        self.catalog = catalog
        self.ledger = ledger
        self.assembler = assembler
        self.notifier = notifier
        self.lock = lock
        self.clock = clock
        self.lock_timeout = lock_timeout

    def issue(self, items, timeout=None):
        """Allocate + look up + append for every item. Raises LockTimeout before any write."""
        items = [i if isinstance(i, BatchItem) else BatchItem.from_dict(i) for i in items]
        outcomes = []
        with self.lock.hold(self.lock_timeout if timeout is None else timeout):
            today = self.clock()
            allocator = SequenceAllocator.from_ledger(self.ledger, period_prefix(today))
            catalog = self.catalog.snapshot()
            writer = LedgerWriter(self.ledger)
            for item in items:
                outcomes.append(self._issue_item(item, catalog, allocator, writer, today))
        return outcomes

    def _issue_item(self, item, catalog, allocator, writer, today):
        entry = catalog.get(item.part_no)
        if entry is None:
            logger.warning(f"Product not found: {item.part_no}")
            return ItemOutcome(item, error=f"part {item.part_no} not found", kind="NotFound")
        try:
            quantity = parse_quantity(item.quantity)
        except ValueError as e:
            return ItemOutcome(item, error=f"part {item.part_no}: {e}", kind="InvalidQuantity")

        mo_id = allocator.next_id()
        try:
            record = writer.append(item.part_no, item.order_no, quantity, entry, mo_id, today)
        except Exception as e:
            logger.error(f"Error processing item {item.part_no}: {e}")
            self._resync(allocator)
            return ItemOutcome(item, error=f"error processing item {item.part_no}: {e}", kind="LedgerWriteError")
        return ItemOutcome(item, record=record)

    def _resync(self, allocator):
        # The failed append may or may not have landed; trust the ledger
        try:
            allocator.last_number = SequenceAllocator.from_ledger(self.ledger, allocator.prefix).last_number
        except Exception as e:
            logger.error(f"Sequence resync failed, keeping in-memory counter: {e}")

    def run(self, items, recipient=None):
        items = list(items)
        logger.info(f"Starting batch create with {len(items)} item(s)")
        result = BatchResult(outcomes=self.issue(items))

        records = result.records
        if records and self.assembler is not None:
            try:
                result.document = self.assembler.render_combined(records)
            except Exception as e:
                logger.error(f"Combined PDF error: {e}")
                result.document_error = f"PDF generation failed: {e}"

        if recipient and result.document is not None:
            if self.notifier is None:
                logger.warning(f"No notifier configured; batch document not mailed to {recipient}")
                result.notify_error = "mail is not configured"
            else:
                subject, body = batch_mail(result)
                try:
                    self.notifier.send(recipient, subject, body, result.document)
                except Exception as e:
                    logger.error(f"Batch mail failed: {e}")
                    result.notify_error = str(e)

        logger.info(f"Batch finished. MOs: {len(records)}, errors: {len(result.errors)}, "
                    f"PDF: {'created' if result.document else 'none'}")
        return result
