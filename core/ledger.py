import logging
import re

from core.gsheets import append_raw_row
from core.models import MORecord
from utils.config import MO_ID_PREFIX, MO_SEQ_WIDTH
from utils.sheets_error_handler import handle_sheets_errors

logger = logging.getLogger(__name__)


# --- LEDGER STORE ---
class SheetLedger:
    """
    Append-only MO ledger backed by the MO_RECORDS worksheet.
    Row 1 is the header; append order is the sheet's row order.
    """

    def __init__(self, worksheet):
        self.worksheet = worksheet

    @handle_sheets_errors
    def _rows(self):
        return self.worksheet.get_all_values()

    def scan(self):
        """All issued records in append order."""
        records = []
        for row in self._rows()[1:]:
            if not row or not str(row[0]).strip():
                continue
            records.append(MORecord.from_row(row))
        return records

    def scan_ids(self):
        """Column A only (MO ids) in append order, header excluded."""
        return [str(row[0]).strip() for row in self._rows()[1:] if row and str(row[0]).strip()]

    def append_row(self, record: MORecord):
        append_raw_row(self.worksheet, record.to_row())


# --- SEQUENCE ---
def period_prefix(day):
    """MO-{YYYY}{MM} for the given date."""
    return f"{MO_ID_PREFIX}{day.year:04d}{day.month:02d}"


def format_mo_id(prefix, number):
    return f"{prefix}{str(number).zfill(MO_SEQ_WIDTH)}"


def last_suffix(mo_ids, prefix):
    """
    Suffix of the most recently appended id under `prefix` (0 if none).

    Uses the last matching row, not the numeric maximum. A leading run of
    digits is parsed; anything unparsable counts as 0.
    """
    matching = [mo_id for mo_id in mo_ids if str(mo_id).startswith(prefix)]
    if not matching:
        return 0
    match = re.match(r"\d+", str(matching[-1])[len(prefix):])
    return int(match.group()) if match else 0


class SequenceAllocator:
    """
    Hands out MO ids for one period. Scans the ledger once, then carries the
    counter in memory so a batch gets contiguous, strictly increasing ids.
    Must only be used inside the issuance critical section.
    """

    def __init__(self, prefix, last_number=0):
        self.prefix = prefix
        self.last_number = last_number

    @classmethod
    def from_ledger(cls, ledger, prefix):
        return cls(prefix, last_suffix(ledger.scan_ids(), prefix))

    def next_id(self):
        self.last_number += 1
        return format_mo_id(self.prefix, self.last_number)


# --- WRITER ---
class LedgerWriter:
    def __init__(self, ledger):
        self.ledger = ledger

    def append(self, part_no, order_no, quantity, catalog_entry, mo_id, created_at):
        """Snapshot the catalog entry into a new MORecord and append it."""
        if catalog_entry.part_no != str(part_no).strip():
            raise ValueError(f"catalog entry {catalog_entry.part_no} does not match part {part_no}")
        record = MORecord.from_catalog(mo_id, created_at, order_no, quantity, catalog_entry)
        self.ledger.append_row(record)
        logger.info(f"Ledger append: {mo_id} part={record.part_no} order={record.order_no} qty={quantity}")
        return record
