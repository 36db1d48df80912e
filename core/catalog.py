import logging

from core.errors import NotFound
from core.models import CatalogEntry
from utils.sheets_error_handler import handle_sheets_errors

logger = logging.getLogger(__name__)


class InMemoryCatalog:
    """Catalog held in memory; first entry wins on duplicate part numbers."""

    def __init__(self, entries=()):
        self._entries = {}
        for entry in entries:
            self._entries.setdefault(entry.part_no, entry)

    def get(self, part_no):
        return self._entries.get(str(part_no).strip())

    def lookup(self, part_no):
        entry = self.get(part_no)
        if entry is None:
            raise NotFound(f"part {part_no} not found")
        return entry

    def snapshot(self):
        return self

    def __len__(self):
        return len(self._entries)


class SheetCatalog:
    """
    Read-only catalog backed by the PRODUCTS worksheet (row 1 = header).
    Exact-match key lookup on column A.
    """

    def __init__(self, worksheet):
        self.worksheet = worksheet

    @handle_sheets_errors
    def _rows(self):
        return self.worksheet.get_all_values()

    def snapshot(self):
        """Read the sheet once; used by batches to avoid one API read per item."""
        entries = []
        for row in self._rows()[1:]:
            if not row or not str(row[0]).strip():
                continue
            entries.append(CatalogEntry.from_row(row))
        logger.info(f"Catalog snapshot loaded: {len(entries)} parts")
        return InMemoryCatalog(entries)

    def get(self, part_no):
        return self.snapshot().get(part_no)

    def lookup(self, part_no):
        return self.snapshot().lookup(part_no)
