import logging
import threading
from contextlib import contextmanager

from core.errors import LockTimeout

logger = logging.getLogger(__name__)


class IssuanceLock:
    """
    Exclusive section around {sequence scan, catalog lookup, ledger append}.
    Acquired with a bounded wait; released on every exit path.
    """

    def __init__(self):
        self._lock = threading.Lock()

    @contextmanager
    def hold(self, timeout):
        if not self._lock.acquire(timeout=timeout):
            logger.warning(f"Issuance lock not acquired within {timeout}s")
            raise LockTimeout(f"system busy: could not acquire issuance lock within {timeout}s")
        try:
            yield
        finally:
            self._lock.release()

    def locked(self):
        return self._lock.locked()


# Process-wide: every Streamlit session thread shares this instance.
ISSUANCE_LOCK = IssuanceLock()
