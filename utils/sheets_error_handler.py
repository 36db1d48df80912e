"""
Helper for Google Sheets API Error Handling
Retries 429 Rate Limit errors with linear back-off, re-raises everything else
"""
import logging
import time
from functools import wraps

logger = logging.getLogger(__name__)

MAX_RETRIES = 3
RETRY_STEP_SECONDS = 20  # 20s, 40s, 60s


def is_rate_limit_error(error):
    error_str = str(error)
    code = getattr(getattr(error, "response", None), "status_code", None)
    return (
        code == 429
        or "'code': 429" in error_str
        or "RATE_LIMIT_EXCEEDED" in error_str
        or "Quota exceeded" in error_str
    )


def handle_sheets_errors(func):
    """
    Decorator that retries Google Sheets calls hitting the 60 reads/minute quota.
    The last quota error is re-raised so callers never read a partial ledger.
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        for attempt in range(MAX_RETRIES):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                if not is_rate_limit_error(e):
                    raise
                if attempt == MAX_RETRIES - 1:
                    logger.error(f"Google Sheets quota still exceeded after {MAX_RETRIES} attempts: {e}")
                    raise
                wait_time = (attempt + 1) * RETRY_STEP_SECONDS
                logger.warning(f"Google Sheets quota exceeded, retrying in {wait_time}s (attempt {attempt + 1}/{MAX_RETRIES})")
                time.sleep(wait_time)
    return wrapper
