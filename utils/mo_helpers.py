import base64
from datetime import datetime
from zoneinfo import ZoneInfo

from utils.config import DEFAULT_TIMEZONE


def get_now(tz_name=DEFAULT_TIMEZONE):
    """Current time in the plant timezone."""
    return datetime.now(ZoneInfo(tz_name))


def get_today(tz_name=DEFAULT_TIMEZONE):
    return get_now(tz_name).date()


def to_base64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def id_range(ids):
    """'MO-2026100001 ~ MO-2026100004' (or the single id)."""
    if not ids:
        return ""
    if len(ids) == 1:
        return ids[0]
    return f"{ids[0]} ~ {ids[-1]}"
