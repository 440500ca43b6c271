"""
Helper utilities for the Minna no Nasu App backend.
"""

import base64
import math
import time
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, Generic, List, Optional, Tuple, TypeVar
from loguru import logger

JST = timezone(timedelta(hours=9), name="JST")
UTF8_BOM = "\ufeff"

T = TypeVar("T")


def now_jst() -> datetime:
    """Current time in Japan Standard Time."""
    return datetime.now(JST)


WEEKDAYS_JA = ("月曜日", "火曜日", "水曜日", "木曜日", "金曜日", "土曜日", "日曜日")


def format_japanese_date(value: date, with_weekday: bool = False) -> str:
    """
    Format a date the way the pages show it, e.g. 2025年8月1日金曜日.

    Args:
        value: Date or datetime
        with_weekday: Append the weekday name

    Returns:
        Japanese long date string
    """
    text = f"{value.year}年{value.month}月{value.day}日"
    if with_weekday:
        text += WEEKDAYS_JA[value.weekday()]
    return text


def to_iso(value: Any) -> str:
    """ISO string for a Firestore timestamp or datetime; empty when unset."""
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def strip_data_url(data: str) -> str:
    """
    Remove a `data:image/...;base64,` header if present.

    Args:
        data: Data URL or bare base64 payload

    Returns:
        Bare base64 payload
    """
    if data.startswith("data:") and "," in data:
        return data.split(",", 1)[1]
    return data


def decode_image(data: str) -> bytes:
    """Decode a base64 image sent from the browser (data URL or bare)."""
    return base64.b64decode(strip_data_url(data))


def escape_csv_value(value: Any) -> str:
    """
    Render one CSV cell.

    Strings containing a comma, newline or double quote, or starting with `=`,
    are wrapped in quotes with inner quotes doubled.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        if "," in value or "\n" in value or '"' in value or value.startswith("="):
            return '"' + value.replace('"', '""') + '"'
        return value
    return str(value)


def rows_to_csv(rows: List[Dict[str, Any]]) -> str:
    """
    Convert a list of flat dicts to CSV text.

    The header row comes from the first row's keys.

    Args:
        rows: Records to export

    Returns:
        CSV text joined with newlines; empty when there are no rows
    """
    if not rows:
        return ""

    headers = list(rows[0].keys())
    lines = [",".join(headers)]
    for row in rows:
        lines.append(",".join(escape_csv_value(row.get(header)) for header in headers))
    return "\n".join(lines)


class TtlCache(Generic[T]):
    """In-process cache holding one value per key for a fixed time."""

    def __init__(self, ttl_seconds: int, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, Tuple[float, T]] = {}

    def get(self, key: str) -> Optional[T]:
        """Fresh value for the key, or None."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self._clock() - stored_at >= self.ttl_seconds:
            logger.debug(f"Cache EXPIRED for key: {key}")
            return None
        logger.debug(f"Cache HIT for key: {key}")
        return value

    def get_stale(self, key: str) -> Optional[T]:
        """Last stored value for the key regardless of age."""
        entry = self._entries.get(key)
        return entry[1] if entry else None

    def set(self, key: str, value: T) -> None:
        self._entries[key] = (self._clock(), value)


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (2.5 -> 3)."""
    return int(math.floor(value + 0.5))
