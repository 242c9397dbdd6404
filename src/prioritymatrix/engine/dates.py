"""Date parsing, date predicates and task-date extraction with bounded caches."""

from __future__ import annotations

import logging
import re
from collections import OrderedDict
from collections.abc import Callable, Hashable
from datetime import date, datetime, timedelta
from typing import Any

from dateutil import parser as dateutil_parser

logger = logging.getLogger(__name__)

PARSE_CACHE_LIMIT = 1000
TASK_DATE_CACHE_LIMIT = 500

_MISSING = object()

ISO_PREFIX_RE = re.compile(r"^\d{4}-\d{2}-\d{2}")
NUMERIC_DATE_RE = re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{4})")

_MARKER = r"(?:📅\s*|🗓️\s*)?"
_TIME_12H = r"(?:\s+\d{1,2}:\d{2}(?::\d{2})?(?:\s*[AP]M)?)?"

# Order matters: the first pattern that matches wins.
TASK_DATE_PATTERNS = [
    re.compile(_MARKER + r"(\d{4}-\d{2}-\d{2}(?:[T ]\d{2}:\d{2}(?::\d{2})?)?)"),
    re.compile(_MARKER + r"(\d{1,2}/\d{1,2}/\d{4}" + _TIME_12H + ")", re.IGNORECASE),
    re.compile(_MARKER + r"(\d{1,2}-\d{1,2}-\d{4}" + _TIME_12H + ")", re.IGNORECASE),
]

_DISPLAY_DATE_RE = re.compile(
    r"(?:📅\s*|🗓️\s*|✅\s*)?"
    r"(?:\d{4}-\d{2}-\d{2}(?:[T ]\d{2}:\d{2}(?::\d{2})?)?"
    r"|\d{1,2}[/-]\d{1,2}[/-]\d{4}" + _TIME_12H + ")",
    re.IGNORECASE,
)
_INLINE_TAG_RE = re.compile(r"(?<![\w#])#[\w/-]+")


class BoundedCache:
    """Insertion-ordered cache that drops its oldest entry once full.

    The bound is enforced on every insertion, so the cache never holds more
    than ``capacity`` entries between explicit clears.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._data: OrderedDict[Hashable, Any] = OrderedDict()

    def __contains__(self, key: Hashable) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)

    def get(self, key: Hashable, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: Hashable, value: Any) -> None:
        self._data[key] = value
        while len(self._data) > self.capacity:
            self._data.popitem(last=False)

    def clear(self) -> None:
        self._data.clear()


def _to_naive_local(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


def _parse_uncached(text: str) -> datetime | None:
    if ISO_PREFIX_RE.match(text):
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            return datetime.fromisoformat(text[:10])

    numeric = NUMERIC_DATE_RE.match(text)
    if numeric:
        first, second, year = (int(part) for part in numeric.groups())
        # Only unambiguous when the first part cannot be a month; 03/04/2024
        # is read as March 4th.
        if first > 12 and second <= 12:
            return datetime(year, second, first)
        return datetime(year, first, second)

    return dateutil_parser.parse(text)


class DateParser:
    """Parses raw date values and answers overdue/today/this-week questions.

    Args:
        cache: Memo of raw string -> parsed datetime (or None when unparseable).
        clock: Returns the current local time; injectable for tests.
    """

    def __init__(
        self,
        cache: BoundedCache | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.cache = cache if cache is not None else BoundedCache(PARSE_CACHE_LIMIT)
        self.clock = clock

    def parse_date(self, raw: Any) -> datetime | None:
        """Parse a date string or YAML date value into a naive local datetime."""
        if not raw:
            return None
        if isinstance(raw, datetime):
            return _to_naive_local(raw)
        if isinstance(raw, date):
            return datetime(raw.year, raw.month, raw.day)

        key = str(raw)
        cached = self.cache.get(key, _MISSING)
        if cached is not _MISSING:
            return cached

        try:
            parsed = _parse_uncached(key.strip())
            result = _to_naive_local(parsed) if parsed is not None else None
        except (ValueError, OverflowError) as e:
            logger.debug("Unparseable date %r: %s", key, e)
            result = None

        self.cache.set(key, result)
        return result

    def today(self) -> datetime:
        return self.clock().replace(hour=0, minute=0, second=0, microsecond=0)

    def is_overdue(self, raw: Any) -> bool:
        parsed = self.parse_date(raw)
        if parsed is None:
            return False
        return parsed.date() < self.today().date()

    def is_today(self, raw: Any) -> bool:
        parsed = self.parse_date(raw)
        if parsed is None:
            return False
        return parsed.date() == self.today().date()

    def is_this_week(self, raw: Any) -> bool:
        """True when the date falls in the current Sunday-to-Saturday week."""
        parsed = self.parse_date(raw)
        if parsed is None:
            return False
        today = self.today()
        days_since_sunday = (today.weekday() + 1) % 7
        week_start = today - timedelta(days=days_since_sunday)
        week_end = week_start + timedelta(days=7) - timedelta(microseconds=1)
        return week_start <= parsed <= week_end

    def format_date(self, raw: Any) -> str:
        parsed = self.parse_date(raw)
        return parsed.date().isoformat() if parsed else ""


class TaskDateExtractor:
    """Finds the due date written inline in a task's text.

    Results are memoized per exact text. Call ``clear()`` whenever the task
    collection is reloaded.
    """

    def __init__(self, cache: BoundedCache | None = None) -> None:
        self.cache = cache if cache is not None else BoundedCache(TASK_DATE_CACHE_LIMIT)

    def extract(self, text: str | None) -> str | None:
        if not text:
            return None
        cached = self.cache.get(text, _MISSING)
        if cached is not _MISSING:
            return cached

        result = None
        for pattern in TASK_DATE_PATTERNS:
            match = pattern.search(text)
            if match:
                result = match.group(1)
                break

        self.cache.set(text, result)
        return result

    def clear(self) -> None:
        self.cache.clear()


def clean_task_text(text: str) -> str:
    """Strip inline dates and tags from a task line for display."""
    cleaned = _DISPLAY_DATE_RE.sub("", text)
    cleaned = _INLINE_TAG_RE.sub("", cleaned)
    return re.sub(r"\s+", " ", cleaned).strip()
