"""Date parsing for the history table's ``Created`` column.

The site renders dates as ``"Sat 06 Sep 21:03"`` without a year. Older
exports and hand-edited ledgers carry other shapes, so a short chain of
rewrites is tried after the primary format before giving up.

All datetimes produced here are naive local wall-clock values.
"""

from __future__ import annotations

import logging
import re
import warnings
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Tuple

import pandas as pd

logger = logging.getLogger(__name__)

MONTHS = {
    "Jan": 1,
    "Feb": 2,
    "Mar": 3,
    "Apr": 4,
    "May": 5,
    "Jun": 6,
    "Jul": 7,
    "Aug": 8,
    "Sep": 9,
    "Oct": 10,
    "Nov": 11,
    "Dec": 12,
}

HISTORY_DATE_PATTERN = re.compile(r"^(\w{3})\s+(\d{1,2})\s+(\w{3})\s+(\d{1,2}):(\d{2})$", re.ASCII)
ISO_DATE_PATTERN = re.compile(r"(\d{4})-(\d{2})-(\d{2})")
RELATIVE_WORDS_PATTERN = re.compile(r"ago|day|week|month|year", re.IGNORECASE)
SLASH_DMY_PATTERN = re.compile(r"(\d{1,2})/(\d{1,2})/(\d{4})")
DASH_DMY_PATTERN = re.compile(r"(\d{1,2})-(\d{1,2})-(\d{4})")

MIN_FALLBACK_YEAR = 2000

DateAttempt = Callable[[str, datetime], Optional[datetime]]


def to_local_naive(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def reference_time(now: Optional[datetime] = None) -> datetime:
    """``now`` as a naive local datetime, or the wall clock when omitted."""

    return to_local_naive(now) if now is not None else datetime.now()


def utc_timestamp(now: Optional[datetime] = None) -> str:
    """ISO-8601 UTC text with millisecond precision and a ``Z`` suffix."""

    value = now if now is not None else datetime.now(tz=timezone.utc)
    if value.tzinfo is None:
        value = value.astimezone()
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(text: str | None) -> Optional[datetime]:
    """Parse an ISO-8601 capture timestamp; ``None`` when unreadable."""

    if not text:
        return None
    try:
        value = datetime.fromisoformat(str(text).strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    return to_local_naive(value)


def _compose(year: int, month: int, day: int, hour: int, minute: int) -> datetime:
    # Out-of-range day/hour values roll over into the next unit.
    return datetime(year, month, 1) + timedelta(days=day - 1, hours=hour, minutes=minute)


def parse_history_format(text: str, now: datetime) -> Optional[datetime]:
    """Parse ``"<Www> <d> <Mmm> <H>:<MM>"`` assuming the most recent year.

    The current year is used unless that puts the date in the future, in
    which case the wager was placed last year.
    """

    match = HISTORY_DATE_PATTERN.match(text)
    if not match:
        return None
    _, day, month_name, hour, minute = match.groups()
    month = MONTHS.get(month_name)
    if month is None:
        return None
    parsed = _compose(now.year, month, int(day), int(hour), int(minute))
    if parsed > now:
        parsed = _compose(now.year - 1, month, int(day), int(hour), int(minute))
    return parsed


def _parse_general(text: str) -> Optional[datetime]:
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", UserWarning)
        try:
            stamp = pd.to_datetime(text, errors="coerce")
        except (TypeError, ValueError, OverflowError):
            return None
        if stamp is None or pd.isna(stamp):
            return None
        return to_local_naive(stamp.to_pydatetime())


def _rewrite_attempt(rewrite: Callable[[str], str]) -> DateAttempt:
    def attempt(text: str, now: datetime) -> Optional[datetime]:
        parsed = _parse_general(rewrite(text))
        if parsed is None or parsed.year <= MIN_FALLBACK_YEAR:
            return None
        return parsed

    attempt.__name__ = f"attempt_{rewrite.__name__}"
    return attempt


def _as_is(text: str) -> str:
    return text


def _iso_order(text: str) -> str:
    return ISO_DATE_PATTERN.sub(r"\1-\2-\3", text, count=1)


def _strip_relative_words(text: str) -> str:
    return RELATIVE_WORDS_PATTERN.sub("", text).strip()


def _slash_dmy(text: str) -> str:
    return SLASH_DMY_PATTERN.sub(r"\3-\2-\1", text, count=1)


def _dash_dmy(text: str) -> str:
    return DASH_DMY_PATTERN.sub(r"\3-\2-\1", text, count=1)


FALLBACK_ATTEMPTS: Tuple[DateAttempt, ...] = tuple(
    _rewrite_attempt(rewrite)
    for rewrite in (_as_is, _iso_order, _strip_relative_words, _slash_dmy, _dash_dmy)
)
DATE_ATTEMPTS: Tuple[DateAttempt, ...] = (parse_history_format,) + FALLBACK_ATTEMPTS


def try_resolve_date(text: str | None, *, now: Optional[datetime] = None) -> Optional[datetime]:
    """Return the first successful interpretation of ``text`` or ``None``."""

    if not text:
        return None
    reference = reference_time(now)
    for attempt in DATE_ATTEMPTS:
        parsed = attempt(text, reference)
        if parsed is not None:
            logger.debug("Parsed date %r via %s -> %s", text, attempt.__name__, parsed)
            return parsed
    logger.debug("Failed to parse date %r", text)
    return None


def resolve_date(
    text: str | None,
    *,
    now: Optional[datetime] = None,
    fallback: Optional[datetime] = None,
) -> datetime:
    """Best-effort date for ``text``; never raises.

    When nothing matches, ``fallback`` is returned if given, otherwise
    ``now`` (or the wall clock at call time).
    """

    parsed = try_resolve_date(text, now=now)
    if parsed is not None:
        return parsed
    if fallback is not None:
        return to_local_naive(fallback)
    return reference_time(now)
