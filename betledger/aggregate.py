"""Status and monthly summaries over the stored ledger.

Every bucket is rounded to cents on its own; the ``TOTAL`` bucket is the sum
of the already-rounded status buckets, which is how the ledger has always
reported it (summing raw values first can differ in the last cent).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .dates import parse_timestamp, reference_time, try_resolve_date
from .models import Record
from .normalize import round2

logger = logging.getLogger(__name__)

TOTAL = "TOTAL"
MONTH_STATUSES: Tuple[str, ...] = ("won", "lost", "cancelled")
MIN_PLAUSIBLE_YEAR = 2020


@dataclass
class Bucket:
    """Partial sums for one aggregation group."""

    bet_total: float = 0.0
    profit_total: float = 0.0
    count: int = 0

    def add(self, bet: float, profit: float) -> None:
        self.bet_total += bet
        self.profit_total += profit
        self.count += 1

    def round(self) -> None:
        self.bet_total = round2(self.bet_total)
        self.profit_total = round2(self.profit_total)

    def as_dict(self) -> Dict[str, float]:
        return {"betTotal": self.bet_total, "profitTotal": self.profit_total, "count": self.count}


@dataclass
class MonthBucket:
    month_key: str
    month_name: str
    totals: Bucket = field(default_factory=Bucket)
    by_status: Dict[str, Bucket] = field(default_factory=lambda: {status: Bucket() for status in MONTH_STATUSES})

    @property
    def count(self) -> int:
        return self.totals.count

    @property
    def bet_total(self) -> float:
        return self.totals.bet_total

    @property
    def profit_total(self) -> float:
        return self.totals.profit_total

    def as_dict(self) -> Dict[str, object]:
        payload: Dict[str, object] = {"monthKey": self.month_key, "monthName": self.month_name}
        payload.update(self.totals.as_dict())
        for status, bucket in self.by_status.items():
            payload[status] = bucket.as_dict()
        return payload


def summarize_amounts(amounts: Iterable[Tuple[str, float, float]]) -> Dict[str, Bucket]:
    """Group ``(status, bet, profit)`` triples by status and add ``TOTAL``."""

    buckets: Dict[str, Bucket] = {}
    for status, bet, profit in amounts:
        buckets.setdefault(status, Bucket()).add(bet, profit)

    grand = Bucket()
    for bucket in buckets.values():
        bucket.round()
        grand.bet_total += bucket.bet_total
        grand.profit_total += bucket.profit_total
        grand.count += bucket.count
    grand.round()
    buckets[TOTAL] = grand
    return buckets


def calculate_totals(records: Iterable[Record]) -> Dict[str, Bucket]:
    return summarize_amounts((record.status, record.bet, record.profit) for record in records)


def totals_as_dict(totals: Dict[str, Bucket]) -> Dict[str, Dict[str, float]]:
    return {status: bucket.as_dict() for status, bucket in totals.items()}


def effective_date(
    record: Record,
    *,
    now: Optional[datetime] = None,
    min_year: int = MIN_PLAUSIBLE_YEAR,
) -> datetime:
    """Date used to place ``record`` in a month.

    The site's ``created`` text wins when it parses to a plausible year;
    otherwise the capture timestamp is used.
    """

    if record.created.strip():
        parsed = try_resolve_date(record.created, now=now)
        if parsed is not None and parsed.year >= min_year:
            return parsed
        logger.debug("Using recordedAt for slip %s (created=%r)", record.slip_id, record.created)
    captured = parse_timestamp(record.recorded_at)
    if captured is None:
        logger.warning("Slip %s has no readable recordedAt (%r)", record.slip_id, record.recorded_at)
        return reference_time(now)
    return captured


def monthly_breakdown(
    records: Iterable[Record],
    *,
    now: Optional[datetime] = None,
    min_year: int = MIN_PLAUSIBLE_YEAR,
) -> List[MonthBucket]:
    """Per-month totals, most recent month first."""

    months: Dict[str, MonthBucket] = {}
    for record in records:
        when = effective_date(record, now=now, min_year=min_year)
        key = f"{when.year}-{when.month:02d}"
        month = months.get(key)
        if month is None:
            month = months[key] = MonthBucket(month_key=key, month_name=when.strftime("%B %Y"))
        month.totals.add(record.bet, record.profit)
        status_bucket = month.by_status.get(record.status)
        if status_bucket is not None:
            status_bucket.add(record.bet, record.profit)

    for month in months.values():
        month.totals.round()
        for bucket in month.by_status.values():
            bucket.round()
    return [months[key] for key in sorted(months, reverse=True)]


def recent_records(
    records: Sequence[Record],
    limit: int = 5,
    *,
    now: Optional[datetime] = None,
    min_year: int = MIN_PLAUSIBLE_YEAR,
) -> List[Record]:
    """The ``limit`` most recent records by effective date."""

    ordered = sorted(
        records,
        key=lambda record: effective_date(record, now=now, min_year=min_year),
        reverse=True,
    )
    return ordered[:limit]
