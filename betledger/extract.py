"""Turn rows of the betting-history table into ledger records.

The page exposes, per wager row, two currency cells (stake then profit), a
status heading, and optional game / slip id / created cells. Parsing a saved
copy of the page is handled by :func:`rows_from_html`; the record logic in
:func:`extract_records` only sees :class:`RowCells`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from bs4 import BeautifulSoup

from .aggregate import summarize_amounts
from .dates import utc_timestamp
from .models import Record
from .normalize import PROFIT_EPSILON, infer_profit, normalize_status, round2, to_number

logger = logging.getLogger(__name__)

HISTORY_URL_FRAGMENT = "csgoempire.com/profile/match-betting/history"
TRACKED_STATUSES: Tuple[str, ...] = ("won", "lost", "cancelled")

ROW_SELECTOR = "tr.bg-dark-3"
CURRENCY_SELECTOR = '[data-testid="currency-value"]'
STATUS_SELECTOR = "h4.capitalize"
GAME_SELECTOR = "h4.text-light-1"
SLIP_SELECTOR = "td:nth-child(2) p, p.size-medium"
CREATED_SELECTOR = "td:nth-last-child(2) p"


@dataclass(frozen=True)
class RowCells:
    """Text content of one history-table row."""

    currency_texts: Sequence[str] = ()
    status_text: Optional[str] = None
    game_text: Optional[str] = None
    slip_text: Optional[str] = None
    created_text: Optional[str] = None


@dataclass
class ExtractionStats:
    """Counters describing what happened to each row of an extraction."""

    rows_seen: int = 0
    extracted: int = 0
    skipped_cells: int = 0
    skipped_status: int = 0
    skipped_identifier: int = 0
    profit_inferred: int = 0

    @property
    def skipped(self) -> int:
        return self.skipped_cells + self.skipped_status + self.skipped_identifier

    def as_dict(self) -> Dict[str, int]:
        return {
            "rows_seen": self.rows_seen,
            "extracted": self.extracted,
            "skipped_cells": self.skipped_cells,
            "skipped_status": self.skipped_status,
            "skipped_identifier": self.skipped_identifier,
            "profit_inferred": self.profit_inferred,
        }


@dataclass
class InspectionReport:
    """Loose, read-only view of a page: every status, every row."""

    summary: Dict[str, Dict[str, float]]
    rows: List[Dict[str, object]] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.rows)


def _clean(text: Optional[str]) -> str:
    return (text or "").strip()


def _row_values(row: RowCells, epsilon: float) -> Tuple[float, float, str, bool]:
    bet = to_number(row.currency_texts[0])
    raw_profit = to_number(row.currency_texts[1])
    status = normalize_status(row.status_text)
    profit = infer_profit(raw_profit, bet, status, epsilon=epsilon)
    return bet, profit, status, abs(raw_profit) <= epsilon


def extract_records(
    rows: Iterable[RowCells],
    *,
    now: Optional[datetime] = None,
    stats: Optional[ExtractionStats] = None,
    statuses: Sequence[str] = TRACKED_STATUSES,
    epsilon: float = PROFIT_EPSILON,
) -> List[Record]:
    """Return ledger records for the settled rows in ``rows``.

    Rows with fewer than two currency cells, no status, a status outside
    ``statuses`` (e.g. ``open``) or no slip id are skipped. Source order is
    kept and duplicates are left for the ledger merge to resolve.
    """

    stats = stats if stats is not None else ExtractionStats()
    recorded_at = utc_timestamp(now)
    allowed = set(statuses)
    records: List[Record] = []

    for row in rows:
        stats.rows_seen += 1
        if len(row.currency_texts) < 2 or row.status_text is None:
            stats.skipped_cells += 1
            continue
        bet, profit, status, inferred = _row_values(row, epsilon)
        if status not in allowed:
            stats.skipped_status += 1
            continue
        slip_id = _clean(row.slip_text)
        if not slip_id:
            stats.skipped_identifier += 1
            continue
        if inferred:
            stats.profit_inferred += 1
        records.append(
            Record(
                game=_clean(row.game_text),
                slip_id=slip_id,
                bet=round2(bet),
                profit=round2(profit),
                status=status,
                created=_clean(row.created_text),
                recorded_at=recorded_at,
            )
        )
        stats.extracted += 1

    logger.info(
        "Extracted %d record(s) from %d row(s); skipped %d (cells=%d, status=%d, slip=%d)",
        stats.extracted,
        stats.rows_seen,
        stats.skipped,
        stats.skipped_cells,
        stats.skipped_status,
        stats.skipped_identifier,
    )
    return records


def inspect_rows(rows: Iterable[RowCells], *, epsilon: float = PROFIT_EPSILON) -> InspectionReport:
    """Summarise every readable row, open bets and missing slip ids included.

    Intended for ad-hoc inspection of a page; nothing here is persisted.
    """

    detailed: List[Dict[str, object]] = []
    amounts: List[Tuple[str, float, float]] = []
    for row in rows:
        if len(row.currency_texts) < 2 or row.status_text is None:
            continue
        bet, profit, status, _ = _row_values(row, epsilon)
        detailed.append(
            {
                "game": _clean(row.game_text),
                "slipId": _clean(row.slip_text),
                "bet": round2(bet),
                "profit": round2(profit),
                "status": status,
                "created": _clean(row.created_text),
            }
        )
        amounts.append((status, bet, profit))
    summary = summarize_amounts(amounts)
    return InspectionReport(summary={key: bucket.as_dict() for key, bucket in summary.items()}, rows=detailed)


def _is_hidden(tag) -> bool:
    if tag.has_attr("hidden"):
        return True
    style = (tag.get("style") or "").replace(" ", "").lower()
    return "display:none" in style


def _text(tag) -> Optional[str]:
    return tag.get_text(" ", strip=True) if tag is not None else None


def rows_from_html(html: str) -> List[RowCells]:
    """Read the visible wager rows out of a saved history page."""

    soup = BeautifulSoup(html, "html.parser")
    rows: List[RowCells] = []
    for tr in soup.select(ROW_SELECTOR):
        if _is_hidden(tr):
            continue
        rows.append(
            RowCells(
                currency_texts=tuple(_text(cell) or "" for cell in tr.select(CURRENCY_SELECTOR)),
                status_text=_text(tr.select_one(STATUS_SELECTOR)),
                game_text=_text(tr.select_one(GAME_SELECTOR)),
                slip_text=_text(tr.select_one(SLIP_SELECTOR)),
                created_text=_text(tr.select_one(CREATED_SELECTOR)),
            )
        )
    logger.debug("Found %d visible history row(s)", len(rows))
    return rows


def is_history_page(url: str, html: Optional[str] = None) -> bool:
    """True for the betting-history URL (and, when given, a page with rows)."""

    if HISTORY_URL_FRAGMENT not in (url or ""):
        return False
    if html is None:
        return True
    soup = BeautifulSoup(html, "html.parser")
    return bool(soup.select_one(ROW_SELECTOR) or soup.select_one('tr[class*="bg-dark"]') or soup.select_one("table tr"))
