"""Capture trigger: extract the current page, merge it and report totals."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence

from .aggregate import TOTAL, calculate_totals, totals_as_dict
from .extract import TRACKED_STATUSES, ExtractionStats, RowCells, extract_records, rows_from_html
from .models import Record
from .normalize import PROFIT_EPSILON
from .store import LedgerStore, StoreError

logger = logging.getLogger(__name__)


@dataclass
class CaptureReport:
    success: bool
    new_count: int = 0
    updated_count: int = 0
    total_count: int = 0
    totals: Dict[str, Dict[str, float]] = field(default_factory=dict)
    stats: ExtractionStats = field(default_factory=ExtractionStats)
    message: str = ""
    error: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "success": self.success,
            "newRecords": self.new_count,
            "updatedRecords": self.updated_count,
            "totalRecords": self.total_count,
            "totals": self.totals,
            "stats": self.stats.as_dict(),
            "message": self.message,
        }
        if self.error is not None:
            payload["error"] = self.error
        return payload


def summary_message(report: CaptureReport) -> str:
    total = report.totals.get(TOTAL, {})
    return (
        f"Recorded: {report.new_count} new, {report.updated_count} updated. "
        f"Total: {total.get('count', 0)} bets, Profit: ${total.get('profitTotal', 0.0):.2f}"
    )


async def record_rows(
    rows: Iterable[RowCells],
    ledger: LedgerStore,
    *,
    now: Optional[datetime] = None,
    statuses: Sequence[str] = TRACKED_STATUSES,
    epsilon: float = PROFIT_EPSILON,
) -> CaptureReport:
    """Extract ``rows``, merge them into ``ledger`` and report the result.

    Nothing is written when no row yields a record. Store failures are
    reported on the returned object rather than raised.
    """

    stats = ExtractionStats()
    records = extract_records(rows, now=now, stats=stats, statuses=statuses, epsilon=epsilon)
    if not records:
        logger.warning("No valid betting data found (%d row(s) seen)", stats.rows_seen)
        return CaptureReport(success=False, stats=stats, message="No valid betting data found on this page")

    try:
        result = await ledger.merge(records)
    except StoreError as exc:
        logger.error("Error recording betting data: %s", exc)
        return CaptureReport(success=False, stats=stats, message=f"Error recording data: {exc}", error=str(exc))

    report = CaptureReport(
        success=True,
        new_count=result.new_count,
        updated_count=result.updated_count,
        total_count=result.total_count,
        totals=totals_as_dict(calculate_totals(result.records)),
        stats=stats,
    )
    report.message = summary_message(report)
    return report


async def record_html(html: str, ledger: LedgerStore, **kwargs: Any) -> CaptureReport:
    return await record_rows(rows_from_html(html), ledger, **kwargs)


async def _get_data(request: Mapping[str, Any], ledger: LedgerStore) -> Dict[str, Any]:
    records = await ledger.load_all()
    return {
        "success": True,
        "data": [record.to_dict() for record in records],
        "totals": totals_as_dict(calculate_totals(records)),
        "count": len(records),
    }


async def _save_data(request: Mapping[str, Any], ledger: LedgerStore) -> Dict[str, Any]:
    incoming = [Record.from_dict(item) for item in request.get("data") or [] if isinstance(item, Mapping)]
    result = await ledger.merge(incoming)
    return {
        "success": True,
        "newRecords": result.new_count,
        "updatedRecords": result.updated_count,
        "totalRecords": result.total_count,
        "skippedRecords": result.skipped_count,
        "totals": totals_as_dict(calculate_totals(result.records)),
    }


async def _clear_data(request: Mapping[str, Any], ledger: LedgerStore) -> Dict[str, Any]:
    await ledger.clear_all()
    return {"success": True, "message": "All data cleared"}


async def _record_now(request: Mapping[str, Any], ledger: LedgerStore) -> Dict[str, Any]:
    report = await record_html(str(request.get("html") or ""), ledger)
    return report.as_dict()


MESSAGE_HANDLERS = {
    "getData": _get_data,
    "saveData": _save_data,
    "clearData": _clear_data,
    "recordNow": _record_now,
}


async def handle_message(request: Mapping[str, Any], ledger: LedgerStore) -> Dict[str, Any]:
    """Dispatch a ``{"action": ...}`` request to the matching ledger operation."""

    handler = MESSAGE_HANDLERS.get(str(request.get("action")))
    if handler is None:
        return {"success": False, "error": "Unknown action"}
    try:
        return await handler(request, ledger)
    except StoreError as exc:
        logger.error("Ledger action %s failed: %s", request.get("action"), exc)
        return {"success": False, "error": str(exc)}
