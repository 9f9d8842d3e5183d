import asyncio

from conftest import CAPTURED_AT

from betledger.extract import rows_from_html
from betledger.pipeline import handle_message, record_html, record_rows
from betledger.store import LedgerStore, MemoryStore


class FailingWrites(MemoryStore):
    async def set(self, key, value):
        raise OSError("quota exceeded")


def test_record_rows_reports_counts_and_totals(history_html):
    ledger = LedgerStore(MemoryStore())
    rows = rows_from_html(history_html)

    first = asyncio.run(record_rows(rows, ledger, now=CAPTURED_AT))
    assert first.success
    assert (first.new_count, first.updated_count, first.total_count) == (3, 0, 3)
    assert first.totals["TOTAL"] == {"betTotal": 17.5, "profitTotal": -2.5, "count": 3}
    assert first.stats.skipped == 3
    assert first.message == "Recorded: 3 new, 0 updated. Total: 3 bets, Profit: $-2.50"

    second = asyncio.run(record_rows(rows, ledger, now=CAPTURED_AT))
    assert (second.new_count, second.updated_count, second.total_count) == (0, 3, 3)


def test_record_rows_without_valid_rows_writes_nothing():
    kv = MemoryStore()
    report = asyncio.run(record_html("<html><body></body></html>", LedgerStore(kv)))
    assert not report.success
    assert report.message == "No valid betting data found on this page"
    assert asyncio.run(kv.get("bettingData")) is None


def test_record_rows_reports_store_failure(history_html, caplog):
    ledger = LedgerStore(FailingWrites())
    report = asyncio.run(record_html(history_html, ledger, now=CAPTURED_AT))
    assert not report.success
    assert "quota exceeded" in report.error
    assert report.message.startswith("Error recording data:")
    assert "Error recording betting data" in caplog.text
    assert report.as_dict()["error"] == report.error


def test_handle_message_round_trip(history_html):
    ledger = LedgerStore(MemoryStore())

    async def scenario():
        recorded = await handle_message({"action": "recordNow", "html": history_html}, ledger)
        saved = await handle_message(
            {
                "action": "saveData",
                "data": [
                    {"game": "g", "slipId": "1001", "bet": 10, "profit": 5, "status": "won", "created": "", "recordedAt": ""},
                    {"game": "g", "slipId": "2001", "bet": 1, "profit": -1, "status": "lost", "created": "", "recordedAt": ""},
                ],
            },
            ledger,
        )
        fetched = await handle_message({"action": "getData"}, ledger)
        cleared = await handle_message({"action": "clearData"}, ledger)
        after = await handle_message({"action": "getData"}, ledger)
        return recorded, saved, fetched, cleared, after

    recorded, saved, fetched, cleared, after = asyncio.run(scenario())
    assert recorded["success"] and recorded["newRecords"] == 3
    assert (saved["newRecords"], saved["updatedRecords"], saved["totalRecords"]) == (1, 1, 4)
    assert fetched["count"] == 4
    assert [item["slipId"] for item in fetched["data"]] == ["1001", "1002", "1005", "2001"]
    assert fetched["totals"]["won"]["count"] == 2
    assert cleared == {"success": True, "message": "All data cleared"}
    assert after["count"] == 0


def test_handle_message_unknown_action():
    result = asyncio.run(handle_message({"action": "explode"}, LedgerStore(MemoryStore())))
    assert result == {"success": False, "error": "Unknown action"}


def test_handle_message_store_failure():
    result = asyncio.run(
        handle_message({"action": "saveData", "data": [{"slipId": "A"}]}, LedgerStore(FailingWrites()))
    )
    assert result["success"] is False
    assert "quota exceeded" in result["error"]


def test_save_data_rounds_amounts_and_drops_missing_slips():
    kv = MemoryStore()
    ledger = LedgerStore(kv)
    request = {
        "action": "saveData",
        "data": [
            {"slipId": "A", "bet": 1.23456, "profit": -1.23456, "status": "lost"},
            {"slipId": "", "bet": 2, "profit": 2, "status": "won"},
            {"bet": 3, "profit": 0, "status": "cancelled"},
            {"slipId": "  B ", "bet": 0.125, "profit": 0.125, "status": "won"},
        ],
    }

    result = asyncio.run(handle_message(request, ledger))
    stored = asyncio.run(kv.get("bettingData"))

    assert (result["newRecords"], result["skippedRecords"], result["totalRecords"]) == (2, 2, 2)
    assert [item["slipId"] for item in stored] == ["A", "B"]
    assert (stored[0]["bet"], stored[0]["profit"]) == (1.23, -1.23)
    assert (stored[1]["bet"], stored[1]["profit"]) == (0.13, 0.13)
    assert result["totals"]["TOTAL"] == {"betTotal": 1.36, "profitTotal": -1.1, "count": 2}
