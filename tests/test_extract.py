from conftest import CAPTURED_AT, history_page, history_row

from betledger.extract import (
    ExtractionStats,
    RowCells,
    extract_records,
    inspect_rows,
    is_history_page,
    rows_from_html,
)


def test_rows_from_html_reads_visible_rows(history_html):
    rows = rows_from_html(history_html)
    assert len(rows) == 6  # hidden row dropped, header row never matched
    first = rows[0]
    assert first.currency_texts == ("$10.00", "0.00")
    assert first.status_text == "Lost"
    assert first.game_text == "CS2 - NaVi vs FaZe"
    assert first.slip_text == "1001"
    assert first.created_text == "Sat 06 Sep 21:03"


def test_rows_from_html_missing_status_cell():
    rows = rows_from_html(history_page(history_row(slip="9", status=None)))
    assert rows[0].status_text is None


def test_extract_records_filters_and_infers(history_html):
    stats = ExtractionStats()
    records = extract_records(rows_from_html(history_html), now=CAPTURED_AT, stats=stats)

    assert [record.slip_id for record in records] == ["1001", "1002", "1005"]
    lost, won, cancelled = records
    assert (lost.bet, lost.profit, lost.status) == (10.0, -10.0, "lost")
    assert (won.bet, won.profit, won.status) == (5.0, 7.5, "won")
    assert (cancelled.bet, cancelled.profit, cancelled.status) == (2.5, 0.0, "cancelled")
    assert won.created == "Mon 15 Sep 10:00"
    assert all(record.recorded_at == "2025-10-01T12:00:00.000Z" for record in records)

    assert stats.as_dict() == {
        "rows_seen": 6,
        "extracted": 3,
        "skipped_cells": 1,
        "skipped_status": 1,
        "skipped_identifier": 1,
        "profit_inferred": 2,
    }
    assert stats.skipped == 3


def test_extract_records_rounds_to_cents():
    rows = [RowCells(currency_texts=("1.005", "2.675"), status_text="won", slip_text="A")]
    (record,) = extract_records(rows, now=CAPTURED_AT)
    assert record.bet == 1.0
    assert record.profit == 2.67


def test_extract_records_keeps_duplicates_in_source_order():
    rows = [
        RowCells(currency_texts=("1", "2"), status_text="won", slip_text="A"),
        RowCells(currency_texts=("3", "0"), status_text="lost", slip_text="B"),
        RowCells(currency_texts=("4", "5"), status_text="won", slip_text="A"),
    ]
    records = extract_records(rows, now=CAPTURED_AT)
    assert [(r.slip_id, r.bet) for r in records] == [("A", 1.0), ("B", 3.0), ("A", 4.0)]


def test_extract_records_custom_status_set():
    rows = [RowCells(currency_texts=("3", "0"), status_text="open", slip_text="A")]
    assert extract_records(rows, now=CAPTURED_AT) == []
    (record,) = extract_records(rows, now=CAPTURED_AT, statuses=("open",))
    assert record.profit == 0.0


def test_extract_records_logs_stats(caplog):
    caplog.set_level("INFO", logger="betledger.extract")
    extract_records([RowCells(currency_texts=("1",), status_text="won")], now=CAPTURED_AT)
    assert "Extracted 0 record(s) from 1 row(s)" in caplog.text


def test_inspect_rows_includes_open_and_missing_slips(history_html):
    report = inspect_rows(rows_from_html(history_html))
    assert report.count == 5
    statuses = [row["status"] for row in report.rows]
    assert statuses == ["lost", "won", "open", "lost", "cancelled"]
    assert report.summary["lost"] == {"betTotal": 14.0, "profitTotal": -14.0, "count": 2}
    assert report.summary["open"] == {"betTotal": 3.0, "profitTotal": 0.0, "count": 1}
    assert report.summary["TOTAL"]["count"] == 5


def test_is_history_page():
    url = "https://csgoempire.com/profile/match-betting/history?page=2"
    assert is_history_page(url)
    assert not is_history_page("https://csgoempire.com/withdraw")
    assert is_history_page(url, history_page(history_row(slip="1")))
    assert not is_history_page(url, "<html><body><p>Loading</p></body></html>")
