from __future__ import annotations

from datetime import datetime, timezone

import pytest

CAPTURED_AT = datetime(2025, 10, 1, 12, 0, tzinfo=timezone.utc)


def history_row(
    *,
    game: str = "CS2 - NaVi vs FaZe",
    slip: str = "",
    amounts: tuple = ("10.00", "0.00"),
    status: str | None = "Lost",
    created: str = "Sat 06 Sep 21:03",
    style: str = "",
) -> str:
    currency = "".join(f'<td><span data-testid="currency-value">{value}</span></td>' for value in amounts)
    status_cell = f'<h4 class="capitalize">{status}</h4>' if status is not None else ""
    style_attr = f' style="{style}"' if style else ""
    return (
        f'<tr class="bg-dark-3"{style_attr}>'
        f'<td><h4 class="text-light-1">{game}</h4></td>'
        f"<td><p>{slip}</p></td>"
        f"{currency}"
        f"<td>{status_cell}</td>"
        f"<td><p>{created}</p></td>"
        "<td><button>Details</button></td>"
        "</tr>"
    )


def history_page(*rows: str) -> str:
    return (
        "<html><body><table>"
        "<thead><tr><th>Game</th><th>Slip</th><th>Bet</th><th>Profit</th><th>Status</th><th>Created</th><th></th></tr></thead>"
        f"<tbody>{''.join(rows)}</tbody>"
        "</table></body></html>"
    )


@pytest.fixture
def history_html() -> str:
    return history_page(
        history_row(slip="1001", amounts=("$10.00", "0.00"), status="Lost"),
        history_row(slip="1002", amounts=("$5.00", "+$7.50"), status=" Won ", created="Mon 15 Sep 10:00"),
        history_row(slip="1003", amounts=("$3.00", "0.00"), status="Open"),
        history_row(slip="1004", amounts=("$8.00", "$2.00"), status="Won", style="display: none"),
        history_row(slip="", amounts=("$4.00", "0.00"), status="Lost"),
        history_row(slip="1005", amounts=("$2.50", "0.00"), status="Cancelled", created="Wed 20 Aug 18:45"),
        history_row(slip="1006", amounts=("$1.00",), status="Won"),
    )
