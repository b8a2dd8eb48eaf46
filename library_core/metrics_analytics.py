from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List

from library_core.analytics import (
    OverdueTransaction,
    get_genre_distribution,
    get_overdue_transactions,
    get_top_borrowers,
)
from library_core.charts import genre_bar_chart, genre_share_chart, top_borrowers_chart
from library_core.data import LibraryData
from library_core.filters import DashboardFilters
from library_core.records import days_overdue, format_date


def overdue_rows(items: List[OverdueTransaction], *, as_of=None) -> List[Dict[str, Any]]:
    rows = []
    for item in items:
        t = item.transaction
        rows.append(
            {
                "transaction_id": t.transaction_id,
                "book_id": t.book_id,
                "user_id": t.user_id,
                "book_title": item.book.title if item.book else None,
                "user_name": item.user.name if item.user else None,
                "issue_date": format_date(t.issue_date),
                "due_date": format_date(t.due_date),
                "days_overdue": days_overdue(t, as_of=as_of),
                "fine": t.fine,
            }
        )
    return rows


def compute_analytics(filters: DashboardFilters, data: LibraryData) -> Dict[str, Any]:
    genres = get_genre_distribution(data.books, data.transactions)
    borrowers = get_top_borrowers(data.transactions, data.users, filters.options.top_borrowers)
    overdue = get_overdue_transactions(data.transactions, data.books, data.users)
    return {
        "filters": asdict(filters),
        "genres": [asdict(g) for g in genres],
        "top_borrowers": [asdict(b) for b in borrowers],
        "overdue": overdue_rows(overdue, as_of=filters.options.today()),
        "charts": {
            "genre_bar": genre_bar_chart(genres),
            "genre_share": genre_share_chart(genres),
            "top_borrowers": top_borrowers_chart(borrowers),
        },
    }
