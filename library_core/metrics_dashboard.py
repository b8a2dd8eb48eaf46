from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict

from library_core.analytics import calculate_dashboard_stats
from library_core.data import LibraryData
from library_core.filters import DashboardFilters


def compute_return_rate(returned: int, total: int) -> float:
    """Percent of loans returned, one decimal; 0 when there are no loans."""
    if not total:
        return 0.0
    return round(returned / total * 100, 1)


def compute_dashboard(filters: DashboardFilters, data: LibraryData) -> Dict[str, Any]:
    stats = calculate_dashboard_stats(data.books, data.transactions)
    returned = sum(1 for t in data.transactions if not t.is_open)
    return {
        "filters": asdict(filters),
        "kpis": asdict(stats),
        "activity": {
            "total_transactions": len(data.transactions),
            "returned": returned,
            "return_rate": compute_return_rate(returned, len(data.transactions)),
            "unique_titles": len(data.books),
            "total_users": len(data.users),
        },
    }
