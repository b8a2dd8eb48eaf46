from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class DashboardFiltersModel(BaseModel):
    book_query: str = ""
    transaction_query: str = ""
    status: str = "all"
    top_borrowers: int = 10
    report_top_borrowers: int = 20
    currency_symbol: str = "₹"
    as_of: Optional[str] = Field(default=None, description="DD-MM-YYYY; defaults to today")


class MetaListResponse(BaseModel):
    values: List[str]
