from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List, Optional, Sequence

from library_core.analytics import build_index
from library_core.errors import ParseError
from library_core.records import Book, Transaction, User, parse_date


CURRENCY_SYMBOL = "₹"
TRANSACTION_STATUSES = ("all", "issued", "returned", "overdue")


@dataclass(frozen=True)
class ReportOptions:
    top_borrowers: int = 10
    report_top_borrowers: int = 20
    currency_symbol: str = CURRENCY_SYMBOL
    as_of: Optional[date] = None

    def today(self) -> date:
        return self.as_of or date.today()


@dataclass(frozen=True)
class DashboardFilters:
    book_query: str = ""
    transaction_query: str = ""
    status: str = "all"
    options: ReportOptions = field(default_factory=ReportOptions)


def _as_limit(value: object, default: int) -> int:
    try:
        out = int(value)  # type: ignore[arg-type]
    except Exception:
        out = default
    return max(1, min(200, out))


def normalize_filters(raw: Optional[dict]) -> DashboardFilters:
    raw = raw or {}
    status = str(raw.get("status") or "all").strip().lower()
    if status not in TRANSACTION_STATUSES:
        status = "all"

    as_of = raw.get("as_of")
    if isinstance(as_of, str):
        try:
            as_of = parse_date(as_of) if as_of.strip() else None
        except ParseError:
            as_of = None
    elif not isinstance(as_of, date):
        as_of = None

    options = ReportOptions(
        top_borrowers=_as_limit(raw.get("top_borrowers", 10), 10),
        report_top_borrowers=_as_limit(raw.get("report_top_borrowers", 20), 20),
        currency_symbol=str(raw.get("currency_symbol") or CURRENCY_SYMBOL),
        as_of=as_of,
    )
    return DashboardFilters(
        book_query=(raw.get("book_query") or "").strip(),
        transaction_query=(raw.get("transaction_query") or "").strip(),
        status=status,
        options=options,
    )


def _contains(value: Optional[str], q: str) -> bool:
    return value is not None and q in value.lower()


def filter_books(books: Iterable[Book], query: str = "") -> List[Book]:
    """Books whose title, author or genre contains ``query`` (case-insensitive)."""
    q = (query or "").strip().lower()
    if not q:
        return list(books)
    return [b for b in books if _contains(b.title, q) or _contains(b.author, q) or _contains(b.genre, q)]


def matches_status(transaction: Transaction, status: str) -> bool:
    if status == "issued":
        return transaction.is_open
    if status == "returned":
        return not transaction.is_open
    if status == "overdue":
        return transaction.is_overdue
    return True


def filter_transactions(
    transactions: Iterable[Transaction],
    books: Sequence[Book],
    users: Sequence[User],
    query: str = "",
    status: str = "all",
) -> List[Transaction]:
    """Transactions matching ``status`` whose book title, user name or id contains ``query``."""
    book_index = build_index(books, "book_id")
    user_index = build_index(users, "user_id")
    q = (query or "").strip().lower()
    out: List[Transaction] = []
    for t in transactions:
        if not matches_status(t, status):
            continue
        if q:
            book = book_index.get(t.book_id)
            user = user_index.get(t.user_id)
            if not (
                _contains(book.title if book else None, q)
                or _contains(user.name if user else None, q)
                or _contains(t.transaction_id, q)
            ):
                continue
        out.append(t)
    return out
