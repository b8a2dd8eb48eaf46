"""Aggregations over the book, user and transaction collections.

Every function here is pure: it only reads its arguments and rebuilds its
result from scratch. Transactions pointing at a book or user that does not
exist never raise; they fall back to a placeholder (or are left out of the
genre counts, which need the book's genre).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, TypeVar

import pandas as pd

from library_core.records import Book, Transaction, User, records_frame


UNKNOWN_NAME = "Unknown"

R = TypeVar("R", Book, User, Transaction)


@dataclass(frozen=True)
class DashboardStats:
    total_books: int
    available_books: int
    total_issued: int
    total_overdue: int
    total_fines: float


@dataclass(frozen=True)
class GenreCount:
    genre: Optional[str]
    count: int


@dataclass(frozen=True)
class TopBorrower:
    user_id: Optional[str]
    name: str
    borrow_count: int
    total_fines: float


@dataclass(frozen=True)
class OverdueTransaction:
    """An overdue loan together with its resolved book and user (None if unresolved)."""

    transaction: Transaction
    book: Optional[Book]
    user: Optional[User]

    @property
    def transaction_id(self) -> str:
        return self.transaction.transaction_id

    @property
    def fine(self) -> float:
        return self.transaction.fine


def build_index(records: Iterable[R], key: str) -> Dict[Optional[str], R]:
    """id -> record; the first record wins, like a front-to-back scan would."""
    index: Dict[Optional[str], R] = {}
    for record in records:
        index.setdefault(getattr(record, key), record)
    return index


def _key(value: object) -> Optional[str]:
    if value is None or pd.isna(value):
        return None
    return str(value)


def calculate_dashboard_stats(books: Sequence[Book], transactions: Sequence[Transaction]) -> DashboardStats:
    books_df = records_frame(books, Book)
    tx = records_frame(transactions, Transaction)

    fines = pd.to_numeric(tx["fine"], errors="coerce").fillna(0.0)
    open_mask = tx["return_date"].isna()
    return DashboardStats(
        total_books=int(pd.to_numeric(books_df["total_copies"]).sum()),
        available_books=int(pd.to_numeric(books_df["available_copies"]).sum()),
        total_issued=int(open_mask.sum()),
        total_overdue=int((open_mask & (fines > 0)).sum()),
        total_fines=float(fines.sum()),
    )


def get_genre_distribution(books: Sequence[Book], transactions: Sequence[Transaction]) -> List[GenreCount]:
    """Borrow count per genre, highest first; equal counts keep first-seen order."""
    book_index = build_index(books, "book_id")
    tx = records_frame(transactions, Transaction)
    resolved = tx[tx["book_id"].isin(list(book_index))]
    if resolved.empty:
        return []

    genres = resolved["book_id"].map(lambda book_id: book_index[book_id].genre).rename("genre")
    dist = (
        genres.groupby(genres, sort=False, dropna=False)
        .size()
        .reset_index(name="borrows")
        .sort_values("borrows", ascending=False, kind="stable")
    )
    return [GenreCount(genre=_key(row.genre), count=int(row.borrows)) for row in dist.itertuples(index=False)]


def get_top_borrowers(transactions: Sequence[Transaction], users: Sequence[User], limit: int = 10) -> List[TopBorrower]:
    """Users ranked by number of loans (open or returned), with their summed fines."""
    tx = records_frame(transactions, Transaction)
    limit = max(0, int(limit))
    if tx.empty or not limit:
        return []

    user_index = build_index(users, "user_id")
    ranked = (
        tx.groupby("user_id", sort=False, dropna=False)
        .agg(borrow_count=("transaction_id", "size"), total_fines=("fine", "sum"))
        .reset_index()
        .sort_values("borrow_count", ascending=False, kind="stable")
        .head(limit)
    )

    out: List[TopBorrower] = []
    for row in ranked.itertuples(index=False):
        user_id = _key(row.user_id)
        user = user_index.get(user_id)
        out.append(
            TopBorrower(
                user_id=user_id,
                name=(user.name if user is not None and user.name else UNKNOWN_NAME),
                borrow_count=int(row.borrow_count),
                total_fines=float(row.total_fines),
            )
        )
    return out


def get_overdue_transactions(
    transactions: Sequence[Transaction],
    books: Sequence[Book],
    users: Sequence[User],
) -> List[OverdueTransaction]:
    """Open loans with a fine, largest fine first, each carrying its book and user."""
    book_index = build_index(books, "book_id")
    user_index = build_index(users, "user_id")
    overdue = [
        OverdueTransaction(transaction=t, book=book_index.get(t.book_id), user=user_index.get(t.user_id))
        for t in transactions
        if t.is_overdue
    ]
    return sorted(overdue, key=lambda item: item.fine, reverse=True)
