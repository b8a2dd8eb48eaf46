"""Spreadsheet and CSV exports.

``build_report`` lays the data out as seven named sections (one sheet each);
``write_report`` turns those into an .xlsx workbook. ``build_overdue_csv``
is the small flat export of overdue loans only.
"""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

import pandas as pd
from openpyxl.utils import get_column_letter

from library_core.analytics import (
    build_index,
    calculate_dashboard_stats,
    get_genre_distribution,
    get_overdue_transactions,
    get_top_borrowers,
)
from library_core.errors import ExportError
from library_core.filters import CURRENCY_SYMBOL, ReportOptions
from library_core.records import Book, Transaction, User, days_overdue, format_date


logger = logging.getLogger(__name__)

NOT_AVAILABLE = "N/A"
NOT_RETURNED = "Not Returned"

SECTION_ORDER = (
    "Summary",
    "Books Catalog",
    "Transactions",
    "Top Borrowers",
    "Genre Distribution",
    "Overdue Books",
    "Users",
)

# Presentation only.
COLUMN_WIDTHS: Dict[str, List[int]] = {
    "Summary": [30, 20],
    "Books Catalog": [10, 35, 25, 20, 15, 12, 15],
    "Transactions": [15, 10, 35, 10, 20, 12, 12, 12, 10, 12],
    "Top Borrowers": [8, 10, 25, 15, 12],
    "Genre Distribution": [25, 15, 12],
    "Overdue Books": [15, 35, 25, 20, 10, 12, 12, 12, 10],
    "Users": [10, 20, 30, 15, 15, 12],
}

OVERDUE_CSV_COLUMNS = ["User", "Book", "Issue Date", "Due Date", "Fine"]


def format_currency(value: object, symbol: str = CURRENCY_SYMBOL) -> str:
    """``₹20`` for whole amounts, ``₹12.5`` otherwise."""
    if value is None or pd.isna(value):
        return NOT_AVAILABLE
    text = f"{float(value):.2f}".rstrip("0").rstrip(".")
    return f"{symbol}{text}"


def availability_status(book: Book) -> str:
    if book.available_copies == 0:
        return "Not Available"
    if book.available_copies < book.total_copies / 2:
        return "Low Stock"
    return "Available"


def transaction_status(transaction: Transaction) -> str:
    if not transaction.is_open:
        return "Returned"
    return "Overdue" if transaction.is_overdue else "Issued"


def _or_na(value: Optional[str]) -> str:
    return value if value else NOT_AVAILABLE


def summary_section(
    books: Sequence[Book],
    users: Sequence[User],
    transactions: Sequence[Transaction],
    options: ReportOptions,
) -> pd.DataFrame:
    stats = calculate_dashboard_stats(books, transactions)
    returned = sum(1 for t in transactions if not t.is_open)
    rows = [
        ("Generated On", format_date(options.today())),
        ("Total Books (All Copies)", stats.total_books),
        ("Available Books", stats.available_books),
        ("Currently Issued", stats.total_issued),
        ("Overdue Books", stats.total_overdue),
        ("Total Fines Accumulated", format_currency(stats.total_fines, options.currency_symbol)),
        ("Unique Book Titles", len(books)),
        ("Total Users", len(users)),
        ("Total Transactions", len(transactions)),
        ("Books Returned", returned),
    ]
    return pd.DataFrame(rows, columns=["Metric", "Value"])


def books_section(books: Sequence[Book]) -> pd.DataFrame:
    rows = [
        (b.book_id, b.title, b.author, b.genre, b.available_copies, b.total_copies, availability_status(b))
        for b in books
    ]
    return pd.DataFrame(
        rows,
        columns=["Book ID", "Title", "Author", "Genre", "Available Copies", "Total Copies", "Status"],
    )


def transactions_section(
    transactions: Sequence[Transaction],
    books: Sequence[Book],
    users: Sequence[User],
    options: ReportOptions,
) -> pd.DataFrame:
    book_index = build_index(books, "book_id")
    user_index = build_index(users, "user_id")
    rows = []
    for t in transactions:
        book = book_index.get(t.book_id)
        user = user_index.get(t.user_id)
        rows.append(
            (
                t.transaction_id,
                t.book_id,
                _or_na(book.title if book else None),
                t.user_id,
                _or_na(user.name if user else None),
                format_date(t.issue_date),
                format_date(t.due_date),
                format_date(t.return_date) or NOT_RETURNED,
                format_currency(t.fine, options.currency_symbol),
                transaction_status(t),
            )
        )
    return pd.DataFrame(
        rows,
        columns=[
            "Transaction ID",
            "Book ID",
            "Book Title",
            "User ID",
            "User Name",
            "Issue Date",
            "Due Date",
            "Return Date",
            "Fine",
            "Status",
        ],
    )


def top_borrowers_section(transactions: Sequence[Transaction], users: Sequence[User], options: ReportOptions) -> pd.DataFrame:
    borrowers = get_top_borrowers(transactions, users, options.report_top_borrowers)
    rows = [
        (rank, b.user_id, b.name, b.borrow_count, format_currency(b.total_fines, options.currency_symbol))
        for rank, b in enumerate(borrowers, start=1)
    ]
    return pd.DataFrame(rows, columns=["Rank", "User ID", "Name", "Books Borrowed", "Total Fines"])


def genre_section(books: Sequence[Book], transactions: Sequence[Transaction]) -> pd.DataFrame:
    genres = get_genre_distribution(books, transactions)
    total = sum(g.count for g in genres)
    rows = [(_or_na(g.genre), g.count, f"{g.count / total * 100:.2f}%") for g in genres]
    return pd.DataFrame(rows, columns=["Genre", "Times Borrowed", "Percentage"])


def overdue_section(
    transactions: Sequence[Transaction],
    books: Sequence[Book],
    users: Sequence[User],
    options: ReportOptions,
) -> pd.DataFrame:
    today = options.today()
    rows = []
    for item in get_overdue_transactions(transactions, books, users):
        t = item.transaction
        rows.append(
            (
                t.transaction_id,
                _or_na(item.book.title if item.book else None),
                _or_na(item.book.author if item.book else None),
                _or_na(item.user.name if item.user else None),
                t.user_id,
                format_date(t.issue_date),
                format_date(t.due_date),
                days_overdue(t, as_of=today),
                format_currency(t.fine, options.currency_symbol),
            )
        )
    return pd.DataFrame(
        rows,
        columns=[
            "Transaction ID",
            "Book Title",
            "Author",
            "Borrower Name",
            "User ID",
            "Issue Date",
            "Due Date",
            "Days Overdue",
            "Fine",
        ],
    )


def users_section(users: Sequence[User], transactions: Sequence[Transaction], options: ReportOptions) -> pd.DataFrame:
    rows = []
    for user in users:
        user_tx = [t for t in transactions if t.user_id == user.user_id]
        total_fines = sum(t.fine for t in user_tx)
        rows.append(
            (
                user.user_id,
                user.name,
                user.email,
                user.phone,
                len(user_tx),
                format_currency(total_fines, options.currency_symbol),
            )
        )
    return pd.DataFrame(rows, columns=["User ID", "Name", "Email", "Phone", "Books Borrowed", "Total Fines"])


def build_report(
    books: Sequence[Book],
    users: Sequence[User],
    transactions: Sequence[Transaction],
    *,
    options: Optional[ReportOptions] = None,
) -> Dict[str, pd.DataFrame]:
    """All report sections, keyed by sheet name in SECTION_ORDER."""
    options = options or ReportOptions()
    return {
        "Summary": summary_section(books, users, transactions, options),
        "Books Catalog": books_section(books),
        "Transactions": transactions_section(transactions, books, users, options),
        "Top Borrowers": top_borrowers_section(transactions, users, options),
        "Genre Distribution": genre_section(books, transactions),
        "Overdue Books": overdue_section(transactions, books, users, options),
        "Users": users_section(users, transactions, options),
    }


def write_report(report: Dict[str, pd.DataFrame], target: Union[str, Path, io.BytesIO]) -> None:
    with pd.ExcelWriter(target, engine="openpyxl") as writer:
        for name, df in report.items():
            df.to_excel(writer, sheet_name=name, index=False)
            sheet = writer.sheets[name]
            for idx, width in enumerate(COLUMN_WIDTHS.get(name, []), start=1):
                sheet.column_dimensions[get_column_letter(idx)].width = width


def report_bytes(report: Dict[str, pd.DataFrame]) -> bytes:
    buffer = io.BytesIO()
    write_report(report, buffer)
    return buffer.getvalue()


def report_filename(options: Optional[ReportOptions] = None) -> str:
    return f"Library_Report_{(options or ReportOptions()).today().isoformat()}.xlsx"


def overdue_csv_filename(options: Optional[ReportOptions] = None) -> str:
    return f"overdue-report-{(options or ReportOptions()).today().isoformat()}.csv"


def overdue_frame(
    transactions: Sequence[Transaction],
    books: Sequence[Book],
    users: Sequence[User],
    *,
    options: Optional[ReportOptions] = None,
) -> pd.DataFrame:
    options = options or ReportOptions()
    rows = [
        (
            _or_na(item.user.name if item.user else None),
            _or_na(item.book.title if item.book else None),
            format_date(item.transaction.issue_date),
            format_date(item.transaction.due_date),
            format_currency(item.fine, options.currency_symbol),
        )
        for item in get_overdue_transactions(transactions, books, users)
    ]
    return pd.DataFrame(rows, columns=OVERDUE_CSV_COLUMNS)


def build_overdue_csv(
    transactions: Sequence[Transaction],
    books: Sequence[Book],
    users: Sequence[User],
    *,
    options: Optional[ReportOptions] = None,
) -> str:
    return overdue_frame(transactions, books, users, options=options).to_csv(index=False, lineterminator="\n")


def export_report(
    books: Sequence[Book],
    users: Sequence[User],
    transactions: Sequence[Transaction],
    directory: Union[str, Path] = ".",
    *,
    options: Optional[ReportOptions] = None,
) -> Path:
    """Write the workbook into ``directory`` and return its path. Raises ExportError."""
    options = options or ReportOptions()
    path = Path(directory) / report_filename(options)
    report = build_report(books, users, transactions, options=options)
    try:
        write_report(report, path)
    except OSError as exc:
        raise ExportError(f"could not write report to {path}: {exc}") from exc
    logger.info("Wrote library report to %s", path)
    return path


def export_overdue_csv(
    transactions: Sequence[Transaction],
    books: Sequence[Book],
    users: Sequence[User],
    directory: Union[str, Path] = ".",
    *,
    options: Optional[ReportOptions] = None,
) -> Path:
    options = options or ReportOptions()
    path = Path(directory) / overdue_csv_filename(options)
    text = build_overdue_csv(transactions, books, users, options=options)
    try:
        path.write_text(text, encoding="utf-8")
    except OSError as exc:
        raise ExportError(f"could not write overdue export to {path}: {exc}") from exc
    logger.info("Wrote overdue export to %s", path)
    return path
