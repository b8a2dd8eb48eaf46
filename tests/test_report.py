import io
from datetime import date

import pandas as pd
import pytest

from library_core.errors import ExportError
from library_core.filters import ReportOptions
from library_core.records import Book, Transaction
from library_core.report import (
    SECTION_ORDER,
    availability_status,
    build_overdue_csv,
    build_report,
    export_overdue_csv,
    export_report,
    format_currency,
    report_bytes,
    report_filename,
    transaction_status,
)

AS_OF = ReportOptions(as_of=date(2024, 4, 1))


@pytest.fixture
def report(books, users, transactions):
    return build_report(books, users, transactions, options=AS_OF)


def test_format_currency():
    assert format_currency(20) == "₹20"
    assert format_currency(12.5) == "₹12.5"
    assert format_currency(0.0) == "₹0"
    assert format_currency(7.25, "$") == "$7.25"
    assert format_currency(None) == "N/A"


def test_availability_status():
    assert availability_status(Book("B1", available_copies=0, total_copies=3)) == "Not Available"
    assert availability_status(Book("B1", available_copies=1, total_copies=3)) == "Low Stock"
    assert availability_status(Book("B1", available_copies=2, total_copies=4)) == "Available"


def test_transaction_status(transactions):
    assert [transaction_status(t) for t in transactions] == [
        "Overdue",
        "Returned",
        "Issued",
        "Overdue",
        "Overdue",
        "Returned",
    ]


class TestBuildReport:
    def test_section_order(self, report):
        assert tuple(report) == SECTION_ORDER

    def test_summary(self, report):
        summary = dict(zip(report["Summary"]["Metric"], report["Summary"]["Value"]))
        assert summary["Generated On"] == "01-04-2024"
        assert summary["Total Books (All Copies)"] == 9
        assert summary["Available Books"] == 4
        assert summary["Currently Issued"] == 4
        assert summary["Overdue Books"] == 3
        assert summary["Total Fines Accumulated"] == "₹70"
        assert summary["Unique Book Titles"] == 3
        assert summary["Total Users"] == 3
        assert summary["Total Transactions"] == 6
        assert summary["Books Returned"] == 2

    def test_books_catalog(self, report):
        assert report["Books Catalog"]["Status"].tolist() == ["Low Stock", "Not Available", "Available"]

    def test_transactions(self, report):
        df = report["Transactions"].set_index("Transaction ID")
        assert df.loc["T4", "Book Title"] == "N/A"
        assert df.loc["T5", "User Name"] == "N/A"
        assert df.loc["T1", "Return Date"] == "Not Returned"
        assert df.loc["T2", "Return Date"] == "10-03-2024"
        assert df.loc["T1", "Fine"] == "₹20"
        assert df.loc["T3", "Status"] == "Issued"

    def test_top_borrowers(self, report):
        df = report["Top Borrowers"]
        assert df["Rank"].tolist() == [1, 2, 3]
        assert df["Name"].tolist() == ["Alice", "Bob", "Unknown"]
        assert df["Total Fines"].tolist() == ["₹65", "₹0", "₹5"]

    def test_top_borrowers_limit(self, books, users, transactions):
        options = ReportOptions(report_top_borrowers=1, as_of=date(2024, 4, 1))
        assert len(build_report(books, users, transactions, options=options)["Top Borrowers"]) == 1

    def test_genre_distribution(self, report):
        df = report["Genre Distribution"]
        assert df["Genre"].tolist() == ["Science Fiction", "Fiction", "Poetry"]
        assert df["Percentage"].tolist() == ["40.00%", "40.00%", "20.00%"]

    def test_overdue_books(self, report):
        df = report["Overdue Books"]
        assert df["Transaction ID"].tolist() == ["T4", "T1", "T5"]
        assert df["Days Overdue"].tolist() == [12, 17, 11]
        assert df["Book Title"].tolist() == ["N/A", "Dune", "Gitanjali"]
        assert df["Borrower Name"].tolist() == ["Alice", "Alice", "N/A"]

    def test_days_overdue_clamped(self, books, users, transactions):
        early = ReportOptions(as_of=date(2024, 3, 1))
        assert build_report(books, users, transactions, options=early)["Overdue Books"]["Days Overdue"].tolist() == [0, 0, 0]

    def test_users(self, report):
        df = report["Users"]
        assert df["Books Borrowed"].tolist() == [3, 2, 0]
        assert df["Total Fines"].tolist() == ["₹65", "₹0", "₹0"]

    def test_empty_collections(self):
        report = build_report([], [], [], options=AS_OF)
        assert tuple(report) == SECTION_ORDER
        assert report["Books Catalog"].empty
        assert report["Genre Distribution"].empty
        assert list(report["Overdue Books"].columns)[-1] == "Fine"


class TestWorkbook:
    def test_report_bytes_roundtrip_sheets(self, report):
        content = report_bytes(report)
        sheets = pd.read_excel(io.BytesIO(content), sheet_name=None)
        assert list(sheets) == list(SECTION_ORDER)
        assert sheets["Users"]["Name"].tolist() == ["Alice", "Bob", "Chitra"]

    def test_export_report(self, tmp_path, books, users, transactions):
        path = export_report(books, users, transactions, tmp_path, options=AS_OF)
        assert path.name == "Library_Report_2024-04-01.xlsx"
        assert path.is_file()

    def test_export_report_bad_directory(self, tmp_path, books, users, transactions):
        with pytest.raises(ExportError):
            export_report(books, users, transactions, tmp_path / "missing", options=AS_OF)

    def test_report_filename(self):
        assert report_filename(AS_OF) == "Library_Report_2024-04-01.xlsx"


class TestOverdueCsv:
    def test_csv(self, transactions, books, users):
        text = build_overdue_csv(transactions, books, users, options=AS_OF)
        assert text.splitlines() == [
            "User,Book,Issue Date,Due Date,Fine",
            "Alice,N/A,06-03-2024,20-03-2024,₹35",
            "Alice,Dune,01-03-2024,15-03-2024,₹20",
            "N/A,Gitanjali,07-03-2024,21-03-2024,₹5",
        ]

    def test_csv_no_overdue(self):
        returned = [Transaction("T1", "B1", "U1", None, None, date(2024, 1, 1), 10.0)]
        assert build_overdue_csv(returned, [], []).splitlines() == ["User,Book,Issue Date,Due Date,Fine"]

    def test_export_overdue_csv(self, tmp_path, transactions, books, users):
        path = export_overdue_csv(transactions, books, users, tmp_path, options=AS_OF)
        assert path.name == "overdue-report-2024-04-01.csv"
        assert path.read_text(encoding="utf-8").startswith("User,Book")

    def test_export_overdue_csv_bad_directory(self, tmp_path, transactions, books, users):
        with pytest.raises(ExportError):
            export_overdue_csv(transactions, books, users, tmp_path / "missing", options=AS_OF)
