from datetime import date

import pytest

from library_core import data as data_module
from library_core.records import Book, Transaction, User

BOOKS_CSV = """book_id,title,author,genre,available_copies,total_copies
B1,Dune,Frank Herbert,Science Fiction,1,4
B2,Emma,Jane Austen,Fiction,0,2
B3,Gitanjali,Rabindranath Tagore,Poetry,3,3
"""

USERS_CSV = """user_id,name,email,phone
U1,Alice,alice@example.edu,111
U2,Bob,bob@example.edu,222
U3,Chitra,chitra@example.edu,
"""

TRANSACTIONS_CSV = """transaction_id,book_id,user_id,issue_date,due_date,return_date,fine
T1,B1,U1,01-03-2024,15-03-2024,,20
T2,B2,U2,02-03-2024,16-03-2024,10-03-2024,0
T3,B1,U2,05-03-2024,19-03-2024,,0
T4,B9,U1,06-03-2024,20-03-2024,,35
T5,B3,U9,07-03-2024,21-03-2024,,5
T6,B2,U1,08-03-2024,22-03-2024,25-03-2024,10
"""


@pytest.fixture
def books():
    return [
        Book("B1", "Dune", "Frank Herbert", "Science Fiction", 1, 4),
        Book("B2", "Emma", "Jane Austen", "Fiction", 0, 2),
        Book("B3", "Gitanjali", "Rabindranath Tagore", "Poetry", 3, 3),
    ]


@pytest.fixture
def users():
    return [
        User("U1", "Alice", "alice@example.edu", "111"),
        User("U2", "Bob", "bob@example.edu", "222"),
        User("U3", "Chitra", "chitra@example.edu", None),
    ]


@pytest.fixture
def transactions():
    # T4 points at a missing book, T5 at a missing user
    return [
        Transaction("T1", "B1", "U1", date(2024, 3, 1), date(2024, 3, 15), None, 20.0),
        Transaction("T2", "B2", "U2", date(2024, 3, 2), date(2024, 3, 16), date(2024, 3, 10), 0.0),
        Transaction("T3", "B1", "U2", date(2024, 3, 5), date(2024, 3, 19), None, 0.0),
        Transaction("T4", "B9", "U1", date(2024, 3, 6), date(2024, 3, 20), None, 35.0),
        Transaction("T5", "B3", "U9", date(2024, 3, 7), date(2024, 3, 21), None, 5.0),
        Transaction("T6", "B2", "U1", date(2024, 3, 8), date(2024, 3, 22), date(2024, 3, 25), 10.0),
    ]


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    (tmp_path / "books.csv").write_text(BOOKS_CSV, encoding="utf-8")
    (tmp_path / "users.csv").write_text(USERS_CSV, encoding="utf-8")
    (tmp_path / "transactions.csv").write_text(TRANSACTIONS_CSV, encoding="utf-8")
    monkeypatch.setattr(data_module, "DATA_DIR", tmp_path)
    data_module.clear_cache()
    yield tmp_path
    data_module.clear_cache()
