from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from library_core.errors import LibraryDataError, ParseError
from library_core.records import Book, Transaction, User, parse_books, parse_transactions, parse_users


logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parents[1] / "data"

BOOKS_FILE = "books.csv"
USERS_FILE = "users.csv"
TRANSACTIONS_FILE = "transactions.csv"
SOURCE_FILES = (BOOKS_FILE, USERS_FILE, TRANSACTIONS_FILE)


@dataclass(frozen=True)
class LibraryData:
    """Immutable snapshot of the three datasets, safe to share between requests."""

    books: Tuple[Book, ...]
    users: Tuple[User, ...]
    transactions: Tuple[Transaction, ...]
    files: Tuple[str, ...] = ()

    def genres(self) -> List[str]:
        return sorted({b.genre for b in self.books if b.genre})


def get_source_files(data_dir: Optional[Path] = None) -> List[Path]:
    """The three source paths; raises LibraryDataError if any is missing."""
    data_dir = Path(data_dir or DATA_DIR)
    paths = [data_dir / name for name in SOURCE_FILES]
    missing = [p.name for p in paths if not p.is_file()]
    if missing:
        raise LibraryDataError(f"missing source file(s) in {data_dir}: {', '.join(missing)}")
    return paths


def file_signature(files: List[Path]) -> Tuple[Tuple[str, float], ...]:
    return tuple((str(f), f.stat().st_mtime) for f in files)


def read_source(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8-sig")
    except OSError as exc:
        raise LibraryDataError(f"could not read {path}: {exc}") from exc


def load_from_text(books_text: str, users_text: str, transactions_text: str) -> LibraryData:
    """Parse the three datasets from in-memory text. ParseError aborts the load."""
    books = parse_books(books_text, source=BOOKS_FILE)
    users = parse_users(users_text, source=USERS_FILE)
    transactions = parse_transactions(transactions_text, source=TRANSACTIONS_FILE)
    return LibraryData(books=tuple(books), users=tuple(users), transactions=tuple(transactions))


@lru_cache(maxsize=4)
def _load_library_data_cached(files_sig: Tuple[Tuple[str, float], ...]) -> LibraryData:
    texts: Dict[str, str] = {Path(name).name: read_source(Path(name)) for name, _ in files_sig}
    try:
        data = load_from_text(texts[BOOKS_FILE], texts[USERS_FILE], texts[TRANSACTIONS_FILE])
    except ParseError:
        logger.error("Failed to parse library data from %s", ", ".join(name for name, _ in files_sig))
        raise
    logger.info(
        "Loaded %d books, %d users, %d transactions",
        len(data.books),
        len(data.users),
        len(data.transactions),
    )
    return LibraryData(
        books=data.books,
        users=data.users,
        transactions=data.transactions,
        files=tuple(Path(name).name for name, _ in files_sig),
    )


def load_library_data(data_dir: Optional[Union[str, Path]] = None) -> LibraryData:
    """Load (or reuse) the snapshot held in ``data_dir``.

    The cache key is the files' modification times, so editing a source file
    triggers a fresh parse on the next call.
    """
    files = get_source_files(Path(data_dir) if data_dir else None)
    return _load_library_data_cached(file_signature(files))


def clear_cache() -> None:
    _load_library_data_cached.cache_clear()
