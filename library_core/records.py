"""Record model for the three library datasets.

Each dataset is delimited text: line 1 holds the field names, every further
line one record. Fields are typed when the text is parsed, so downstream code
never has to guess whether ``"0"`` is a number or ``""`` means "no date".
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field, fields
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Tuple, Type, TypeVar

import pandas as pd

from library_core.errors import ParseError


DELIMITER = ","
DATE_FORMAT = "%d-%m-%Y"


@dataclass(frozen=True)
class Book:
    book_id: str
    title: Optional[str] = None
    author: Optional[str] = None
    genre: Optional[str] = None
    available_copies: int = 0
    total_copies: int = 0


@dataclass(frozen=True)
class User:
    user_id: str
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


@dataclass(frozen=True)
class Transaction:
    """A single loan. ``return_date`` is None while the loan is open."""

    transaction_id: str
    book_id: Optional[str] = None
    user_id: Optional[str] = None
    issue_date: Optional[date] = None
    due_date: Optional[date] = None
    return_date: Optional[date] = None
    fine: float = 0.0

    @property
    def is_open(self) -> bool:
        return self.return_date is None

    @property
    def is_overdue(self) -> bool:
        # A positive fine on an open loan is the overdue signal; the due date is not consulted.
        return self.is_open and self.fine > 0


@dataclass(frozen=True)
class RecordSchema:
    key: str
    numeric: Dict[str, type] = field(default_factory=dict)
    dates: Tuple[str, ...] = ()


SCHEMAS: Dict[type, RecordSchema] = {
    Book: RecordSchema(key="book_id", numeric={"available_copies": int, "total_copies": int}),
    User: RecordSchema(key="user_id"),
    Transaction: RecordSchema(
        key="transaction_id",
        numeric={"fine": float},
        dates=("issue_date", "due_date", "return_date"),
    ),
}

R = TypeVar("R", Book, User, Transaction)


def _clean(value: object) -> Optional[str]:
    if value is None or pd.isna(value):
        return None
    s = str(value).strip()
    return s or None


def parse_date(text: Optional[str], *, today: Optional[date] = None) -> date:
    """Parse a ``D-M-YYYY`` date.

    Absent or empty text falls back to ``today`` (the current date by default),
    so callers that need to tell "no date" apart must check before calling.
    """
    if text is None or not str(text).strip():
        return today or date.today()
    try:
        return datetime.strptime(str(text).strip(), DATE_FORMAT).date()
    except ValueError as exc:
        raise ParseError(f"invalid date {text!r}, expected DD-MM-YYYY") from exc


def format_date(value: Optional[date]) -> Optional[str]:
    if value is None:
        return None
    return value.strftime(DATE_FORMAT)


def _to_number(text: Optional[str], kind: type, name: str, line_number: int):
    if text is None:
        return kind(0)
    number = pd.to_numeric(text, errors="coerce")
    if pd.isna(number) or not math.isfinite(float(number)):
        raise ParseError(f"{name} is not a number: {text!r}", line_number)
    number = float(number)
    if number < 0:
        raise ParseError(f"{name} must not be negative: {text!r}", line_number)
    if kind is int:
        if not number.is_integer():
            raise ParseError(f"{name} must be a whole number: {text!r}", line_number)
        return int(number)
    return number


def _split_lines(text: str) -> pd.DataFrame:
    numbered = [(idx, line) for idx, line in enumerate((text or "").splitlines(), start=1) if line.strip()]
    if not numbered:
        raise ParseError("no header row found")
    lines = pd.Series([line for _, line in numbered], index=[idx for idx, _ in numbered], dtype=object)
    return lines.str.split(DELIMITER, expand=True)


def _read_header(raw: pd.DataFrame, record_type: Type[R]) -> List[str]:
    header_line = int(raw.index[0])
    header = [_clean(v) for v in raw.iloc[0].tolist()]
    while header and header[-1] is None:
        header.pop()
    if any(name is None for name in header):
        raise ParseError("blank column name in header", header_line)
    dupes = sorted({name for name in header if header.count(name) > 1})
    if dupes:
        raise ParseError(f"duplicate column(s) in header: {', '.join(dupes)}", header_line)
    missing = [f.name for f in fields(record_type) if f.name not in header]
    if missing:
        raise ParseError(f"header is missing column(s): {', '.join(missing)}", header_line)
    return header


def _build_record(record_type: Type[R], schema: RecordSchema, values: Dict[str, Optional[str]], line_number: int) -> R:
    kwargs: Dict[str, object] = {}
    for f in fields(record_type):
        text = values.get(f.name)
        if f.name in schema.numeric:
            kwargs[f.name] = _to_number(text, schema.numeric[f.name], f.name, line_number)
        elif f.name in schema.dates:
            if text is None:
                kwargs[f.name] = None
            else:
                try:
                    kwargs[f.name] = parse_date(text)
                except ParseError as exc:
                    raise ParseError(f"{f.name}: {exc}", line_number) from exc
        else:
            kwargs[f.name] = text
    if kwargs[schema.key] is None:
        raise ParseError(f"missing {schema.key}", line_number)
    record = record_type(**kwargs)
    if isinstance(record, Book) and record.available_copies > record.total_copies:
        raise ParseError(
            f"available_copies ({record.available_copies}) exceeds total_copies ({record.total_copies})",
            line_number,
        )
    return record


def parse_records(text: str, record_type: Type[R], *, source: Optional[str] = None) -> List[R]:
    """Parse delimited ``text`` into a list of ``record_type`` records.

    Values are split on the delimiter without any quoting support, so a value
    containing a comma shifts the columns after it. A row shorter than the
    header leaves the remaining fields absent. Raises ParseError for anything
    that can not be mapped onto the record schema.
    """
    schema = SCHEMAS[record_type]
    try:
        raw = _split_lines(text)
        header = _read_header(raw, record_type)
        width = len(header)

        records: List[R] = []
        seen: Dict[str, int] = {}
        for line_number, row in raw.iloc[1:].iterrows():
            cells = [_clean(v) for v in row.tolist()]
            extra = [c for c in cells[width:] if c is not None]
            if extra:
                raise ParseError(f"row has {width + len(extra)} or more values, header has {width}", int(line_number))
            values = dict(zip(header, cells[:width]))
            record = _build_record(record_type, schema, values, int(line_number))
            key = getattr(record, schema.key)
            if key in seen:
                raise ParseError(f"duplicate {schema.key} {key!r} (first seen on line {seen[key]})", int(line_number))
            seen[key] = int(line_number)
            records.append(record)
    except ParseError as exc:
        if exc.source is None:
            exc.source = source
        raise
    return records


def parse_books(text: str, *, source: Optional[str] = None) -> List[Book]:
    return parse_records(text, Book, source=source)


def parse_users(text: str, *, source: Optional[str] = None) -> List[User]:
    return parse_records(text, User, source=source)


def parse_transactions(text: str, *, source: Optional[str] = None) -> List[Transaction]:
    return parse_records(text, Transaction, source=source)


def days_overdue(transaction: Transaction, *, as_of: Optional[date] = None) -> int:
    """Whole days between the due date and ``as_of``, never negative."""
    if transaction.due_date is None:
        return 0
    as_of = as_of or date.today()
    return max(0, (as_of - transaction.due_date).days)


def is_past_due(transaction: Transaction, *, as_of: Optional[date] = None) -> bool:
    if not transaction.is_open or transaction.due_date is None:
        return False
    return transaction.due_date < (as_of or date.today())


def records_frame(records: Iterable[R], record_type: Type[R]) -> pd.DataFrame:
    """Records as a DataFrame; the schema columns are present even when empty."""
    columns = [f.name for f in fields(record_type)]
    return pd.DataFrame([asdict(r) for r in records], columns=columns)
