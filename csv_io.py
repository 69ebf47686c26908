"""
CSV translation at the edges of the ledger.

Input rows are positional ``type, client, tx, amount`` after a header row.
Rows that cannot be turned into a transaction are logged and dropped; only
failing to open or read the file itself is fatal.

Output is one ``client, available, held, total, locked`` row per account.
"""

import csv
import sys
from collections import Counter
from pathlib import Path
from typing import Iterator, List, Optional, TextIO, Tuple, Union
from pydantic import ValidationError
import structlog

from exceptions import IOFailure, InvalidTransactionShape, MalformedRow, RowError
from models import AccountId, AccountSnapshot, SNAPSHOT_HEADER, Transaction, TransactionRow
from services import ProcessingSummary

logger = structlog.get_logger()

COLUMNS = ("type", "client", "tx", "amount")

# Undecodable bytes arrive as lone surrogates (surrogateescape) or U+FFFD
_UNDECODABLE = frozenset(chr(code) for code in range(0xDC80, 0xDD00)) | {"\ufffd"}


def _printable(value: str) -> str:
    """Show undecodable bytes as escapes so the value can be logged."""
    return value.encode("utf-8", "surrogateescape").decode("utf-8", "backslashreplace")


def parse_row(fields: List[str], line: int = 0) -> Tuple[AccountId, Transaction]:
    """Turn one CSV record into an ``(account id, transaction)`` pair."""
    raw = [_printable(value) for value in fields]
    if not 3 <= len(fields) <= len(COLUMNS):
        raise MalformedRow(line, f"expected 3 or 4 columns, got {len(fields)}", raw)
    for column, value in zip(COLUMNS, fields):
        if not _UNDECODABLE.isdisjoint(value):
            raise MalformedRow(line, f"{column}: not valid UTF-8", raw)

    values = dict(zip(COLUMNS, (value.strip() for value in fields)))
    try:
        row = TransactionRow(**values)
    except ValidationError as e:
        detail = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in e.errors()
        )
        raise MalformedRow(line, detail, raw) from e

    transaction = row.to_transaction()
    if transaction is None:
        presence = "with" if row.amount is not None else "without"
        raise InvalidTransactionShape(line, f"'{row.type}' {presence} amount", raw)
    return row.client, transaction


class TransactionReader:
    """Single-pass iterator over the transactions of one CSV file."""

    def __init__(self, path: Union[str, Path], summary: Optional[ProcessingSummary] = None):
        self.path = Path(path)
        self.summary = summary if summary is not None else ProcessingSummary()

    def __iter__(self) -> Iterator[Tuple[AccountId, Transaction]]:
        try:
            with self.path.open("r", encoding="utf-8-sig", errors="surrogateescape", newline="") as f:
                reader = csv.reader(f)
                next(reader, None)  # header
                while True:
                    try:
                        fields = next(reader)
                    except StopIteration:
                        break
                    except csv.Error as e:
                        self._drop(MalformedRow(reader.line_num, str(e)))
                        continue
                    if not fields:
                        continue
                    try:
                        pair = parse_row(fields, reader.line_num)
                    except RowError as e:
                        self._drop(e)
                        continue
                    yield pair
        except (OSError, csv.Error) as e:
            raise IOFailure(str(self.path), str(e)) from e

    def _drop(self, error: RowError) -> None:
        self.summary.record_drop(error)
        logger.warning("Row dropped", **error.to_dict())

    @property
    def dropped(self) -> Counter:
        return self.summary.drops

    @property
    def dropped_count(self) -> int:
        return self.summary.dropped


def read_transactions(path: Union[str, Path]) -> Iterator[Tuple[AccountId, Transaction]]:
    return iter(TransactionReader(path))


def write_accounts(engine, stream: Optional[TextIO] = None) -> int:
    """Write the account snapshot as CSV. Returns the number of rows written."""
    stream = stream if stream is not None else sys.stdout
    writer = csv.writer(stream, lineterminator="\n")
    count = 0
    try:
        writer.writerow(SNAPSHOT_HEADER)
        for account_id, account in engine.accounts():
            snapshot = AccountSnapshot.from_account(account_id, account)
            writer.writerow(snapshot.to_row())
            count += 1
        stream.flush()
    except OSError as e:
        raise IOFailure(getattr(stream, "name", "output"), str(e)) from e
    return count
