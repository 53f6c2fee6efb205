"""A thin SQLite connection wrapper with strict parameter checks."""

from __future__ import annotations

import os
import sqlite3
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from typing import Any, Union

from .errors import ChatError
from .str_fields import is_orthodox_string

Params = Union[Sequence[Any], Mapping[str, Any]]


def _check_param(value: Any) -> None:
    if isinstance(value, str) and not is_orthodox_string(value):
        raise ChatError("Can't bind this string to parameter")


def _check_params(params: Params) -> None:
    values = params.values() if isinstance(params, Mapping) else params
    for value in values:
        _check_param(value)


class Database:
    """An SQLite connection whose transactions are controlled explicitly.

    Statements use ``?N`` placeholders; text parameters must be valid UTF-8
    without NUL characters. Every database failure is raised as ChatError.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        try:
            self._conn = sqlite3.connect(os.fspath(path), isolation_level=None)
        except sqlite3.Error as exc:
            raise ChatError(f"Can't open sqlite3 database {exc}") from exc

    def close(self) -> None:
        """Close the connection; later use raises ChatError."""
        self._conn.close()

    def __enter__(self) -> Database:
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()

    def _run(self, statement: str, params: Params) -> sqlite3.Cursor:
        _check_params(params)
        try:
            return self._conn.execute(statement, params)
        except sqlite3.Error as exc:
            raise ChatError(f"sqlite3 request\n{statement}\nfailed: {exc}") from exc

    def execute(self, statement: str, params: Params = ()) -> int:
        """Run a statement, discarding its output; return the changed row count."""
        cursor = self._run(statement, params)
        try:
            cursor.fetchall()
        except sqlite3.Error as exc:
            raise ChatError(f"sqlite3 step failed: {exc}") from exc
        return cursor.rowcount

    def fetch_one(self, statement: str, params: Params = ()) -> tuple[Any, ...] | None:
        """The first result row, or None when there is none."""
        cursor = self._run(statement, params)
        try:
            return cursor.fetchone()
        except sqlite3.Error as exc:
            raise ChatError(f"sqlite3 step failed: {exc}") from exc

    def fetch_all(self, statement: str, params: Params = ()) -> list[tuple[Any, ...]]:
        """All result rows in the order SQLite yields them."""
        cursor = self._run(statement, params)
        try:
            return cursor.fetchall()
        except sqlite3.Error as exc:
            raise ChatError(f"sqlite3 step failed: {exc}") from exc

    def last_insert_rowid(self) -> int:
        """Row id of the most recent successful insert on this connection."""
        row = self.fetch_one("SELECT last_insert_rowid()")
        assert row is not None
        return int(row[0])

    @property
    def in_transaction(self) -> bool:
        return self._conn.in_transaction

    @contextmanager
    def transaction(self) -> Iterator[Database]:
        """Run the block in one transaction, rolled back if the block raises."""
        self.execute("BEGIN")
        try:
            yield self
        except BaseException:
            self.execute("ROLLBACK")
            raise
        self.execute("END")