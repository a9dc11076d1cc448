from __future__ import annotations

import re
import sqlite3
from typing import Any

import pymysql
import pytest
from pymysql.converters import escape_item

from db.client import DatabaseClient


# Inverse of pymysql.converters.escape_string for the sequences it emits.
_MYSQL_UNESCAPES = {"0": "\0", "n": "\n", "r": "\r", "Z": "\x1a"}
_MYSQL_STRING = re.compile(r"'((?:\\.|[^'\\])*)'", re.DOTALL)


def _to_sqlite(query: str) -> str:
    """Rewrite MySQL backslash-escaped string literals as sqlite ones."""

    def literal(match: re.Match) -> str:
        text = re.sub(
            r"\\(.)", lambda m: _MYSQL_UNESCAPES.get(m.group(1), m.group(1)), match.group(1)
        )
        return "'" + text.replace("'", "''") + "'"

    return _MYSQL_STRING.sub(literal, query)


def _to_mysql_error(exc: sqlite3.Error) -> pymysql.MySQLError:
    """Map a sqlite3 failure onto the PyMySQL error the server would raise."""
    if isinstance(exc, sqlite3.IntegrityError):
        return pymysql.err.IntegrityError(1062, str(exc))
    if isinstance(exc, sqlite3.OperationalError):
        return pymysql.err.ProgrammingError(1064, str(exc))
    return pymysql.err.InternalError(1105, str(exc))


class FakeCursor:
    """Just enough of pymysql.cursors.DictCursor, executed by sqlite3."""

    def __init__(self, connection: FakeConnection):
        self.connection = connection
        self.lastrowid: int | None = None
        self.rowcount = -1
        self._rows: list[dict[str, Any]] = []
        self.closed = False

    def mogrify(self, query: str, args: Any = None) -> str:
        if args is None:
            return query
        if isinstance(args, dict):
            return query % {k: escape_item(v, "utf8mb4") for k, v in args.items()}
        return query % tuple(escape_item(v, "utf8mb4") for v in args)

    def execute(self, query: str, args: Any = None) -> int:
        if self.connection.closed:
            raise pymysql.err.InterfaceError(0, "")
        query = self.mogrify(query, args)
        if not query.strip():
            raise pymysql.err.ProgrammingError(1065, "Query was empty")
        # PyMySQL encodes the whole statement before sending it.
        query.encode("utf-8")
        self.connection.executed.append(query)
        try:
            cur = self.connection.db.execute(_to_sqlite(query))
        except sqlite3.Error as exc:
            raise _to_mysql_error(exc) from exc
        columns = [d[0] for d in cur.description] if cur.description else []
        self._rows = [dict(zip(columns, row)) for row in cur.fetchall()]
        self.lastrowid = cur.lastrowid or 0
        self.rowcount = cur.rowcount
        return self.rowcount

    def fetchall(self) -> tuple[dict[str, Any], ...]:
        return tuple(self._rows)

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> FakeCursor:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class FakeConnection:
    """In-memory stand-in for a PyMySQL connection."""

    def __init__(self, **kwargs: Any):
        self.kwargs = kwargs
        self.db = sqlite3.connect(":memory:", isolation_level=None)
        self.executed: list[str] = []
        self.cursors: list[FakeCursor] = []
        self.closed = False

    def cursor(self) -> FakeCursor:
        cursor = FakeCursor(self)
        self.cursors.append(cursor)
        return cursor

    def close(self) -> None:
        if self.closed:
            raise pymysql.err.Error("Already closed")
        self.closed = True
        self.db.close()


@pytest.fixture
def fake_mysql(monkeypatch: pytest.MonkeyPatch) -> list[FakeConnection]:
    """
    Replace pymysql.connect with a sqlite3-backed fake.
    Returns the list of connections opened during the test.
    """
    opened: list[FakeConnection] = []

    def connect(**kwargs: Any) -> FakeConnection:
        conn = FakeConnection(**kwargs)
        opened.append(conn)
        return conn

    monkeypatch.setattr(pymysql, "connect", connect)
    return opened


@pytest.fixture
def unreachable_mysql(monkeypatch: pytest.MonkeyPatch) -> None:
    """Make every connection attempt fail the way an unknown host does."""

    def connect(**kwargs: Any) -> FakeConnection:
        raise pymysql.err.OperationalError(
            2003, f"Can't connect to MySQL server on '{kwargs['host']}' (timed out)"
        )

    monkeypatch.setattr(pymysql, "connect", connect)


@pytest.fixture
def client(fake_mysql: list[FakeConnection]) -> DatabaseClient:
    """A client with an empty `users` table whose ids start at 1."""
    db = DatabaseClient("localhost", "testdb", "tester", "secret")
    db.update(
        "CREATE TABLE users ("
        "id INTEGER PRIMARY KEY AUTOINCREMENT, "
        "name TEXT NOT NULL UNIQUE, "
        "age INTEGER)"
    )
    try:
        yield db
    finally:
        db.close()
