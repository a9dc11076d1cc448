"""
db/client.py
------------
The database client: one MySQL connection and four verbs
(insert, select, update, remove) built on bound parameters.

Every verb routes through `_execute_statement`, and every driver
failure leaves this module as a DatabaseOperationError.
"""

from typing import Any, Optional

import pymysql
from pymysql.cursors import DictCursor

import config
from db.errors import DatabaseOperationError, ErrorKind
from db.placeholders import to_pyformat
from models.statement import StatementRequest
from utils.logger import get_logger

logger = get_logger(__name__)


def build_dsn(host: str, dbname: str) -> str:
    """Return the `mysql:host=<host>;dbname=<dbname>;` connection string."""
    return f"mysql:host={host};dbname={dbname};"


class DatabaseClient:
    """
    Owns a single live MySQL connection for its whole lifetime.

    The connection raises on every driver error and returns rows as
    column-name-keyed dicts. Autocommit is on: there is no transaction
    management, so each statement is durable once its verb returns.

    Usage:
        with DatabaseClient("db.internal", "shop", "app", secret) as db:
            user_id = db.insert("INSERT INTO users (name) VALUES (?)", ["Alice"])
            rows = db.select("SELECT * FROM users WHERE id = ?", [user_id])

    Not safe for concurrent use from several threads.
    """

    def __init__(
        self,
        host: str = "localhost",
        dbname: str = "dbName",
        username: str = "userName",
        password: str = "",
        *,
        port: int = 3306,
        charset: str = "utf8mb4",
    ):
        """
        Open the connection.

        Raises:
            DatabaseOperationError: If the connection cannot be established.
        """
        self.dsn = build_dsn(host, dbname)
        self._connection: Optional[pymysql.connections.Connection] = None
        try:
            self._connection = pymysql.connect(
                host=host,
                port=port,
                user=username,
                password=password,
                database=dbname,
                charset=charset,
                autocommit=True,
                cursorclass=DictCursor,
            )
        except pymysql.MySQLError as e:
            logger.error(f"Failed to connect to {self.dsn}: {e}")
            raise DatabaseOperationError.wrap(e, ErrorKind.CONNECTION) from e
        logger.info(f"Connected to {self.dsn}")

    @classmethod
    def from_config(cls) -> "DatabaseClient":
        """Create a client from the values loaded by config.py."""
        return cls(
            config.DB_HOST,
            config.DB_NAME,
            config.DB_USER,
            config.DB_PASS,
            port=config.DB_PORT,
            charset=config.DB_CHARSET,
        )

    # ── Verbs ─────────────────────────────────────────────

    def insert(self, statement: str = "", parameters: Any = None) -> int:
        """
        Insert a row/s and return the generated identifier.

        Args:
            statement: INSERT statement with `?` or `:name` placeholders.
            parameters: Sequence or mapping of values to bind.

        Returns:
            The auto-increment id of the inserted row, as reported by the
            driver (0 if the table has no auto-increment column).

        Raises:
            DatabaseOperationError: On any preparation or execution failure.
        """
        with self._execute_statement(statement, parameters) as cursor:
            return cursor.lastrowid

    def select(self, statement: str = "", parameters: Any = None) -> list[dict[str, Any]]:
        """
        Select a row/s and return every match.

        Returns:
            A list of dicts keyed by column name. Empty if nothing matched.

        Raises:
            DatabaseOperationError: On any preparation or execution failure.
        """
        with self._execute_statement(statement, parameters) as cursor:
            return list(cursor.fetchall())

    def update(self, statement: str = "", parameters: Any = None) -> None:
        """Update a row/s. The affected row count is not reported."""
        with self._execute_statement(statement, parameters):
            pass

    def remove(self, statement: str = "", parameters: Any = None) -> None:
        """Remove a row/s. The affected row count is not reported."""
        with self._execute_statement(statement, parameters):
            pass

    # ── Internals ─────────────────────────────────────────

    def _execute_statement(self, statement: str = "", parameters: Any = None) -> DictCursor:
        """
        Prepare `statement`, bind `parameters`, execute, and return the cursor.

        Preparation renders the statement with escaped values; a failure
        there (bad placeholders, wrong parameter count) is tagged PREPARE.
        A failure while sending the statement (including encoding it to
        the connection charset) or reported by the server is tagged EXECUTE.

        Raises:
            DatabaseOperationError: On any preparation or execution failure.
        """
        if self._connection is None:
            raise DatabaseOperationError("Connection is closed", ErrorKind.CONNECTION)

        request = StatementRequest.of(statement, parameters)
        cursor = self._connection.cursor()

        try:
            query = cursor.mogrify(
                to_pyformat(request.sql, request.is_named()), request.parameters
            )
        except (ValueError, TypeError, KeyError) as e:
            cursor.close()
            logger.error(f"Failed to prepare statement on {self.dsn}: {request} ({e})")
            raise DatabaseOperationError.wrap(e, ErrorKind.PREPARE) from e

        try:
            cursor.execute(query)
        except (pymysql.MySQLError, UnicodeError) as e:
            cursor.close()
            logger.error(f"Failed to execute statement on {self.dsn}: {request} ({e})")
            raise DatabaseOperationError.wrap(e, ErrorKind.EXECUTE) from e

        logger.debug(f"Executed statement: {request}")
        return cursor

    # ── Lifecycle ─────────────────────────────────────────

    @property
    def closed(self) -> bool:
        """Returns True once the connection has been released."""
        return self._connection is None

    def close(self) -> None:
        """Release the connection. Safe to call more than once."""
        if self._connection is None:
            return
        connection, self._connection = self._connection, None
        try:
            connection.close()
        except pymysql.MySQLError as e:
            logger.warning(f"Error while closing connection to {self.dsn}: {e}")
        logger.info(f"Connection to {self.dsn} closed.")

    def __enter__(self) -> "DatabaseClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"<DatabaseClient {self.dsn} ({state})>"
