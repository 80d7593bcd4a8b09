"""
Database adapter abstraction layer for supporting multiple database backends.

Every backend exposes the same asynchronous contract:

- ``prepare(query)`` returns a ``Statement`` with ``all``/``get``/``run``
- ``exec(statement)`` runs a schema-level statement
- ``with_transaction(fn)`` runs ``await fn(tx)`` atomically

Queries are written once with ``?`` placeholders and column names taken from
``adapter.columns``, an accessor map that resolves each logical column name to
the backend's physical identifier. Rows come back keyed by physical names and
are translated with ``TableColumns.from_row``.
"""
import asyncio
import functools
import logging
import sqlite3
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterator, List, Mapping, NamedTuple, Optional, Sequence, TypeVar

import psycopg2
from psycopg2 import pool as pg_pool
from psycopg2.extras import RealDictCursor

from betterdoit.exceptions import StorageError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DatabaseType(Enum):
    """Database type enumeration."""
    SQLITE = "sqlite"
    POSTGRESQL = "postgresql"


class RunResult(NamedTuple):
    """Outcome of a write statement."""
    affected_count: int


# ============================================================================
# Column accessor maps
# ============================================================================

TASK_COLUMNS = (
    "id",
    "userId",
    "title",
    "isCompleted",
    "isActive",
    "sortOrder",
    "createdAt",
    "completedAt",
    "addedToActiveAt",
)

NOTIFICATION_SETTING_COLUMNS = (
    "userId",
    "phoneNumber",
    "frequency",
    "time",
    "dayOfWeek",
    "enabled",
    "updatedAt",
)

# The notification table has always used snake_case, on both backends.
_NOTIFICATION_SETTING_NAMES = {
    "userId": "user_id",
    "phoneNumber": "phone_number",
    "frequency": "frequency",
    "time": "time",
    "dayOfWeek": "day_of_week",
    "enabled": "enabled",
    "updatedAt": "updated_at",
}


class TableColumns:
    """Logical-to-physical column names for one table.

    Attribute access returns the physical identifier, so queries read as
    ``f"SELECT {c.sortOrder} FROM {c.table} WHERE {c.userId} = ?"``.
    """

    def __init__(self, table: str, mapping: Mapping[str, str]):
        self.table = table
        self._mapping = dict(mapping)
        self._reverse = {physical: logical for logical, physical in self._mapping.items()}

    def __getattr__(self, name: str) -> str:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._mapping[name]
        except KeyError:
            raise AttributeError(f"Table '{self.table}' has no column '{name}'") from None

    def __iter__(self) -> Iterator[str]:
        return iter(self._mapping)

    def physical(self, logical: str) -> str:
        return self._mapping[logical]

    def select_list(self) -> str:
        """Comma-separated physical names of every column, in declaration order."""
        return ", ".join(self._mapping.values())

    def from_row(self, row: Mapping[str, Any]) -> Dict[str, Any]:
        """Re-key a backend row by logical column names."""
        return {self._reverse.get(key, key): value for key, value in row.items()}


class ColumnMap:
    """Column accessor maps for every table the service uses."""

    def __init__(self, task: Mapping[str, str], notification_setting: Mapping[str, str]):
        self.task = TableColumns("task", task)
        self.notification_setting = TableColumns("notification_setting", notification_setting)


SQLITE_COLUMNS = ColumnMap(
    task={name: name for name in TASK_COLUMNS},
    notification_setting=_NOTIFICATION_SETTING_NAMES,
)

# PostgreSQL folds unquoted identifiers to lower case; the sort key column
# was introduced there as sort_order.
POSTGRES_COLUMNS = ColumnMap(
    task={name: ("sort_order" if name == "sortOrder" else name.lower()) for name in TASK_COLUMNS},
    notification_setting=_NOTIFICATION_SETTING_NAMES,
)


def _operation(query: str) -> str:
    words = query.split(None, 1)
    return words[0].upper() if words else ""


# ============================================================================
# Statement / executor contract
# ============================================================================

class Statement:
    """A prepared query bound to an executor (adapter or open transaction)."""

    def __init__(self, executor: "Executor", query: str):
        self._executor = executor
        self.query = query

    async def all(self, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        """Return every matching row."""
        return await self._executor._all(self.query, tuple(params))

    async def get(self, params: Sequence[Any] = ()) -> Optional[Dict[str, Any]]:
        """Return the first matching row, or None."""
        return await self._executor._get(self.query, tuple(params))

    async def run(self, params: Sequence[Any] = ()) -> RunResult:
        """Execute a write and report the affected row count."""
        return RunResult(await self._executor._run(self.query, tuple(params)))


class Executor(ABC):
    """Anything that can execute statements: an adapter or a transaction handle."""

    columns: ColumnMap

    def prepare(self, query: str) -> Statement:
        return Statement(self, query)

    @abstractmethod
    async def exec(self, statement: str) -> None:
        """Execute a raw schema-level statement."""

    @abstractmethod
    async def _all(self, query: str, params: tuple) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    async def _get(self, query: str, params: tuple) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    async def _run(self, query: str, params: tuple) -> int:
        pass


class BaseDatabaseAdapter(Executor):
    """Abstract base class for database adapters."""

    db_type: DatabaseType

    def __init__(self, connection_string: str):
        """
        Initialize database adapter.

        Args:
            connection_string: Database connection string (path for SQLite, DSN for PostgreSQL)
        """
        self.connection_string = connection_string

    @abstractmethod
    async def connect(self) -> None:
        """Open the connection (or pool)."""

    @abstractmethod
    async def close(self) -> None:
        """Close the connection (or pool)."""

    @abstractmethod
    async def with_transaction(self, fn: Callable[[Executor], Awaitable[T]]) -> T:
        """
        Run ``fn`` inside one transaction.

        The callback receives an Executor bound to the transaction. The
        transaction commits when the callback returns and rolls back when it
        raises; the exception is re-raised to the caller.
        """

    @abstractmethod
    def normalize_query(self, query: str) -> str:
        """Normalize SQL query for this database backend."""

    @abstractmethod
    def lock_clause(self) -> str:
        """Row-locking suffix for SELECTs that precede an update in the same transaction."""


# ============================================================================
# SQLite
# ============================================================================

class SQLiteAdapter(BaseDatabaseAdapter):
    """SQLite database adapter.

    One connection in autocommit mode with WAL journaling. Statements execute
    synchronously; transactions are explicit BEGIN IMMEDIATE / COMMIT / ROLLBACK
    so the write lock is held from the first read.
    """

    db_type = DatabaseType.SQLITE
    columns = SQLITE_COLUMNS

    def __init__(self, connection_string: str):
        super().__init__(connection_string)
        self._conn: Optional[sqlite3.Connection] = None

    async def connect(self) -> None:
        if self._conn is not None:
            return
        try:
            conn = sqlite3.connect(self.connection_string, isolation_level=None, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode = WAL")
            conn.execute("PRAGMA foreign_keys = ON")
            conn.execute("PRAGMA busy_timeout = 5000")
        except sqlite3.Error as e:
            raise StorageError(f"Could not open SQLite database {self.connection_string}: {e}",
                               original_error=e, operation="CONNECT")
        self._conn = conn
        logger.debug(f"Opened SQLite database {self.connection_string}")

    async def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    @property
    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StorageError("SQLite adapter is not connected", operation="CONNECT")
        return self._conn

    def _execute(self, query: str, params: tuple = ()) -> sqlite3.Cursor:
        try:
            if params:
                return self.connection.execute(query, params)
            return self.connection.execute(query)
        except sqlite3.Error as e:
            raise StorageError(f"SQLite {_operation(query)} failed: {e}",
                               original_error=e, operation=_operation(query))

    async def exec(self, statement: str) -> None:
        self._execute(statement)

    async def _all(self, query: str, params: tuple) -> List[Dict[str, Any]]:
        return [dict(row) for row in self._execute(query, params).fetchall()]

    async def _get(self, query: str, params: tuple) -> Optional[Dict[str, Any]]:
        row = self._execute(query, params).fetchone()
        return dict(row) if row is not None else None

    async def _run(self, query: str, params: tuple) -> int:
        return self._execute(query, params).rowcount

    async def with_transaction(self, fn: Callable[[Executor], Awaitable[T]]) -> T:
        self._execute("BEGIN IMMEDIATE")
        try:
            result = await fn(self)
        except BaseException:
            try:
                self._execute("ROLLBACK")
            except StorageError as rollback_error:
                logger.warning(f"SQLite rollback failed: {rollback_error}")
            raise
        self._execute("COMMIT")
        return result

    def normalize_query(self, query: str) -> str:
        # SQLite uses ? placeholders natively
        return query

    def lock_clause(self) -> str:
        # BEGIN IMMEDIATE already holds the database write lock
        return ""


# ============================================================================
# PostgreSQL
# ============================================================================

class _PostgreSQLTransaction(Executor):
    """Executor bound to one pooled connection inside BEGIN ... COMMIT."""

    def __init__(self, adapter: "PostgreSQLAdapter", conn):
        self._adapter = adapter
        self._conn = conn
        self.columns = adapter.columns

    async def exec(self, statement: str) -> None:
        await self._adapter._call(self._adapter._execute_on, self._conn, statement, (), None)

    async def _all(self, query: str, params: tuple) -> List[Dict[str, Any]]:
        return await self._adapter._call(self._adapter._execute_on, self._conn, query, params, "all")

    async def _get(self, query: str, params: tuple) -> Optional[Dict[str, Any]]:
        return await self._adapter._call(self._adapter._execute_on, self._conn, query, params, "one")

    async def _run(self, query: str, params: tuple) -> int:
        return await self._adapter._call(self._adapter._execute_on, self._conn, query, params, None)


class PostgreSQLAdapter(BaseDatabaseAdapter):
    """PostgreSQL database adapter.

    Uses a psycopg2 ThreadedConnectionPool. Each blocking driver call runs in
    the event loop's default executor and is awaited. Connections run in
    autocommit mode; transactions issue explicit BEGIN / COMMIT / ROLLBACK on a
    single pooled connection.
    """

    db_type = DatabaseType.POSTGRESQL
    columns = POSTGRES_COLUMNS

    def __init__(self, connection_string: str, min_connections: int = 1, max_connections: int = 5):
        super().__init__(connection_string)
        self.min_connections = min_connections
        self.max_connections = max_connections
        self._pool = None

    async def connect(self) -> None:
        if self._pool is not None:
            return
        self._pool = await self._call(
            pg_pool.ThreadedConnectionPool,
            self.min_connections,
            self.max_connections,
            self.connection_string,
        )
        logger.info(f"Opened PostgreSQL pool ({self.min_connections}-{self.max_connections} connections)")

    async def close(self) -> None:
        if self._pool is not None:
            self._pool.closeall()
            self._pool = None

    async def _call(self, fn: Callable[..., T], *args) -> T:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, functools.partial(fn, *args))
        except (psycopg2.Error, pg_pool.PoolError) as e:
            query = next((arg for arg in args if isinstance(arg, str)), None)
            if fn is pg_pool.ThreadedConnectionPool:
                operation = "CONNECT"
            else:
                operation = _operation(query) if query else None
            raise StorageError(f"PostgreSQL {operation or 'operation'} failed: {e}",
                               original_error=e, operation=operation)

    def _acquire(self):
        if self._pool is None:
            raise StorageError("PostgreSQL adapter is not connected", operation="CONNECT")
        conn = self._pool.getconn()
        conn.autocommit = True
        return conn

    def _release(self, conn, close: bool = False) -> None:
        if self._pool is not None:
            self._pool.putconn(conn, close=close)

    def _execute_on(self, conn, query: str, params: tuple, fetch: Optional[str]):
        with conn.cursor(cursor_factory=RealDictCursor) as cursor:
            if params:
                cursor.execute(self.normalize_query(query), params)
            else:
                cursor.execute(query)
            if fetch == "all":
                return [dict(row) for row in cursor.fetchall()]
            if fetch == "one":
                row = cursor.fetchone()
                return dict(row) if row is not None else None
            return cursor.rowcount

    def _execute_pooled(self, query: str, params: tuple, fetch: Optional[str]):
        conn = self._acquire()
        try:
            return self._execute_on(conn, query, params, fetch)
        finally:
            self._release(conn)

    async def exec(self, statement: str) -> None:
        await self._call(self._execute_pooled, statement, (), None)

    async def _all(self, query: str, params: tuple) -> List[Dict[str, Any]]:
        return await self._call(self._execute_pooled, query, params, "all")

    async def _get(self, query: str, params: tuple) -> Optional[Dict[str, Any]]:
        return await self._call(self._execute_pooled, query, params, "one")

    async def _run(self, query: str, params: tuple) -> int:
        return await self._call(self._execute_pooled, query, params, None)

    async def with_transaction(self, fn: Callable[[Executor], Awaitable[T]]) -> T:
        conn = await self._call(self._acquire)
        clean = False
        try:
            await self._call(self._execute_on, conn, "BEGIN", (), None)
            try:
                result = await fn(_PostgreSQLTransaction(self, conn))
            except Exception:
                try:
                    await self._call(self._execute_on, conn, "ROLLBACK", (), None)
                    clean = True
                except StorageError as rollback_error:
                    logger.warning(f"PostgreSQL rollback failed: {rollback_error}")
                raise
            await self._call(self._execute_on, conn, "COMMIT", (), None)
            clean = True
            return result
        finally:
            # A connection left mid-transaction is discarded, not returned to the pool
            self._release(conn, close=not clean)

    def normalize_query(self, query: str) -> str:
        # Replace ? with %s for psycopg2
        return query.replace("?", "%s")

    def lock_clause(self) -> str:
        return " FOR UPDATE"


def get_database_adapter(settings=None) -> BaseDatabaseAdapter:
    """
    Factory function to get the adapter selected by configuration.

    Args:
        settings: Settings instance. If None, uses the cached application settings.

    Returns:
        Database adapter instance (not yet connected)
    """
    if settings is None:
        from betterdoit.config import get_settings
        settings = get_settings()

    if settings.db_type == DatabaseType.POSTGRESQL.value:
        return PostgreSQLAdapter(
            settings.postgres_dsn,
            min_connections=settings.db_pool_min,
            max_connections=settings.db_pool_size,
        )
    return SQLiteAdapter(settings.database_path)
