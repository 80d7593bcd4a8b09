"""
Schema management for database initialization.

Tables are created idempotently from the adapter's column map, so the same
definition produces camelCase task columns on SQLite and folded lower-case
columns on PostgreSQL. Older SQLite files that predate the ordering and
activation columns are upgraded in place.
"""
import logging
from typing import Dict, List

from betterdoit.db_adapter import BaseDatabaseAdapter, DatabaseType, TASK_COLUMNS, NOTIFICATION_SETTING_COLUMNS

logger = logging.getLogger(__name__)

# Columns added after the first release; (logical name, column definition)
_LATE_TASK_COLUMNS = (
    ("isActive", "INTEGER NOT NULL DEFAULT 0"),
    ("sortOrder", "BIGINT NOT NULL DEFAULT 0"),
    ("addedToActiveAt", "TEXT NULL"),
)


class SchemaManager:
    """Manages database schema initialization and validation."""

    def __init__(self, adapter: BaseDatabaseAdapter):
        self.adapter = adapter

    async def initialize_schema(self) -> None:
        """Create tables and indexes, adding any missing columns first."""
        try:
            await self._create_task_schema()
            await self._migrate_task_columns()
            await self._create_notification_setting_schema()
            await self._create_indexes()
        except Exception as e:
            logger.error(f"Failed to initialize schema: {e}")
            raise
        logger.info(f"Database schema initialized ({self.adapter.db_type.value})")

    async def _create_task_schema(self) -> None:
        c = self.adapter.columns.task
        await self.adapter.exec(f"""
            CREATE TABLE IF NOT EXISTS task (
                {c.id} TEXT PRIMARY KEY,
                {c.userId} TEXT NOT NULL,
                {c.title} TEXT NOT NULL,
                {c.isCompleted} INTEGER NOT NULL DEFAULT 0 CHECK ({c.isCompleted} IN (0, 1)),
                {c.isActive} INTEGER NOT NULL DEFAULT 0 CHECK ({c.isActive} IN (0, 1)),
                {c.sortOrder} BIGINT NOT NULL DEFAULT 0,
                {c.createdAt} TEXT NOT NULL,
                {c.completedAt} TEXT NULL,
                {c.addedToActiveAt} TEXT NULL
            )
        """)

    async def _create_notification_setting_schema(self) -> None:
        c = self.adapter.columns.notification_setting
        await self.adapter.exec(f"""
            CREATE TABLE IF NOT EXISTS notification_setting (
                {c.userId} TEXT PRIMARY KEY,
                {c.phoneNumber} TEXT NULL,
                {c.frequency} TEXT NOT NULL DEFAULT 'every-other-day'
                    CHECK ({c.frequency} IN ('every-other-day', 'weekly')),
                {c.time} TEXT NOT NULL DEFAULT '09:00',
                {c.dayOfWeek} TEXT NULL,
                {c.enabled} INTEGER NOT NULL DEFAULT 0 CHECK ({c.enabled} IN (0, 1)),
                {c.updatedAt} TEXT NOT NULL
            )
        """)

    async def _create_indexes(self) -> None:
        t = self.adapter.columns.task
        n = self.adapter.columns.notification_setting
        statements = [
            f"CREATE INDEX IF NOT EXISTS idx_task_partition_order "
            f"ON task({t.userId}, {t.isActive}, {t.isCompleted}, {t.sortOrder})",
            f"CREATE INDEX IF NOT EXISTS idx_task_user_createdAt ON task({t.userId}, {t.createdAt})",
            f"CREATE INDEX IF NOT EXISTS idx_task_completedAt ON task({t.completedAt})",
            f"CREATE INDEX IF NOT EXISTS idx_notification_setting_due "
            f"ON notification_setting({n.enabled}, {n.time})",
        ]
        for statement in statements:
            await self.adapter.exec(statement)

    async def _existing_columns(self, table: str) -> List[str]:
        if self.adapter.db_type == DatabaseType.SQLITE:
            rows = await self.adapter.prepare(f"PRAGMA table_info({table})").all()
            return [row["name"] for row in rows]
        rows = await self.adapter.prepare(
            "SELECT column_name FROM information_schema.columns WHERE table_name = ?"
        ).all((table,))
        return [row["column_name"] for row in rows]

    async def _migrate_task_columns(self) -> None:
        c = self.adapter.columns.task
        existing = set(await self._existing_columns("task"))
        for logical, definition in _LATE_TASK_COLUMNS:
            column = c.physical(logical)
            if column in existing:
                continue
            logger.info(f"Adding missing column task.{column}")
            await self.adapter.exec(f"ALTER TABLE task ADD COLUMN {column} {definition}")
            if logical == "sortOrder":
                await self._backfill_sort_order()

    async def _backfill_sort_order(self) -> None:
        """Give pre-existing rows distinct keys in creation order."""
        c = self.adapter.columns.task
        rows = await self.adapter.prepare(
            f"SELECT {c.id}, {c.userId}, {c.isActive} FROM task ORDER BY {c.createdAt} ASC, {c.id} ASC"
        ).all()
        counters: Dict[tuple, int] = {}
        update = self.adapter.prepare(f"UPDATE task SET {c.sortOrder} = ? WHERE {c.id} = ?")
        for row in rows:
            row = c.from_row(row)
            key = (row["userId"], row["isActive"])
            counters[key] = counters.get(key, 0) + 1
            await update.run((counters[key] * 1000, row["id"]))
        logger.info(f"Backfilled sort order for {len(rows)} tasks")

    async def validate(self) -> Dict[str, List[str]]:
        """
        Report missing columns per table.

        Returns:
            Mapping of table name to missing physical column names (empty when valid)
        """
        expected = {
            "task": [self.adapter.columns.task.physical(name) for name in TASK_COLUMNS],
            "notification_setting": [
                self.adapter.columns.notification_setting.physical(name)
                for name in NOTIFICATION_SETTING_COLUMNS
            ],
        }
        missing: Dict[str, List[str]] = {}
        for table, columns in expected.items():
            present = set(await self._existing_columns(table))
            absent = [column for column in columns if column not in present]
            if absent:
                missing[table] = absent
        return missing
