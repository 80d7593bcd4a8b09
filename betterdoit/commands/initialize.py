"""
Initialize command - create the database schema and validate it without starting the server.
"""
import asyncio
import logging
import os

from betterdoit.__main__ import Command
from betterdoit.config import ensure_database_directory, get_settings
from betterdoit.db_adapter import DatabaseType, get_database_adapter
from betterdoit.storage import SchemaManager

logger = logging.getLogger(__name__)


class InitializeCommand(Command):
    """Create tables, add missing columns and validate the schema (does not start server)."""

    @classmethod
    def get_name(cls) -> str:
        return "init"

    @classmethod
    def add_arguments(cls, parser):
        parser.add_argument(
            "--database-path",
            type=str,
            default=None,
            help="Path to SQLite database file (overrides BETTERDOIT_DB_PATH and config defaults)"
        )
        parser.add_argument(
            "--validate-only",
            action="store_true",
            help="Only validate the existing schema, don't create or migrate"
        )

    def init(self):
        super().init()
        self.settings = get_settings()
        if self.args.database_path:
            self.settings = self.settings.model_copy(
                update={"database_path": os.path.abspath(self.args.database_path)}
            )
        self.adapter = get_database_adapter(self.settings)
        if self.adapter.db_type == DatabaseType.SQLITE:
            logger.info(f"Database path: {self.settings.database_path}")

    def run(self) -> int:
        if self.adapter.db_type == DatabaseType.SQLITE:
            if self.args.validate_only and not os.path.exists(self.settings.database_path):
                logger.error(f"Database does not exist: {self.settings.database_path}")
                return 1
            if not self.args.validate_only:
                ensure_database_directory(self.settings.database_path)
        return asyncio.run(self._run())

    async def _run(self) -> int:
        await self.adapter.connect()
        try:
            schema = SchemaManager(self.adapter)
            if not self.args.validate_only:
                await schema.initialize_schema()
            missing = await schema.validate()
        finally:
            await self.adapter.close()

        if missing:
            for table, columns in missing.items():
                logger.error(f"Table {table} is missing columns: {', '.join(columns)}")
            return 1
        logger.info("✅ Schema validation passed")
        return 0
