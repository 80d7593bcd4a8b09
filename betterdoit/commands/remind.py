"""
Remind command - run one round of SMS reminders from a scheduler.
"""
import asyncio
import json
import logging
import os

from betterdoit.__main__ import Command
from betterdoit.auth import verify_cron_secret
from betterdoit.config import get_settings
from betterdoit.dependencies import ServiceContainer
from betterdoit.exceptions import AuthorizationError

logger = logging.getLogger(__name__)


class RemindCommand(Command):
    """Send reminders to every user due this minute (run at least once a minute)."""

    @classmethod
    def add_arguments(cls, parser):
        parser.add_argument(
            "--secret",
            default=os.getenv("CRON_SECRET_TOKEN"),
            help="Shared trigger secret (default: CRON_SECRET_TOKEN env var)"
        )

    def init(self):
        super().init()
        self.settings = get_settings()

    def run(self) -> int:
        try:
            verify_cron_secret(self.args.secret, self.settings.cron_secret_token)
        except AuthorizationError as e:
            logger.error(f"Refusing to send reminders: {e.message}")
            return 2
        result = asyncio.run(self._run())
        print(json.dumps(result, indent=2))
        return 0

    async def _run(self):
        container = ServiceContainer(self.settings)
        await container.start()
        try:
            result = await container.dispatcher.run()
        finally:
            await container.stop()
        return result.to_api()
