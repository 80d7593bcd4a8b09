"""
Rebalance command - renumber one user's sort keys.
"""
import asyncio
import json
import logging

from betterdoit.__main__ import Command
from betterdoit.config import get_settings
from betterdoit.dependencies import ServiceContainer
from betterdoit.exceptions import RebalanceError

logger = logging.getLogger(__name__)


class RebalanceCommand(Command):
    """Renumber a user's open active and master tasks to evenly spaced sort keys."""

    @classmethod
    def add_arguments(cls, parser):
        parser.add_argument("user_id", help="Owner whose tasks are renumbered")
        parser.add_argument(
            "--if-needed",
            action="store_true",
            help="Only renumber when keys are duplicated or too close together"
        )

    def run(self) -> int:
        return asyncio.run(self._run())

    async def _run(self) -> int:
        container = ServiceContainer(get_settings())
        await container.start()
        try:
            if self.args.if_needed:
                if not await container.rebalancer.rebalance_if_needed(self.args.user_id):
                    logger.info(f"Sort keys for user {self.args.user_id} are healthy; nothing to do")
                return 0
            result = await container.rebalancer.rebalance(self.args.user_id)
        except RebalanceError as e:
            logger.error(e.message)
            print(json.dumps(e.result.to_api(), indent=2))
            return 1
        finally:
            await container.stop()
        print(json.dumps(result.to_api(), indent=2))
        return 0
