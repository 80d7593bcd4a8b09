"""
Server command - serve the task API and the reminder trigger.

Before binding, the command checks that the configuration can actually serve
users: sessions need SESSION_SECRET, the cron trigger needs CRON_SECRET_TOKEN
and the Twilio backend needs its credentials. Missing secrets are logged as
warnings; an unusable SMS backend stops startup.
"""
import logging
import os
from typing import List, Optional, Tuple

import uvicorn

from betterdoit.__main__ import Command
from betterdoit.config import get_settings
from betterdoit.sms import get_message_sender

logger = logging.getLogger(__name__)


class ServerCommand(Command):
    """Serve the Better Do It HTTP API."""

    @classmethod
    def add_arguments(cls, parser):
        parser.add_argument("--host", default="0.0.0.0", help="Host to bind to (default: 0.0.0.0)")
        parser.add_argument(
            "--port",
            type=int,
            default=int(os.getenv("BETTERDOIT_PORT", "8000")),
            help="Port to bind to (default: 8000 or BETTERDOIT_PORT env var)"
        )
        parser.add_argument(
            "--log-level",
            default=os.getenv("LOG_LEVEL", "INFO").lower(),
            choices=["debug", "info", "warning", "error", "critical"],
            help="Uvicorn log level (default: INFO or LOG_LEVEL env var)"
        )
        parser.add_argument(
            "--dry-run-sms",
            action="store_true",
            help="Log reminder messages instead of sending them (overrides SMS_BACKEND)"
        )
        parser.add_argument(
            "--check",
            action="store_true",
            help="Check the configuration and exit without serving"
        )

    def init(self):
        super().init()
        self.settings = get_settings()
        if self.args.dry_run_sms:
            self.settings = self.settings.model_copy(update={"sms_backend": "log"})
        self.warnings, self.error = self._preflight()

    def _preflight(self) -> Tuple[List[str], Optional[str]]:
        warnings = []
        if not self.settings.session_secret:
            warnings.append("SESSION_SECRET is not set; every task route will answer 401")
        if not self.settings.cron_secret_token:
            warnings.append("CRON_SECRET_TOKEN is not set; the reminder trigger will reject every call")
        try:
            get_message_sender(self.settings)
        except ValueError as e:
            return warnings, str(e)
        return warnings, None

    def run(self) -> int:
        for warning in self.warnings:
            logger.warning(warning)
        if self.error:
            logger.error(f"Cannot start: {self.error}")
            return 1
        if self.args.check:
            logger.info(
                f"Configuration OK ({self.settings.db_type} database, {self.settings.sms_backend} SMS backend)"
            )
            return 0

        from betterdoit.app import create_app

        config = uvicorn.Config(
            create_app(settings=self.settings),
            host=self.args.host,
            port=self.args.port,
            log_level=self.args.log_level,
            timeout_graceful_shutdown=30,
        )
        logger.info(f"Starting server on {self.args.host}:{self.args.port} (SMS: {self.settings.sms_backend})")
        try:
            uvicorn.Server(config).run()
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt, shutting down...")
            return 130
        return 0
