"""
Session resolution: maps an opaque bearer token to a user id.

The identity provider is external; the service only needs ``resolve``.
``SignedTokenResolver`` accepts ``<user_id>.<hex hmac-sha256(user_id)>``
tokens signed with the configured session secret.
"""
import hashlib
import hmac
import logging
from abc import ABC, abstractmethod
from typing import Optional

from betterdoit.exceptions import AuthorizationError

logger = logging.getLogger(__name__)


class SessionResolver(ABC):
    """Resolves a session token to the user it belongs to."""

    @abstractmethod
    def resolve(self, token: str) -> Optional[str]:
        """Return the user id, or None if the token is not a valid session."""


class SignedTokenResolver(SessionResolver):
    """HMAC-signed ``<user_id>.<signature>`` tokens."""

    def __init__(self, secret: str):
        if not secret:
            raise ValueError("session secret must not be empty")
        self._secret = secret.encode("utf-8")

    def sign(self, user_id: str) -> str:
        """Issue a token for ``user_id``."""
        signature = hmac.new(self._secret, user_id.encode("utf-8"), hashlib.sha256).hexdigest()
        return f"{user_id}.{signature}"

    def resolve(self, token: str) -> Optional[str]:
        user_id, sep, signature = (token or "").rpartition(".")
        if not sep or not user_id or not signature:
            return None
        expected = hmac.new(self._secret, user_id.encode("utf-8"), hashlib.sha256).hexdigest()
        if not hmac.compare_digest(expected, signature):
            logger.warning("Rejected session token with invalid signature")
            return None
        return user_id


def verify_cron_secret(provided: Optional[str], expected: Optional[str]) -> None:
    """
    Check the invocation secret supplied by the scheduled trigger.

    Raises:
        AuthorizationError: If no secret is configured, none was provided, or
            the two differ
    """
    if not expected:
        logger.error("Cron secret is not configured; rejecting trigger")
        raise AuthorizationError("Cron secret is not configured")
    if not provided or not hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8")):
        logger.warning("Rejected trigger with invalid cron secret")
        raise AuthorizationError()
