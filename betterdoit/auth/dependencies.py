"""
Authentication dependencies for FastAPI.
"""
import logging
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from betterdoit.auth.session import SessionResolver, verify_cron_secret
from betterdoit.exceptions import AuthorizationError

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def get_session_resolver(request: Request) -> SessionResolver:
    """The resolver installed on the application at startup."""
    resolver = getattr(request.app.state, "session_resolver", None)
    if resolver is None:
        raise AuthorizationError("Sessions are not configured")
    return resolver


async def get_current_user(
    authorization: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    resolver: SessionResolver = Depends(get_session_resolver),
) -> str:
    """
    Resolve the calling user from ``Authorization: Bearer <session token>``.

    Returns:
        The user id
    Raises:
        AuthorizationError if the token is missing or invalid
    """
    if authorization is None:
        raise AuthorizationError("Session token required")
    user_id = resolver.resolve(authorization.credentials)
    if user_id is None:
        raise AuthorizationError("Invalid session token")
    return user_id


async def verify_cron_request(
    request: Request,
    authorization: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> None:
    """Reject scheduled-trigger requests without the shared cron secret."""
    settings = request.app.state.container.settings
    verify_cron_secret(authorization.credentials if authorization else None, settings.cron_secret_token)
