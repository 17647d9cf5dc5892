"""
Helpers shared by the auth use cases for turning a user into a token pair
and for best-effort bookkeeping.
"""

from collections.abc import Awaitable
from typing import Any, TypeVar

from loggers import get_logger
from src.core.errors.exceptions import CoreException
from src.user.auth.platform import PlatformInfo
from src.user.auth.security import TokenManager
from src.user.schemas import UserProfile

logger = get_logger(__name__)

R = TypeVar("R")


def access_claims_for(user: UserProfile) -> dict[str, Any]:
    """Optional access-token claims derived from the user profile."""
    claims: dict[str, Any] = {"email": str(user.email)}
    if user.roles:
        claims["roles"] = list(user.roles)
    if user.permissions:
        claims["permissions"] = list(user.permissions)
    return claims


async def issue_token_pair(
    token_manager: TokenManager,
    user: UserProfile,
    platform: PlatformInfo,
) -> tuple[str, str]:
    """Issue an access token and a refresh token starting a new family."""
    access_token = await token_manager.issue_access_token(
        user.id,
        user.username,
        platform.type,
        device_id=platform.device_label,
        extra_claims=access_claims_for(user),
    )
    refresh_token = await token_manager.issue_refresh_token(
        user.id,
        user.username,
        platform.type,
        device_id=platform.device_label,
    )
    return access_token, refresh_token


async def run_bookkeeping(action: Awaitable[R], description: str) -> R | None:
    """
    Await a non-essential store write; failures are logged, never raised.

    Returns:
        The action's result, or None when it failed
    """
    try:
        return await action
    except CoreException as exc:
        logger.warning("[Bookkeeping] %s failed: %s", description, exc.message)
        return None
