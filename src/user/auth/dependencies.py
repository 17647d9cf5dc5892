from typing import Any

from fastapi import Depends, Request, Security
from fastapi.security.api_key import APIKeyHeader

from src.core.errors.exceptions import (
    AccountDisabledException,
    UnauthorizedException,
    UserNotFoundException,
)
from src.core.redis.dependencies import get_kv_store
from src.core.redis.store import KeyValueStore
from src.user.auth.platform import PlatformInfo, detect_platform
from src.user.auth.rotation import RefreshTokenRotator
from src.user.auth.security import TokenManager
from src.user.auth.stores.activity import ActivityLog
from src.user.auth.stores.session_registry import SessionRegistry
from src.user.dependencies import get_user_repository
from src.user.repositories import UserRepository
from src.user.schemas import UserProfile

access_token_header = APIKeyHeader(
    name="Authorization", scheme_name="access-token", auto_error=False
)


def strip_bearer(token: str) -> str:
    if token.lower().startswith("bearer "):
        return token[7:].strip()
    return token.strip()


def get_token_manager(
    store: KeyValueStore = Depends(get_kv_store),
) -> TokenManager:
    return TokenManager(store)


def get_refresh_rotator(
    token_manager: TokenManager = Depends(get_token_manager),
) -> RefreshTokenRotator:
    return RefreshTokenRotator(token_manager)


def get_session_registry(
    store: KeyValueStore = Depends(get_kv_store),
) -> SessionRegistry:
    return SessionRegistry(store)


def get_activity_log(
    store: KeyValueStore = Depends(get_kv_store),
) -> ActivityLog:
    return ActivityLog(store)


def get_platform_info(request: Request) -> PlatformInfo:
    return detect_platform(request.headers)


async def get_access_token(
    authorization: str | None = Security(access_token_header),
) -> str:
    if not authorization or not strip_bearer(authorization):
        raise UnauthorizedException("Authentication token not found")
    return strip_bearer(authorization)


async def get_access_claims(
    token: str = Depends(get_access_token),
    token_manager: TokenManager = Depends(get_token_manager),
) -> dict[str, Any]:
    """
    Validate the bearer access token and return its claims.

    Raises:
        UnauthorizedException: If the token is expired, revoked or malformed
        StoreUnavailableException: If the blacklist could not be consulted
    """
    result = await token_manager.validate_access_token(token)
    return result.raise_for_error()


async def get_current_user(
    claims: dict[str, Any] = Depends(get_access_claims),
    users: UserRepository = Depends(get_user_repository),
) -> UserProfile:
    user = await users.get_by_id(claims["sub"])
    if user is None:
        raise UserNotFoundException(
            "User not found", additional_info={"user_id": claims["sub"]}
        )
    if not user.is_active:
        raise AccountDisabledException("User is blocked")
    return user
