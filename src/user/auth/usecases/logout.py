from typing import Any

from fastapi import Depends

from loggers import get_logger
from src.core.schemas import SuccessResponse
from src.user.auth.dependencies import (
    get_activity_log,
    get_session_registry,
    get_token_manager,
)
from src.user.auth.schemas import LogoutRecord
from src.user.auth.security import TokenManager
from src.user.auth.stores.activity import ActivityLog
from src.user.auth.stores.session_registry import SessionRegistry
from src.user.auth.token_helpers import run_bookkeeping

logger = get_logger(__name__)


class LogoutUseCase:
    """Ends the caller's session on the platform the access token was issued for."""

    def __init__(
        self,
        token_manager: TokenManager,
        session_registry: SessionRegistry,
        activity_log: ActivityLog,
    ) -> None:
        self.token_manager = token_manager
        self.session_registry = session_registry
        self.activity_log = activity_log

    async def execute(
        self,
        access_token: str,
        claims: dict[str, Any],
        session_id: str | None = None,
    ) -> SuccessResponse:
        user_id = claims["sub"]
        platform = claims["platform"]

        await self.token_manager.blacklist_access_token(access_token)
        revoked = await self.token_manager.revoke_user_tokens_by_platform(
            user_id, platform
        )

        if session_id:
            await self.session_registry.destroy_session(session_id, user_id=user_id)

        await run_bookkeeping(
            self.activity_log.record_logout(
                user_id, LogoutRecord(platform=platform, all_devices=False)
            ),
            "Logout record",
        )

        logger.info(
            "[Logout] User %s logged out from %s (%s refresh token(s) revoked).",
            user_id,
            platform,
            revoked,
        )
        return SuccessResponse(success=True)


def get_logout_use_case(
    token_manager: TokenManager = Depends(get_token_manager),
    session_registry: SessionRegistry = Depends(get_session_registry),
    activity_log: ActivityLog = Depends(get_activity_log),
) -> LogoutUseCase:
    return LogoutUseCase(
        token_manager=token_manager,
        session_registry=session_registry,
        activity_log=activity_log,
    )
