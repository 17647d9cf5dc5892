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


class LogoutAllUseCase:
    """Revokes every refresh token and session of the caller on all devices."""

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
        self, access_token: str, claims: dict[str, Any]
    ) -> SuccessResponse:
        user_id = claims["sub"]

        await self.token_manager.blacklist_access_token(access_token)
        tokens = await self.token_manager.revoke_all_user_tokens(user_id)
        sessions = await self.session_registry.revoke_all_for_user(user_id)

        await run_bookkeeping(
            self.activity_log.record_logout(
                user_id, LogoutRecord(platform=claims["platform"], all_devices=True)
            ),
            "Logout record",
        )

        logger.info(
            "[LogoutAll] User %s logged out everywhere (%s token(s), %s session(s)).",
            user_id,
            tokens,
            sessions,
        )
        return SuccessResponse(success=True)


def get_logout_all_use_case(
    token_manager: TokenManager = Depends(get_token_manager),
    session_registry: SessionRegistry = Depends(get_session_registry),
    activity_log: ActivityLog = Depends(get_activity_log),
) -> LogoutAllUseCase:
    return LogoutAllUseCase(
        token_manager=token_manager,
        session_registry=session_registry,
        activity_log=activity_log,
    )
