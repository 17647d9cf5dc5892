from fastapi import Depends

from loggers import get_logger
from src.core.errors.exceptions import (
    AccountDisabledException,
    UserNotFoundException,
)
from src.user.auth.dependencies import get_refresh_rotator, get_token_manager
from src.user.auth.platform import platform_from_tag
from src.user.auth.rotation import RefreshTokenRotator
from src.user.auth.schemas import TokenModel
from src.user.auth.security import TokenManager
from src.user.auth.token_helpers import access_claims_for
from src.user.dependencies import get_user_repository
from src.user.repositories import UserRepository

logger = get_logger(__name__)


class RefreshTokensUseCase:
    """Use case for exchanging a refresh token for a new token pair."""

    def __init__(
        self,
        users: UserRepository,
        token_manager: TokenManager,
        rotator: RefreshTokenRotator,
    ) -> None:
        self.users = users
        self.token_manager = token_manager
        self.rotator = rotator

    async def execute(self, refresh_token: str) -> TokenModel:
        result = await self.token_manager.validate_refresh_token(refresh_token)
        if not result.valid:
            # Rotation runs reuse detection before raising
            await self.rotator.rotate(refresh_token)
        claims = result.raise_for_error()

        user_id = claims["sub"]
        user = await self.users.get_by_id(user_id)
        if user is None:
            logger.info("[RefreshTokens] User %s no longer exists", user_id)
            await self.token_manager.revoke_all_user_tokens(user_id)
            raise UserNotFoundException(
                "User not found", additional_info={"user_id": user_id}
            )
        if not user.is_active:
            logger.info("[RefreshTokens] Blocked user %s attempted refresh", user_id)
            raise AccountDisabledException("User is blocked")

        new_refresh_token = await self.rotator.rotate(refresh_token)

        platform = platform_from_tag(claims["platform"], claims.get("device_id"))
        access_token = await self.token_manager.issue_access_token(
            user.id,
            user.username,
            platform.type,
            device_id=platform.device_label,
            extra_claims=access_claims_for(user),
        )
        return self.token_manager.build_token_response(access_token, new_refresh_token)


def get_refresh_tokens_use_case(
    users: UserRepository = Depends(get_user_repository),
    token_manager: TokenManager = Depends(get_token_manager),
    rotator: RefreshTokenRotator = Depends(get_refresh_rotator),
) -> RefreshTokensUseCase:
    return RefreshTokensUseCase(
        users=users, token_manager=token_manager, rotator=rotator
    )
