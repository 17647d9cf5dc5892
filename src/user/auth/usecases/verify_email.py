from fastapi import Depends

from loggers import get_logger
from src.core.errors.exceptions import (
    ResetTokenAlreadyUsedException,
    UserNotFoundException,
)
from src.core.schemas import SuccessResponse
from src.core.utils.security import mask_email
from src.user.auth.dependencies import get_token_manager
from src.user.auth.jwt_payload_schema import ResetTokenType
from src.user.auth.security import TokenManager
from src.user.dependencies import get_user_repository
from src.user.repositories import UserRepository

logger = get_logger(__name__)


class VerifyEmailUseCase:
    def __init__(self, users: UserRepository, token_manager: TokenManager) -> None:
        self.users = users
        self.token_manager = token_manager

    async def execute(self, token: str) -> SuccessResponse:
        result = await self.token_manager.validate_reset_token(
            token, expected_type=ResetTokenType.EMAIL_VERIFICATION
        )
        claims = result.raise_for_error()

        user = await self.users.get_by_id(claims["sub"])
        if user is None:
            raise UserNotFoundException(
                "User not found", additional_info={"user_id": claims["sub"]}
            )

        if not await self.token_manager.mark_reset_token_used(token):
            raise ResetTokenAlreadyUsedException("Token already used")
        if not user.is_verified:
            await self.users.update(user.id, {"is_verified": True})

        logger.info("[VerifyEmail] Email '%s' verified.", mask_email(user.email))
        return SuccessResponse(success=True)


def get_verify_email_use_case(
    users: UserRepository = Depends(get_user_repository),
    token_manager: TokenManager = Depends(get_token_manager),
) -> VerifyEmailUseCase:
    return VerifyEmailUseCase(users=users, token_manager=token_manager)
