from fastapi import Depends

from loggers import get_logger
from src.core.errors.exceptions import (
    ResetTokenAlreadyUsedException,
    UserNotFoundException,
)
from src.core.schemas import SuccessResponse
from src.core.utils.security import hash_password, mask_email
from src.user.auth.dependencies import get_session_registry, get_token_manager
from src.user.auth.jwt_payload_schema import ResetTokenType
from src.user.auth.schemas import ResetPasswordModel
from src.user.auth.security import TokenManager
from src.user.auth.stores.session_registry import SessionRegistry
from src.user.dependencies import get_user_repository
from src.user.repositories import UserRepository

logger = get_logger(__name__)


class ResetPasswordConfirmUseCase:
    """Use case for resetting password with a reset token."""

    def __init__(
        self,
        users: UserRepository,
        token_manager: TokenManager,
        session_registry: SessionRegistry,
    ) -> None:
        self.users = users
        self.token_manager = token_manager
        self.session_registry = session_registry

    async def execute(self, data: ResetPasswordModel) -> SuccessResponse:
        result = await self.token_manager.validate_reset_token(
            data.token, expected_type=ResetTokenType.PASSWORD_RESET
        )
        claims = result.raise_for_error()

        user = await self.users.get_by_id(claims["sub"])
        if user is None:
            logger.info("[ResetPasswordConfirm] User %s not found.", claims["sub"])
            raise UserNotFoundException(
                "User not found", additional_info={"user_id": claims["sub"]}
            )

        if not await self.token_manager.mark_reset_token_used(data.token):
            raise ResetTokenAlreadyUsedException("Token already used")
        await self.users.update(user.id, {"password_hash": hash_password(data.password)})

        await self.token_manager.revoke_all_user_tokens(user.id)
        await self.session_registry.revoke_all_for_user(user.id)

        logger.info(
            "[ResetPasswordConfirm] Successfully changed password for user with email %s.",
            mask_email(user.email),
        )
        return SuccessResponse(success=True)


def get_reset_password_confirm_use_case(
    users: UserRepository = Depends(get_user_repository),
    token_manager: TokenManager = Depends(get_token_manager),
    session_registry: SessionRegistry = Depends(get_session_registry),
) -> ResetPasswordConfirmUseCase:
    return ResetPasswordConfirmUseCase(
        users=users,
        token_manager=token_manager,
        session_registry=session_registry,
    )
