from fastapi import Depends

from loggers import get_logger
from src.core.events.dependencies import get_event_publisher
from src.core.events.interfaces import AbstractEventPublisher
from src.core.events.publisher import publish_quietly
from src.core.events.schemas import DomainEvent, EventName
from src.core.schemas import SuccessResponse
from src.core.utils.security import mask_email
from src.user.auth.dependencies import get_token_manager
from src.user.auth.jwt_payload_schema import ResetTokenType
from src.user.auth.schemas import ForgotPasswordModel
from src.user.auth.security import TokenManager
from src.user.dependencies import get_user_repository
from src.user.repositories import UserRepository

logger = get_logger(__name__)


class ResetPasswordRequestUseCase:
    """Use case for requesting a password-reset token."""

    def __init__(
        self,
        users: UserRepository,
        token_manager: TokenManager,
        publisher: AbstractEventPublisher,
    ) -> None:
        self.users = users
        self.token_manager = token_manager
        self.publisher = publisher

    async def execute(self, data: ForgotPasswordModel) -> SuccessResponse:
        user = await self.users.get_by_email(data.email)
        if not user:
            # Same response as for a known address
            logger.info(
                "[ResetPasswordRequest] Email '%s' not found.", mask_email(data.email)
            )
            return SuccessResponse(success=True)

        token = await self.token_manager.issue_reset_token(
            user.id, str(user.email), ResetTokenType.PASSWORD_RESET
        )
        publish_quietly(
            self.publisher,
            DomainEvent(
                name=EventName.PASSWORD_RESET_REQUESTED,
                payload={
                    "user_id": user.id,
                    "email": str(user.email),
                    "name": user.full_name or user.username,
                    "token": token,
                },
            ),
        )
        logger.info(
            "[ResetPasswordRequest] Reset token issued for '%s'.",
            mask_email(user.email),
        )
        return SuccessResponse(success=True)


def get_reset_password_request_use_case(
    users: UserRepository = Depends(get_user_repository),
    token_manager: TokenManager = Depends(get_token_manager),
    publisher: AbstractEventPublisher = Depends(get_event_publisher),
) -> ResetPasswordRequestUseCase:
    return ResetPasswordRequestUseCase(
        users=users, token_manager=token_manager, publisher=publisher
    )
