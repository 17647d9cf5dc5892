from fastapi import Depends

from loggers import get_logger
from src.core.errors.exceptions import (
    InstanceProcessingException,
    InvalidCredentialsException,
)
from src.core.events.dependencies import get_event_publisher
from src.core.events.interfaces import AbstractEventPublisher
from src.core.events.publisher import publish_quietly
from src.core.events.schemas import DomainEvent, EventName
from src.core.schemas import SuccessResponse
from src.core.utils.security import hash_password, mask_email, verify_password
from src.user.auth.dependencies import get_session_registry, get_token_manager
from src.user.auth.schemas import ChangePasswordModel
from src.user.auth.security import TokenManager
from src.user.auth.stores.session_registry import SessionRegistry
from src.user.dependencies import get_user_repository
from src.user.repositories import UserRepository
from src.user.schemas import UserProfile

logger = get_logger(__name__)


class ChangePasswordUseCase:
    """Use case for changing the password of an authenticated user."""

    def __init__(
        self,
        users: UserRepository,
        token_manager: TokenManager,
        session_registry: SessionRegistry,
        publisher: AbstractEventPublisher,
    ) -> None:
        self.users = users
        self.token_manager = token_manager
        self.session_registry = session_registry
        self.publisher = publisher

    async def execute(
        self, user: UserProfile, data: ChangePasswordModel
    ) -> SuccessResponse:
        if not await verify_password(data.current_password, user.password_hash):
            logger.info(
                "[ChangePassword] Wrong current password for '%s'.",
                mask_email(user.email),
            )
            raise InvalidCredentialsException("Current password is incorrect")

        if data.current_password == data.new_password:
            raise InstanceProcessingException(
                "New password must differ from the current one"
            )

        await self.users.update(
            user.id, {"password_hash": hash_password(data.new_password)}
        )
        publish_quietly(
            self.publisher,
            DomainEvent(
                name=EventName.PASSWORD_CHANGED,
                payload={
                    "user_id": user.id,
                    "email": str(user.email),
                    "name": user.full_name or user.username,
                },
            ),
        )

        await self.token_manager.revoke_all_user_tokens(user.id)
        await self.session_registry.revoke_all_for_user(user.id)
        logger.debug(
            "[ChangePassword] All user %s sessions invalidated.",
            mask_email(user.email),
        )
        return SuccessResponse(success=True)


def get_change_password_use_case(
    users: UserRepository = Depends(get_user_repository),
    token_manager: TokenManager = Depends(get_token_manager),
    session_registry: SessionRegistry = Depends(get_session_registry),
    publisher: AbstractEventPublisher = Depends(get_event_publisher),
) -> ChangePasswordUseCase:
    return ChangePasswordUseCase(
        users=users,
        token_manager=token_manager,
        session_registry=session_registry,
        publisher=publisher,
    )
