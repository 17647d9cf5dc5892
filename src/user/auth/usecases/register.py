from fastapi import Depends

from loggers import get_logger
from src.core.errors.exceptions import InstanceAlreadyExistsException
from src.core.events.dependencies import get_event_publisher
from src.core.events.interfaces import AbstractEventPublisher
from src.core.events.publisher import publish_quietly
from src.core.events.schemas import DomainEvent, EventName
from src.core.utils.security import hash_password, mask_email
from src.user.auth.dependencies import get_token_manager
from src.user.auth.jwt_payload_schema import ResetTokenType
from src.user.auth.platform import PlatformInfo
from src.user.auth.schemas import CreateUserModel, TokenModel
from src.user.auth.security import TokenManager
from src.user.auth.token_helpers import issue_token_pair
from src.user.dependencies import get_user_repository
from src.user.repositories import UserRepository
from src.user.schemas import NewUserData

logger = get_logger(__name__)


class RegisterUseCase:
    """Use case for user registration."""

    def __init__(
        self,
        users: UserRepository,
        token_manager: TokenManager,
        publisher: AbstractEventPublisher,
    ) -> None:
        self.users = users
        self.token_manager = token_manager
        self.publisher = publisher

    async def execute(self, data: CreateUserModel, platform: PlatformInfo) -> TokenModel:
        if await self.users.get_by_email(data.email):
            logger.info(
                "[RegisterUser] Email '%s' already registered.", mask_email(data.email)
            )
            raise InstanceAlreadyExistsException("User already exists")
        if await self.users.get_by_username(data.username):
            logger.info("[RegisterUser] Username '%s' already taken.", data.username)
            raise InstanceAlreadyExistsException("User already exists")

        user = await self.users.create(
            NewUserData(
                email=data.email,
                username=data.username,
                password_hash=hash_password(data.password),
                first_name=data.first_name,
                last_name=data.last_name,
            )
        )

        access_token, refresh_token = await issue_token_pair(
            self.token_manager, user, platform
        )
        verification_token = await self.token_manager.issue_reset_token(
            user.id, str(user.email), ResetTokenType.EMAIL_VERIFICATION
        )

        publish_quietly(
            self.publisher,
            DomainEvent(
                name=EventName.USER_REGISTERED,
                payload={"user_id": user.id, "email": str(user.email)},
            ),
        )
        publish_quietly(
            self.publisher,
            DomainEvent(
                name=EventName.EMAIL_CONFIRMATION_REQUESTED,
                payload={
                    "user_id": user.id,
                    "email": str(user.email),
                    "name": user.full_name or user.username,
                    "token": verification_token,
                },
            ),
        )

        logger.info("[RegisterUser] User '%s' registered successfully.", user.username)
        return self.token_manager.build_token_response(access_token, refresh_token)


def get_register_use_case(
    users: UserRepository = Depends(get_user_repository),
    token_manager: TokenManager = Depends(get_token_manager),
    publisher: AbstractEventPublisher = Depends(get_event_publisher),
) -> RegisterUseCase:
    return RegisterUseCase(
        users=users, token_manager=token_manager, publisher=publisher
    )
