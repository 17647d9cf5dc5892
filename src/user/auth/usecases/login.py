from fastapi import Depends

from loggers import get_logger
from src.core.errors.exceptions import (
    AccountDisabledException,
    InvalidCredentialsException,
)
from src.core.utils.security import (
    hash_password,
    mask_email,
    normalize_email,
    verify_password,
)
from src.user.auth.dependencies import (
    get_activity_log,
    get_session_registry,
    get_token_manager,
)
from src.user.auth.platform import Platform, PlatformInfo
from src.user.auth.schemas import (
    LoginRecord,
    LoginUserModel,
    SessionPayload,
    TokenModel,
)
from src.user.auth.security import TokenManager
from src.user.auth.stores.activity import ActivityLog
from src.user.auth.stores.session_registry import SessionRegistry
from src.user.auth.token_helpers import issue_token_pair, run_bookkeeping
from src.user.dependencies import get_user_repository
from src.user.repositories import UserRepository
from src.user.schemas import UserProfile

INVALID_CREDENTIALS_MESSAGE = "Incorrect email or password."
INVALID_CREDENTIALS_PASSWORD_HASH = hash_password("dummy-password")
logger = get_logger(__name__)


class LoginUserUseCase:
    """Use case for logging in user."""

    def __init__(
        self,
        users: UserRepository,
        token_manager: TokenManager,
        session_registry: SessionRegistry,
        activity_log: ActivityLog,
    ) -> None:
        self.users = users
        self.token_manager = token_manager
        self.session_registry = session_registry
        self.activity_log = activity_log

    async def _find_user(self, data: LoginUserModel) -> UserProfile | None:
        if data.email:
            return await self.users.get_by_email(normalize_email(data.email))
        return await self.users.get_by_username(data.identifier)

    async def execute(
        self,
        data: LoginUserModel,
        platform: PlatformInfo,
        client_ip: str | None = None,
    ) -> TokenModel:
        user = await self._find_user(data)
        if not user:
            logger.debug(
                "[LoginUser] User '%s' not found.", mask_email(data.identifier)
            )
            await verify_password(data.password, INVALID_CREDENTIALS_PASSWORD_HASH)
            raise InvalidCredentialsException(INVALID_CREDENTIALS_MESSAGE)

        correct_password = await verify_password(data.password, user.password_hash)
        if not correct_password:
            logger.debug(
                "[LoginUser] Incorrect password for user '%s'",
                mask_email(user.email),
            )
            raise InvalidCredentialsException(INVALID_CREDENTIALS_MESSAGE)

        if not user.is_active:
            logger.info(
                "[LoginUser] User with email '%s' is blocked.",
                mask_email(user.email),
            )
            raise AccountDisabledException("User is blocked")

        if data.device_id and not platform.device_id:
            platform = platform.model_copy(update={"device_id": data.device_id})

        access_token, refresh_token = await issue_token_pair(
            self.token_manager, user, platform
        )

        # A failed session write still returns the issued tokens
        session_id = None
        if platform.type == Platform.WEB:
            session_id = await run_bookkeeping(
                self.session_registry.create_session(
                    SessionPayload(
                        user_id=user.id,
                        platform=platform.type,
                        device_id=platform.device_label,
                        user_agent=platform.user_agent,
                    )
                ),
                "Web session",
            )

        await run_bookkeeping(
            self.activity_log.record_login(
                user.id,
                LoginRecord(
                    platform=platform.type,
                    device_id=platform.device_label,
                    user_agent=platform.user_agent,
                    ip=client_ip,
                ),
            ),
            "Login record",
        )

        logger.info(
            "[LoginUser] User '%s' logged in from %s.",
            mask_email(user.email),
            platform.type,
        )
        return self.token_manager.build_token_response(
            access_token, refresh_token, session_id=session_id
        )


def get_login_user_use_case(
    users: UserRepository = Depends(get_user_repository),
    token_manager: TokenManager = Depends(get_token_manager),
    session_registry: SessionRegistry = Depends(get_session_registry),
    activity_log: ActivityLog = Depends(get_activity_log),
) -> LoginUserUseCase:
    return LoginUserUseCase(
        users=users,
        token_manager=token_manager,
        session_registry=session_registry,
        activity_log=activity_log,
    )
