from src.core.redis.store import KeyValueStore
from src.main.config import config
from src.user.auth.schemas import LoginRecord, LogoutRecord


def login_key(user_id: str, timestamp_ms: int) -> str:
    return f"login:{user_id}:{timestamp_ms}"


def last_login_key(user_id: str) -> str:
    return f"last_login:{user_id}"


def logout_key(user_id: str, timestamp_ms: int) -> str:
    return f"logout:{user_id}:{timestamp_ms}"


class ActivityLog:
    """Short-lived login / logout audit records."""

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    async def record_login(self, user_id: str, record: LoginRecord) -> None:
        timestamp_ms = int(record.login_time.timestamp() * 1000)
        await self.store.set_json(
            login_key(user_id, timestamp_ms),
            record,
            config.auth.LOGIN_RECORD_TTL_SECONDS,
        )
        await self.store.set_json(
            last_login_key(user_id), record, config.auth.LAST_LOGIN_TTL_SECONDS
        )

    async def record_logout(self, user_id: str, record: LogoutRecord) -> None:
        timestamp_ms = int(record.logout_time.timestamp() * 1000)
        await self.store.set_json(
            logout_key(user_id, timestamp_ms),
            record,
            config.auth.LOGIN_RECORD_TTL_SECONDS,
        )

    async def get_last_login(self, user_id: str) -> LoginRecord | None:
        payload = await self.store.get_json(last_login_key(user_id))
        if payload is None:
            return None
        return LoginRecord.model_validate(payload)
