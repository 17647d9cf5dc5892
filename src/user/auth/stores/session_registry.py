from loggers import get_logger
from src.core.redis.store import KeyValueStore
from src.core.utils.security import generate_token_id
from src.main.config import config
from src.user.auth.schemas import SessionPayload

logger = get_logger(__name__)


def session_key(session_id: str) -> str:
    return f"session:{session_id}"


def user_sessions_key(user_id: str) -> str:
    return f"user_sessions:{user_id}"


class SessionRegistry:
    """Cookie sessions and the bounded list of session ids of each user."""

    def __init__(
        self,
        store: KeyValueStore,
        max_sessions: int | None = None,
        session_ttl_seconds: int | None = None,
        list_ttl_seconds: int | None = None,
    ) -> None:
        self.store = store
        self.max_sessions = max_sessions or config.auth.MAX_SESSIONS
        self.session_ttl_seconds = (
            session_ttl_seconds or config.auth.SESSION_TTL_SECONDS
        )
        self.list_ttl_seconds = list_ttl_seconds or config.auth.SESSION_LIST_TTL_SECONDS

    async def create_session(self, payload: SessionPayload) -> str:
        session_id = generate_token_id()
        await self.store.set_json(
            session_key(session_id), payload, self.session_ttl_seconds
        )
        await self.add_session(payload.user_id, session_id)
        return session_id

    async def get_session(self, session_id: str) -> SessionPayload | None:
        payload = await self.store.get_json(session_key(session_id))
        if payload is None:
            return None
        return SessionPayload.model_validate(payload)

    async def destroy_session(
        self, session_id: str, user_id: str | None = None
    ) -> bool:
        """
        Destroy a session and drop it from its owner's list.

        When ``user_id`` is given, a session belonging to someone else is
        left untouched and False is returned.
        """
        session = await self.get_session(session_id)
        if session is None:
            return False
        if user_id is not None and session.user_id != user_id:
            logger.warning(
                "[SessionRegistry] User %s tried to destroy a session of user %s",
                user_id,
                session.user_id,
            )
            return False
        await self.remove_session(session.user_id, session_id)
        return True

    async def add_session(self, user_id: str, session_id: str) -> list[str]:
        key = user_sessions_key(user_id)
        length = await self.store.list_push(key, session_id, self.list_ttl_seconds)

        evicted: list[str] = []
        while length > self.max_sessions:
            oldest = await self.store.list_pop_oldest(key)
            if oldest is None:
                break
            await self.store.delete(session_key(oldest))
            evicted.append(oldest)
            length -= 1

        if evicted:
            logger.info(
                "[SessionRegistry] Evicted %s session(s) for user %s",
                len(evicted),
                user_id,
            )
        return evicted

    async def remove_session(self, user_id: str, session_id: str) -> None:
        await self.store.delete(session_key(session_id))
        await self.store.list_remove(user_sessions_key(user_id), session_id)

    async def list_sessions(self, user_id: str) -> list[str]:
        return await self.store.list_items(user_sessions_key(user_id))

    async def count_active_sessions(self, user_id: str) -> int:
        count = 0
        for session_id in await self.list_sessions(user_id):
            if await self.store.exists(session_key(session_id)):
                count += 1
        return count

    async def revoke_all_for_user(self, user_id: str) -> int:
        session_ids = await self.list_sessions(user_id)
        await self.store.delete(
            *[session_key(session_id) for session_id in session_ids],
            user_sessions_key(user_id),
        )
        logger.info(
            "[SessionRegistry] Destroyed %s session(s) for user %s",
            len(session_ids),
            user_id,
        )
        return len(session_ids)
