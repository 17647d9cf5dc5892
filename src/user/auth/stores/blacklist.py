from src.core.redis.store import KeyValueStore
from src.core.utils.datetime_utils import get_utc_now


def jti_key(jti: str) -> str:
    return f"jti:{jti}"


def blacklist_key(jti: str) -> str:
    return f"blacklist:{jti}"


class BlacklistStore:
    """Revoked access-token ids, kept only for the remaining token lifetime."""

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    async def remember_jti(self, jti: str, user_id: str, ttl_seconds: int) -> None:
        await self.store.set_json(
            jti_key(jti),
            {"user_id": user_id, "created_at": get_utc_now()},
            ttl_seconds,
        )

    async def get_jti_owner(self, jti: str) -> str | None:
        payload = await self.store.get_json(jti_key(jti))
        return payload.get("user_id") if payload else None

    async def blacklist(self, jti: str, ttl_seconds: int) -> bool:
        """
        Mark a JTI as revoked for ``ttl_seconds``.

        Returns False without writing when the token has already expired.
        """
        if ttl_seconds <= 0:
            return False
        await self.store.set_json(
            blacklist_key(jti), {"blacklisted_at": get_utc_now()}, ttl_seconds
        )
        return True

    async def is_blacklisted(self, jti: str) -> bool:
        return await self.store.exists(blacklist_key(jti))
