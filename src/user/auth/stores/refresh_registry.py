"""
Per-user registry of live refresh tokens.

Layout in the key-value store:
    refresh:<user_id>:<token>          RefreshTokenRecord (JSON)
    user_tokens:<user_id>              list of raw tokens, oldest first
    token_family:<user_id>:<family>    issuance counter of the family
"""

from loggers import get_logger
from src.core.redis.store import KeyValueStore
from src.core.utils.security import token_fingerprint
from src.main.config import config
from src.user.auth.redis_scripts import CLAIM_REFRESH_TOKEN_SCRIPT
from src.user.auth.schemas import RefreshTokenRecord

logger = get_logger(__name__)


def refresh_key(user_id: str, token: str) -> str:
    return f"refresh:{user_id}:{token}"


def user_tokens_key(user_id: str) -> str:
    return f"user_tokens:{user_id}"


def family_key(user_id: str, family: str) -> str:
    return f"token_family:{user_id}:{family}"


class RefreshTokenRegistry:
    def __init__(
        self,
        store: KeyValueStore,
        max_tokens: int | None = None,
        ttl_seconds: int | None = None,
    ) -> None:
        self.store = store
        self.max_tokens = max_tokens or config.auth.MAX_REFRESH_TOKENS
        self.ttl_seconds = ttl_seconds or config.jwt.refresh_token_ttl

    # ----- Records ----- #
    async def store_record(
        self, user_id: str, token: str, record: RefreshTokenRecord
    ) -> None:
        await self.store.set_json(
            refresh_key(user_id, token), record, self.ttl_seconds
        )

    async def get_record(self, user_id: str, token: str) -> RefreshTokenRecord | None:
        payload = await self.store.get_json(refresh_key(user_id, token))
        if payload is None:
            return None
        return RefreshTokenRecord.model_validate(payload)

    async def claim_token(self, user_id: str, token: str) -> RefreshTokenRecord | None:
        """
        Atomically delete the record of ``token`` and drop it from the user list.

        Returns the claimed record, or None when another caller claimed it first
        or the record no longer exists.
        """
        raw = await self.store.eval_script(
            CLAIM_REFRESH_TOKEN_SCRIPT,
            keys=[refresh_key(user_id, token), user_tokens_key(user_id)],
            args=[token],
        )
        if raw is None:
            return None
        return RefreshTokenRecord.model_validate(self.store.decode(raw))

    # ----- User token list ----- #
    async def add_token(self, user_id: str, token: str) -> list[str]:
        """
        Append ``token`` to the user's list, evicting the oldest entries while
        the list is over capacity. Evicted tokens lose their records.

        Returns:
            list[str]: the evicted raw tokens, oldest first
        """
        key = user_tokens_key(user_id)
        length = await self.store.list_push(key, token, self.ttl_seconds)

        evicted: list[str] = []
        while length > self.max_tokens:
            oldest = await self.store.list_pop_oldest(key)
            if oldest is None:
                break
            await self.store.delete(refresh_key(user_id, oldest))
            evicted.append(oldest)
            length -= 1

        if evicted:
            logger.info(
                "[RefreshRegistry] Evicted %s refresh token(s) for user %s",
                len(evicted),
                user_id,
            )
        return evicted

    async def remove_token(self, user_id: str, token: str) -> None:
        await self.store.delete(refresh_key(user_id, token))
        await self.store.list_remove(user_tokens_key(user_id), token)

    async def list_tokens(self, user_id: str) -> list[str]:
        return await self.store.list_items(user_tokens_key(user_id))

    async def count_active_tokens(self, user_id: str) -> int:
        count = 0
        for token in await self.list_tokens(user_id):
            if await self.store.exists(refresh_key(user_id, token)):
                count += 1
        return count

    # ----- Family versions ----- #
    async def next_version(self, user_id: str, family: str) -> int:
        return await self.store.incr(family_key(user_id, family), self.ttl_seconds)

    async def current_version(self, user_id: str, family: str) -> int:
        return await self.store.get_int(family_key(user_id, family))

    # ----- Revocation ----- #
    async def revoke_all_for_user(self, user_id: str) -> int:
        tokens = await self.list_tokens(user_id)
        await self.store.delete(
            *[refresh_key(user_id, token) for token in tokens],
            user_tokens_key(user_id),
        )
        logger.info(
            "[RefreshRegistry] Revoked %s refresh token(s) for user %s",
            len(tokens),
            user_id,
        )
        return len(tokens)

    async def revoke_for_user_and_platform(self, user_id: str, platform: str) -> int:
        return await self._revoke_matching(
            user_id, lambda record: record.platform == platform
        )

    async def revoke_family(self, user_id: str, family: str) -> int:
        revoked = await self._revoke_matching(
            user_id, lambda record: record.family == family
        )
        logger.warning(
            "[RefreshRegistry] Revoked family %s of user %s (%s token(s))",
            family,
            user_id,
            revoked,
        )
        return revoked

    async def _revoke_matching(self, user_id, predicate) -> int:
        revoked = 0
        for token in await self.list_tokens(user_id):
            record = await self.get_record(user_id, token)
            if record is None:
                # Expired record still listed
                await self.store.list_remove(user_tokens_key(user_id), token)
                continue
            if predicate(record):
                await self.remove_token(user_id, token)
                revoked += 1
                logger.debug(
                    "[RefreshRegistry] Removed token %s of user %s",
                    token_fingerprint(token),
                    user_id,
                )
        return revoked
