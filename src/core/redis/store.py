"""
Thin async facade over the shared Redis instance.

Every lifecycle component talks to Redis through this class so that:
- values are JSON-encoded consistently,
- every write carries an explicit TTL,
- any Redis failure (connection refused, timeout, protocol error) is
  translated into ``StoreUnavailableException``.

No state is cached in process: every call is a round-trip to the store.
"""

from collections.abc import Awaitable, Callable, Coroutine
import datetime
from decimal import Decimal
from functools import wraps
import json
from typing import Any, ParamSpec, TypeVar, cast

from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel
from redis.asyncio import Redis
from redis.exceptions import RedisError

from loggers import get_logger
from src.core.errors.exceptions import StoreUnavailableException

logger = get_logger(__name__)

P = ParamSpec("P")
R = TypeVar("R")


class JsonEncoder(json.JSONEncoder):
    def default(self, o: Any) -> Any:
        if isinstance(o, (datetime.datetime, datetime.date)):
            return o.isoformat()
        if isinstance(o, Decimal):
            return str(o)
        if isinstance(o, BaseModel):
            return o.model_dump(mode="json")
        return jsonable_encoder(o)


def translate_store_errors(
    func: Callable[P, Coroutine[Any, Any, R]],
) -> Callable[P, Coroutine[Any, Any, R]]:
    @wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        try:
            return await func(*args, **kwargs)
        except RedisError as exc:
            logger.error("[KeyValueStore] '%s' failed: %s", func.__name__, exc)
            raise StoreUnavailableException(
                "Key-value store unavailable",
                additional_info={"operation": func.__name__},
            ) from exc

    return wrapper


class KeyValueStore:
    def __init__(self, redis_client: Redis) -> None:
        self.redis_client = redis_client

    @staticmethod
    def encode(value: Any) -> str:
        return json.dumps(value, cls=JsonEncoder)

    @staticmethod
    def decode(raw: str | bytes | None) -> Any:
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        return json.loads(raw)

    # ----- Scalars ----- #
    @translate_store_errors
    async def get_json(self, key: str) -> Any:
        return self.decode(await self.redis_client.get(key))

    @translate_store_errors
    async def set_json(self, key: str, value: Any, ttl_seconds: int) -> None:
        await self.redis_client.set(key, self.encode(value), ex=ttl_seconds)

    @translate_store_errors
    async def set_json_if_absent(self, key: str, value: Any, ttl_seconds: int) -> bool:
        """SET NX EX. Returns True only for the caller that created the key."""
        created = await self.redis_client.set(
            key, self.encode(value), ex=ttl_seconds, nx=True
        )
        return bool(created)

    @translate_store_errors
    async def exists(self, key: str) -> bool:
        return bool(await self.redis_client.exists(key))

    @translate_store_errors
    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        return int(await self.redis_client.delete(*keys))

    @translate_store_errors
    async def get_int(self, key: str) -> int:
        raw = await self.redis_client.get(key)
        return int(raw) if raw is not None else 0

    @translate_store_errors
    async def incr(self, key: str, ttl_seconds: int) -> int:
        """Atomically increment a counter and refresh its TTL."""
        value = await self.redis_client.incr(key)
        await self.redis_client.expire(key, ttl_seconds)
        return int(value)

    # ----- Ordered lists ----- #
    @translate_store_errors
    async def list_push(self, key: str, value: str, ttl_seconds: int) -> int:
        length = await cast(Awaitable[int], self.redis_client.rpush(key, value))
        await self.redis_client.expire(key, ttl_seconds)
        return int(length)

    @translate_store_errors
    async def list_items(self, key: str) -> list[str]:
        items = await cast(Awaitable[list[str]], self.redis_client.lrange(key, 0, -1))
        return list(items)

    @translate_store_errors
    async def list_pop_oldest(self, key: str) -> str | None:
        return await cast(Awaitable[str | None], self.redis_client.lpop(key))

    @translate_store_errors
    async def list_remove(self, key: str, value: str) -> int:
        removed = await cast(Awaitable[int], self.redis_client.lrem(key, 0, value))
        return int(removed)

    @translate_store_errors
    async def list_length(self, key: str) -> int:
        length = await cast(Awaitable[int], self.redis_client.llen(key))
        return int(length)

    # ----- Scripts ----- #
    @translate_store_errors
    async def eval_script(self, script: str, keys: list[str], args: list[Any]) -> Any:
        return await cast(
            Awaitable[Any],
            self.redis_client.eval(script, len(keys), *keys, *args),
        )
