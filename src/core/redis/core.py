import logging
from typing import cast

from redis.asyncio import Redis

logger = logging.getLogger(__name__)


def create_redis_client(
    connection_url: str,
    *,
    decode_responses: bool = True,
    socket_timeout: float | None = None,
) -> Redis:
    """
    Create a Redis async client from URL. Keeping construction here simplifies
    monkeypatching in tests and centralizes defaults.

    The socket timeout bounds every store round-trip so that a stalled backend
    surfaces as an error instead of hanging the request.
    """
    try:
        client = Redis.from_url(
            connection_url,
            decode_responses=decode_responses,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        return cast(Redis, client)
    except Exception as exc:  # pragma: no cover
        logger.exception("Failed to create Redis client: %s", exc)
        raise
