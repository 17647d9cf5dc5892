from datetime import datetime, timezone
from decimal import Decimal

import pytest

from src.core.errors.exceptions import StoreUnavailableException
from src.core.redis.store import KeyValueStore
from src.user.auth.schemas import SessionPayload
from tests.fakes.redis import InMemoryRedis, UnavailableRedis


@pytest.mark.asyncio
async def test_json_round_trip_with_ttl(
    kv_store: KeyValueStore, fake_redis: InMemoryRedis
) -> None:
    created = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

    await kv_store.set_json(
        "key", {"when": created, "amount": Decimal("1.50"), "n": 1}, 60
    )

    assert await kv_store.get_json("key") == {
        "when": created.isoformat(),
        "amount": "1.50",
        "n": 1,
    }
    assert 0 < await fake_redis.ttl("key") <= 60


@pytest.mark.asyncio
async def test_models_are_encoded_as_json(kv_store: KeyValueStore) -> None:
    await kv_store.set_json(
        "session", SessionPayload(user_id="user-1", platform="web"), 60
    )

    payload = await kv_store.get_json("session")

    assert SessionPayload.model_validate(payload).user_id == "user-1"


@pytest.mark.asyncio
async def test_missing_keys(kv_store: KeyValueStore) -> None:
    assert await kv_store.get_json("absent") is None
    assert await kv_store.get_int("absent") == 0
    assert await kv_store.exists("absent") is False
    assert await kv_store.delete() == 0
    assert await kv_store.list_pop_oldest("absent") is None


@pytest.mark.asyncio
async def test_incr_refreshes_ttl(
    kv_store: KeyValueStore, fake_redis: InMemoryRedis
) -> None:
    assert await kv_store.incr("counter", 30) == 1
    assert await kv_store.incr("counter", 90) == 2
    assert await kv_store.get_int("counter") == 2
    assert await fake_redis.ttl("counter") > 30


@pytest.mark.asyncio
async def test_list_operations_keep_insertion_order(kv_store: KeyValueStore) -> None:
    for value in ("a", "b", "c", "b"):
        await kv_store.list_push("items", value, 60)

    assert await kv_store.list_length("items") == 4
    assert await kv_store.list_remove("items", "b") == 2
    assert await kv_store.list_pop_oldest("items") == "a"
    assert await kv_store.list_items("items") == ["c"]


@pytest.mark.asyncio
async def test_expired_keys_disappear(
    kv_store: KeyValueStore, fake_redis: InMemoryRedis
) -> None:
    await kv_store.set_json("short", {"v": 1}, 60)
    fake_redis.expire_now("short")

    assert await kv_store.get_json("short") is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "operation,args",
    [
        ("get_json", ("key",)),
        ("set_json", ("key", {}, 10)),
        ("exists", ("key",)),
        ("incr", ("key", 10)),
        ("list_push", ("key", "value", 10)),
        ("list_items", ("key",)),
        ("eval_script", ("return 1", ["key"], [])),
    ],
)
async def test_redis_errors_become_store_unavailable(
    operation: str, args: tuple[object, ...]
) -> None:
    store = KeyValueStore(UnavailableRedis())  # type: ignore[arg-type]

    with pytest.raises(StoreUnavailableException) as exc_info:
        await getattr(store, operation)(*args)

    assert exc_info.value.additional_info == {"operation": operation}


def test_decode_accepts_bytes() -> None:
    assert KeyValueStore.decode(b'{"a": 1}') == {"a": 1}
    assert KeyValueStore.decode(None) is None


@pytest.mark.asyncio
async def test_set_if_absent_only_succeeds_once(
    kv_store: KeyValueStore, fake_redis: InMemoryRedis
) -> None:
    assert await kv_store.set_json_if_absent("once", {"n": 1}, 60) is True
    assert await kv_store.set_json_if_absent("once", {"n": 2}, 60) is False

    assert await kv_store.get_json("once") == {"n": 1}
    assert 0 < await fake_redis.ttl("once") <= 60
