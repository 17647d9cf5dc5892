import jwt
import pytest

from src.core.errors.exceptions import (
    RefreshTokenNotFoundException,
    StoreUnavailableException,
    TokenExpiredException,
    TokenRevokedException,
)
from src.core.redis.store import KeyValueStore
from src.main.config import config
from src.user.auth.jwt_payload_schema import ResetTokenType
from src.user.auth.schemas import RefreshTokenRecord, TokenValidationError
from src.user.auth.security import TokenManager
from tests.factories.token_factory import (
    build_past_token_manager,
    build_token_manager,
    decode_unverified,
    encode_with,
    shifted_clock,
)
from tests.fakes.redis import InMemoryRedis, UnavailableRedis


@pytest.mark.asyncio
async def test_access_token_round_trip_carries_claims(
    token_manager: TokenManager, fake_redis: InMemoryRedis
) -> None:
    token = await token_manager.issue_access_token(
        "user-1",
        "alice",
        "web",
        device_id="dev-1",
        extra_claims={"email": "alice@example.com", "roles": ["admin"]},
    )

    result = await token_manager.validate_access_token(token)

    assert result.valid is True
    assert result.claims is not None
    assert result.claims["sub"] == "user-1"
    assert result.claims["platform"] == "web"
    assert result.claims["device_id"] == "dev-1"
    assert result.claims["roles"] == ["admin"]
    assert result.claims["mode"] == "access_token"
    assert result.claims["exp"] - result.claims["iat"] == config.jwt.access_token_ttl
    assert await fake_redis.exists(f"jti:{result.claims['jti']}") == 1


@pytest.mark.asyncio
async def test_extra_claims_cannot_override_reserved_claims(
    token_manager: TokenManager,
) -> None:
    token = await token_manager.issue_access_token(
        "user-1", "alice", "web", extra_claims={"sub": "admin", "mode": "x"}
    )

    claims = decode_unverified(token)

    assert claims["sub"] == "user-1"
    assert claims["mode"] == "access_token"


@pytest.mark.asyncio
async def test_expired_access_token_asks_for_refresh(kv_store: KeyValueStore) -> None:
    past_manager = build_past_token_manager(kv_store)
    token = await past_manager.issue_access_token("user-1", "alice", "web")

    result = await past_manager.validate_access_token(token)

    assert result.valid is False
    assert result.error == TokenValidationError.EXPIRED
    assert result.needs_refresh is True
    with pytest.raises(TokenExpiredException):
        result.raise_for_error()


@pytest.mark.asyncio
async def test_blacklisted_access_token_is_revoked(
    token_manager: TokenManager, fake_redis: InMemoryRedis
) -> None:
    token = await token_manager.issue_access_token("user-1", "alice", "web")
    jti = decode_unverified(token)["jti"]

    assert await token_manager.blacklist_access_token(token) is True
    result = await token_manager.validate_access_token(token)

    assert result.error == TokenValidationError.REVOKED
    assert result.needs_refresh is False
    ttl = await fake_redis.ttl(f"blacklist:{jti}")
    assert 0 < ttl <= config.jwt.access_token_ttl
    with pytest.raises(TokenRevokedException):
        result.raise_for_error()


@pytest.mark.asyncio
async def test_blacklisting_expired_token_is_a_noop(
    kv_store: KeyValueStore, fake_redis: InMemoryRedis
) -> None:
    past_manager = build_past_token_manager(kv_store)
    token = await past_manager.issue_access_token("user-1", "alice", "web")

    assert await past_manager.blacklist_access_token(token) is False
    assert fake_redis.keys_matching("blacklist:") == []


@pytest.mark.asyncio
async def test_blacklist_lifetime_follows_wall_clock_not_manager_clock(
    token_manager: TokenManager, kv_store: KeyValueStore, fake_redis: InMemoryRedis
) -> None:
    past_manager = build_past_token_manager(kv_store)
    future_manager = build_token_manager(kv_store, clock=shifted_clock(days=1))
    expired = await past_manager.issue_access_token("user-1", "alice", "web")
    live = await token_manager.issue_access_token("user-1", "alice", "web")

    assert await token_manager.blacklist_access_token(expired) is False
    assert await future_manager.blacklist_access_token(live) is True
    jti = decode_unverified(live)["jti"]
    assert 0 < await fake_redis.ttl(f"blacklist:{jti}") <= config.jwt.access_token_ttl


@pytest.mark.asyncio
async def test_blacklisting_forged_token_is_refused(
    token_manager: TokenManager,
) -> None:
    forged = encode_with(
        {"sub": "user-1", "jti": "j", "iat": 1, "exp": 9999999999, "mode": "access_token"},
        secret="not-the-real-secret-at-all-000000",
    )

    assert await token_manager.blacklist_access_token(forged) is False


@pytest.mark.asyncio
async def test_tokens_of_other_kinds_are_rejected(token_manager: TokenManager) -> None:
    refresh_token = await token_manager.issue_refresh_token("user-1", "alice", "web")
    reset_token = await token_manager.issue_reset_token(
        "user-1", "alice@example.com", ResetTokenType.PASSWORD_RESET
    )

    assert (await token_manager.validate_access_token(refresh_token)).error == (
        TokenValidationError.MALFORMED
    )
    assert (await token_manager.validate_access_token(reset_token)).error == (
        TokenValidationError.MALFORMED
    )
    assert (await token_manager.validate_refresh_token(reset_token)).error == (
        TokenValidationError.MALFORMED
    )


@pytest.mark.asyncio
async def test_mode_claim_is_checked_even_with_matching_secret(
    token_manager: TokenManager,
) -> None:
    token = encode_with(
        {
            "sub": "user-1",
            "jti": "j",
            "iat": 1,
            "exp": 9999999999,
            "mode": "refresh_token",
        },
        secret=config.jwt.JWT_ACCESS_SECRET_KEY,
    )

    result = await token_manager.validate_access_token(token)

    assert result.error == TokenValidationError.MALFORMED


@pytest.mark.asyncio
async def test_garbage_is_malformed(token_manager: TokenManager) -> None:
    result = await token_manager.validate_access_token("not-a-jwt")

    assert result.valid is False
    assert result.error == TokenValidationError.MALFORMED


@pytest.mark.asyncio
async def test_refresh_token_is_recorded_and_valid(
    token_manager: TokenManager, fake_redis: InMemoryRedis
) -> None:
    token = await token_manager.issue_refresh_token(
        "user-1", "alice", "mobile", device_id="dev-1"
    )
    claims = decode_unverified(token)

    result = await token_manager.validate_refresh_token(token)

    assert result.valid is True
    assert claims["version"] == 1
    assert claims["device_id"] == "dev-1"
    record = await token_manager.refresh_registry.get_record("user-1", token)
    assert record is not None
    assert record.family == claims["token_family"]
    assert record.platform == "mobile"
    assert await fake_redis.lrange("user_tokens:user-1", 0, -1) == [token]


@pytest.mark.asyncio
async def test_refresh_versions_increase_within_family(
    token_manager: TokenManager,
) -> None:
    first = await token_manager.issue_refresh_token("user-1", "alice", "web")
    family = decode_unverified(first)["token_family"]

    second = await token_manager.issue_refresh_token(
        "user-1", "alice", "web", family=family
    )
    fresh = await token_manager.issue_refresh_token("user-1", "alice", "web")

    assert decode_unverified(second)["version"] == 2
    assert decode_unverified(fresh)["version"] == 1
    assert decode_unverified(fresh)["token_family"] != family


@pytest.mark.asyncio
async def test_refresh_token_without_record_is_not_found(
    token_manager: TokenManager,
) -> None:
    token = await token_manager.issue_refresh_token("user-1", "alice", "web")
    await token_manager.refresh_registry.remove_token("user-1", token)

    result = await token_manager.validate_refresh_token(token)

    assert result.error == TokenValidationError.NOT_FOUND
    with pytest.raises(RefreshTokenNotFoundException):
        result.raise_for_error()


@pytest.mark.asyncio
async def test_refresh_token_family_mismatch(token_manager: TokenManager) -> None:
    token = await token_manager.issue_refresh_token("user-1", "alice", "web")
    await token_manager.refresh_registry.store_record(
        "user-1", token, RefreshTokenRecord(family="other-family", platform="web")
    )

    result = await token_manager.validate_refresh_token(token)

    assert result.error == TokenValidationError.FAMILY_MISMATCH


@pytest.mark.asyncio
async def test_validate_refresh_token_does_not_consume(
    token_manager: TokenManager,
) -> None:
    token = await token_manager.issue_refresh_token("user-1", "alice", "web")

    assert (await token_manager.validate_refresh_token(token)).valid is True
    assert (await token_manager.validate_refresh_token(token)).valid is True


@pytest.mark.asyncio
async def test_reset_token_is_consumed_exactly_once(
    token_manager: TokenManager,
) -> None:
    token = await token_manager.issue_reset_token(
        "user-1", "alice@example.com", ResetTokenType.PASSWORD_RESET
    )

    first = await token_manager.validate_reset_token(token)
    second = await token_manager.validate_reset_token(token)
    consumed = await token_manager.mark_reset_token_used(token)
    consumed_again = await token_manager.mark_reset_token_used(token)
    after = await token_manager.validate_reset_token(token)

    assert first.valid is True
    assert second.valid is True
    assert first.claims is not None
    assert first.claims["one_time_use"] is True
    assert consumed is True
    assert consumed_again is False
    assert after.error == TokenValidationError.ALREADY_USED


@pytest.mark.asyncio
async def test_consumed_check_runs_before_signature(
    token_manager: TokenManager,
) -> None:
    await token_manager.mark_reset_token_used("garbage")

    result = await token_manager.validate_reset_token("garbage")

    assert result.error == TokenValidationError.ALREADY_USED


@pytest.mark.asyncio
async def test_reset_token_type_must_match(token_manager: TokenManager) -> None:
    token = await token_manager.issue_reset_token(
        "user-1", "alice@example.com", ResetTokenType.EMAIL_VERIFICATION
    )

    result = await token_manager.validate_reset_token(
        token, expected_type=ResetTokenType.PASSWORD_RESET
    )

    assert result.error == TokenValidationError.MALFORMED


@pytest.mark.asyncio
async def test_expired_reset_token(kv_store: KeyValueStore) -> None:
    past_manager = build_past_token_manager(kv_store)
    token = await past_manager.issue_reset_token(
        "user-1", "alice@example.com", ResetTokenType.PASSWORD_RESET
    )

    result = await past_manager.validate_reset_token(token)

    assert result.error == TokenValidationError.EXPIRED


@pytest.mark.asyncio
async def test_each_kind_uses_its_own_secret(token_manager: TokenManager) -> None:
    access = await token_manager.issue_access_token("user-1", "alice", "web")
    refresh = await token_manager.issue_refresh_token("user-1", "alice", "web")

    jwt.decode(
        access, config.jwt.JWT_ACCESS_SECRET_KEY, algorithms=[config.jwt.ALGORITHM]
    )
    jwt.decode(
        refresh, config.jwt.JWT_REFRESH_SECRET_KEY, algorithms=[config.jwt.ALGORITHM]
    )
    with pytest.raises(jwt.InvalidSignatureError):
        jwt.decode(
            refresh,
            config.jwt.JWT_ACCESS_SECRET_KEY,
            algorithms=[config.jwt.ALGORITHM],
        )


@pytest.mark.asyncio
async def test_validation_fails_closed_when_store_is_down(
    token_manager: TokenManager,
) -> None:
    access = await token_manager.issue_access_token("user-1", "alice", "web")
    refresh = await token_manager.issue_refresh_token("user-1", "alice", "web")
    reset = await token_manager.issue_reset_token(
        "user-1", "alice@example.com", ResetTokenType.PASSWORD_RESET
    )
    offline = TokenManager(KeyValueStore(UnavailableRedis()))  # type: ignore[arg-type]

    results = [
        await offline.validate_access_token(access),
        await offline.validate_refresh_token(refresh),
        await offline.validate_reset_token(reset),
    ]

    for result in results:
        assert result.valid is False
        assert result.error == TokenValidationError.STORE_UNAVAILABLE
        with pytest.raises(StoreUnavailableException):
            result.raise_for_error()


@pytest.mark.asyncio
async def test_issuance_surfaces_store_errors() -> None:
    offline = TokenManager(KeyValueStore(UnavailableRedis()))  # type: ignore[arg-type]

    with pytest.raises(StoreUnavailableException):
        await offline.issue_access_token("user-1", "alice", "web")
    with pytest.raises(StoreUnavailableException):
        await offline.issue_refresh_token("user-1", "alice", "web")


def test_build_token_response(token_manager: TokenManager) -> None:
    response = token_manager.build_token_response("a", "r", session_id="s")

    assert response.token_type == "Bearer"
    assert response.expires_in == config.jwt.access_token_ttl
    assert response.session_id == "s"
    assert "session_id" not in response.model_dump()
