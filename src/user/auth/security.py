"""
Issuing and validating the three token kinds.

Each kind has its own signing secret and lifetime:
    access  - short-lived bearer token, revocable through the blacklist
    refresh - long-lived, tracked per user and rotated on every use
    reset   - one-time password-reset / email-verification token
"""

from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any, cast

import jwt

from loggers import get_logger
from src.core.errors.exceptions import StoreUnavailableException
from src.core.redis.store import KeyValueStore
from src.core.utils.datetime_utils import get_utc_now
from src.core.utils.security import generate_token_id, token_fingerprint
from src.main.config import JWTConfig, config
from src.user.auth.jwt_payload_schema import (
    AccessTokenClaims,
    RefreshTokenClaims,
    ResetTokenClaims,
    ResetTokenType,
    TokenMode,
)
from src.user.auth.schemas import (
    RefreshTokenRecord,
    TokenModel,
    TokenValidationError,
    TokenValidationResult,
)
from src.user.auth.stores.blacklist import BlacklistStore
from src.user.auth.stores.refresh_registry import RefreshTokenRegistry

logger = get_logger(__name__)

ACCESS_REQUIRED_CLAIMS = ["sub", "jti", "exp", "iat", "mode"]
REFRESH_REQUIRED_CLAIMS = ["sub", "jti", "exp", "iat", "mode", "token_family", "version"]
RESET_REQUIRED_CLAIMS = ["sub", "jti", "exp", "iat", "mode", "type"]


def reset_key(token: str) -> str:
    return f"reset:{token}"


def reset_used_key(token: str) -> str:
    return f"reset_used:{token}"


class TokenManager:
    def __init__(
        self,
        store: KeyValueStore,
        *,
        jwt_config: JWTConfig | None = None,
        refresh_registry: RefreshTokenRegistry | None = None,
        blacklist: BlacklistStore | None = None,
        clock: Callable[[], datetime] = get_utc_now,
    ) -> None:
        self.store = store
        self.jwt_config = jwt_config or config.jwt
        self.refresh_registry = refresh_registry or RefreshTokenRegistry(
            store, ttl_seconds=self.jwt_config.refresh_token_ttl
        )
        self.blacklist = blacklist or BlacklistStore(store)
        self.clock = clock

    # ----- Encoding helpers ----- #
    def _secret_for(self, mode: TokenMode) -> str:
        if mode == TokenMode.ACCESS:
            return self.jwt_config.JWT_ACCESS_SECRET_KEY
        if mode == TokenMode.REFRESH:
            return self.jwt_config.JWT_REFRESH_SECRET_KEY
        return self.jwt_config.JWT_RESET_SECRET_KEY

    def _ttl_for(self, mode: TokenMode) -> int:
        if mode == TokenMode.ACCESS:
            return self.jwt_config.access_token_ttl
        if mode == TokenMode.REFRESH:
            return self.jwt_config.refresh_token_ttl
        return self.jwt_config.reset_token_ttl

    def _timestamps(self, mode: TokenMode) -> tuple[int, int]:
        issued_at = self.clock()
        expires_at = issued_at + timedelta(seconds=self._ttl_for(mode))
        return int(issued_at.timestamp()), int(expires_at.timestamp())

    def _encode(self, payload: dict[str, Any], mode: TokenMode) -> str:
        return str(
            jwt.encode(payload, self._secret_for(mode), self.jwt_config.ALGORITHM)
        )

    def _decode(
        self,
        token: str,
        mode: TokenMode,
        required: list[str],
        *,
        verify_exp: bool = True,
    ) -> dict[str, Any]:
        """
        Verify signature, expiry and token kind.

        Raises:
            jwt.ExpiredSignatureError: If the token is past its expiry
            jwt.PyJWTError: For any other verification failure
        """
        payload = jwt.decode(
            token,
            self._secret_for(mode),
            algorithms=[self.jwt_config.ALGORITHM],
            options={"require": required, "verify_exp": verify_exp},
        )
        if payload.get("mode") != mode:
            raise jwt.InvalidTokenError(f"Expected {mode}, got {payload.get('mode')}")
        return cast(dict[str, Any], payload)

    # ----- Access tokens ----- #
    async def issue_access_token(
        self,
        user_id: str,
        username: str,
        platform: str,
        *,
        device_id: str | None = None,
        extra_claims: dict[str, Any] | None = None,
    ) -> str:
        jti = generate_token_id()
        issued_at, expires_at = self._timestamps(TokenMode.ACCESS)
        payload: AccessTokenClaims = {
            "sub": user_id,
            "username": username,
            "platform": platform,
            "jti": jti,
            "iat": issued_at,
            "exp": expires_at,
            "mode": "access_token",
        }
        if device_id:
            payload["device_id"] = device_id

        token = self._encode({**(extra_claims or {}), **payload}, TokenMode.ACCESS)
        await self.blacklist.remember_jti(
            jti, user_id, self.jwt_config.access_token_ttl
        )
        return token

    async def validate_access_token(self, token: str) -> TokenValidationResult:
        try:
            claims = self._decode(token, TokenMode.ACCESS, ACCESS_REQUIRED_CLAIMS)
        except jwt.ExpiredSignatureError:
            return TokenValidationResult.fail(TokenValidationError.EXPIRED)
        except jwt.PyJWTError as exc:
            logger.debug("[TokenManager] Access token rejected: %s", exc)
            return TokenValidationResult.fail(TokenValidationError.MALFORMED)

        try:
            if await self.blacklist.is_blacklisted(claims["jti"]):
                return TokenValidationResult.fail(TokenValidationError.REVOKED)
        except StoreUnavailableException:
            logger.error("[TokenManager] Blacklist lookup failed, rejecting token")
            return TokenValidationResult.fail(TokenValidationError.STORE_UNAVAILABLE)

        return TokenValidationResult.ok(claims)

    async def blacklist_access_token(self, token: str) -> bool:
        """
        Revoke an access token for exactly its remaining lifetime.

        The signature must still be valid; expiry is not checked. The remaining
        lifetime is measured against wall-clock time, the same base PyJWT uses
        for ``exp``. Returns False when the token is unreadable or already expired.
        """
        try:
            claims = self._decode(
                token, TokenMode.ACCESS, ACCESS_REQUIRED_CLAIMS, verify_exp=False
            )
        except jwt.PyJWTError as exc:
            logger.warning("[TokenManager] Cannot blacklist unreadable token: %s", exc)
            return False

        remaining = int(claims["exp"]) - int(get_utc_now().timestamp())
        return await self.blacklist.blacklist(claims["jti"], remaining)

    # ----- Refresh tokens ----- #
    async def issue_refresh_token(
        self,
        user_id: str,
        username: str,
        platform: str,
        *,
        device_id: str | None = None,
        family: str | None = None,
    ) -> str:
        family = family or generate_token_id()
        version = await self.refresh_registry.next_version(user_id, family)
        issued_at, expires_at = self._timestamps(TokenMode.REFRESH)

        payload: RefreshTokenClaims = {
            "sub": user_id,
            "username": username,
            "platform": platform,
            "token_family": family,
            "version": version,
            "jti": generate_token_id(),
            "iat": issued_at,
            "exp": expires_at,
            "mode": "refresh_token",
        }
        if device_id:
            payload["device_id"] = device_id

        token = self._encode(dict(payload), TokenMode.REFRESH)
        now = self.clock()
        await self.refresh_registry.store_record(
            user_id,
            token,
            RefreshTokenRecord(
                family=family,
                platform=platform,
                device_id=device_id,
                created_at=now,
                last_used_at=now,
            ),
        )
        await self.refresh_registry.add_token(user_id, token)

        logger.debug(
            "[TokenManager] Issued refresh token %s (family %s, version %s) for user %s",
            token_fingerprint(token),
            family,
            version,
            user_id,
        )
        return token

    def decode_refresh_token(self, token: str) -> dict[str, Any]:
        """Verify a refresh token cryptographically without consulting the store."""
        return self._decode(token, TokenMode.REFRESH, REFRESH_REQUIRED_CLAIMS)

    async def validate_refresh_token(self, token: str) -> TokenValidationResult:
        try:
            claims = self.decode_refresh_token(token)
        except jwt.ExpiredSignatureError:
            return TokenValidationResult.fail(TokenValidationError.EXPIRED)
        except jwt.PyJWTError as exc:
            logger.debug("[TokenManager] Refresh token rejected: %s", exc)
            return TokenValidationResult.fail(TokenValidationError.MALFORMED)

        try:
            record = await self.refresh_registry.get_record(claims["sub"], token)
        except StoreUnavailableException:
            logger.error("[TokenManager] Refresh record lookup failed, rejecting token")
            return TokenValidationResult.fail(TokenValidationError.STORE_UNAVAILABLE)

        if record is None:
            return TokenValidationResult.fail(TokenValidationError.NOT_FOUND)
        if record.family != claims["token_family"]:
            return TokenValidationResult.fail(TokenValidationError.FAMILY_MISMATCH)

        return TokenValidationResult.ok(claims)

    async def revoke_all_user_tokens(self, user_id: str) -> int:
        return await self.refresh_registry.revoke_all_for_user(user_id)

    async def revoke_user_tokens_by_platform(self, user_id: str, platform: str) -> int:
        return await self.refresh_registry.revoke_for_user_and_platform(
            user_id, platform
        )

    # ----- Reset tokens ----- #
    async def issue_reset_token(
        self, user_id: str, email: str, token_type: ResetTokenType
    ) -> str:
        issued_at, expires_at = self._timestamps(TokenMode.RESET)
        payload: ResetTokenClaims = {
            "sub": user_id,
            "email": email,
            "type": token_type.value,  # type: ignore[typeddict-item]
            "one_time_use": True,
            "jti": generate_token_id(),
            "iat": issued_at,
            "exp": expires_at,
            "mode": "reset_token",
        }
        token = self._encode(dict(payload), TokenMode.RESET)
        await self.store.set_json(
            reset_key(token),
            {"user_id": user_id, "created_at": self.clock()},
            self.jwt_config.reset_token_ttl,
        )
        return token

    async def validate_reset_token(
        self, token: str, expected_type: ResetTokenType | None = None
    ) -> TokenValidationResult:
        """
        Validate a reset token. Consumption is checked before the signature,
        so a used token is reported as ``already_used`` even once it expires.
        """
        try:
            if await self.store.exists(reset_used_key(token)):
                return TokenValidationResult.fail(TokenValidationError.ALREADY_USED)
        except StoreUnavailableException:
            logger.error("[TokenManager] Reset token lookup failed, rejecting token")
            return TokenValidationResult.fail(TokenValidationError.STORE_UNAVAILABLE)

        try:
            claims = self._decode(token, TokenMode.RESET, RESET_REQUIRED_CLAIMS)
        except jwt.ExpiredSignatureError:
            return TokenValidationResult.fail(TokenValidationError.EXPIRED)
        except jwt.PyJWTError as exc:
            logger.debug("[TokenManager] Reset token rejected: %s", exc)
            return TokenValidationResult.fail(TokenValidationError.MALFORMED)

        if expected_type is not None and claims.get("type") != expected_type:
            return TokenValidationResult.fail(TokenValidationError.MALFORMED)

        return TokenValidationResult.ok(claims)

    async def mark_reset_token_used(self, token: str) -> bool:
        """
        Consume a reset token with a single SET NX.

        Returns:
            bool: True for the one caller that consumed the token, False when
            it was already used
        """
        consumed = await self.store.set_json_if_absent(
            reset_used_key(token),
            {"used_at": self.clock()},
            self.jwt_config.reset_token_ttl,
        )
        if consumed:
            await self.store.delete(reset_key(token))
        else:
            logger.info("[TokenManager] Reset token was already consumed")
        return consumed

    # ----- Responses ----- #
    def build_token_response(
        self,
        access_token: str,
        refresh_token: str,
        session_id: str | None = None,
    ) -> TokenModel:
        return TokenModel(
            access_token=access_token,
            refresh_token=refresh_token,
            token_type="Bearer",
            expires_in=self.jwt_config.access_token_ttl,
            session_id=session_id,
        )
