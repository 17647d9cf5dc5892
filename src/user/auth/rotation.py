from loggers import get_logger
from src.core.errors.exceptions import RefreshTokenNotFoundException
from src.core.utils.security import token_fingerprint
from src.main.config import config
from src.user.auth.schemas import TokenValidationError
from src.user.auth.security import TokenManager

logger = get_logger(__name__)


class RefreshTokenRotator:
    """
    Exchanges a valid refresh token for its successor in the same family.

    The predecessor is claimed atomically before the successor is issued, so
    of several concurrent rotations of one token exactly one succeeds.
    """

    def __init__(
        self,
        token_manager: TokenManager,
        revoke_family_on_reuse: bool | None = None,
    ) -> None:
        self.token_manager = token_manager
        self.registry = token_manager.refresh_registry
        self.revoke_family_on_reuse = (
            config.auth.REVOKE_FAMILY_ON_REUSE
            if revoke_family_on_reuse is None
            else revoke_family_on_reuse
        )

    async def rotate(self, old_token: str) -> str:
        """
        Rotate ``old_token``.

        Returns:
            str: the new refresh token

        Raises:
            UnauthorizedException subclass if the token is invalid,
            StoreUnavailableException if the store could not be consulted
        """
        result = await self.token_manager.validate_refresh_token(old_token)
        if result.error == TokenValidationError.NOT_FOUND:
            await self._handle_missing_record(old_token)

        claims = result.raise_for_error(fingerprint=token_fingerprint(old_token))
        user_id = claims["sub"]
        family = claims["token_family"]

        record = await self.registry.claim_token(user_id, old_token)
        if record is None:
            logger.warning(
                "[RefreshTokenRotator] Token %s of user %s was claimed concurrently",
                token_fingerprint(old_token),
                user_id,
            )
            raise RefreshTokenNotFoundException(
                "Refresh token not found",
                additional_info={"reason": "claimed_concurrently"},
            )

        new_token = await self.token_manager.issue_refresh_token(
            user_id,
            claims.get("username", ""),
            claims["platform"],
            device_id=claims.get("device_id") or record.device_id,
            family=family,
        )
        logger.info(
            "[RefreshTokenRotator] Rotated family %s of user %s", family, user_id
        )
        return new_token

    async def _handle_missing_record(self, old_token: str) -> bool:
        """
        A signed token without a record was either evicted, revoked or
        already rotated. A version older than the family counter means it was
        rotated before, so the rest of its family is revoked. The caller still
        reports the token as not found.
        """
        if not self.revoke_family_on_reuse:
            return False

        claims = self.token_manager.decode_refresh_token(old_token)
        user_id = claims["sub"]
        family = claims["token_family"]
        current_version = await self.registry.current_version(user_id, family)
        if int(claims["version"]) >= current_version:
            return False

        logger.warning(
            "[RefreshTokenRotator] Reuse of rotated token detected for user %s, revoking family %s",
            user_id,
            family,
        )
        await self.registry.revoke_family(user_id, family)
        return True
