from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import EmailStr, Field, field_validator, model_validator

from src.core.errors.exceptions import (
    ResetTokenAlreadyUsedException,
    StoreUnavailableException,
    TokenExpiredException,
    TokenFamilyMismatchException,
    TokenMalformedException,
    TokenRevokedException,
    RefreshTokenNotFoundException,
)
from src.core.schemas import (
    Base,
    EmailNormalizationMixin,
    StrongPasswordValidationMixin,
)
from src.core.utils.datetime_utils import get_utc_now
from src.core.validations import NAME_WITH_SPACES, USERNAME_VALIDATOR


class TokenValidationError(StrEnum):
    EXPIRED = "expired"
    REVOKED = "revoked"
    MALFORMED = "malformed"
    NOT_FOUND = "not_found"
    FAMILY_MISMATCH = "family_mismatch"
    ALREADY_USED = "already_used"
    STORE_UNAVAILABLE = "store_unavailable"


VALIDATION_ERRORS = {
    TokenValidationError.EXPIRED: (TokenExpiredException, "Token expired"),
    TokenValidationError.REVOKED: (TokenRevokedException, "Token has been revoked"),
    TokenValidationError.MALFORMED: (TokenMalformedException, "Invalid token"),
    TokenValidationError.NOT_FOUND: (
        RefreshTokenNotFoundException,
        "Refresh token not found",
    ),
    TokenValidationError.FAMILY_MISMATCH: (
        TokenFamilyMismatchException,
        "Token family mismatch",
    ),
    TokenValidationError.ALREADY_USED: (
        ResetTokenAlreadyUsedException,
        "Token already used",
    ),
    TokenValidationError.STORE_UNAVAILABLE: (
        StoreUnavailableException,
        "Key-value store unavailable",
    ),
}


class TokenValidationResult(Base):
    valid: bool
    claims: dict[str, Any] | None = None
    error: TokenValidationError | None = None
    needs_refresh: bool = False

    @classmethod
    def ok(cls, claims: dict[str, Any]) -> "TokenValidationResult":
        return cls(valid=True, claims=claims)

    @classmethod
    def fail(cls, error: TokenValidationError) -> "TokenValidationResult":
        return cls(
            valid=False,
            error=error,
            needs_refresh=error == TokenValidationError.EXPIRED,
        )

    def raise_for_error(self, **additional_info: Any) -> dict[str, Any]:
        """
        Return the verified claims or raise the exception matching the failure.

        Raises:
            UnauthorizedException subclass for token failures,
            StoreUnavailableException when the store could not be consulted
        """
        if self.valid and self.claims is not None:
            return self.claims
        error = TokenValidationError(self.error or TokenValidationError.MALFORMED)
        exc_class, message = VALIDATION_ERRORS[error]
        raise exc_class(message, additional_info=additional_info or None)


class RefreshTokenRecord(Base):
    family: str
    platform: str
    device_id: str | None = None
    created_at: datetime = Field(default_factory=get_utc_now)
    last_used_at: datetime = Field(default_factory=get_utc_now)


class SessionPayload(Base):
    user_id: str
    platform: str
    device_id: str | None = None
    user_agent: str | None = None
    created_at: datetime = Field(default_factory=get_utc_now)


class LoginRecord(Base):
    platform: str
    device_id: str | None = None
    user_agent: str | None = None
    ip: str | None = None
    login_time: datetime = Field(default_factory=get_utc_now)


class LogoutRecord(Base):
    platform: str
    all_devices: bool = False
    logout_time: datetime = Field(default_factory=get_utc_now)


class TokenModel(Base):
    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int
    session_id: str | None = Field(None, exclude=True)


class CreateUserModel(StrongPasswordValidationMixin, EmailNormalizationMixin, Base):
    email: EmailStr
    username: str
    password: str
    first_name: str = ""
    last_name: str = ""

    @field_validator("first_name", "last_name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        if value and not NAME_WITH_SPACES.match(value):
            raise ValueError("Name must contain latin letters and spaces only")
        return value

    @field_validator("username")
    @classmethod
    def validate_username(cls, value: str) -> str:
        if not USERNAME_VALIDATOR.match(value):
            raise ValueError(
                "Username must be from 4 to 60 symbols and contain alphanumeric characters, underscore, dash, and dot"
            )
        return value


class LoginUserModel(Base):
    email: str | None = None
    username: str | None = None
    password: str
    device_id: str | None = None

    @model_validator(mode="after")
    def require_identifier(self) -> "LoginUserModel":
        if not (self.email or self.username):
            raise ValueError("Email or username is required")
        return self

    @property
    def identifier(self) -> str:
        return (self.email or self.username or "").strip()


class RefreshTokenModel(Base):
    refresh_token: str


class ForgotPasswordModel(EmailNormalizationMixin, Base):
    email: EmailStr


class ResetPasswordModel(StrongPasswordValidationMixin, Base):
    token: str
    password: str


class ChangePasswordModel(StrongPasswordValidationMixin, Base):
    current_password: str
    new_password: str
