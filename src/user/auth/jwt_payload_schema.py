from enum import StrEnum
from typing import Literal, NotRequired, TypedDict


class TokenMode(StrEnum):
    ACCESS = "access_token"
    REFRESH = "refresh_token"
    RESET = "reset_token"


class ResetTokenType(StrEnum):
    PASSWORD_RESET = "password-reset"
    EMAIL_VERIFICATION = "email-verification"


class AccessTokenClaims(TypedDict):
    """Type definition for access token payload"""

    sub: str  # User ID
    username: str
    platform: str
    jti: str  # Blacklist key
    iat: int
    exp: int
    mode: Literal["access_token"]
    device_id: NotRequired[str | None]
    email: NotRequired[str]
    roles: NotRequired[list[str]]
    permissions: NotRequired[list[str]]


class RefreshTokenClaims(TypedDict):
    """Type definition for refresh token payload"""

    sub: str
    username: str
    platform: str
    token_family: str  # Lineage shared by every rotation of one login
    version: int  # Strictly increasing within a family
    jti: str
    iat: int
    exp: int
    mode: Literal["refresh_token"]
    device_id: NotRequired[str | None]


class ResetTokenClaims(TypedDict):
    """Type definition for password-reset / email-verification token payload"""

    sub: str
    email: str
    type: Literal["password-reset", "email-verification"]
    one_time_use: bool
    jti: str
    iat: int
    exp: int
    mode: Literal["reset_token"]


TokenClaims = AccessTokenClaims | RefreshTokenClaims | ResetTokenClaims
