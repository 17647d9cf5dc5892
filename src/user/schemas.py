from datetime import datetime

from pydantic import EmailStr, Field

from src.core.schemas import Base
from src.user.auth.platform import PlatformInfo


class UserProfile(Base):
    """User as returned by the external profile store."""

    id: str
    email: EmailStr
    username: str
    password_hash: str
    first_name: str = ""
    last_name: str = ""
    roles: list[str] = Field(default_factory=list)
    permissions: list[str] = Field(default_factory=list)
    is_active: bool = True
    is_verified: bool = False

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class NewUserData(Base):
    email: EmailStr
    username: str
    password_hash: str
    first_name: str = ""
    last_name: str = ""


class UserProfileViewModel(Base):
    id: str
    email: EmailStr
    username: str
    first_name: str
    last_name: str
    roles: list[str]
    permissions: list[str]
    is_active: bool
    is_verified: bool


class CurrentUserDetailsViewModel(Base):
    """Profile fields merged with what the access token says about the caller."""

    user_id: str
    username: str
    email: EmailStr
    first_name: str
    last_name: str
    roles: list[str] = Field(default_factory=list)
    permissions: list[str] = Field(default_factory=list)
    is_active: bool
    is_verified: bool
    platform: str
    device_id: str | None = None
    expires_at: int


class CurrentUserViewModel(Base):
    user: CurrentUserDetailsViewModel
    platform: PlatformInfo
    timestamp: datetime
