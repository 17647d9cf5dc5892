from typing import Any, Protocol

from src.user.schemas import NewUserData, UserProfile


class UserRepository(Protocol):
    """
    Boundary to the persistent user-profile store.

    The lifecycle engine only needs to look users up, create them on
    registration and update a handful of fields (password hash, verification).
    """

    async def get_by_id(self, user_id: str) -> UserProfile | None: ...

    async def get_by_email(self, email: str) -> UserProfile | None: ...

    async def get_by_username(self, username: str) -> UserProfile | None: ...

    async def create(self, data: NewUserData) -> UserProfile: ...

    async def update(self, user_id: str, values: dict[str, Any]) -> UserProfile: ...
