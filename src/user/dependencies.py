from typing import cast

from fastapi import Request

from src.user.repositories import UserRepository


async def get_user_repository(request: Request) -> UserRepository:
    """
    Provide the user-profile store attached to app.state at application setup.
    """
    repository = getattr(request.app.state, "user_repository", None)
    if repository is None:
        raise RuntimeError(
            "User repository is not configured. Pass one to get_application()."
        )
    return cast(UserRepository, repository)
