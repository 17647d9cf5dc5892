from typing import Annotated, Any

from fastapi import APIRouter, Depends

from src.core.schemas import SuccessResponse
from src.core.utils.datetime_utils import get_utc_now
from src.user.auth.dependencies import (
    get_access_claims,
    get_current_user,
    get_platform_info,
)
from src.user.auth.platform import PlatformInfo
from src.user.auth.routers import router as auth_router
from src.user.auth.schemas import ChangePasswordModel
from src.user.schemas import (
    CurrentUserDetailsViewModel,
    CurrentUserViewModel,
    UserProfile,
    UserProfileViewModel,
)
from src.user.usecases.change_password import (
    ChangePasswordUseCase,
    get_change_password_use_case,
)

router = APIRouter()

router.include_router(auth_router)


@router.get("/me", response_model=CurrentUserViewModel)
async def get_me(
    claims: Annotated[dict[str, Any], Depends(get_access_claims)],
    current_user: Annotated[UserProfile, Depends(get_current_user)],
    platform: Annotated[PlatformInfo, Depends(get_platform_info)],
) -> CurrentUserViewModel:
    """
    Returns the caller's profile together with the verified access-token
    claims and the platform detected for this request.
    """
    return CurrentUserViewModel(
        user=CurrentUserDetailsViewModel(
            user_id=current_user.id,
            username=current_user.username,
            email=current_user.email,
            first_name=current_user.first_name,
            last_name=current_user.last_name,
            roles=claims.get("roles", []),
            permissions=claims.get("permissions", []),
            is_active=current_user.is_active,
            is_verified=current_user.is_verified,
            platform=claims["platform"],
            device_id=claims.get("device_id"),
            expires_at=claims["exp"],
        ),
        platform=platform,
        timestamp=get_utc_now(),
    )


@router.get("/profile", response_model=UserProfileViewModel)
async def get_profile(
    current_user: Annotated[UserProfile, Depends(get_current_user)],
) -> UserProfileViewModel:
    """
    Returns the caller's profile as stored in the user repository.
    """
    return UserProfileViewModel(
        id=current_user.id,
        email=current_user.email,
        username=current_user.username,
        first_name=current_user.first_name,
        last_name=current_user.last_name,
        roles=current_user.roles,
        permissions=current_user.permissions,
        is_active=current_user.is_active,
        is_verified=current_user.is_verified,
    )


@router.post("/change-password", response_model=SuccessResponse)
async def change_password(
    data: ChangePasswordModel,
    current_user: Annotated[UserProfile, Depends(get_current_user)],
    use_case: Annotated[ChangePasswordUseCase, Depends(get_change_password_use_case)],
) -> SuccessResponse:
    """
    Updates the user password and signs the user out everywhere.
    """
    return await use_case.execute(user=current_user, data=data)
