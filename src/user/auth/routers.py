from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request, Response

from src.core.schemas import SuccessResponse
from src.main.config import config
from src.user.auth.dependencies import (
    get_access_claims,
    get_access_token,
    get_platform_info,
)
from src.user.auth.platform import PlatformInfo
from src.user.auth.schemas import (
    CreateUserModel,
    ForgotPasswordModel,
    LoginUserModel,
    RefreshTokenModel,
    ResetPasswordModel,
    TokenModel,
)
from src.user.auth.usecases.login import LoginUserUseCase, get_login_user_use_case
from src.user.auth.usecases.logout import LogoutUseCase, get_logout_use_case
from src.user.auth.usecases.logout_all import (
    LogoutAllUseCase,
    get_logout_all_use_case,
)
from src.user.auth.usecases.refresh import (
    RefreshTokensUseCase,
    get_refresh_tokens_use_case,
)
from src.user.auth.usecases.register import RegisterUseCase, get_register_use_case
from src.user.auth.usecases.reset_password_confirm import (
    ResetPasswordConfirmUseCase,
    get_reset_password_confirm_use_case,
)
from src.user.auth.usecases.reset_password_request import (
    ResetPasswordRequestUseCase,
    get_reset_password_request_use_case,
)
from src.user.auth.usecases.verify_email import (
    VerifyEmailUseCase,
    get_verify_email_use_case,
)

router = APIRouter()


@router.post("/register", status_code=201, response_model=TokenModel)
async def signup_user(
    user_form_data: CreateUserModel,
    platform: Annotated[PlatformInfo, Depends(get_platform_info)],
    use_case: Annotated[RegisterUseCase, Depends(get_register_use_case)],
) -> TokenModel:
    """
    Create a new user account and sign the user in.
    """
    return await use_case.execute(data=user_form_data, platform=platform)


@router.post("/login", response_model=TokenModel)
async def login_user(
    request: Request,
    response: Response,
    login_form_data: LoginUserModel,
    platform: Annotated[PlatformInfo, Depends(get_platform_info)],
    use_case: Annotated[LoginUserUseCase, Depends(get_login_user_use_case)],
) -> TokenModel:
    """
    Authenticate user and return tokens. Web clients also get a session cookie.
    """
    tokens = await use_case.execute(
        data=login_form_data,
        platform=platform,
        client_ip=request.client.host if request.client else None,
    )
    if tokens.session_id:
        response.set_cookie(
            config.auth.SESSION_COOKIE_NAME,
            tokens.session_id,
            max_age=config.auth.SESSION_TTL_SECONDS,
            httponly=True,
            samesite="lax",
        )
    return tokens


@router.post("/refresh", response_model=TokenModel)
async def refresh_tokens(
    data: RefreshTokenModel,
    use_case: Annotated[RefreshTokensUseCase, Depends(get_refresh_tokens_use_case)],
) -> TokenModel:
    """
    Exchange a refresh token for a new token pair. The presented token is spent.
    """
    return await use_case.execute(refresh_token=data.refresh_token)


@router.post("/logout", response_model=SuccessResponse)
async def logout(
    request: Request,
    response: Response,
    access_token: Annotated[str, Depends(get_access_token)],
    claims: Annotated[dict[str, Any], Depends(get_access_claims)],
    use_case: Annotated[LogoutUseCase, Depends(get_logout_use_case)],
) -> SuccessResponse:
    result = await use_case.execute(
        access_token=access_token,
        claims=claims,
        session_id=request.cookies.get(config.auth.SESSION_COOKIE_NAME),
    )
    response.delete_cookie(config.auth.SESSION_COOKIE_NAME)
    return result


@router.post("/logout-all", response_model=SuccessResponse)
async def logout_all(
    response: Response,
    access_token: Annotated[str, Depends(get_access_token)],
    claims: Annotated[dict[str, Any], Depends(get_access_claims)],
    use_case: Annotated[LogoutAllUseCase, Depends(get_logout_all_use_case)],
) -> SuccessResponse:
    result = await use_case.execute(access_token=access_token, claims=claims)
    response.delete_cookie(config.auth.SESSION_COOKIE_NAME)
    return result


@router.post("/forgot-password", response_model=SuccessResponse)
async def send_reset_password_request(
    data: ForgotPasswordModel,
    use_case: Annotated[
        ResetPasswordRequestUseCase, Depends(get_reset_password_request_use_case)
    ],
) -> SuccessResponse:
    return await use_case.execute(data=data)


@router.post("/reset-password", response_model=SuccessResponse)
async def confirm_reset_password_request(
    data: ResetPasswordModel,
    use_case: Annotated[
        ResetPasswordConfirmUseCase, Depends(get_reset_password_confirm_use_case)
    ],
) -> SuccessResponse:
    return await use_case.execute(data=data)


@router.get("/verify-email", response_model=SuccessResponse)
async def verify_email(
    token: str,
    use_case: Annotated[VerifyEmailUseCase, Depends(get_verify_email_use_case)],
) -> SuccessResponse:
    """
    Verifies the user's email using the provided token.
    """
    return await use_case.execute(token=token)
