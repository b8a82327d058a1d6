"""Authentication API routes."""

from typing import Annotated

from fastapi import APIRouter, Cookie, Depends, HTTPException, Response, status
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from taskboard.auth.schemas import LoginResponse, UserLogin, UserRegister, UserResponse
from taskboard.auth.service import AuthService, get_auth_service
from taskboard.auth.utils import INVITE_REDIRECT_COOKIE, safe_redirect_path
from taskboard.config import get_settings
from taskboard.dependencies import CurrentUser, get_db
from taskboard.errors import Unauthorized

router = APIRouter()
settings = get_settings()


def get_service(db: Annotated[Session, Depends(get_db)]) -> AuthService:
    """Get auth service dependency."""
    return get_auth_service(db)


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    data: UserRegister,
    service: Annotated[AuthService, Depends(get_service)],
):
    """Register a new user.

    Raises:
        HTTPException: If the email is already registered.
    """
    try:
        return service.register(data)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/login", response_model=LoginResponse)
async def login(
    data: UserLogin,
    service: Annotated[AuthService, Depends(get_service)],
    response: Response,
    invite_redirect: Annotated[str | None, Cookie(alias=INVITE_REDIRECT_COOKIE)] = None,
):
    """Login with email and password.

    If the user was sent to login from an invitation link, the stored link is
    returned as ``redirect_to`` and the cookie is cleared so the client can
    resume accepting the invitation.

    Args:
        data: Login credentials.
        service: Auth service.
        response: FastAPI response object.
        invite_redirect: Invitation path stored before the login redirect.

    Returns:
        LoginResponse: Token, message and optional resume path.

    Raises:
        Unauthorized: If credentials are invalid.
    """
    user, token, message = service.login(data)

    if not user or not token:
        raise Unauthorized(message)

    response.set_cookie(
        key="access_token",
        value=token.access_token,
        httponly=True,
        secure=settings.environment == "production",
        samesite="lax",
        max_age=settings.access_token_expire_minutes * 60,
        path="/",
    )

    redirect_to = safe_redirect_path(invite_redirect)
    if invite_redirect is not None:
        response.delete_cookie(INVITE_REDIRECT_COOKIE, path="/")

    return LoginResponse(message=message, token=token, redirect_to=redirect_to)


@router.post("/logout")
async def logout():
    """Logout user by clearing cookies."""
    response = RedirectResponse(url="/login", status_code=status.HTTP_303_SEE_OTHER)
    response.delete_cookie("access_token", path="/")
    return response


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(current_user: CurrentUser):
    """Get current user information."""
    return current_user
