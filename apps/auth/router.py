from typing import Dict

from fastapi import APIRouter, Depends, Response, status
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from apps.auth.schemas import (
    ProfileOut,
    ProfileUpdate,
    RefreshRequest,
    RegisterResponse,
    TokenPair,
    TokenResponse,
    UserLogin,
    UserRegister,
)
from apps.auth.service import authenticate_user, get_profile, refresh_tokens, register_user, update_profile
from apps.auth.utils import serialize_profile
from common.exceptions import AuthenticationError
from models.base import get_db
from models.user import User
from security.auth_backend import get_current_active_user
from settings.config import get_settings

router = APIRouter(prefix="/api/auth", tags=["Auth"])


def _set_auth_cookies(response: Response, tokens: Dict[str, str]) -> None:
    settings = get_settings()
    if not settings.ENABLE_COOKIE_AUTH:
        return
    samesite = "strict" if settings.is_production else "lax"
    response.set_cookie(
        key="access_token",
        value=tokens["token"],
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite=samesite,
        domain=settings.COOKIE_DOMAIN,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )
    response.set_cookie(
        key="refresh_token",
        value=tokens["refreshToken"],
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite=samesite,
        domain=settings.COOKIE_DOMAIN,
        max_age=settings.REFRESH_TOKEN_EXPIRE_MINUTES * 60,
    )


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(payload: UserRegister, db: AsyncSession = Depends(get_db)):
    """
    Register a new user.
    - Validates unique email
    - Validates password strength and confirmation
    - Creates the profile, a default workspace and the admin membership in the same transaction
    """
    profile, workspace = await register_user(db, payload)
    return RegisterResponse(profile=serialize_profile(profile), workspaceId=str(workspace.id))


@router.post("/login", response_model=TokenResponse)
async def login(payload: UserLogin, response: Response, db: AsyncSession = Depends(get_db)):
    """
    Login with email and password to receive access + refresh tokens.
    Optionally also sets HttpOnly secure cookies when enabled via config.
    """
    tokens, profile = await authenticate_user(db, payload)
    _set_auth_cookies(response, tokens)
    return TokenResponse(token=tokens["token"], refreshToken=tokens["refreshToken"], profile=serialize_profile(profile))


@router.post("/refresh", response_model=TokenPair)
async def refresh(payload: RefreshRequest, response: Response, db: AsyncSession = Depends(get_db)):
    tokens = await refresh_tokens(db, payload.refreshToken)
    _set_auth_cookies(response, tokens)
    return TokenPair(token=tokens["token"], refreshToken=tokens["refreshToken"])


@router.post("/logout")
async def logout(response: Response):
    """
    Logout endpoint - stateless JWT needs no server action.
    If cookie-auth is enabled, clear cookies.
    """
    settings = get_settings()
    if settings.ENABLE_COOKIE_AUTH:
        response.delete_cookie("access_token", domain=settings.COOKIE_DOMAIN)
        response.delete_cookie("refresh_token", domain=settings.COOKIE_DOMAIN)
    return {"message": "Logged out successfully"}


# OAuth2 token endpoint for Swagger "Authorize" (password flow)
@router.post("/token")
async def issue_token(form_data: OAuth2PasswordRequestForm = Depends(), db: AsyncSession = Depends(get_db)):
    """
    Accepts form fields 'username' (the email) and 'password' and returns a bearer token.
    """
    try:
        credentials = UserLogin(email=form_data.username, password=form_data.password)
    except PydanticValidationError as exc:
        raise AuthenticationError("Invalid email or password.") from exc
    tokens, _ = await authenticate_user(db, credentials)
    return {"access_token": tokens["token"], "token_type": "bearer"}


@router.get("/me", response_model=ProfileOut)
async def read_me(db: AsyncSession = Depends(get_db), current_user: User = Depends(get_current_active_user)):
    profile = await get_profile(db, current_user.id)
    return serialize_profile(profile)


@router.patch("/me", response_model=ProfileOut)
async def update_me(
    payload: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    profile = await update_profile(db, current_user.id, payload)
    return serialize_profile(profile)
