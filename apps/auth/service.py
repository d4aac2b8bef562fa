import logging
from typing import Dict, Optional, Tuple

from jose import JWTError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from apps.auth.schemas import ProfileUpdate, UserLogin, UserRegister
from apps.workspaces.service import admin_membership, default_workspace_name
from common.exceptions import AuthenticationError, ConflictError, NotFoundError, ValidationError
from common.hashing import hash_password, verify_password
from common.jwt import REFRESH, create_access_refresh_tokens, verify_token
from models.user import Profile, User
from models.workspace import Workspace, WorkspaceMember
from security.password_rules import assert_valid_new_password
from security.workspace_access import to_uuid

logger = logging.getLogger(__name__)


async def onboard_user(
    db: AsyncSession,
    user: User,
    full_name: Optional[str] = None,
) -> Tuple[Profile, Workspace, WorkspaceMember]:
    """
    Create the profile, the default workspace and the admin membership of a newly registered user.
    Only flushes: the caller owns the transaction, so all rows commit together or not at all.
    """
    existing = await db.execute(select(Profile.id).where(Profile.user_id == user.id))
    if existing.scalar_one_or_none() is not None:
        raise ConflictError("Profile already exists for this user.")

    display_name = full_name or user.email.split("@")[0]
    profile = Profile(user_id=user.id, email=user.email, full_name=display_name)
    workspace = Workspace(name=default_workspace_name(display_name), created_by=user.id)
    db.add_all([profile, workspace])
    await db.flush()

    membership = admin_membership(workspace.id, user.id)
    db.add(membership)
    await db.flush()
    return profile, workspace, membership


async def register_user(db: AsyncSession, payload: UserRegister) -> Tuple[Profile, Workspace]:
    """
    Sign up a new identity and onboard it in a single transaction.
    """
    assert_valid_new_password(payload.password, payload.confirm_password)
    email = payload.email.lower()

    res = await db.execute(select(User.id).where(User.email == email))
    if res.scalar_one_or_none() is not None:
        raise ConflictError("Email already in use.")

    user = User(email=email, password_hash=hash_password(payload.password))
    db.add(user)
    try:
        await db.flush()
        profile, workspace, _ = await onboard_user(db, user, payload.full_name)
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise ConflictError("Email already in use.") from exc
    except Exception:
        await db.rollback()
        logger.exception("Onboarding failed for %s; nothing was persisted", email)
        raise

    await db.refresh(profile)
    logger.info("Registered user %s with default workspace %s", user.id, workspace.id)
    return profile, workspace


async def _get_profile(db: AsyncSession, user_id) -> Profile:
    res = await db.execute(select(Profile).where(Profile.user_id == to_uuid(user_id, "user id")))
    profile = res.scalar_one_or_none()
    if not profile:
        raise NotFoundError("Profile not found.")
    return profile


async def authenticate_user(db: AsyncSession, payload: UserLogin) -> Tuple[Dict[str, str], Profile]:
    """
    Authenticate a user by email/password and return a token pair and the profile.
    """
    res = await db.execute(select(User).where(User.email == payload.email.lower()))
    user = res.scalar_one_or_none()
    if not user or not verify_password(payload.password, user.password_hash):
        raise AuthenticationError("Invalid email or password.")
    profile = await _get_profile(db, user.id)
    tokens = create_access_refresh_tokens(str(user.id), extra_claims={"email": user.email})
    return tokens, profile


async def refresh_tokens(db: AsyncSession, refresh_token: str) -> Dict[str, str]:
    """
    Issue a new access/refresh token pair from a valid refresh token.
    """
    try:
        claims = verify_token(refresh_token, expected_token_type=REFRESH)
        user_id = to_uuid(claims.get("sub"), "token subject")
    except (JWTError, ValidationError) as exc:
        raise AuthenticationError("Invalid or expired refresh token.") from exc
    user = await db.get(User, user_id)
    if not user:
        raise AuthenticationError("Invalid or expired refresh token.")
    return create_access_refresh_tokens(str(user.id), extra_claims={"email": user.email})


async def get_profile(db: AsyncSession, user_id) -> Profile:
    return await _get_profile(db, user_id)


async def update_profile(db: AsyncSession, user_id, payload: ProfileUpdate) -> Profile:
    """
    Update the caller's own profile. Only fields present in the payload change.
    """
    profile = await _get_profile(db, user_id)
    updates = payload.model_dump(exclude_unset=True)
    for field, value in updates.items():
        if isinstance(value, str):
            value = value.strip() or None
        setattr(profile, field, value)
    await db.commit()
    await db.refresh(profile)
    return profile
