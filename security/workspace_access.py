"""
Workspace-scoped authorization.

These three lookups are the single source of truth for access control:

- ``get_user_workspace_role``: the caller's role in a workspace, or None
- ``is_workspace_member``: any role
- ``is_workspace_admin``: role == admin

``authorize_workspace`` wraps them into a deny-by-default check used by every
service operation; ``require_workspace_role`` exposes the same check as a
FastAPI dependency for route entry points.
"""

import logging
import uuid
from typing import Optional, Union

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from common.exceptions import AuthorizationError, ValidationError
from constants.roles import ADMIN, MEMBER, WORKSPACE_ROLES
from models.base import get_db
from models.user import User
from models.workspace import WorkspaceMember
from security.auth_backend import get_current_active_user

logger = logging.getLogger(__name__)

IdLike = Union[str, uuid.UUID]


def to_uuid(value: IdLike, field: str = "id") -> uuid.UUID:
    """Parse an id from a path or payload; malformed ids are a validation failure, not a 500."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Invalid {field}.") from exc


async def get_user_workspace_role(db: AsyncSession, workspace_id: IdLike, user_id: IdLike) -> Optional[str]:
    """
    Return the user's role in the workspace, or None when the user is not a member.
    None never stands for a default role.
    """
    stmt = (
        select(WorkspaceMember.role)
        .where(
            WorkspaceMember.workspace_id == to_uuid(workspace_id, "workspace id"),
            WorkspaceMember.user_id == to_uuid(user_id, "user id"),
        )
        .limit(1)
    )
    res = await db.execute(stmt)
    return res.scalar_one_or_none()


async def is_workspace_member(db: AsyncSession, workspace_id: IdLike, user_id: IdLike) -> bool:
    return await get_user_workspace_role(db, workspace_id, user_id) in WORKSPACE_ROLES


async def is_workspace_admin(db: AsyncSession, workspace_id: IdLike, user_id: IdLike) -> bool:
    return await get_user_workspace_role(db, workspace_id, user_id) == ADMIN


def role_satisfies(role: Optional[str], required_role: str) -> bool:
    """admin satisfies every requirement; member satisfies only member; an absent role satisfies nothing."""
    if role is None:
        return False
    if required_role == ADMIN:
        return role == ADMIN
    return role in WORKSPACE_ROLES


async def authorize_workspace(
    db: AsyncSession,
    workspace_id: IdLike,
    user_id: IdLike,
    required_role: str = MEMBER,
) -> str:
    """
    Deny-by-default check of (principal, workspace, required role).
    Returns the caller's role when allowed, raises AuthorizationError otherwise.
    """
    role = await get_user_workspace_role(db, workspace_id, user_id)
    if not role_satisfies(role, required_role):
        logger.warning(
            "Denied workspace access: user=%s workspace=%s role=%s required=%s",
            user_id, workspace_id, role, required_role,
        )
        if role is None:
            raise AuthorizationError("You are not a member of this workspace.")
        raise AuthorizationError("Only workspace admins can perform this action.")
    return role


def require_workspace_role(required_role: str = MEMBER):
    """
    Dependency factory enforcing a workspace role for routes carrying a ``workspace_id`` path parameter.
    Usage:
      @router.post("", dependencies=[Depends(require_workspace_role(ADMIN))])
    """

    async def _dependency(
        workspace_id: str,
        db: AsyncSession = Depends(get_db),
        current_user: User = Depends(get_current_active_user),
    ) -> str:
        return await authorize_workspace(db, workspace_id, current_user.id, required_role)

    return _dependency
