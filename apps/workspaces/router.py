from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from apps.workspaces.schemas import (
    MemberOut,
    MemberProfile,
    RoleOut,
    RolesResponse,
    UpdateMemberRoleRequest,
    WorkspaceCreate,
    WorkspaceOut,
    WorkspaceUpdate,
)
from apps.workspaces.service import WorkspaceService
from constants.roles import ADMIN, MEMBER
from models.base import get_db
from models.user import User
from models.workspace import Workspace, WorkspaceMember
from security.auth_backend import get_current_active_user
from security.workspace_access import require_workspace_role


router = APIRouter(prefix="/api/workspaces", tags=["Workspaces"])


def _serialize_workspace(w: Workspace, role: Optional[str] = None) -> WorkspaceOut:
    return WorkspaceOut(
        id=str(w.id),
        name=w.name,
        createdBy=str(w.created_by) if w.created_by else None,
        createdAt=w.created_at,
        updatedAt=w.updated_at,
        role=role,
    )


def _serialize_member(m: WorkspaceMember) -> MemberOut:
    profile = None
    if m.profile is not None:
        profile = MemberProfile(
            id=str(m.profile.id),
            email=m.profile.email,
            fullName=m.profile.full_name,
            avatarUrl=m.profile.avatar_url,
        )
    return MemberOut(
        id=str(m.id),
        workspaceId=str(m.workspace_id),
        userId=str(m.user_id),
        role=m.role,
        joinedAt=m.joined_at,
        profile=profile,
    )


@router.get("/roles", response_model=RolesResponse)
async def list_roles():
    """
    Helper endpoint for client dropdowns.
    """
    return RolesResponse(roles=[ADMIN, MEMBER])


@router.post("", response_model=WorkspaceOut, status_code=status.HTTP_201_CREATED)
async def create_workspace(
    payload: WorkspaceCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    workspace = await WorkspaceService.create_workspace(db, payload.name, current_user.id)
    return _serialize_workspace(workspace, ADMIN)


@router.get("", response_model=List[WorkspaceOut])
async def list_workspaces(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    workspaces = await WorkspaceService.list_user_workspaces(db, current_user.id)
    return [
        _serialize_workspace(w, await WorkspaceService.get_user_role(db, w.id, current_user.id))
        for w in workspaces
    ]


@router.get("/{workspace_id}", response_model=WorkspaceOut)
async def get_workspace(
    workspace_id: str,
    role: str = Depends(require_workspace_role(MEMBER)),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    workspace = await WorkspaceService.get_workspace(db, workspace_id, current_user.id)
    return _serialize_workspace(workspace, role)


@router.patch("/{workspace_id}", response_model=WorkspaceOut, dependencies=[Depends(require_workspace_role(ADMIN))])
async def update_workspace(
    workspace_id: str,
    payload: WorkspaceUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    workspace = await WorkspaceService.update_workspace(db, workspace_id, current_user.id, payload.name)
    return _serialize_workspace(workspace, ADMIN)


@router.delete("/{workspace_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(require_workspace_role(ADMIN))])
async def delete_workspace(
    workspace_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    await WorkspaceService.delete_workspace(db, workspace_id, current_user.id)
    return None


@router.get("/{workspace_id}/role", response_model=RoleOut)
async def get_my_role(
    workspace_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """
    Caller's role in the workspace; ``role`` is null when the caller is not a member.
    """
    role = await WorkspaceService.get_user_role(db, workspace_id, current_user.id)
    return RoleOut(workspaceId=workspace_id, role=role)


@router.get("/{workspace_id}/members", response_model=List[MemberOut], dependencies=[Depends(require_workspace_role(MEMBER))])
async def list_members(
    workspace_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    members = await WorkspaceService.list_members(db, workspace_id, current_user.id)
    return [_serialize_member(m) for m in members]


@router.patch(
    "/{workspace_id}/members/{user_id}/role",
    response_model=MemberOut,
    dependencies=[Depends(require_workspace_role(ADMIN))],
)
async def update_member_role(
    workspace_id: str,
    user_id: str,
    payload: UpdateMemberRoleRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    membership = await WorkspaceService.update_member_role(db, workspace_id, current_user.id, user_id, payload.role)
    return _serialize_member(membership)


# Members may remove themselves; removing someone else is checked for admin in the service
@router.delete(
    "/{workspace_id}/members/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_workspace_role(MEMBER))],
)
async def remove_member(
    workspace_id: str,
    user_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    await WorkspaceService.remove_member(db, workspace_id, current_user.id, user_id)
    return None
