from datetime import datetime
from typing import List, Literal, Optional
from pydantic import BaseModel, Field, constr

from constants.roles import ADMIN, MEMBER


RoleName = Literal[ADMIN, MEMBER]


class WorkspaceCreate(BaseModel):
    name: constr(strip_whitespace=True, min_length=1, max_length=255)


class WorkspaceUpdate(BaseModel):
    name: constr(strip_whitespace=True, min_length=1, max_length=255)


class WorkspaceOut(BaseModel):
    id: str
    name: str
    created_by: Optional[str] = Field(default=None, alias="createdBy")
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")
    role: Optional[RoleName] = None

    model_config = {"populate_by_name": True}


class MemberProfile(BaseModel):
    id: str
    email: str
    full_name: Optional[str] = Field(default=None, alias="fullName")
    avatar_url: Optional[str] = Field(default=None, alias="avatarUrl")

    model_config = {"populate_by_name": True}


class MemberOut(BaseModel):
    """
    Shape required by the Team table UI.
    """
    id: str
    workspace_id: str = Field(alias="workspaceId")
    user_id: str = Field(alias="userId")
    role: RoleName
    joined_at: datetime = Field(alias="joinedAt")
    profile: Optional[MemberProfile] = None

    model_config = {"populate_by_name": True}


class UpdateMemberRoleRequest(BaseModel):
    role: RoleName


class RoleOut(BaseModel):
    """
    Caller's role in a workspace; null means "not a member".
    """
    workspace_id: str = Field(alias="workspaceId")
    role: Optional[RoleName] = None

    model_config = {"populate_by_name": True}


class RolesResponse(BaseModel):
    roles: List[RoleName]
