from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from apps.workspaces.schemas import RoleName
from constants.roles import MEMBER


class InvitationCreate(BaseModel):
    email: EmailStr
    role: RoleName = MEMBER


class InvitationOut(BaseModel):
    id: str
    workspace_id: str = Field(alias="workspaceId")
    email: EmailStr
    role: RoleName
    invited_by: Optional[str] = Field(default=None, alias="invitedBy")
    created_at: datetime = Field(alias="createdAt")
    expires_at: datetime = Field(alias="expiresAt")

    model_config = {"populate_by_name": True}


class AcceptInvitationResponse(BaseModel):
    """
    Result of accepting an invitation: the workspace joined and the granted role.
    """
    workspace_id: str = Field(alias="workspaceId")
    role: RoleName

    model_config = {"populate_by_name": True}
