from typing import List

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from apps.invitations.schemas import AcceptInvitationResponse, InvitationCreate, InvitationOut
from apps.invitations.service import InvitationService
from constants.roles import ADMIN, MEMBER
from models.base import get_db
from models.user import User
from models.workspace import WorkspaceInvitation
from security.auth_backend import get_current_active_user
from security.workspace_access import require_workspace_role
from settings.config import get_settings


router = APIRouter(prefix="/api", tags=["Invitations"])


def _serialize_invitation(inv: WorkspaceInvitation) -> InvitationOut:
    return InvitationOut(
        id=str(inv.id),
        workspaceId=str(inv.workspace_id),
        email=inv.email,
        role=inv.role,
        invitedBy=str(inv.invited_by) if inv.invited_by else None,
        createdAt=inv.created_at,
        expiresAt=inv.expires_at,
    )


@router.post(
    "/workspaces/{workspace_id}/invitations",
    response_model=InvitationOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_workspace_role(ADMIN))],
)
async def create_invitation(
    workspace_id: str,
    payload: InvitationCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    """
    ADMIN-only. Creates a pending invitation and emails the invitee when SMTP is configured.
    """
    invitation = await InvitationService.create_invitation(db, workspace_id, payload.email, payload.role, current_user.id)

    # Build accept URL from request origin
    settings = get_settings()
    origin = request.headers.get("origin") or settings.FRONTEND_ORIGIN_DEFAULT or str(request.base_url)
    await InvitationService.send_invitation_email(db, invitation, current_user, origin)
    return _serialize_invitation(invitation)


@router.get(
    "/workspaces/{workspace_id}/invitations",
    response_model=List[InvitationOut],
    dependencies=[Depends(require_workspace_role(MEMBER))],
)
async def list_invitations(
    workspace_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    invitations = await InvitationService.list_invitations(db, workspace_id, current_user.id)
    return [_serialize_invitation(i) for i in invitations]


@router.delete(
    "/workspaces/{workspace_id}/invitations/{invitation_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_workspace_role(ADMIN))],
)
async def delete_invitation(
    workspace_id: str,
    invitation_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    await InvitationService.delete_invitation(db, invitation_id, current_user.id, workspace_id)
    return None


@router.get("/invitations", response_model=List[InvitationOut])
async def list_my_invitations(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    invitations = await InvitationService.list_user_invitations(db, current_user.id)
    return [_serialize_invitation(i) for i in invitations]


@router.post("/invitations/{invitation_id}/accept", response_model=AcceptInvitationResponse)
async def accept_invitation(
    invitation_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
):
    membership = await InvitationService.accept_invitation(db, invitation_id, current_user.id)
    return AcceptInvitationResponse(workspaceId=str(membership.workspace_id), role=membership.role)
