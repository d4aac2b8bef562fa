import logging
from datetime import timedelta
from typing import List, Optional

import aiosmtplib
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from common.exceptions import AuthorizationError, ConflictError, ExpiredError, NotFoundError, ValidationError
from common.timeutils import as_utc, utcnow
from constants.roles import ADMIN, MEMBER, WORKSPACE_ROLES
from email_services.email_client import EmailClient
from email_services.render import render_invite_email
from models.user import Profile, User
from models.workspace import Workspace, WorkspaceInvitation, WorkspaceMember
from security.workspace_access import IdLike, authorize_workspace, to_uuid
from settings.config import get_settings

logger = logging.getLogger(__name__)


def is_expired(invitation: WorkspaceInvitation, now=None) -> bool:
    """An invitation is expired once ``expires_at`` lies in the past."""
    now = now or utcnow()
    return as_utc(invitation.expires_at) < now


class InvitationService:
    @staticmethod
    async def _member_with_email(db: AsyncSession, workspace_id, email: str) -> bool:
        stmt = (
            select(WorkspaceMember.id)
            .join(User, User.id == WorkspaceMember.user_id)
            .where(WorkspaceMember.workspace_id == workspace_id, func.lower(User.email) == email)
            .limit(1)
        )
        res = await db.execute(stmt)
        return res.scalar_one_or_none() is not None

    @staticmethod
    async def create_invitation(
        db: AsyncSession,
        workspace_id: IdLike,
        email: str,
        role: str,
        invited_by: IdLike,
    ) -> WorkspaceInvitation:
        """
        Admin-only. One pending invitation per (workspace, email); members cannot be re-invited.
        """
        if role not in WORKSPACE_ROLES:
            raise ValidationError("Invalid role.")
        await authorize_workspace(db, workspace_id, invited_by, ADMIN)
        wid = to_uuid(workspace_id, "workspace id")
        email = email.strip().lower()

        if await InvitationService._member_with_email(db, wid, email):
            raise ConflictError("This user is already a member of the workspace.")

        existing = await db.execute(
            select(WorkspaceInvitation.id).where(
                WorkspaceInvitation.workspace_id == wid,
                WorkspaceInvitation.email == email,
            )
        )
        if existing.scalar_one_or_none() is not None:
            raise ConflictError("An invitation for this email already exists.")

        settings = get_settings()
        invitation = WorkspaceInvitation(
            workspace_id=wid,
            email=email,
            role=role,
            invited_by=to_uuid(invited_by, "user id"),
            expires_at=utcnow() + timedelta(days=settings.INVITATION_EXPIRE_DAYS),
        )
        db.add(invitation)
        try:
            await db.commit()
        except IntegrityError as exc:
            await db.rollback()
            raise ConflictError("An invitation for this email already exists.") from exc
        await db.refresh(invitation)
        logger.info("Invitation %s created for %s in workspace %s", invitation.id, email, wid)
        return invitation

    @staticmethod
    async def list_invitations(db: AsyncSession, workspace_id: IdLike, user_id: IdLike) -> List[WorkspaceInvitation]:
        await authorize_workspace(db, workspace_id, user_id, MEMBER)
        stmt = (
            select(WorkspaceInvitation)
            .where(WorkspaceInvitation.workspace_id == to_uuid(workspace_id, "workspace id"))
            .order_by(WorkspaceInvitation.created_at.desc())
        )
        res = await db.execute(stmt)
        return list(res.scalars().all())

    @staticmethod
    async def list_user_invitations(db: AsyncSession, user_id: IdLike) -> List[WorkspaceInvitation]:
        """Pending, unexpired invitations addressed to the caller's email."""
        user = await db.get(User, to_uuid(user_id, "user id"))
        if not user:
            raise NotFoundError("User not found.")
        stmt = (
            select(WorkspaceInvitation)
            .where(WorkspaceInvitation.email == user.email.lower())
            .order_by(WorkspaceInvitation.created_at.desc())
        )
        res = await db.execute(stmt)
        now = utcnow()
        return [inv for inv in res.scalars().all() if not is_expired(inv, now)]

    @staticmethod
    async def _load_invitation(db: AsyncSession, invitation_id: IdLike) -> WorkspaceInvitation:
        invitation = await db.get(WorkspaceInvitation, to_uuid(invitation_id, "invitation id"))
        if not invitation:
            raise NotFoundError("Invitation not found.")
        return invitation

    @staticmethod
    async def delete_invitation(
        db: AsyncSession,
        invitation_id: IdLike,
        user_id: IdLike,
        workspace_id: Optional[IdLike] = None,
    ) -> None:
        """
        Revoke an invitation. Requires admin of the invitation's own workspace.
        """
        invitation = await InvitationService._load_invitation(db, invitation_id)
        if workspace_id is not None and invitation.workspace_id != to_uuid(workspace_id, "workspace id"):
            raise NotFoundError("Invitation not found.")
        await authorize_workspace(db, invitation.workspace_id, user_id, ADMIN)
        await db.delete(invitation)
        await db.commit()
        logger.info("Invitation %s revoked by %s", invitation_id, user_id)

    @staticmethod
    async def accept_invitation(db: AsyncSession, invitation_id: IdLike, user_id: IdLike) -> WorkspaceMember:
        """
        Join the invitation's workspace with the invited role.
        Expired invitations are refused before any membership is written;
        the membership insert and the invitation delete commit together.
        """
        invitation = await InvitationService._load_invitation(db, invitation_id)
        user = await db.get(User, to_uuid(user_id, "user id"))
        if not user:
            raise AuthorizationError("Only authenticated users can accept invitations.")
        if user.email.lower() != invitation.email.lower():
            raise AuthorizationError("This invitation was issued to a different email address.")
        if is_expired(invitation):
            logger.warning("Expired invitation %s presented by %s", invitation.id, user.id)
            raise ExpiredError("This invitation has expired.")

        existing = await db.execute(
            select(WorkspaceMember.id).where(
                WorkspaceMember.workspace_id == invitation.workspace_id,
                WorkspaceMember.user_id == user.id,
            )
        )
        if existing.scalar_one_or_none() is not None:
            raise ConflictError("You are already a member of this workspace.")

        membership = WorkspaceMember(workspace_id=invitation.workspace_id, user_id=user.id, role=invitation.role)
        db.add(membership)
        try:
            await db.flush()
            await db.delete(invitation)
            await db.commit()
        except IntegrityError as exc:
            await db.rollback()
            raise ConflictError("You are already a member of this workspace.") from exc

        await db.refresh(membership)
        logger.info("User %s joined workspace %s as %s", user.id, membership.workspace_id, membership.role)
        return membership

    @staticmethod
    async def send_invitation_email(
        db: AsyncSession,
        invitation: WorkspaceInvitation,
        inviter: User,
        origin: str,
        client: Optional[EmailClient] = None,
    ) -> bool:
        """
        Email the invitee a link to accept. Returns False when SMTP is not configured or delivery fails;
        the invitation itself is never rolled back because of email problems.
        """
        client = client or EmailClient()
        if not client.is_configured():
            logger.info("SMTP not configured; invitation %s not emailed", invitation.id)
            return False

        settings = get_settings()
        workspace = await db.get(Workspace, invitation.workspace_id)
        res = await db.execute(select(Profile.full_name).where(Profile.user_id == inviter.id))
        inviter_name = res.scalar_one_or_none() or inviter.email
        accept_url = f"{origin.rstrip('/')}{settings.INVITE_ACCEPT_PATH}/{invitation.id}"
        html = render_invite_email(
            recipient_email=invitation.email,
            inviter_name=inviter_name,
            inviter_email=inviter.email,
            workspace_name=workspace.name if workspace else "",
            role=invitation.role,
            company_name=settings.COMPANY_NAME,
            product_name=settings.PRODUCT_NAME,
            accept_url=accept_url,
            expires_at=as_utc(invitation.expires_at),
        )
        subject = f"You're invited to {workspace.name if workspace else settings.PRODUCT_NAME}"
        try:
            await client.send_email(to=[invitation.email], subject=subject, html_body=html, reply_to=inviter.email)
        except (aiosmtplib.SMTPException, OSError):
            logger.exception("Failed to send invitation email for %s", invitation.id)
            return False
        return True
