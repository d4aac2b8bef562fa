import uuid

from sqlalchemy import CheckConstraint, Column, String, DateTime, ForeignKey, Uuid, UniqueConstraint, func
from sqlalchemy.orm import relationship

from common.timeutils import utcnow
from constants.roles import MEMBER
from models.base import Base


class Workspace(Base):
    """
    Tenant boundary. Every supplier, inventory item and purchase order belongs to exactly one workspace.
    """

    __tablename__ = "workspaces"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    name = Column(String(255), nullable=False)
    created_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now())


class WorkspaceMember(Base):
    """
    The (workspace, user, role) relation granting access.
    At most one row per (workspace_id, user_id).
    """

    __tablename__ = "workspace_members"
    __table_args__ = (
        UniqueConstraint("workspace_id", "user_id", name="uq_workspace_members_workspace_user"),
        CheckConstraint("role IN ('admin', 'member')", name="role_valid"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    workspace_id = Column(Uuid, ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(16), nullable=False, default=MEMBER, server_default=MEMBER)
    joined_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())

    profile = relationship(
        "Profile",
        primaryjoin="foreign(WorkspaceMember.user_id) == Profile.user_id",
        viewonly=True,
        uselist=False,
        lazy="selectin",
    )


class WorkspaceInvitation(Base):
    """
    Pending invitation of an email address into a workspace.
    At most one pending invitation per (workspace_id, email); expiry is checked at acceptance.
    """

    __tablename__ = "workspace_invitations"
    __table_args__ = (
        UniqueConstraint("workspace_id", "email", name="uq_workspace_invitations_workspace_email"),
        CheckConstraint("role IN ('admin', 'member')", name="role_valid"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    workspace_id = Column(Uuid, ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True)
    email = Column(String(255), nullable=False)
    role = Column(String(16), nullable=False, default=MEMBER, server_default=MEMBER)
    invited_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    expires_at = Column(DateTime(timezone=True), nullable=False)
