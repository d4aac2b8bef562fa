import logging
from typing import List, Optional

from sqlalchemy import delete, exists, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from common.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from constants.roles import ADMIN, MEMBER, WORKSPACE_ROLES
from models.inventory_item import InventoryItem
from models.purchase_order import PurchaseOrder, PurchaseOrderItem
from models.supplier import Supplier
from models.user import User
from models.workspace import Workspace, WorkspaceInvitation, WorkspaceMember
from security.workspace_access import IdLike, authorize_workspace, get_user_workspace_role, to_uuid

logger = logging.getLogger(__name__)

LAST_ADMIN_MESSAGE = "Cannot remove the last admin of a workspace."


def default_workspace_name(display_name: str) -> str:
    return f"{display_name}'s Workspace"


def admin_membership(workspace_id, user_id) -> WorkspaceMember:
    """
    Membership row granting the workspace creator the admin role.
    """
    return WorkspaceMember(workspace_id=workspace_id, user_id=user_id, role=ADMIN)


class WorkspaceService:
    @staticmethod
    async def create_workspace(db: AsyncSession, name: str, creator_id: IdLike) -> Workspace:
        """
        Create a workspace and make its creator the admin, atomically.
        If the membership insert fails the workspace insert is rolled back with it.
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Workspace name is required.")
        creator_uuid = to_uuid(creator_id, "user id")
        if await db.get(User, creator_uuid) is None:
            raise AuthorizationError("Only authenticated users can create workspaces.")

        workspace = Workspace(name=name, created_by=creator_uuid)
        db.add(workspace)
        try:
            await db.flush()
            db.add(admin_membership(workspace.id, creator_uuid))
            await db.commit()
        except IntegrityError as exc:
            await db.rollback()
            raise ConflictError("Could not create workspace.") from exc
        except Exception:
            await db.rollback()
            logger.exception("Workspace creation rolled back for user %s", creator_uuid)
            raise

        await db.refresh(workspace)
        logger.info("Workspace %s created by %s", workspace.id, creator_uuid)
        return workspace

    @staticmethod
    async def list_user_workspaces(db: AsyncSession, user_id: IdLike) -> List[Workspace]:
        stmt = (
            select(Workspace)
            .join(WorkspaceMember, WorkspaceMember.workspace_id == Workspace.id)
            .where(WorkspaceMember.user_id == to_uuid(user_id, "user id"))
            .order_by(Workspace.created_at.asc())
        )
        res = await db.execute(stmt)
        return list(res.scalars().all())

    @staticmethod
    async def _load_workspace(db: AsyncSession, workspace_id: IdLike) -> Workspace:
        workspace = await db.get(Workspace, to_uuid(workspace_id, "workspace id"))
        if not workspace:
            raise NotFoundError("Workspace not found.")
        return workspace

    @staticmethod
    async def get_workspace(db: AsyncSession, workspace_id: IdLike, user_id: IdLike) -> Workspace:
        await authorize_workspace(db, workspace_id, user_id, MEMBER)
        return await WorkspaceService._load_workspace(db, workspace_id)

    @staticmethod
    async def update_workspace(db: AsyncSession, workspace_id: IdLike, user_id: IdLike, name: str) -> Workspace:
        await authorize_workspace(db, workspace_id, user_id, ADMIN)
        name = (name or "").strip()
        if not name:
            raise ValidationError("Workspace name is required.")
        workspace = await WorkspaceService._load_workspace(db, workspace_id)
        workspace.name = name
        await db.commit()
        await db.refresh(workspace)
        return workspace

    @staticmethod
    async def delete_workspace(db: AsyncSession, workspace_id: IdLike, user_id: IdLike) -> None:
        """
        Delete a workspace and everything it owns in one transaction.
        Children go first so the supplier RESTRICT on purchase orders never fires.
        """
        await authorize_workspace(db, workspace_id, user_id, ADMIN)
        workspace = await WorkspaceService._load_workspace(db, workspace_id)
        wid = workspace.id
        order_ids = select(PurchaseOrder.id).where(PurchaseOrder.workspace_id == wid)
        try:
            await db.execute(delete(PurchaseOrderItem).where(PurchaseOrderItem.purchase_order_id.in_(order_ids)))
            await db.execute(delete(PurchaseOrder).where(PurchaseOrder.workspace_id == wid))
            await db.execute(delete(InventoryItem).where(InventoryItem.workspace_id == wid))
            await db.execute(delete(Supplier).where(Supplier.workspace_id == wid))
            await db.execute(delete(WorkspaceInvitation).where(WorkspaceInvitation.workspace_id == wid))
            await db.execute(delete(WorkspaceMember).where(WorkspaceMember.workspace_id == wid))
            await db.execute(delete(Workspace).where(Workspace.id == wid))
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Workspace %s deleted by %s", wid, user_id)

    @staticmethod
    async def get_user_role(db: AsyncSession, workspace_id: IdLike, user_id: IdLike) -> Optional[str]:
        """
        Read-only role lookup. None means "not a member" and must be treated as deny.
        """
        return await get_user_workspace_role(db, workspace_id, user_id)

    @staticmethod
    async def list_members(db: AsyncSession, workspace_id: IdLike, user_id: IdLike) -> List[WorkspaceMember]:
        await authorize_workspace(db, workspace_id, user_id, MEMBER)
        stmt = (
            select(WorkspaceMember)
            .where(WorkspaceMember.workspace_id == to_uuid(workspace_id, "workspace id"))
            .order_by(WorkspaceMember.joined_at.asc())
        )
        res = await db.execute(stmt)
        return list(res.scalars().all())

    @staticmethod
    async def _get_membership(db: AsyncSession, workspace_id: IdLike, user_id: IdLike) -> WorkspaceMember:
        stmt = select(WorkspaceMember).where(
            WorkspaceMember.workspace_id == to_uuid(workspace_id, "workspace id"),
            WorkspaceMember.user_id == to_uuid(user_id, "user id"),
        ).execution_options(populate_existing=True)
        res = await db.execute(stmt)
        membership = res.scalar_one_or_none()
        if not membership:
            raise NotFoundError("Member not found.")
        return membership

    @staticmethod
    async def _lock_workspace(db: AsyncSession, workspace_id) -> None:
        """Row-lock the workspace so concurrent admin changes to it run one after another (no-op on SQLite)."""
        await db.execute(select(Workspace.id).where(Workspace.id == workspace_id).with_for_update())

    @staticmethod
    def _another_admin_exists(membership: WorkspaceMember):
        other = aliased(WorkspaceMember)
        return exists().where(
            other.workspace_id == membership.workspace_id,
            other.role == ADMIN,
            other.id != membership.id,
        )

    @staticmethod
    async def update_member_role(
        db: AsyncSession,
        workspace_id: IdLike,
        actor_id: IdLike,
        target_user_id: IdLike,
        new_role: str,
    ) -> WorkspaceMember:
        """
        Change a member's role. Admin-only; a no-op when the role is unchanged.
        Demoting an admin is a single conditional UPDATE that only matches while
        another admin remains, so the workspace is never left without one.
        """
        if new_role not in WORKSPACE_ROLES:
            raise ValidationError("Invalid role.")
        await authorize_workspace(db, workspace_id, actor_id, ADMIN)
        membership = await WorkspaceService._get_membership(db, workspace_id, target_user_id)
        if membership.role == new_role:
            return membership

        stmt = update(WorkspaceMember).where(WorkspaceMember.id == membership.id).values(role=new_role)
        if membership.role == ADMIN:
            await WorkspaceService._lock_workspace(db, membership.workspace_id)
            stmt = stmt.where(WorkspaceService._another_admin_exists(membership))
        res = await db.execute(stmt.execution_options(synchronize_session=False))
        if res.rowcount != 1:
            await db.rollback()
            raise ConflictError(LAST_ADMIN_MESSAGE)

        await db.commit()
        logger.info("Member %s of workspace %s is now %s", membership.user_id, membership.workspace_id, new_role)
        return await WorkspaceService._get_membership(db, workspace_id, target_user_id)

    @staticmethod
    async def remove_member(db: AsyncSession, workspace_id: IdLike, actor_id: IdLike, target_user_id: IdLike) -> None:
        """
        Remove a member. Admins may remove anyone; any member may remove themself.
        The last admin can be removed by no one, including themself: removing an admin
        is a single conditional DELETE that only matches while another admin remains.
        """
        actor_uuid = to_uuid(actor_id, "user id")
        target_uuid = to_uuid(target_user_id, "user id")
        if actor_uuid == target_uuid:
            await authorize_workspace(db, workspace_id, actor_uuid, MEMBER)
        else:
            await authorize_workspace(db, workspace_id, actor_uuid, ADMIN)

        membership = await WorkspaceService._get_membership(db, workspace_id, target_uuid)
        stmt = delete(WorkspaceMember).where(WorkspaceMember.id == membership.id)
        if membership.role == ADMIN:
            await WorkspaceService._lock_workspace(db, membership.workspace_id)
            stmt = stmt.where(WorkspaceService._another_admin_exists(membership))
        res = await db.execute(stmt.execution_options(synchronize_session=False))
        if res.rowcount != 1:
            await db.rollback()
            raise ConflictError(LAST_ADMIN_MESSAGE)

        await db.commit()
        db.expunge(membership)
        logger.info("User %s removed from workspace %s by %s", target_uuid, workspace_id, actor_uuid)
