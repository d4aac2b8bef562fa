import uuid

from sqlalchemy import Column, String, DateTime, ForeignKey, Uuid, func

from common.timeutils import utcnow
from models.base import Base


class Supplier(Base):
    """
    Supplier scoped to a workspace.
    Deleting a supplier detaches referencing inventory items and is refused while purchase orders reference it.
    """

    __tablename__ = "suppliers"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    workspace_id = Column(Uuid, ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True)
    company_name = Column(String(255), nullable=False, index=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    website = Column(String(500), nullable=True)
    address = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now())
