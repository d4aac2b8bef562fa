import uuid

from sqlalchemy import CheckConstraint, Column, String, Text, Integer, Numeric, DateTime, ForeignKey, Uuid, func
from sqlalchemy.orm import relationship

from common.timeutils import utcnow
from models.base import Base


class InventoryItem(Base):
    """
    Stock-keeping item scoped to a workspace.
    Low stock is derived (quantity <= min_quantity) and never stored.
    """

    __tablename__ = "inventory_items"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="quantity_non_negative"),
        CheckConstraint("min_quantity >= 0", name="min_quantity_non_negative"),
        CheckConstraint("unit_price IS NULL OR unit_price >= 0", name="unit_price_non_negative"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    workspace_id = Column(Uuid, ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True)
    supplier_id = Column(Uuid, ForeignKey("suppliers.id", ondelete="SET NULL"), nullable=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    sku = Column(String(100), nullable=True)
    description = Column(Text, nullable=True)
    quantity = Column(Integer, nullable=False, default=0, server_default="0")
    min_quantity = Column(Integer, nullable=False, default=0, server_default="0")
    unit_price = Column(Numeric(10, 2), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now())

    supplier = relationship("Supplier", lazy="selectin")
