import uuid

from sqlalchemy import CheckConstraint, Column, String, Text, Integer, Numeric, DateTime, ForeignKey, Uuid, func
from sqlalchemy.orm import relationship

from common.timeutils import utcnow
from constants.statuses import DRAFT
from models.base import Base


class PurchaseOrder(Base):
    """
    Purchase order raised against one supplier of the workspace.
    The supplier reference is RESTRICT: a supplier cannot be deleted while orders point at it.
    Status is free-standing; the order total is derived from the lines and never stored.
    """

    __tablename__ = "purchase_orders"
    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'submitted', 'approved', 'ordered', 'received', 'cancelled')",
            name="status_valid",
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    workspace_id = Column(Uuid, ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True)
    supplier_id = Column(Uuid, ForeignKey("suppliers.id", ondelete="RESTRICT"), nullable=False, index=True)
    status = Column(String(32), nullable=False, default=DRAFT, server_default=DRAFT, index=True)
    notes = Column(Text, nullable=True)
    order_date = Column(DateTime(timezone=True), nullable=True)
    expected_date = Column(DateTime(timezone=True), nullable=True)
    created_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now())

    supplier = relationship("Supplier", lazy="selectin")
    items = relationship(
        "PurchaseOrderItem",
        back_populates="purchase_order",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="PurchaseOrderItem.position",
        lazy="selectin",
    )


class PurchaseOrderItem(Base):
    """
    Line of a purchase order. ``inventory_item_id`` is a soft back-reference (nulled when the
    catalog item is deleted) so snapshot lines outlive the item they were copied from.
    """

    __tablename__ = "purchase_order_items"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="quantity_positive"),
        CheckConstraint("unit_price IS NULL OR unit_price >= 0", name="unit_price_non_negative"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    purchase_order_id = Column(Uuid, ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False, index=True)
    inventory_item_id = Column(Uuid, ForeignKey("inventory_items.id", ondelete="SET NULL"), nullable=True, index=True)
    item_name = Column(String(255), nullable=False)
    quantity = Column(Integer, nullable=False, default=1, server_default="1")
    unit_price = Column(Numeric(10, 2), nullable=True)
    # insertion order within the order; lines are always read back sorted by it
    position = Column(Integer, nullable=False, default=0, server_default="0")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())

    purchase_order = relationship("PurchaseOrder", back_populates="items", lazy="raise")
