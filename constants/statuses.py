"""
Purchase order status constants.
Any status may be set to any other by an admin; there is no transition graph.
"""

DRAFT = "draft"
SUBMITTED = "submitted"
APPROVED = "approved"
ORDERED = "ordered"
RECEIVED = "received"
CANCELLED = "cancelled"

PURCHASE_ORDER_STATUSES = (DRAFT, SUBMITTED, APPROVED, ORDERED, RECEIVED, CANCELLED)
