from __future__ import annotations

from ..extensions import db
from cashdesk.time_utils import to_utc_z


ORDER_PENDING = "pending"
ORDER_COMPLETED = "completed"
ORDER_CANCELLED = "cancelled"

PAYMENT_METHODS = ("cash", "credit_card", "qr_code")
ORDER_TYPES = ("dine_in", "takeaway", "delivery")

PAYMENT_UNPAID = "unpaid"
PAYMENT_PAID = "paid"
PAYMENT_REFUNDED = "refunded"


class Order(db.Model):
    """
    Customer order committed at checkout.

    LIFECYCLE:
    - pending: row written, items not yet confirmed (never visible after commit)
    - completed: items durably written, payment taken
    - cancelled: completed order reversed, refund posted if a drawer was given

    Amounts are captured at checkout and never recomputed from the catalog.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_cashier_status_created", "cashier_id", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    cashier_id = db.Column(db.Integer, nullable=False, index=True)
    shift_id = db.Column(db.Integer, db.ForeignKey("shifts.id"), nullable=True, index=True)

    order_type = db.Column(db.String(16), nullable=False, default="dine_in")
    table_number = db.Column(db.String(16), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=ORDER_PENDING, index=True)

    # Pricing (all amounts in cents)
    subtotal_cents = db.Column(db.Integer, nullable=False)
    tax_amount_cents = db.Column(db.Integer, nullable=False)
    discount_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_amount_cents = db.Column(db.Integer, nullable=False)

    payment_method = db.Column(db.String(16), nullable=False)
    payment_status = db.Column(db.String(16), nullable=False, default=PAYMENT_UNPAID, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Cancellation audit trail
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_by = db.Column(db.Integer, nullable=True)
    cancel_reason = db.Column(db.String(255), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "cashier_id": self.cashier_id,
            "shift_id": self.shift_id,
            "order_type": self.order_type,
            "table_number": self.table_number,
            "status": self.status,
            "subtotal_cents": self.subtotal_cents,
            "tax_amount_cents": self.tax_amount_cents,
            "discount_amount_cents": self.discount_amount_cents,
            "total_amount_cents": self.total_amount_cents,
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "created_at": to_utc_z(self.created_at),
            "completed_at": to_utc_z(self.completed_at) if self.completed_at else None,
            "cancelled_at": to_utc_z(self.cancelled_at) if self.cancelled_at else None,
            "cancelled_by": self.cancelled_by,
            "cancel_reason": self.cancel_reason,
            "version_id": self.version_id,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class OrderItem(db.Model):
    """Line item on an order, priced at the moment of sale."""
    __tablename__ = "order_items"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_order_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    total_price_cents = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    order = db.relationship("Order", backref=db.backref("items", lazy=True, order_by="OrderItem.id"))
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "total_price_cents": self.total_price_cents,
            "created_at": to_utc_z(self.created_at),
        }
