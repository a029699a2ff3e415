from __future__ import annotations

from ..extensions import db
from cashdesk.time_utils import to_utc_z


class Product(db.Model):
    """
    Sellable product as seen by the cart.

    Catalog maintenance happens elsewhere; checkout only reads the current
    price and captures it onto the order item.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("price_cents >= 0", name="ck_products_price_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    price_cents = db.Column(db.Integer, nullable=False)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    is_available = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "price_cents": self.price_cents,
            "is_active": self.is_active,
            "is_available": self.is_available,
            "created_at": to_utc_z(self.created_at),
        }
