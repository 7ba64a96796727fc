from __future__ import annotations

from ..extensions import db
from inventory_api.time_utils import to_utc_z


class Customer(db.Model):
    """
    Customer master data for tracking purchases and loyalty.

    Every sale is billed to one (the walk-in customer included).
    Loyalty points and credit balance are never negative.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.CheckConstraint("loyalty_points >= 0", name="ck_customers_loyalty_non_negative"),
        db.CheckConstraint("credit_balance_cents >= 0", name="ck_customers_credit_non_negative"),
        db.Index("ix_customers_email", "email"),
        db.Index("ix_customers_phone", "phone"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    address = db.Column(db.Text, nullable=True)

    loyalty_points = db.Column(db.Integer, nullable=False, default=0)
    credit_balance_cents = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_purchase_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "loyalty_points": self.loyalty_points,
            "credit_balance_cents": self.credit_balance_cents,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "last_purchase_at": to_utc_z(self.last_purchase_at) if self.last_purchase_at else None,
        }
