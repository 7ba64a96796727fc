from __future__ import annotations

from ..extensions import db
from inventory_api.time_utils import to_utc_z


PAYMENT_METHODS = ("CASH", "CARD", "BANK_TRANSFER", "CHECK", "CREDIT")

CANCELLED_MARKER = "[CANCELLED]"


class Sale(db.Model):
    """
    Sale header. Created together with its items in one transaction.

    TOTALS (integer cents):
    - subtotal_cents = sum of SaleItem.line_total_cents
    - total_cents = subtotal_cents + tax_cents - discount_cents

    LIFECYCLE: A sale is written once with is_completed=True. Cancellation
    flips is_completed, appends CANCELLED_MARKER to notes and stamps
    cancelled_at/cancelled_by_user_id. Items and totals are never rewritten.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("invoice_number", name="uq_sales_invoice_number"),
        db.Index("ix_sales_sale_date", "sale_date"),
        db.Index("ix_sales_completed_date", "is_completed", "sale_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable, per-month sequential (e.g., "INV2026100007")
    invoice_number = db.Column(db.String(32), nullable=False)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    sale_date = db.Column(db.DateTime(timezone=True), nullable=False)

    subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False, default=0)
    paid_cents = db.Column(db.Integer, nullable=False, default=0)

    payment_method = db.Column(db.String(16), nullable=False)
    notes = db.Column(db.Text, nullable=True)

    is_completed = db.Column(db.Boolean, nullable=False, default=True)

    # Cancellation audit trail
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    customer = db.relationship("Customer", backref=db.backref("sales", lazy=True))
    user = db.relationship("User", foreign_keys=[user_id])
    cancelled_by = db.relationship("User", foreign_keys=[cancelled_by_user_id])
    items = db.relationship(
        "SaleItem",
        backref="sale",
        lazy=True,
        order_by="SaleItem.id",
    )

    @property
    def is_cancelled(self) -> bool:
        return not self.is_completed and self.cancelled_at is not None

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "customer_id": self.customer_id,
            "customer_name": self.customer.name if self.customer else None,
            "user_id": self.user_id,
            "sales_person_name": self.user.full_name if self.user else None,
            "sale_date": to_utc_z(self.sale_date),
            "subtotal_cents": self.subtotal_cents,
            "discount_cents": self.discount_cents,
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
            "paid_cents": self.paid_cents,
            "payment_method": self.payment_method,
            "notes": self.notes,
            "is_completed": self.is_completed,
            "cancelled_at": to_utc_z(self.cancelled_at) if self.cancelled_at else None,
            "cancelled_by_user_id": self.cancelled_by_user_id,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class SaleItem(db.Model):
    """Individual line items on a sale."""
    __tablename__ = "sale_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_sale_items_quantity_positive"),
        db.CheckConstraint(
            "discount_bps >= 0 AND discount_bps <= 10000",
            name="ck_sale_items_discount_range",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    # Basis points (e.g., 1250 = 12.5%)
    discount_bps = db.Column(db.Integer, nullable=False, default=0)
    line_total_cents = db.Column(db.Integer, nullable=False)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "discount_bps": self.discount_bps,
            "line_total_cents": self.line_total_cents,
        }


class InvoiceSequence(db.Model):
    """
    Per-month invoice counter.

    next_number is bumped with a single UPDATE inside the sale transaction,
    so concurrent writers serialize on this row instead of racing on
    "read the last invoice number, add one".
    """
    __tablename__ = "invoice_sequences"

    period = db.Column(db.String(6), primary_key=True)  # YYYYMM
    next_number = db.Column(db.Integer, nullable=False, default=1)

    def to_dict(self) -> dict:
        return {"period": self.period, "next_number": self.next_number}
