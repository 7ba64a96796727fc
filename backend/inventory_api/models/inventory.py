from __future__ import annotations

from sqlalchemy import event

from ..extensions import db
from inventory_api.time_utils import to_utc_z


MOVEMENT_PURCHASE = "PURCHASE"
MOVEMENT_SALE = "SALE"
MOVEMENT_RETURN = "RETURN"
MOVEMENT_ADJUSTMENT = "ADJUSTMENT"
MOVEMENT_TRANSFER = "TRANSFER"
MOVEMENT_DAMAGE = "DAMAGE"

MOVEMENT_TYPES = (
    MOVEMENT_PURCHASE,
    MOVEMENT_SALE,
    MOVEMENT_RETURN,
    MOVEMENT_ADJUSTMENT,
    MOVEMENT_TRANSFER,
    MOVEMENT_DAMAGE,
)


class ImmutableRecordError(Exception):
    """Raised when code tries to update or delete an append-only row."""


class StockMovement(db.Model):
    """
    Append-only audit log of every change to Product.stock_quantity.

    MOVEMENT TYPES:
    - PURCHASE, RETURN: add quantity
    - SALE, TRANSFER, DAMAGE: subtract quantity
    - ADJUSTMENT: quantity is the new absolute stock level

    quantity is recorded exactly as requested; previous_quantity and
    new_quantity capture the effect on the product.

    IMMUTABLE: Records are never updated or deleted.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_product_created", "product_id", "created_at"),
        db.Index("ix_stock_movements_reference", "reference"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    movement_type = db.Column(db.String(16), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    previous_quantity = db.Column(db.Integer, nullable=False)
    new_quantity = db.Column(db.Integer, nullable=False)

    reference = db.Column(db.String(128), nullable=True)
    notes = db.Column(db.String(255), nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    product = db.relationship("Product", backref=db.backref("stock_movements", lazy="dynamic"))
    created_by = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "movement_type": self.movement_type,
            "quantity": self.quantity,
            "previous_quantity": self.previous_quantity,
            "new_quantity": self.new_quantity,
            "reference": self.reference,
            "notes": self.notes,
            "created_by_user_id": self.created_by_user_id,
            "created_by_username": self.created_by.username if self.created_by else None,
            "created_at": to_utc_z(self.created_at),
        }


@event.listens_for(StockMovement, "before_update")
def _reject_movement_update(mapper, connection, target):
    raise ImmutableRecordError("Stock movements are append-only")


@event.listens_for(StockMovement, "before_delete")
def _reject_movement_delete(mapper, connection, target):
    raise ImmutableRecordError("Stock movements are append-only")
