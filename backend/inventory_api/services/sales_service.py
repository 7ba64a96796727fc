# Overview: Service-layer operations for sales; the sale/stock transaction lives here.

"""
Sales Service - one-shot sale creation and cancellation

A sale is created in a single DB transaction:
validate -> allocate invoice number -> write header and items ->
decrement stock (one SALE movement per line) -> totals -> commit.

Any failure after validation rolls back every write, including the invoice
counter increment, and the original exception propagates. No retry.

MONEY: integer cents. Line discounts are basis points (1% = 100 bps).
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Customer, Product, Sale, SaleItem, User
from ..models.inventory import MOVEMENT_RETURN, MOVEMENT_SALE
from ..models.sales import CANCELLED_MARKER, PAYMENT_METHODS
from ..validation import MAX_AMOUNT_CENTS, MAX_DISCOUNT_BPS, NotFoundError
from inventory_api.time_utils import day_bounds, to_utc_z, utcnow
from . import invoice_service, stock_service
from .stock_service import InsufficientStockError


class SaleError(Exception):
    """Raised for sale operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def line_total_cents(unit_price_cents: int, quantity: int, discount_bps: int) -> int:
    """
    unit_price * qty minus the discount, rounded half-up to the cent.
    """
    gross = unit_price_cents * quantity
    discount = (gross * discount_bps + 5000) // 10000
    return gross - discount


def _normalize_items(items) -> list[dict]:
    if not items or not isinstance(items, list):
        raise SaleError("Sale must contain at least one item")

    normalized = []
    for idx, raw in enumerate(items):
        if not isinstance(raw, dict):
            raise SaleError(f"Item {idx} is not an object")

        product_id = raw.get("product_id")
        quantity = raw.get("quantity")
        unit_price_cents = raw.get("unit_price_cents")
        discount_bps = raw.get("discount_bps", 0) or 0

        for name, value in (
            ("product_id", product_id),
            ("quantity", quantity),
            ("unit_price_cents", unit_price_cents),
            ("discount_bps", discount_bps),
        ):
            if not isinstance(value, int) or isinstance(value, bool):
                raise SaleError(f"Item {idx}: {name} must be an integer")

        if quantity <= 0:
            raise SaleError(f"Item {idx}: quantity must be > 0")
        if quantity > MAX_AMOUNT_CENTS:
            raise SaleError(f"Item {idx}: quantity cannot exceed {MAX_AMOUNT_CENTS}")
        if unit_price_cents <= 0:
            raise SaleError(f"Item {idx}: unit_price_cents must be > 0")
        if unit_price_cents > MAX_AMOUNT_CENTS:
            raise SaleError(f"Item {idx}: unit_price_cents cannot exceed {MAX_AMOUNT_CENTS}")
        if discount_bps < 0 or discount_bps > MAX_DISCOUNT_BPS:
            raise SaleError(f"Item {idx}: discount_bps must be between 0 and {MAX_DISCOUNT_BPS}")

        normalized.append({
            "product_id": product_id,
            "quantity": quantity,
            "unit_price_cents": unit_price_cents,
            "discount_bps": discount_bps,
        })
    return normalized


def _check_amount(name: str, value) -> int:
    if value is None:
        return 0
    if not isinstance(value, int) or isinstance(value, bool):
        raise SaleError(f"{name} must be an integer")
    if value < 0:
        raise SaleError(f"{name} must be >= 0")
    if value > MAX_AMOUNT_CENTS:
        raise SaleError(f"{name} cannot exceed {MAX_AMOUNT_CENTS}")
    return value


def _lock_products(product_ids: list[int]) -> dict[int, Product]:
    products = (
        db.session.query(Product)
        .filter(Product.id.in_(product_ids))
        .order_by(Product.id)
        .with_for_update()
        .all()
    )
    by_id = {p.id: p for p in products}

    for product_id in product_ids:
        product = by_id.get(product_id)
        if not product:
            raise NotFoundError(f"Product {product_id} not found")
        if not product.is_active:
            raise SaleError(f"Product {product.name} is not active", details={"product_id": product_id})
    return by_id


def _validate_on_hand(items: list[dict], products: dict[int, Product]) -> None:
    """Summed per product, so repeated lines for one product cannot overdraw."""
    product_totals: dict[int, int] = {}
    for item in items:
        product_totals[item["product_id"]] = product_totals.get(item["product_id"], 0) + item["quantity"]

    insufficient = []
    for product_id, qty in product_totals.items():
        product = products[product_id]
        if product.stock_quantity < qty:
            insufficient.append({
                "product_id": product_id,
                "product_name": product.name,
                "requested_quantity": qty,
                "available": product.stock_quantity,
            })

    if insufficient:
        names = ", ".join(row["product_name"] for row in insufficient)
        raise InsufficientStockError(
            f"Insufficient stock for product {names}",
            details={"items": insufficient},
        )


def create_sale(
    *,
    customer_id: int,
    items: list[dict],
    payment_method: str,
    paid_cents: int,
    user_id: int,
    discount_cents: int = 0,
    tax_cents: int = 0,
    notes: str | None = None,
    now: datetime | None = None,
) -> Sale:
    """
    Create a completed sale and take its items out of stock.

    items: [{product_id, quantity, unit_price_cents, discount_bps}, ...]

    Raises:
        SaleError: invalid request or inactive customer/product
        NotFoundError: unknown customer or product
        InsufficientStockError: some product does not have enough stock.
            Normally raised before anything is written; a sale that loses a
            race for the last units gets it from update_stock and is rolled back.
    """
    normalized = _normalize_items(items)

    if payment_method not in PAYMENT_METHODS:
        raise SaleError(
            f"Invalid payment_method: {payment_method}",
            details={"allowed": list(PAYMENT_METHODS)},
        )
    paid_cents = _check_amount("paid_cents", paid_cents)
    discount_cents = _check_amount("discount_cents", discount_cents)
    tax_cents = _check_amount("tax_cents", tax_cents)

    try:
        customer = db.session.query(Customer).filter_by(id=customer_id).first()
        if not customer:
            raise NotFoundError("Customer not found")
        if not customer.is_active:
            raise SaleError("Customer is not active", details={"customer_id": customer_id})

        product_ids = sorted({item["product_id"] for item in normalized})
        products = _lock_products(product_ids)
        _validate_on_hand(normalized, products)

        sale_date = now or utcnow()
        invoice_number = invoice_service.next_invoice_number(sale_date)

        sale = Sale(
            invoice_number=invoice_number,
            customer_id=customer.id,
            user_id=user_id,
            sale_date=sale_date,
            discount_cents=discount_cents,
            tax_cents=tax_cents,
            paid_cents=paid_cents,
            payment_method=payment_method,
            notes=notes,
            is_completed=True,
        )
        db.session.add(sale)
        db.session.flush()

        subtotal = 0
        for item in normalized:
            line_total = line_total_cents(item["unit_price_cents"], item["quantity"], item["discount_bps"])
            db.session.add(SaleItem(
                sale_id=sale.id,
                product_id=item["product_id"],
                quantity=item["quantity"],
                unit_price_cents=item["unit_price_cents"],
                discount_bps=item["discount_bps"],
                line_total_cents=line_total,
            ))
            subtotal += line_total

            stock_service.update_stock(
                product_id=item["product_id"],
                quantity=item["quantity"],
                movement_type=MOVEMENT_SALE,
                reference=invoice_number,
                user_id=user_id,
                commit=False,
            )

        sale.subtotal_cents = subtotal
        sale.total_cents = subtotal + tax_cents - discount_cents

        customer.last_purchase_at = sale_date

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(
        "Sale %s created: %s item(s), total_cents=%s, user_id=%s",
        sale.invoice_number, len(normalized), sale.total_cents, user_id,
    )
    return sale


def cancel_sale(sale_id: int, user_id: int) -> Sale:
    """
    Cancel a completed sale and put its items back into stock.

    Items and totals stay as they were; the sale is flagged instead.
    A second cancellation is rejected.
    """
    try:
        sale = db.session.query(Sale).filter_by(id=sale_id).with_for_update().first()
        if not sale:
            raise NotFoundError("Sale not found")

        if not sale.is_completed:
            raise SaleError("Sale already cancelled", details={"sale_id": sale.id})

        reference = f"Sale cancellation - {sale.invoice_number}"
        # Same product-id order as create_sale so the two never lock in opposite order
        for item in sorted(sale.items, key=lambda i: (i.product_id, i.id)):
            stock_service.update_stock(
                product_id=item.product_id,
                quantity=item.quantity,
                movement_type=MOVEMENT_RETURN,
                reference=reference,
                user_id=user_id,
                commit=False,
            )

        sale.is_completed = False
        sale.notes = f"{sale.notes} {CANCELLED_MARKER}" if sale.notes else CANCELLED_MARKER
        sale.cancelled_at = utcnow()
        sale.cancelled_by_user_id = user_id

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info("Sale %s cancelled by user_id=%s", sale.invoice_number, user_id)
    return sale


def get_sale(sale_id: int) -> Sale:
    sale = db.session.query(Sale).filter_by(id=sale_id).first()
    if not sale:
        raise NotFoundError("Sale not found")
    return sale


def get_sale_by_invoice(invoice_number: str) -> Sale:
    sale = db.session.query(Sale).filter_by(invoice_number=invoice_number).first()
    if not sale:
        raise NotFoundError("Sale not found")
    return sale


def list_sales(
    *,
    start: datetime | None = None,
    end: datetime | None = None,
    customer_id: int | None = None,
    user_id: int | None = None,
    include_cancelled: bool = True,
) -> list[Sale]:
    """Sales newest first. Date range is [start, end)."""
    query = db.session.query(Sale)
    if start:
        query = query.filter(Sale.sale_date >= start)
    if end:
        query = query.filter(Sale.sale_date < end)
    if customer_id:
        query = query.filter(Sale.customer_id == customer_id)
    if user_id:
        query = query.filter(Sale.user_id == user_id)
    if not include_cancelled:
        query = query.filter(Sale.is_completed.is_(True))
    return query.order_by(Sale.sale_date.desc(), Sale.id.desc()).all()


def todays_sales(now: datetime | None = None) -> list[Sale]:
    start, end = day_bounds(now)
    return list_sales(start=start, end=end)


def get_invoice(sale_id: int) -> dict:
    """Printable invoice view: sale header, customer, salesperson and items."""
    sale = get_sale(sale_id)
    customer = sale.customer
    seller: User | None = sale.user
    return {
        "invoice_number": sale.invoice_number,
        "sale_date": to_utc_z(sale.sale_date),
        "customer": {
            "id": customer.id,
            "name": customer.name,
            "email": customer.email,
            "phone": customer.phone,
            "address": customer.address,
        } if customer else None,
        "sales_person": {
            "id": seller.id,
            "full_name": seller.full_name,
        } if seller else None,
        "items": [item.to_dict() for item in sale.items],
        "subtotal_cents": sale.subtotal_cents,
        "discount_cents": sale.discount_cents,
        "tax_cents": sale.tax_cents,
        "total_cents": sale.total_cents,
        "paid_cents": sale.paid_cents,
        "change_cents": max(sale.paid_cents - sale.total_cents, 0),
        "payment_method": sale.payment_method,
        "is_completed": sale.is_completed,
        "notes": sale.notes,
    }


def _completed_in_range(query, start: datetime | None, end: datetime | None):
    query = query.filter(Sale.is_completed.is_(True))
    if start:
        query = query.filter(Sale.sale_date >= start)
    if end:
        query = query.filter(Sale.sale_date < end)
    return query


def total_sales_amount(start: datetime | None = None, end: datetime | None = None) -> int:
    """Sum of total_cents over completed sales."""
    query = _completed_in_range(db.session.query(func.coalesce(func.sum(Sale.total_cents), 0)), start, end)
    return int(query.scalar() or 0)


def sales_summary(start: datetime | None = None, end: datetime | None = None) -> dict:
    query = _completed_in_range(
        db.session.query(
            func.coalesce(func.sum(Sale.total_cents), 0),
            func.count(Sale.id),
        ),
        start,
        end,
    )
    total_cents, count = query.one()
    total_cents = int(total_cents or 0)
    count = int(count or 0)
    return {
        "total_sales_cents": total_cents,
        "total_transactions": count,
        "average_sale_cents": (total_cents // count) if count else 0,
    }
