"""
Stock updates and the append-only movement log.
"""

import pytest
from sqlalchemy import update
from sqlalchemy.orm.attributes import set_committed_value

from inventory_api.models import Product, StockMovement
from inventory_api.models.inventory import ImmutableRecordError
from inventory_api.services import stock_service
from inventory_api.services.stock_service import InsufficientStockError, StockError
from inventory_api.validation import MAX_AMOUNT_CENTS, NotFoundError


def _update(product, quantity, movement_type, **kwargs):
    return stock_service.update_stock(
        product_id=product.id,
        quantity=quantity,
        movement_type=movement_type,
        **kwargs,
    )


@pytest.mark.parametrize(
    "movement_type,quantity,expected",
    [
        ("PURCHASE", 5, 15),
        ("RETURN", 2, 12),
        ("SALE", 4, 6),
        ("TRANSFER", 10, 0),
        ("DAMAGE", 1, 9),
        ("ADJUSTMENT", 42, 42),
        ("ADJUSTMENT", 0, 0),
    ],
)
def test_movement_types(db_session, product, movement_type, quantity, expected):
    movement = _update(product, quantity, movement_type, reference="REF-1")

    assert db_session.get(Product, product.id).stock_quantity == expected
    assert movement.movement_type == movement_type
    assert movement.quantity == quantity
    assert movement.previous_quantity == 10
    assert movement.new_quantity == expected
    assert movement.reference == "REF-1"


def test_negative_result_rejected(db_session, product):
    with pytest.raises(InsufficientStockError) as exc:
        _update(product, 11, "DAMAGE")

    assert exc.value.details["available"] == 10
    assert db_session.get(Product, product.id).stock_quantity == 10
    assert db_session.query(StockMovement).count() == 0


def test_builds_on_committed_stock_not_loaded_copy(db_session, product):
    # Another writer sells 7 behind this session's back
    db_session.execute(
        update(Product)
        .where(Product.id == product.id)
        .values(stock_quantity=3)
        .execution_options(synchronize_session=False)
    )
    db_session.commit()
    stale = db_session.get(Product, product.id)
    set_committed_value(stale, "stock_quantity", 10)

    with pytest.raises(InsufficientStockError) as exc:
        _update(product, 5, "SALE")
    assert exc.value.details["available"] == 3

    movement = _update(product, 2, "SALE")
    assert (movement.previous_quantity, movement.new_quantity) == (3, 1)
    assert db_session.get(Product, product.id).stock_quantity == 1


@pytest.mark.parametrize(
    "movement_type,quantity",
    [("LOST", 1), ("PURCHASE", 0), ("PURCHASE", -3), ("PURCHASE", 10**20), ("PURCHASE", MAX_AMOUNT_CENTS)],
)
def test_invalid_requests(db_session, product, movement_type, quantity):
    with pytest.raises(StockError):
        _update(product, quantity, movement_type)
    assert db_session.query(StockMovement).count() == 0


def test_unknown_product(db_session):
    with pytest.raises(NotFoundError):
        stock_service.update_stock(product_id=12345, quantity=1, movement_type="PURCHASE")


def test_movements_newest_first(db_session, product, admin_user):
    _update(product, 5, "PURCHASE", user_id=admin_user.id)
    _update(product, 3, "SALE", user_id=admin_user.id)

    movements = stock_service.list_movements(product.id)
    assert [m.movement_type for m in movements] == ["SALE", "PURCHASE"]
    assert movements[0].to_dict()["created_by_username"] == "admin"


def test_check_availability(db_session, product):
    assert stock_service.check_stock_availability(product.id, 10) is True
    assert stock_service.check_stock_availability(product.id, 11) is False
    assert stock_service.check_stock_availability(999, 1) is False


class TestAppendOnly:

    def test_update_rejected(self, db_session, product):
        movement = _update(product, 5, "PURCHASE")
        movement.notes = "edited"
        with pytest.raises(ImmutableRecordError):
            db_session.commit()
        db_session.rollback()

    def test_delete_rejected(self, db_session, product):
        movement = _update(product, 5, "PURCHASE")
        db_session.delete(movement)
        with pytest.raises(ImmutableRecordError):
            db_session.commit()
        db_session.rollback()
