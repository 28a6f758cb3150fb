from decimal import Decimal

from modules.order.ledger import order_ledger, OrderLineInput
from modules.order.models import Order, OrderItem, OrderStatus
from tests.conftest import FIXED_NOW


def test_create_order_is_pending(db, make_user, read):
    user = make_user()
    user_id = user.id

    order_id = order_ledger.create_order(db, user_id, Decimal("12.40"), FIXED_NOW)
    db.commit()

    order = read(lambda s: s.get(Order, order_id))
    assert order.user_id == user_id
    assert order.status == OrderStatus.PENDING.value
    assert order.total_amount == Decimal("12.40")


def test_create_order_lines_batch(db, make_user, read):
    user = make_user()
    order_id = order_ledger.create_order(db, user.id, Decimal("7.00"), FIXED_NOW)
    order_ledger.create_order_lines(db, order_id, [
        OrderLineInput(product_id=1, quantity=2, unit_price=Decimal("2.00"), product_name="Milk"),
        OrderLineInput(product_id=2, quantity=1, unit_price=Decimal("3.00")),
    ])
    db.commit()

    items = read(lambda s: s.query(OrderItem).filter(OrderItem.order_id == order_id).order_by(OrderItem.id).all())
    assert [(i.product_id, i.quantity, i.unit_price_at_purchase) for i in items] == [
        (1, 2, Decimal("2.00")),
        (2, 1, Decimal("3.00")),
    ]
    assert items[0].product_name == "Milk"
    assert items[0].line_total == Decimal("4.00")


def test_order_lines_vanish_with_rollback(db, make_user, read):
    user = make_user()
    order_id = order_ledger.create_order(db, user.id, Decimal("1.00"), FIXED_NOW)
    order_ledger.create_order_lines(db, order_id, [
        OrderLineInput(product_id=1, quantity=1, unit_price=Decimal("1.00")),
    ])
    db.rollback()

    assert read(lambda s: s.query(Order).count()) == 0
    assert read(lambda s: s.query(OrderItem).count()) == 0
