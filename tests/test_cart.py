from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from common.exceptions import InsufficientStockError, NotFoundError, ValidationError
from modules.cart.models import CartItem
from modules.cart.service import cart_service


def _qty(db, user_id, product_id):
    item = db.query(CartItem).filter_by(user_id=user_id, product_id=product_id).first()
    return item.quantity if item else None


def test_add_creates_line(db, make_user, make_product):
    user = make_user()
    p = make_product(stock=5)

    added, new_qty = cart_service.add_item(db, user.id, p.id, 2)

    assert (added, new_qty) == (2, 2)
    assert _qty(db, user.id, p.id) == 2


def test_add_merges_into_existing_line(db, make_user, make_product):
    user = make_user()
    p = make_product(stock=5)
    cart_service.add_item(db, user.id, p.id, 1)

    added, new_qty = cart_service.add_item(db, user.id, p.id, 2)

    assert (added, new_qty) == (2, 3)
    assert db.query(CartItem).filter_by(user_id=user.id).count() == 1


def test_add_is_clamped_to_remaining_stock(db, make_user, make_product):
    user = make_user()
    p = make_product(stock=5)
    cart_service.add_item(db, user.id, p.id, 4)

    added, new_qty = cart_service.add_item(db, user.id, p.id, 3)

    assert (added, new_qty) == (1, 5)


def test_add_when_cart_already_holds_all_stock(db, make_user, make_product):
    user = make_user()
    p = make_product(name="Milk", stock=2)
    cart_service.add_item(db, user.id, p.id, 2)

    with pytest.raises(InsufficientStockError) as exc:
        cart_service.add_item(db, user.id, p.id, 1)
    assert exc.value.available == 2
    assert "Milk" in exc.value.message


def test_add_out_of_stock_product(db, make_user, make_product):
    user = make_user()
    p = make_product(stock=0)

    with pytest.raises(InsufficientStockError):
        cart_service.add_item(db, user.id, p.id, 1)
    assert _qty(db, user.id, p.id) is None


def test_add_missing_product(db, make_user):
    user = make_user()
    with pytest.raises(NotFoundError):
        cart_service.add_item(db, user.id, 12345, 1)


def test_add_rejects_zero_quantity(db, make_user, make_product):
    user = make_user()
    p = make_product()
    with pytest.raises(ValidationError):
        cart_service.add_item(db, user.id, p.id, 0)


def test_set_quantity_overwrites(db, make_user, make_product):
    user = make_user()
    p = make_product(stock=10)
    cart_service.add_item(db, user.id, p.id, 2)

    assert cart_service.set_quantity(db, user.id, p.id, 7) == 7
    assert _qty(db, user.id, p.id) == 7


def test_set_quantity_creates_missing_line(db, make_user, make_product):
    user = make_user()
    p = make_product(stock=10)

    cart_service.set_quantity(db, user.id, p.id, 3)

    assert _qty(db, user.id, p.id) == 3


def test_set_quantity_zero_removes_line(db, make_user, make_product):
    user = make_user()
    p = make_product(stock=10)
    cart_service.add_item(db, user.id, p.id, 2)

    assert cart_service.set_quantity(db, user.id, p.id, 0) == 0
    assert _qty(db, user.id, p.id) is None


def test_set_quantity_above_stock(db, make_user, make_product):
    user = make_user()
    p = make_product(stock=3)
    cart_service.add_item(db, user.id, p.id, 1)

    with pytest.raises(InsufficientStockError):
        cart_service.set_quantity(db, user.id, p.id, 4)
    assert _qty(db, user.id, p.id) == 1


def test_set_quantity_above_per_product_limit(db, make_user, make_product):
    user = make_user()
    p = make_product(stock=1000)
    with pytest.raises(ValidationError):
        cart_service.set_quantity(db, user.id, p.id, 100)


def test_remove_item(db, make_user, make_product):
    user = make_user()
    p = make_product()
    cart_service.add_item(db, user.id, p.id, 1)

    assert cart_service.remove_item(db, user.id, p.id) is True
    assert cart_service.remove_item(db, user.id, p.id) is False


def test_clear_is_idempotent(db, make_user, make_product):
    user = make_user()
    a = make_product(name="A")
    b = make_product(name="B")
    cart_service.add_item(db, user.id, a.id, 1)
    cart_service.add_item(db, user.id, b.id, 1)

    assert cart_service.clear_for_user(db, user.id) == 2
    assert cart_service.clear_for_user(db, user.id) == 0
    assert cart_service.lines_for_user(db, user.id) == []


def test_lines_for_user_oldest_first(db, make_user, make_product):
    user = make_user()
    a = make_product(name="A", price="1.50")
    b = make_product(name="B", price="2.00")
    cart_service.add_item(db, user.id, b.id, 1)
    cart_service.add_item(db, user.id, a.id, 2)

    lines = cart_service.lines_for_user(db, user.id)

    assert [(line.product_id, line.quantity, line.product_name) for line in lines] == [
        (b.id, 1, "B"),
        (a.id, 2, "A"),
    ]
    assert lines[1].unit_price == Decimal("1.50")


def test_summary_with_dangling_line(db, make_user, make_product, put_in_cart):
    user = make_user()
    p = make_product(name="Bread", price="2.25", stock=4)
    user_id, product_id = user.id, p.id
    put_in_cart(user_id, product_id, 2)
    put_in_cart(user_id, 777, 1)

    items, total = cart_service.get_cart_summary(db, user_id)

    assert total == Decimal("4.50")
    assert [i["available"] for i in items] == [True, False]
    assert items[0]["line_total"] == Decimal("4.50")
    assert items[1]["product_name"] is None
    assert items[1]["stock"] == 0


def test_cart_count(db, make_user, make_product):
    user = make_user()
    other = make_user()
    a = make_product(name="A")
    b = make_product(name="B")
    cart_service.add_item(db, user.id, a.id, 2)
    cart_service.add_item(db, user.id, b.id, 3)
    cart_service.add_item(db, other.id, a.id, 1)

    assert cart_service.cart_count(db, user.id) == 5
    assert cart_service.cart_count(db, make_user().id) == 0


def _stale_get_item(monkeypatch, times):
    """Make the first `times` line lookups miss, as if another request had not committed yet."""
    real_get_item = cart_service._get_item
    calls = {"n": 0}

    def _get_item(db, user_id, product_id):
        calls["n"] += 1
        if calls["n"] <= times:
            return None
        return real_get_item(db, user_id, product_id)

    monkeypatch.setattr(cart_service, "_get_item", _get_item)


def test_add_merges_with_line_inserted_in_parallel(db, make_user, make_product, put_in_cart, monkeypatch):
    user = make_user()
    p = make_product(stock=10)
    user_id, product_id = user.id, p.id
    put_in_cart(user_id, product_id, 2)
    _stale_get_item(monkeypatch, times=1)

    added, new_qty = cart_service.add_item(db, user_id, product_id, 3)
    db.commit()

    assert (added, new_qty) == (3, 5)
    assert db.query(CartItem).filter_by(user_id=user_id).count() == 1


def test_set_quantity_updates_line_inserted_in_parallel(db, make_user, make_product, put_in_cart, monkeypatch):
    user = make_user()
    p = make_product(stock=10)
    user_id, product_id = user.id, p.id
    put_in_cart(user_id, product_id, 2)
    _stale_get_item(monkeypatch, times=1)

    assert cart_service.set_quantity(db, user_id, product_id, 6) == 6
    db.commit()
    assert _qty(db, user_id, product_id) == 6


def test_add_gives_up_after_second_conflict(db, make_user, make_product, put_in_cart, monkeypatch):
    user = make_user()
    p = make_product(stock=10)
    user_id, product_id = user.id, p.id
    put_in_cart(user_id, product_id, 2)
    _stale_get_item(monkeypatch, times=2)

    with pytest.raises(IntegrityError):
        cart_service.add_item(db, user_id, product_id, 1)
    db.rollback()
    assert _qty(db, user_id, product_id) == 2
