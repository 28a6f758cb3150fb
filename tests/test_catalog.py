from decimal import Decimal

import pytest

from common.exceptions import NotFoundError, ValidationError
from modules.catalog.models import Product
from modules.catalog.service import catalog_service


def test_create_product(db):
    product = catalog_service.create_product(db, "  Rice 1kg ", "3.456", "12")
    db.commit()

    assert product.name == "Rice 1kg"
    assert product.unit_price == Decimal("3.46")
    assert product.stock_quantity == 12
    assert product.in_stock


@pytest.mark.parametrize("name, price, stock", [
    ("", "1.00", 1),
    ("Tea", "-0.01", 1),
    ("Tea", "abc", 1),
    ("Tea", None, 1),
    ("Tea", "1.00", -1),
    ("Tea", "1.00", "lots"),
])
def test_create_product_rejects_bad_input(db, name, price, stock):
    with pytest.raises(ValidationError):
        catalog_service.create_product(db, name, price, stock)
    assert db.query(Product).count() == 0


def test_update_changes_only_given_fields(db, make_product):
    p = make_product(name="Eggs", price="2.00", stock=6)

    catalog_service.update_product(db, p.id, stock_quantity=20)
    db.commit()

    refreshed = catalog_service.get_product(db, p.id)
    assert refreshed.name == "Eggs"
    assert refreshed.unit_price == Decimal("2.00")
    assert refreshed.stock_quantity == 20


def test_update_rejects_negative_stock(db, make_product):
    p = make_product(stock=6)
    with pytest.raises(ValidationError):
        catalog_service.update_product(db, p.id, stock_quantity=-3)


def test_update_missing_product(db):
    with pytest.raises(NotFoundError):
        catalog_service.update_product(db, 404, name="Ghost")


def test_delete_product(db, make_product):
    p = make_product()
    product_id = p.id

    catalog_service.delete_product(db, product_id)
    db.commit()

    with pytest.raises(NotFoundError):
        catalog_service.get_product(db, product_id)


def test_list_products_in_stock_filter(db, make_product):
    a = make_product(name="A", stock=3)
    b = make_product(name="B", stock=0)
    c = make_product(name="C", stock=1)

    assert [p.id for p in catalog_service.list_products(db)] == [c.id, b.id, a.id]
    assert [p.id for p in catalog_service.list_products(db, in_stock_only=True)] == [c.id, a.id]


# ==========================================
# Categories
# ==========================================

def test_create_and_list_categories(db):
    catalog_service.create_category(db, "Dairy")
    catalog_service.create_category(db, " Bakery ")
    db.commit()

    assert [c.name for c in catalog_service.list_categories(db)] == ["Bakery", "Dairy"]


def test_category_names_are_unique_ignoring_case(db):
    catalog_service.create_category(db, "Dairy")
    with pytest.raises(ValidationError):
        catalog_service.create_category(db, "dairy")
    with pytest.raises(ValidationError):
        catalog_service.create_category(db, "   ")


def test_rename_category(db):
    dairy = catalog_service.create_category(db, "Dairy")
    bakery = catalog_service.create_category(db, "Bakery")

    assert catalog_service.rename_category(db, dairy.id, "Dairy & Eggs").name == "Dairy & Eggs"
    assert catalog_service.rename_category(db, dairy.id, "dairy & eggs").name == "dairy & eggs"
    with pytest.raises(ValidationError):
        catalog_service.rename_category(db, bakery.id, "Dairy & Eggs")
    with pytest.raises(NotFoundError):
        catalog_service.rename_category(db, 404, "Ghost")


def test_product_in_category_and_filter(db):
    dairy = catalog_service.create_category(db, "Dairy")
    milk = catalog_service.create_product(db, "Milk", "1.20", 5, category_id=dairy.id)
    bread = catalog_service.create_product(db, "Bread", "2.00", 5)
    db.commit()

    assert milk.category_name == "Dairy"
    assert bread.category_name is None
    assert [p.id for p in catalog_service.list_products(db, category_id=dairy.id)] == [milk.id]


def test_product_with_unknown_category_is_rejected(db):
    with pytest.raises(ValidationError):
        catalog_service.create_product(db, "Milk", "1.20", 5, category_id=999)


def test_update_can_move_and_clear_category(db):
    dairy = catalog_service.create_category(db, "Dairy")
    milk = catalog_service.create_product(db, "Milk", "1.20", 5)
    db.commit()

    catalog_service.update_product(db, milk.id, category_id=dairy.id)
    assert milk.category_id == dairy.id
    catalog_service.update_product(db, milk.id, category_id=0)
    assert milk.category_id is None


def test_delete_category_keeps_its_products(db):
    dairy = catalog_service.create_category(db, "Dairy")
    milk = catalog_service.create_product(db, "Milk", "1.20", 5, category_id=dairy.id)
    db.commit()
    milk_id, dairy_id = milk.id, dairy.id

    catalog_service.delete_category(db, dairy_id)
    db.commit()

    assert catalog_service.get_product(db, milk_id).category_id is None
    with pytest.raises(NotFoundError):
        catalog_service.get_category(db, dairy_id)
