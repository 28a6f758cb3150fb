"""
Supermarket Storefront - Database Seeder
=========================================
Seeds an admin, a shopper and a handful of products for local testing,
and prints an auth token for each user.

Usage:
    python scripts/seed.py
"""

import sys
import os
from decimal import Decimal

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config.database import SessionLocal, Base, engine
from common.security import create_token
from modules.user.models import User, UserRole
from modules.catalog.models import Product, ProductCategory
from modules.cart.models import CartItem  # noqa: F401
from modules.order.models import Order, OrderItem  # noqa: F401


USERS = [
    ("admin", "admin@supermarket.local", UserRole.ADMIN),
    ("shopper", "shopper@supermarket.local", UserRole.USER),
]

PRODUCTS = [
    ("Apples (1kg)", Decimal("3.20"), 40, "Fruit & Veg"),
    ("Bananas (bunch)", Decimal("2.10"), 25, "Fruit & Veg"),
    ("Whole Milk (1L)", Decimal("1.85"), 60, "Dairy"),
    ("Sourdough Bread", Decimal("4.50"), 12, "Bakery"),
    ("Free-range Eggs (12)", Decimal("5.75"), 18, "Dairy"),
    ("Cheddar (200g)", Decimal("3.95"), 0, "Dairy"),
]


def seed():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        print("[1/3] Users...")
        for username, email, role in USERS:
            user = db.query(User).filter(User.username == username).first()
            if not user:
                user = User(username=username, email=email, role=role)
                db.add(user)
                db.flush()
                print(f"  + {username} ({role})")
            else:
                print(f"  = {username} exists")
            print(f"    token: {create_token({'sub': str(user.id)})}")

        print("[2/3] Categories...")
        categories = {}
        for category_name in sorted({p[3] for p in PRODUCTS}):
            category = db.query(ProductCategory).filter(ProductCategory.name == category_name).first()
            if not category:
                category = ProductCategory(name=category_name)
                db.add(category)
                db.flush()
                print(f"  + {category_name}")
            categories[category_name] = category

        print("[3/3] Products...")
        for name, price, stock, category_name in PRODUCTS:
            if db.query(Product).filter(Product.name == name).first():
                print(f"  = {name} exists")
                continue
            db.add(Product(
                name=name, unit_price=price, stock_quantity=stock,
                category_id=categories[category_name].id,
            ))
            print(f"  + {name} @ {price} x{stock}")

        db.commit()
        print("\nSeed complete!")
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed()
