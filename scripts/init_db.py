"""
Create the storefront schema straight from the models, for local setups
and throwaway databases. Deployed databases go through alembic instead.

    python scripts/init_db.py            # create missing tables
    python scripts/init_db.py --drop     # drop everything first (asks)
    python scripts/init_db.py --drop -y  # same, no question
"""

import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config.database import Base, engine
from modules.user.models import User  # noqa: F401
from modules.catalog.models import Product, ProductCategory  # noqa: F401
from modules.cart.models import CartItem  # noqa: F401
from modules.order.models import Order, OrderItem  # noqa: F401


def init_db(drop_first: bool = False):
    if drop_first:
        Base.metadata.drop_all(bind=engine)
        print(f"Dropped storefront tables on {engine.url.render_as_string(hide_password=True)}")

    Base.metadata.create_all(bind=engine)
    names = ", ".join(t.name for t in Base.metadata.sorted_tables)
    print(f"Schema ready ({names})")


def main(argv):
    drop = "--drop" in argv
    if drop and "-y" not in argv:
        answer = input(f"Drop all storefront tables on {engine.url.database}? [y/N] ")
        if answer.strip().lower() not in ("y", "yes"):
            print("Nothing dropped.")
            return 1
    init_db(drop_first=drop)
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
