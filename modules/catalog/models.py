"""
Catalog Module - Models
========================
Product with its price and on-hand stock, and the category it is listed under.
"""

from sqlalchemy import (
    Column, Integer, String, Numeric, DateTime, ForeignKey, CheckConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from config.database import Base


# ==========================================
# 🗂️ Product Category
# ==========================================

class ProductCategory(Base):
    __tablename__ = "product_categories"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False, unique=True)

    products = relationship("Product", back_populates="category")

    def __repr__(self):
        return f"<ProductCategory {self.name}>"


# ==========================================
# 📦 Product
# ==========================================

class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    stock_quantity = Column(Integer, default=0, nullable=False)
    category_id = Column(Integer, ForeignKey("product_categories.id", ondelete="SET NULL"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    category = relationship("ProductCategory", back_populates="products")

    __table_args__ = (
        CheckConstraint("stock_quantity >= 0", name="ck_product_stock_nonneg"),
        CheckConstraint("unit_price >= 0", name="ck_product_price_nonneg"),
    )

    @property
    def in_stock(self) -> bool:
        return (self.stock_quantity or 0) > 0

    @property
    def category_name(self):
        return self.category.name if self.category else None

    def __repr__(self):
        return f"<Product {self.name}>"
