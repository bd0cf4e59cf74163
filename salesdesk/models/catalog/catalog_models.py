from sqlalchemy import Column, Integer, String, Numeric, Boolean, CheckConstraint, Index
from decimal import Decimal
from salesdesk.core.db import Base
from salesdesk.models.base.mixins import TimestampMixin


class CatalogItem(Base, TimestampMixin):
    __tablename__ = "catalog_items"

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False)
    sku = Column(String(64), nullable=False, unique=True, index=True)
    category = Column(String(100), nullable=False, index=True)
    brand = Column(String(100), nullable=True)
    model = Column(String(100), nullable=True)
    year = Column(Integer, nullable=True)
    color = Column(String(50), nullable=True)
    base_price = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    stock_quantity = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        Index("ix_catalog_item_facets", "category", "brand", "model", "year"),
        CheckConstraint("base_price >= 0", name="ck_catalog_item_price_non_negative"),
        CheckConstraint("stock_quantity >= 0", name="ck_catalog_item_stock_non_negative"),
    )

    def __repr__(self):
        return f"<CatalogItem id={self.id} sku={self.sku}>"


class CurrencyRate(Base, TimestampMixin):
    """Units of this currency per one unit of the base currency."""

    __tablename__ = "currency_rates"

    code = Column(String(3), primary_key=True)
    name = Column(String(100), nullable=False)
    rate_to_base = Column(Numeric(18, 6), nullable=False)

    __table_args__ = (
        CheckConstraint("rate_to_base > 0", name="ck_currency_rate_positive"),
    )

    def __repr__(self):
        return f"<CurrencyRate {self.code}={self.rate_to_base}>"
