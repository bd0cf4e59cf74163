from pydantic import BaseModel, Field
from typing import List, Optional
from decimal import Decimal


# =====================================================
# ITEMS
# =====================================================

class CatalogItemOut(BaseModel):
    id: int
    name: str
    sku: str
    category: str
    brand: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    color: Optional[str] = None
    unit_price: Decimal
    currency: str
    stock_quantity: int = 0


# =====================================================
# PAGE RESPONSE
# =====================================================

class FacetSummary(BaseModel):
    category: List[str] = Field(default_factory=list)
    brand: List[str] = Field(default_factory=list)
    model: List[str] = Field(default_factory=list)
    year: List[int] = Field(default_factory=list)
    color: List[str] = Field(default_factory=list)


class PaginationMeta(BaseModel):
    page: int
    limit: int
    total: int
    pages: int
    has_next: bool
    has_prev: bool


class CurrencyInfo(BaseModel):
    currency: str
    exchange_rate: Decimal
    base_currency: str


class CatalogPage(BaseModel):
    items: List[CatalogItemOut]
    facet_summary: FacetSummary
    pagination: PaginationMeta
    currency_info: CurrencyInfo


class CurrencyOut(BaseModel):
    code: str
    name: str

    class Config:
        from_attributes = True
