from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from decimal import Decimal

from salesdesk.constants.cart import MAX_LINE_QUANTITY
from salesdesk.models.enums.discount_type import DiscountType
from salesdesk.models.enums.quotation_status import QuotationStatus
from salesdesk.models.enums.review_reason import ReviewReason
from salesdesk.schemas.billing.invoice_schemas import InvoiceFields
from salesdesk.schemas.catalog.catalog_schemas import FacetSummary


# =====================================================
# REQUESTS
# =====================================================

class SessionOpen(BaseModel):
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    quotation_id: Optional[int] = None


class FilterUpdate(BaseModel):
    category: Optional[str] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    color: Optional[str] = None


class SearchUpdate(BaseModel):
    term: Optional[str] = None


class PageUpdate(BaseModel):
    page: int


class LimitUpdate(BaseModel):
    limit: int


class QuantityAdjust(BaseModel):
    delta: int = Field(..., ge=-MAX_LINE_QUANTITY, le=MAX_LINE_QUANTITY)


class DiscountIn(BaseModel):
    type: DiscountType
    value: Decimal

    @field_validator("type", mode="before")
    @classmethod
    def fixed_is_amount(cls, v):
        if isinstance(v, str) and v.lower() == "fixed":
            return DiscountType.amount
        return v


class CurrencyIn(BaseModel):
    currency: str


class SessionTransitionIn(BaseModel):
    target: QuotationStatus


class SubmitCartIn(BaseModel):
    customer_id: int
    notes: Optional[str] = None


class SessionInvoiceIn(InvoiceFields):
    pass


# =====================================================
# VIEW
# =====================================================

class PendingChangeOut(BaseModel):
    proposed_currency: str
    previous_currency: str
    requires_confirmation: bool
    kind: str


class CatalogRowOut(BaseModel):
    id: int
    name: str
    sku: str
    category: str
    brand: Optional[str]
    model: Optional[str]
    year: Optional[int]
    color: Optional[str]
    unit_price: Decimal
    stock_quantity: int
    selected: bool


class CartLineOut(BaseModel):
    item_id: int
    name: Optional[str]
    sku: Optional[str]
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    hidden: bool


class PricingOut(BaseModel):
    subtotal: Decimal
    discount_type: DiscountType
    discount_value: Decimal
    discount_amount: Decimal
    final_total: Decimal


class PaginationOut(BaseModel):
    page: int
    limit: int
    total_items: int
    total_pages: int
    has_next: bool
    has_prev: bool
    visible: bool
    showing_from: int
    showing_to: int
    page_window: List[Optional[int]]


class BoundQuotationOut(BaseModel):
    id: int
    quotation_number: str
    customer_id: int
    status: QuotationStatus
    status_display: str
    review_reason: Optional[ReviewReason]
    version: int


class SessionView(BaseModel):
    session_id: str
    currency: str
    displayed_currency: str
    pending_change: Optional[PendingChangeOut]
    filters: dict
    facets: FacetSummary
    search_term: Optional[str]
    items: List[CatalogRowOut]
    selected: List[CartLineOut]
    pricing: PricingOut
    pagination: PaginationOut
    quotation: Optional[BoundQuotationOut]
    allowed_actions: List[str]
