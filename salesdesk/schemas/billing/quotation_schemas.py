from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from decimal import Decimal
from datetime import datetime

from salesdesk.constants.cart import MAX_LINE_QUANTITY
from salesdesk.constants.error_codes import ErrorCode
from salesdesk.models.enums.discount_type import DiscountType
from salesdesk.models.enums.quotation_status import QuotationStatus
from salesdesk.models.enums.review_reason import ReviewReason


def _normalise_discount_type(value):
    # older clients send "fixed" for an absolute discount
    if isinstance(value, str) and value.lower() == "fixed":
        return DiscountType.amount
    return value


# =====================================================
# LINE PAYLOADS
# =====================================================

class QuotationLineIn(BaseModel):
    item_id: int
    quantity: int = Field(..., ge=1, le=MAX_LINE_QUANTITY)


# =====================================================
# QUOTATION CREATE / UPDATE
# =====================================================

class QuotationCreate(BaseModel):
    customer_id: int
    currency: str = Field(..., min_length=3, max_length=3)
    items: List[QuotationLineIn]
    discount_type: DiscountType = DiscountType.amount
    discount_value: Decimal = Field(Decimal("0"), ge=0)
    vat_percent: Optional[Decimal] = Field(None, ge=0)
    notes: Optional[str] = None

    @field_validator("discount_type", mode="before")
    @classmethod
    def fixed_is_amount(cls, v):
        return _normalise_discount_type(v)


class QuotationLinesUpdate(BaseModel):
    items: List[QuotationLineIn]
    version: int
    # re-price every line in this currency
    currency: Optional[str] = Field(None, min_length=3, max_length=3)


class DiscountUpdate(BaseModel):
    discount: Decimal = Field(..., ge=0)
    discount_type: DiscountType

    @field_validator("discount_type", mode="before")
    @classmethod
    def fixed_is_amount(cls, v):
        return _normalise_discount_type(v)


class TransitionIn(BaseModel):
    target: QuotationStatus


# =====================================================
# RESPONSES
# =====================================================

class QuotationItemOut(BaseModel):
    id: int
    item_id: int
    name: str
    sku: Optional[str] = None
    category: Optional[str] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    color: Optional[str] = None
    quantity: int
    unit_price: Decimal
    total_price: Decimal


class StatusEntryOut(BaseModel):
    status: QuotationStatus
    changed_at: datetime
    actor_id: Optional[int] = None
    review_reason: Optional[ReviewReason] = None


class QuotationOut(BaseModel):
    id: int
    quotation_number: str
    customer_id: int
    status: QuotationStatus
    status_display: str
    status_history: List[StatusEntryOut]

    currency: str
    discount_type: DiscountType
    discount_value: Decimal
    vat_percent: Decimal

    subtotal: Decimal
    total_discount: Decimal
    vat_amount: Decimal
    total_amount: Decimal

    valid_till: Optional[datetime]
    notes: Optional[str]
    version: int

    created_by_id: Optional[int]
    updated_by_id: Optional[int]
    created_by_name: Optional[str]
    updated_by_name: Optional[str]

    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    items: List[QuotationItemOut]
    allowed_actions: List[str] = Field(default_factory=list)


class QuotationListItem(BaseModel):
    id: int
    quotation_number: str
    customer_id: int
    customer_name: Optional[str]
    status: QuotationStatus
    status_display: str
    currency: str
    items_count: int
    total_amount: Decimal
    valid_till: Optional[datetime]
    created_at: Optional[datetime]


class ListPagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int
    has_next: bool
    has_prev: bool


class QuotationListData(BaseModel):
    items: List[QuotationListItem]
    pagination: ListPagination


# =====================================================
# COLLABORATOR RESULTS
# =====================================================

class GatewayResult(BaseModel):
    success: bool
    message: str
    version: Optional[int] = None
    error_code: Optional[ErrorCode] = None
    details: Optional[dict] = None


class TransitionResult(GatewayResult):
    new_status: Optional[QuotationStatus] = None
    review_reason: Optional[ReviewReason] = None
