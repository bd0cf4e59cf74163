from pydantic import BaseModel, Field
from typing import Optional
from decimal import Decimal
from datetime import datetime


class ExtraExpense(BaseModel):
    description: str = ""
    amount: Decimal = Field(Decimal("0"), ge=0)


class CustomerPayment(BaseModel):
    payment_amount: Decimal = Field(Decimal("0"), ge=0)
    payment_method: Optional[str] = None
    payment_notes: Optional[str] = None
    payment_date: Optional[datetime] = None


class InvoiceFields(BaseModel):
    notes: Optional[str] = None
    more_expense: ExtraExpense = Field(default_factory=ExtraExpense)
    customer_payment: CustomerPayment = Field(default_factory=CustomerPayment)


class InvoiceCreate(InvoiceFields):
    quotation_id: int


class InvoiceOut(BaseModel):
    id: int
    invoice_number: str
    quotation_id: int
    currency: str
    notes: Optional[str]
    extra_expense_description: Optional[str]
    extra_expense_amount: Decimal
    payment_amount: Decimal
    payment_method: Optional[str]
    total_amount: Decimal
    created_at: Optional[datetime]

    class Config:
        from_attributes = True
