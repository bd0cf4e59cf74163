from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, DateTime, CheckConstraint
from sqlalchemy.orm import relationship
from decimal import Decimal
from salesdesk.core.db import Base
from salesdesk.models.base.mixins import TimestampMixin, AuditMixin


class Invoice(Base, TimestampMixin, AuditMixin):
    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True)
    invoice_number = Column(String(50), nullable=False, unique=True, index=True)
    quotation_id = Column(Integer, ForeignKey("quotations.id", ondelete="RESTRICT"), nullable=False, unique=True)
    currency = Column(String(3), nullable=False)

    notes = Column(String, nullable=True)
    extra_expense_description = Column(String, nullable=True)
    extra_expense_amount = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))

    payment_amount = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    payment_method = Column(String(50), nullable=True)
    payment_notes = Column(String, nullable=True)
    payment_date = Column(DateTime(timezone=True), nullable=True)

    total_amount = Column(Numeric(14, 2), nullable=False)

    quotation = relationship("Quotation", lazy="selectin")

    __table_args__ = (
        CheckConstraint("extra_expense_amount >= 0", name="ck_invoice_expense_non_negative"),
        CheckConstraint("payment_amount >= 0", name="ck_invoice_payment_non_negative"),
        CheckConstraint("total_amount >= 0", name="ck_invoice_total_non_negative"),
    )

    def __repr__(self):
        return f"<Invoice {self.invoice_number} quotation_id={self.quotation_id}>"
