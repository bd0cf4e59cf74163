from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, Enum, Index, CheckConstraint, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from decimal import Decimal
from salesdesk.core.db import Base
from salesdesk.models.base.mixins import TimestampMixin, SoftDeleteMixin, AuditMixin
from salesdesk.models.enums.quotation_status import QuotationStatus
from salesdesk.models.enums.discount_type import DiscountType
from salesdesk.models.enums.review_reason import ReviewReason


class Quotation(Base, TimestampMixin, SoftDeleteMixin, AuditMixin):
    __tablename__ = "quotations"

    id = Column(Integer, primary_key=True)
    quotation_number = Column(String(50), nullable=False, unique=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="RESTRICT"), nullable=False, index=True)
    status = Column(Enum(QuotationStatus), nullable=False, default=QuotationStatus.draft, index=True)
    valid_till = Column(DateTime(timezone=True), nullable=True)

    currency = Column(String(3), nullable=False)
    discount_type = Column(Enum(DiscountType), nullable=False, default=DiscountType.amount)
    discount_value = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    vat_percent = Column(Numeric(5, 2), nullable=False, default=Decimal("0.00"))

    subtotal = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    total_discount = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    vat_amount = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    total_amount = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))

    version = Column(Integer, nullable=False, default=1)
    notes = Column(String, nullable=True)

    customer = relationship("Customer", back_populates="quotations", lazy="selectin")
    items = relationship("QuotationItem", back_populates="quotation", cascade="all, delete-orphan", lazy="selectin")
    status_history = relationship(
        "QuotationStatusHistory",
        back_populates="quotation",
        cascade="all, delete-orphan",
        order_by="QuotationStatusHistory.id",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_quotation_customer_status", "customer_id", "status"),
        CheckConstraint(
            "subtotal >= 0 AND total_discount >= 0 AND vat_amount >= 0 AND total_amount >= 0",
            name="ck_quotation_amounts_non_negative",
        ),
        CheckConstraint("total_discount <= subtotal", name="ck_quotation_discount_within_subtotal"),
        CheckConstraint("discount_value >= 0", name="ck_quotation_discount_value_non_negative"),
    )

    def __repr__(self):
        return f"<Quotation {self.quotation_number} status={self.status}>"


class QuotationItem(Base, TimestampMixin, AuditMixin):
    __tablename__ = "quotation_items"

    id = Column(Integer, primary_key=True)
    quotation_id = Column(Integer, ForeignKey("quotations.id", ondelete="CASCADE"), nullable=False, index=True)
    item_id = Column(Integer, ForeignKey("catalog_items.id", ondelete="RESTRICT"), nullable=False, index=True)
    name = Column(String, nullable=False)
    sku = Column(String(64), nullable=True)
    category = Column(String(100), nullable=True)
    brand = Column(String(100), nullable=True)
    model = Column(String(100), nullable=True)
    year = Column(Integer, nullable=True)
    color = Column(String(50), nullable=True)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(14, 2), nullable=False)
    total_price = Column(Numeric(14, 2), nullable=False)

    quotation = relationship("Quotation", back_populates="items", lazy="selectin")

    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_quotation_item_quantity_positive"),
        CheckConstraint("unit_price >= 0", name="ck_quotation_item_price_non_negative"),
        CheckConstraint("total_price >= 0", name="ck_quotation_item_total_non_negative"),
    )

    def __repr__(self):
        return f"<QuotationItem id={self.id} item_id={self.item_id} qty={self.quantity}>"


class QuotationStatusHistory(Base):
    """Append-only. The newest row always matches Quotation.status."""

    __tablename__ = "quotation_status_history"

    id = Column(Integer, primary_key=True)
    quotation_id = Column(Integer, ForeignKey("quotations.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(Enum(QuotationStatus), nullable=False)
    review_reason = Column(Enum(ReviewReason), nullable=True)
    changed_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    actor_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    quotation = relationship("Quotation", back_populates="status_history", lazy="raise")
    actor = relationship("User", lazy="joined")

    def __repr__(self):
        return f"<QuotationStatusHistory quotation_id={self.quotation_id} status={self.status}>"
