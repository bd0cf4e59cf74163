from sqlalchemy import Column, Integer, String, Boolean
from sqlalchemy.orm import relationship
from salesdesk.core.db import Base
from salesdesk.models.base.mixins import TimestampMixin, SoftDeleteMixin, AuditMixin


class Customer(Base, TimestampMixin, SoftDeleteMixin, AuditMixin):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True)
    customer_code = Column(String(50), nullable=False, unique=True, index=True)
    name = Column(String(150), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    phone = Column(String(50), nullable=True)
    address = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    quotations = relationship("Quotation", back_populates="customer", lazy="raise")

    def __repr__(self):
        return f"<Customer id={self.id} code={self.customer_code}>"
