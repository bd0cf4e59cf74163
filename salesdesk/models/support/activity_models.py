from sqlalchemy import Column, Integer, String, ForeignKey, Index
from sqlalchemy.orm import relationship
from salesdesk.core.db import Base
from salesdesk.models.base.mixins import TimestampMixin


class QuotationActivity(Base, TimestampMixin):
    """
    Append-only audit trail of quotation and invoice changes. Rows are
    written in the same transaction as the change they describe and are
    never updated or deleted.
    """

    __tablename__ = "quotation_activity"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    username_snapshot = Column(String(150), nullable=False, index=True)
    role_snapshot = Column(String(50), nullable=False)
    activity_code = Column(String(64), nullable=False, index=True)
    target_name = Column(String(50), nullable=True, index=True)
    message = Column(String, nullable=False)

    user = relationship("User", lazy="selectin")

    __table_args__ = (
        Index("ix_quotation_activity_user_created", "user_id", "created_at"),
        Index("ix_quotation_activity_target_created", "target_name", "created_at"),
    )

    def __repr__(self):
        return f"<QuotationActivity id={self.id} code={self.activity_code} target={self.target_name}>"
