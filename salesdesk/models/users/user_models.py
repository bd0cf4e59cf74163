from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.sql import func
from salesdesk.core.db import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    username = Column(String(150), unique=True, nullable=False, index=True)
    role = Column(String(50), nullable=False, default="sales")
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    @property
    def is_admin(self) -> bool:
        return self.role.lower() == "admin"

    def __repr__(self):
        return f"<User id={self.id} username={self.username} role={self.role}>"
