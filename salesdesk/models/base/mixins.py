from datetime import datetime, timezone

from sqlalchemy import Column, Integer, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import declared_attr, relationship
from sqlalchemy.sql import func


class TimestampMixin:
    created_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    updated_at = Column(
        DateTime(timezone=True),
        onupdate=func.now()
    )


class SoftDeleteMixin:
    is_deleted = Column(Boolean, default=False, nullable=False)

    def soft_delete(self, user_id: int | None = None) -> None:
        self.is_deleted = True
        if user_id is not None and hasattr(self, "stamp"):
            self.stamp(user_id)


class AuditMixin:
    @declared_attr
    def created_by_id(cls):
        return Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    @declared_attr
    def updated_by_id(cls):
        return Column(Integer, ForeignKey("users.id"), nullable=True, index=True)

    @declared_attr
    def created_by(cls):
        return relationship(
            "User",
            foreign_keys=[cls.created_by_id],
            lazy="joined"
        )

    @declared_attr
    def updated_by(cls):
        return relationship(
            "User",
            foreign_keys=[cls.updated_by_id],
            lazy="joined"
        )

    def stamp(self, user_id: int | None) -> None:
        """Record who touched the row last. ``updated_at`` is set here so it is readable before a refresh."""
        self.updated_by_id = user_id
        self.updated_at = datetime.now(timezone.utc)

    # ----------------------------
    # Names for API payloads; None until the relationship is loaded
    # ----------------------------
    @property
    def created_by_name(self):
        return self.created_by.username if self.created_by else None

    @property
    def updated_by_name(self):
        return self.updated_by.username if self.updated_by else None
