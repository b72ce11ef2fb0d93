"""
SQLAlchemy ORM Models for the EPG Changes Tracker

Records are persisted as JSON documents under fixed keys, so a single
key-value table backs every collection.
"""
from datetime import datetime, timezone
from sqlalchemy import String, Text, DateTime
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models"""
    pass


class StoredDocument(Base):
    """One serialized collection (or singleton record) keyed by name"""
    __tablename__ = "documents"

    key: Mapped[str] = mapped_column(String, primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<StoredDocument(key={self.key}, size={len(self.value)})>"
