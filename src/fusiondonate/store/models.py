"""SQLAlchemy models for the order store."""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """Timestamp stored as UTC and always returned timezone-aware.

    SQLite drops tzinfo on storage, so values are normalised to UTC on the way
    in and re-tagged as UTC on the way out.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        value = value.astimezone(timezone.utc)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class OrderStatus(str, Enum):
    """Lifecycle status of a submitted order.

    Only PENDING is non-terminal.
    """

    PENDING = "pending"
    EXECUTED = "executed"
    TIMEOUT = "timeout"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self is not OrderStatus.PENDING


class FusionOrderPreparation(Base):
    """Short-lived, single-use record bridging "order built" and "order signed".

    Holds everything needed to submit the order after the wallet signs it, so
    nothing has to be re-derived (and the signed hash cannot drift).
    """

    __tablename__ = "fusion_order_preparations"

    preparation_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    quote_json: Mapped[str] = mapped_column(Text, nullable=False)
    secrets_json: Mapped[str] = mapped_column(Text, nullable=False)
    order_params_json: Mapped[str] = mapped_column(Text, nullable=False)
    order_struct_json: Mapped[str] = mapped_column(Text, nullable=False)
    quote_id: Mapped[str] = mapped_column(String(255), nullable=False)
    extension_data: Mapped[str] = mapped_column(Text, nullable=False)
    order_hash: Mapped[str] = mapped_column(String(66), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Check whether the preparation is past its expiry."""
        return self.expires_at < (now or utcnow())


class FusionOrder(Base):
    """A signed, submitted order awaiting completion by the worker."""

    __tablename__ = "fusion_orders"

    order_hash: Mapped[str] = mapped_column(String(66), primary_key=True)
    secrets_json: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=OrderStatus.PENDING.value, nullable=False, index=True
    )
    attempts: Mapped[int] = mapped_column(default=0, nullable=False)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, index=True)
