from datetime import UTC, datetime

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db import Base


class Subscription(Base):
    """Latest known provider state for one subscription.

    The primary key is the id issued by the payments provider. Rows are
    written only through the upsert in ``app.services.subscription_store``
    and are never deleted.
    """

    __tablename__ = "subscription"
    __table_args__ = (Index("ix_subscription_user_id", "user_id"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    modified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(8), nullable=False)
    recurring_interval: Mapped[str] = mapped_column(String(16), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    current_period_start: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    current_period_end: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    cancel_at_period_end: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    canceled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    ends_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    ended_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    customer_id: Mapped[str] = mapped_column(String(64), nullable=False)
    product_id: Mapped[str] = mapped_column(String(64), nullable=False)
    discount_id: Mapped[str | None] = mapped_column(String(64))
    checkout_id: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    customer_cancellation_reason: Mapped[str | None] = mapped_column(String(255))
    customer_cancellation_comment: Mapped[str | None] = mapped_column(Text)
    metadata_: Mapped[str | None] = mapped_column("metadata", Text)
    custom_field_data: Mapped[str | None] = mapped_column(Text)
    # No foreign key: the provider may reference a user that does not exist yet.
    user_id: Mapped[str | None] = mapped_column(String(64))
