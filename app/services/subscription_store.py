import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from app.models.subscription import Subscription

logger = logging.getLogger(__name__)

# Columns overwritten when a row for the same provider id already exists.
# ``id`` and ``created_at`` keep their first-seen values.
UPSERT_COLUMNS = (
    "modified_at",
    "amount",
    "currency",
    "recurring_interval",
    "status",
    "current_period_start",
    "current_period_end",
    "cancel_at_period_end",
    "canceled_at",
    "started_at",
    "ends_at",
    "ended_at",
    "customer_id",
    "product_id",
    "discount_id",
    "checkout_id",
    "customer_cancellation_reason",
    "customer_cancellation_comment",
    "metadata_",
    "custom_field_data",
    "user_id",
)


def _insert_for(db: Session):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert
    if dialect == "sqlite":
        return sqlite.insert
    raise NotImplementedError(f"Upsert is not supported on {dialect}")


class SubscriptionStore:
    @staticmethod
    def upsert(db: Session, values: dict[str, Any]) -> None:
        """Insert a subscription or replace every mutable column of it.

        Runs as a single ``INSERT ... ON CONFLICT (id) DO UPDATE`` statement,
        so concurrent deliveries for the same id serialize in the database
        with last-commit-wins semantics.
        """
        insert = _insert_for(db)
        # mapper columns are keyed by attribute name (metadata_, not metadata)
        columns = Subscription.__mapper__.columns
        stmt = insert(Subscription.__table__).values(
            {columns[name]: value for name, value in values.items()}
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[columns["id"]],
            set_={
                columns[name]: stmt.excluded[columns[name].key]
                for name in UPSERT_COLUMNS
            },
        )
        db.execute(stmt)
        db.commit()
        logger.info(
            "Upserted subscription: %s",
            values["id"],
            extra={"subscription_id": values["id"], "user_id": values.get("user_id")},
        )

    @staticmethod
    def get(db: Session, subscription_id: str) -> Subscription | None:
        return db.get(Subscription, subscription_id)

    @staticmethod
    def list_for_user(db: Session, user_id: str) -> list[Subscription]:
        stmt = select(Subscription).where(Subscription.user_id == user_id)
        return list(db.scalars(stmt).all())


subscription_store = SubscriptionStore()
