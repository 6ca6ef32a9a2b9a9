"""Read side of subscription state.

A user may hold several subscription rows (upgrades, downgrades,
re-subscriptions). ``SubscriptionResolver.resolve`` picks the one that
matters now:

1. the most recently created row whose status is ``active``; otherwise
2. the most recently created row of any status, reported with an error
   whose type is CANCELED when the status is ``canceled``, else EXPIRED
   when the current period has ended, else GENERAL.

All other helpers are derived from ``resolve`` except
``list_user_subscriptions``, which projects every row without precedence.
"""

import logging
from datetime import UTC, datetime

from sqlalchemy.orm import Session

from app.models.subscription import Subscription
from app.schemas.subscription import (
    ProductAccess,
    SubscriptionDetails,
    SubscriptionDetailsResult,
    SubscriptionErrorType,
)
from app.services.plans import PlanRegistry, get_plan_registry
from app.services.subscription_store import subscription_store

logger = logging.getLogger(__name__)

ACTIVE_STATUS = "active"
CANCELED_STATUS = "canceled"

_ERROR_MESSAGES = {
    SubscriptionErrorType.canceled: "Subscription has been canceled",
    SubscriptionErrorType.expired: "Subscription has expired",
    SubscriptionErrorType.general: "Subscription is not active",
}


def _as_utc(value: datetime | None) -> datetime | None:
    """SQLite doesn't preserve tz info."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _created_key(row: Subscription) -> datetime:
    return _as_utc(row.created_at) or datetime.min.replace(tzinfo=UTC)


def classify_inactive(row: Subscription, now: datetime) -> SubscriptionErrorType:
    is_canceled = row.status == CANCELED_STATUS
    period_end = _as_utc(row.current_period_end)
    is_expired = period_end is not None and period_end < now
    if is_canceled:
        return SubscriptionErrorType.canceled
    if is_expired:
        return SubscriptionErrorType.expired
    return SubscriptionErrorType.general


class SubscriptionResolver:
    def __init__(self, registry: PlanRegistry | None = None) -> None:
        self._registry = registry

    @property
    def registry(self) -> PlanRegistry:
        return self._registry or get_plan_registry()

    def to_details(self, row: Subscription) -> SubscriptionDetails:
        details = SubscriptionDetails.model_validate(row)
        return details.model_copy(
            update={"plan": self.registry.get_by_product_id(row.product_id)}
        )

    def resolve(self, db: Session, user_id: str | None) -> SubscriptionDetailsResult:
        if not user_id:
            return SubscriptionDetailsResult(has_subscription=False)
        try:
            rows = subscription_store.list_for_user(db, user_id)
            if not rows:
                return SubscriptionDetailsResult(has_subscription=False)

            rows = sorted(rows, key=_created_key, reverse=True)
            active = next((row for row in rows if row.status == ACTIVE_STATUS), None)
            if active is not None:
                return SubscriptionDetailsResult(
                    has_subscription=True, subscription=self.to_details(active)
                )

            latest = rows[0]
            error_type = classify_inactive(latest, datetime.now(UTC))
            return SubscriptionDetailsResult(
                has_subscription=True,
                subscription=self.to_details(latest),
                error=_ERROR_MESSAGES[error_type],
                error_type=error_type,
            )
        except Exception:
            logger.exception(
                "Error fetching subscription details", extra={"user_id": user_id}
            )
            return SubscriptionDetailsResult(
                has_subscription=False,
                error="Failed to load subscription details",
                error_type=SubscriptionErrorType.general,
            )

    def is_user_subscribed(self, db: Session, user_id: str | None) -> bool:
        result = self.resolve(db, user_id)
        return bool(
            result.has_subscription
            and result.subscription
            and result.subscription.status == ACTIVE_STATUS
        )

    def has_access_to_product(
        self, db: Session, user_id: str | None, product_id: str
    ) -> bool:
        result = self.resolve(db, user_id)
        return bool(
            result.has_subscription
            and result.subscription
            and result.subscription.status == ACTIVE_STATUS
            and result.subscription.product_id == product_id
        )

    def has_access_to_any_product(
        self, db: Session, user_id: str | None, product_ids: list[str]
    ) -> ProductAccess:
        result = self.resolve(db, user_id)
        if (
            not result.has_subscription
            or result.subscription is None
            or result.subscription.status != ACTIVE_STATUS
        ):
            return ProductAccess(has_access=False)
        active_product = result.subscription.product_id
        has_access = active_product in product_ids
        return ProductAccess(
            has_access=has_access,
            active_product=active_product if has_access else None,
        )

    def get_user_subscription_status(self, db: Session, user_id: str | None) -> str:
        """One of ``active``, ``canceled``, ``expired`` or ``none``."""
        result = self.resolve(db, user_id)
        if not result.has_subscription:
            return "none"
        if result.subscription and result.subscription.status == ACTIVE_STATUS:
            return "active"
        if result.error_type == SubscriptionErrorType.canceled:
            return "canceled"
        if result.error_type == SubscriptionErrorType.expired:
            return "expired"
        return "none"

    def list_user_subscriptions(
        self, db: Session, user_id: str | None
    ) -> list[SubscriptionDetails]:
        if not user_id:
            return []
        try:
            rows = subscription_store.list_for_user(db, user_id)
            return [self.to_details(row) for row in rows]
        except Exception:
            logger.exception(
                "Error fetching user subscriptions", extra={"user_id": user_id}
            )
            return []


subscription_resolver = SubscriptionResolver()
