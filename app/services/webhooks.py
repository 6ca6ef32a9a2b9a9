"""Reconcile provider subscription webhooks into the subscription table.

Each recognized event carries the full current state of one subscription.
The state is normalized and upserted by subscription id; the table therefore
holds the latest state that *arrived*, not the latest state by event time.
Deliveries are not reordered or de-duplicated beyond the primary-key upsert.

Errors never propagate to the HTTP layer: the provider would otherwise retry,
and a retry of a deterministic failure only repeats it.
"""

import json
import logging
import re
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.orm import Session

from app.metrics import WEBHOOK_EVENTS
from app.schemas.webhooks import WebhookOutcome
from app.services.subscription_store import subscription_store

logger = logging.getLogger(__name__)

SUBSCRIPTION_EVENTS = frozenset(
    {
        "subscription.created",
        "subscription.active",
        "subscription.canceled",
        "subscription.revoked",
        "subscription.uncanceled",
        "subscription.updated",
    }
)


def _now() -> datetime:
    return datetime.now(UTC)


def parse_datetime(value: str | datetime | None) -> datetime | None:
    """Parse an ISO-8601 timestamp; ``None`` and empty strings give ``None``."""
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _required_datetime(value: str | datetime | None) -> datetime:
    # A missing required timestamp is replaced by the current time rather
    # than rejected; malformed payloads are stored, not dropped.
    return parse_datetime(value) or _now()


_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def _field(data: dict[str, Any], name: str) -> Any:
    """Read a camelCase key, falling back to its snake_case wire spelling."""
    if name in data:
        return data[name]
    return data.get(_CAMEL_BOUNDARY.sub("_", name).lower())


def _json_text(value: Any) -> str | None:
    if value is None:
        return None
    return json.dumps(value)


def extract_user_id(data: dict[str, Any]) -> str | None:
    customer = _field(data, "customer") or {}
    external_id = _field(customer, "externalId")
    return str(external_id) if external_id else None


def build_subscription_values(data: dict[str, Any]) -> dict[str, Any]:
    """Normalize a provider subscription object into subscription columns."""
    return {
        "id": data["id"],
        "created_at": _required_datetime(_field(data, "createdAt")),
        "modified_at": parse_datetime(_field(data, "modifiedAt")),
        "amount": _field(data, "amount"),
        "currency": _field(data, "currency"),
        "recurring_interval": _field(data, "recurringInterval"),
        "status": _field(data, "status"),
        "current_period_start": _required_datetime(_field(data, "currentPeriodStart")),
        "current_period_end": _required_datetime(_field(data, "currentPeriodEnd")),
        "cancel_at_period_end": bool(_field(data, "cancelAtPeriodEnd") or False),
        "canceled_at": parse_datetime(_field(data, "canceledAt")),
        "started_at": _required_datetime(_field(data, "startedAt")),
        "ends_at": parse_datetime(_field(data, "endsAt")),
        "ended_at": parse_datetime(_field(data, "endedAt")),
        "customer_id": _field(data, "customerId"),
        "product_id": _field(data, "productId"),
        "discount_id": _field(data, "discountId") or None,
        "checkout_id": _field(data, "checkoutId") or "",
        "customer_cancellation_reason": _field(data, "customerCancellationReason")
        or None,
        "customer_cancellation_comment": _field(data, "customerCancellationComment")
        or None,
        "metadata_": _json_text(_field(data, "metadata")),
        "custom_field_data": _json_text(_field(data, "customFieldData")),
        "user_id": extract_user_id(data),
    }


class SubscriptionWebhookReconciler:
    @staticmethod
    def handle(
        db: Session, event_type: str, data: dict[str, Any] | None
    ) -> WebhookOutcome:
        if event_type not in SUBSCRIPTION_EVENTS:
            logger.info(
                "Ignoring webhook event: %s", event_type, extra={"event_type": event_type}
            )
            WEBHOOK_EVENTS.labels(event_type, WebhookOutcome.ignored.value).inc()
            return WebhookOutcome.ignored

        subscription_id = (data or {}).get("id")
        logger.info(
            "Processing subscription webhook: %s",
            event_type,
            extra={"event_type": event_type, "subscription_id": subscription_id},
        )
        try:
            values = build_subscription_values(data or {})
            if values["user_id"] is None:
                logger.warning(
                    "Subscription %s has no customer external id; storing unowned",
                    subscription_id,
                    extra={"event_type": event_type, "subscription_id": subscription_id},
                )
            subscription_store.upsert(db, values)
        except Exception:
            db.rollback()
            logger.exception(
                "Error processing subscription webhook",
                extra={"event_type": event_type, "subscription_id": subscription_id},
            )
            WEBHOOK_EVENTS.labels(event_type, WebhookOutcome.failed.value).inc()
            return WebhookOutcome.failed

        WEBHOOK_EVENTS.labels(event_type, WebhookOutcome.processed.value).inc()
        return WebhookOutcome.processed


subscription_webhooks = SubscriptionWebhookReconciler()
