"""Subscription plan catalog.

Plans come from a single configuration source: ``SUBSCRIPTION_PLANS`` holding
a JSON array (a lone JSON object is treated as a one-element array). When that
is unset or unparseable, the legacy ``STARTER_TIER`` / ``STARTER_SLUG`` pair
produces a single "Starter" plan.

The catalog is parsed once per process. ``get_plan_registry()`` builds it on
first use under a lock; the application also builds it during startup and
hands it to request handlers through a dependency.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from threading import Lock
from typing import Any

from pydantic import ValidationError

from app.config import Settings, settings
from app.schemas.plans import CheckoutProduct, Plan

logger = logging.getLogger(__name__)

CURRENCY_SYMBOLS = {
    "USD": "$",
    "CAD": "CA$",
    "AUD": "A$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "INR": "₹",
    "NGN": "₦",
}


def _legacy_plan(product_id: str, slug: str) -> dict[str, Any]:
    return {
        "id": "starter",
        "name": "Starter",
        "slug": slug,
        "description": "Perfect for getting started",
        "price": 1000,
        "currency": "USD",
        "interval": "month",
        "productId": product_id,
        "features": [
            {"name": "5 Projects", "included": True},
            {"name": "10GB Storage", "included": True},
            {"name": "1 Team Member", "included": True, "limit": 1},
            {"name": "Email Support", "included": True},
        ],
        "buttonText": "Get Started",
    }


def load_plans(s: Settings = settings) -> list[dict[str, Any]]:
    """Parse the raw plan list from configuration without validating it."""
    if s.subscription_plans:
        try:
            parsed = json.loads(s.subscription_plans)
        except json.JSONDecodeError as exc:
            logger.warning("Failed to parse SUBSCRIPTION_PLANS JSON: %s", exc)
        else:
            return parsed if isinstance(parsed, list) else [parsed]

    if s.starter_tier and s.starter_slug:
        return [_legacy_plan(s.starter_tier, s.starter_slug)]
    return []


def _is_valid_price(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return value > 0


def validate_plans(plans: list[Any]) -> list[str]:
    """Collect every problem with a raw plan list. Never raises."""
    errors: list[str] = []
    if not plans:
        errors.append(
            "No subscription plans configured. Please set SUBSCRIPTION_PLANS "
            "or legacy environment variables."
        )

    product_ids: set[str] = set()
    slugs: set[str] = set()
    plan_ids: set[str] = set()

    for index, plan in enumerate(plans):
        if not isinstance(plan, dict):
            errors.append(f"Plan at index {index} is not an object")
            continue
        if not plan.get("id"):
            errors.append(f"Plan at index {index} missing id")
        if not plan.get("name"):
            errors.append(f"Plan at index {index} missing name")
        if not plan.get("slug"):
            errors.append(f"Plan at index {index} missing slug")
        if not plan.get("productId"):
            errors.append(f"Plan at index {index} missing productId")
        if not _is_valid_price(plan.get("price")):
            errors.append(f"Plan at index {index} has invalid price")
        interval = plan.get("interval", "month")
        if interval not in ("month", "year"):
            errors.append(f"Plan at index {index} has invalid interval: {interval}")

        for key, label, seen in (
            ("productId", "productId", product_ids),
            ("slug", "slug", slugs),
            ("id", "plan id", plan_ids),
        ):
            value = plan.get(key)
            if value is None:
                continue
            if not isinstance(value, str):
                errors.append(f"Plan at index {index} has non-string {key}")
            elif value in seen:
                errors.append(f"Duplicate {label}: {value}")
            else:
                seen.add(value)

    return errors


class PlanRegistry:
    """Immutable, in-memory plan catalog with lookup helpers."""

    def __init__(self, plans: Iterable[Plan], errors: Iterable[str] = ()) -> None:
        self._plans: tuple[Plan, ...] = tuple(plans)
        self._errors: tuple[str, ...] = tuple(errors)

    @classmethod
    def from_raw(cls, raw_plans: list[Any]) -> PlanRegistry:
        errors = validate_plans(raw_plans)
        plans: list[Plan] = []
        for index, raw in enumerate(raw_plans):
            if not isinstance(raw, dict):
                continue
            try:
                plans.append(Plan.model_validate(raw))
            except ValidationError as exc:
                # validate_plans already reported the common cases
                logger.debug("Skipping plan at index %s: %s", index, exc)
        return cls(plans, errors)

    @classmethod
    def from_settings(cls, s: Settings = settings) -> PlanRegistry:
        return cls.from_raw(load_plans(s))

    @property
    def plans(self) -> list[Plan]:
        return list(self._plans)

    def validate(self) -> list[str]:
        return list(self._errors)

    def is_valid(self) -> bool:
        return not self._errors

    def get(self, plan_id: str) -> Plan | None:
        return next((plan for plan in self._plans if plan.id == plan_id), None)

    def get_by_product_id(self, product_id: str | None) -> Plan | None:
        if not product_id:
            return None
        return next(
            (plan for plan in self._plans if plan.product_id == product_id), None
        )

    def get_by_slug(self, slug: str) -> Plan | None:
        return next((plan for plan in self._plans if plan.slug == slug), None)

    def product_ids(self) -> list[str]:
        return [plan.product_id for plan in self._plans]

    def products_for_checkout(self) -> list[CheckoutProduct]:
        return [
            CheckoutProduct(product_id=plan.product_id, slug=plan.slug)
            for plan in self._plans
        ]


_REGISTRY: PlanRegistry | None = None
_REGISTRY_LOCK = Lock()


def get_plan_registry() -> PlanRegistry:
    global _REGISTRY
    if _REGISTRY is not None:
        return _REGISTRY
    with _REGISTRY_LOCK:
        if _REGISTRY is None:
            _REGISTRY = PlanRegistry.from_settings(settings)
            logger.info("Loaded %s subscription plan(s)", len(_REGISTRY.plans))
        return _REGISTRY


def set_plan_registry(registry: PlanRegistry) -> None:
    global _REGISTRY
    with _REGISTRY_LOCK:
        _REGISTRY = registry


def reset_plan_registry() -> None:
    global _REGISTRY
    with _REGISTRY_LOCK:
        _REGISTRY = None


def format_price(price: int | float, currency: str = "USD") -> str:
    """Render a price in minor units as a whole-unit currency string."""
    code = (currency or "USD").upper()
    amount = f"{price / 100:,.0f}"
    symbol = CURRENCY_SYMBOLS.get(code)
    if symbol is None:
        return f"{code} {amount}"
    return f"{symbol}{amount}"
