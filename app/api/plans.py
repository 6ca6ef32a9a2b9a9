"""Pricing catalog and hosted checkout/portal redirects."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from app.api.deps import get_plans, require_session
from app.config import settings
from app.schemas.plans import CheckoutResponse, PlanRead
from app.services.plans import PlanRegistry, format_price
from app.services.polar import polar_gateway
from app.services.session import AuthenticatedSession

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["plans"])


@router.get("/plans", response_model=list[PlanRead])
def list_plans(plans: PlanRegistry = Depends(get_plans)):
    return [
        PlanRead(
            **plan.model_dump(),
            formatted_price=format_price(plan.price, plan.currency),
        )
        for plan in plans.plans
    ]


@router.post("/checkout/{slug}", response_model=CheckoutResponse)
def create_checkout(
    slug: str,
    auth: AuthenticatedSession = Depends(require_session),
    plans: PlanRegistry = Depends(get_plans),
):
    plan = plans.get_by_slug(slug)
    if plan is None:
        raise HTTPException(status_code=404, detail="Plan not found")
    if not polar_gateway.is_configured():
        raise HTTPException(status_code=503, detail="Payment provider not configured")

    success_url = f"{settings.app_url.rstrip('/')}/{settings.polar_success_url.lstrip('/')}"
    try:
        checkout = polar_gateway.create_checkout(
            plan.product_id, auth.user.id, success_url
        )
    except ValueError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return CheckoutResponse(checkout_id=str(checkout["id"]), url=checkout["url"])


@router.get("/portal")
def customer_portal(auth: AuthenticatedSession = Depends(require_session)) -> dict:
    if not polar_gateway.is_configured():
        raise HTTPException(status_code=503, detail="Payment provider not configured")
    try:
        session = polar_gateway.create_customer_session(auth.user.id)
    except ValueError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return {"url": session["customer_portal_url"]}
