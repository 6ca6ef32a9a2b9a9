from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import get_current_session, get_db, get_plans
from app.schemas.subscription import (
    ProductAccess,
    ProductAccessRequest,
    SubscriptionDetails,
    SubscriptionDetailsResult,
    SubscriptionStatusRead,
)
from app.services.plans import PlanRegistry
from app.services.session import AuthenticatedSession
from app.services.subscription import SubscriptionResolver

router = APIRouter(prefix="/api", tags=["subscriptions"])


def _user_id(auth: AuthenticatedSession | None) -> str | None:
    return auth.user.id if auth else None


def get_resolver(plans: PlanRegistry = Depends(get_plans)) -> SubscriptionResolver:
    return SubscriptionResolver(plans)


@router.get(
    "/subscription",
    response_model=SubscriptionDetailsResult,
    response_model_exclude_none=True,
)
def get_subscription_details(
    auth: AuthenticatedSession | None = Depends(get_current_session),
    resolver: SubscriptionResolver = Depends(get_resolver),
    db: Session = Depends(get_db),
):
    return resolver.resolve(db, _user_id(auth))


@router.get("/subscription/status", response_model=SubscriptionStatusRead)
def get_subscription_status(
    auth: AuthenticatedSession | None = Depends(get_current_session),
    resolver: SubscriptionResolver = Depends(get_resolver),
    db: Session = Depends(get_db),
):
    return SubscriptionStatusRead(
        status=resolver.get_user_subscription_status(db, _user_id(auth))
    )


@router.get("/subscriptions", response_model=list[SubscriptionDetails])
def list_subscriptions(
    auth: AuthenticatedSession | None = Depends(get_current_session),
    resolver: SubscriptionResolver = Depends(get_resolver),
    db: Session = Depends(get_db),
):
    return resolver.list_user_subscriptions(db, _user_id(auth))


@router.get("/subscription/access/{product_id}")
def check_product_access(
    product_id: str,
    auth: AuthenticatedSession | None = Depends(get_current_session),
    resolver: SubscriptionResolver = Depends(get_resolver),
    db: Session = Depends(get_db),
) -> dict[str, bool]:
    return {
        "has_access": resolver.has_access_to_product(db, _user_id(auth), product_id)
    }


@router.post("/subscription/access", response_model=ProductAccess)
def check_any_product_access(
    payload: ProductAccessRequest,
    auth: AuthenticatedSession | None = Depends(get_current_session),
    resolver: SubscriptionResolver = Depends(get_resolver),
    db: Session = Depends(get_db),
):
    return resolver.has_access_to_any_product(db, _user_id(auth), payload.product_ids)
