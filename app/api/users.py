import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_role, require_session
from app.models.subscription import Subscription
from app.models.user import User, UserRole
from app.schemas.auth import AssignRoleRequest, AssignRoleResponse, UserRead
from app.services.roles import assign_user_role
from app.services.session import AuthenticatedSession

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["users"])


@router.post("/assign-role", response_model=AssignRoleResponse)
def assign_role(payload: AssignRoleRequest, db: Session = Depends(get_db)):
    if not payload.user_id:
        raise HTTPException(status_code=400, detail="User ID is required")
    if assign_user_role(db, payload.user_id) is None:
        raise HTTPException(status_code=500, detail="Failed to assign role")
    return AssignRoleResponse(success=True)


@router.get("/me", response_model=UserRead)
def read_me(auth: AuthenticatedSession = Depends(require_session)):
    return auth.user


@router.get("/admin/overview")
def admin_overview(
    auth: AuthenticatedSession = Depends(require_role(UserRole.super_admin.value)),
    db: Session = Depends(get_db),
) -> dict:
    total_users = db.scalar(select(func.count()).select_from(User)) or 0
    rows = db.execute(
        select(Subscription.status, func.count()).group_by(Subscription.status)
    ).all()
    orphaned = (
        db.scalar(
            select(func.count())
            .select_from(Subscription)
            .where(Subscription.user_id.is_(None))
        )
        or 0
    )
    return {
        "user": UserRead.model_validate(auth.user).model_dump(mode="json"),
        "total_users": total_users,
        "subscriptions_by_status": {status: count for status, count in rows},
        "orphaned_subscriptions": orphaned,
    }
