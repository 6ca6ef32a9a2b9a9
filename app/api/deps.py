from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.db import SessionLocal
from app.models.user import UserRole
from app.services.plans import PlanRegistry, get_plan_registry
from app.services.session import AuthenticatedSession, get_session


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_plans(request: Request) -> PlanRegistry:
    registry = getattr(request.app.state, "plan_registry", None)
    return registry or get_plan_registry()


def get_current_session(
    request: Request, db: Session = Depends(get_db)
) -> AuthenticatedSession | None:
    auth = get_session(db, request.headers, request.cookies)
    if auth is not None:
        request.state.actor_id = auth.user.id
    return auth


def require_session(
    auth: AuthenticatedSession | None = Depends(get_current_session),
) -> AuthenticatedSession:
    if auth is None:
        raise HTTPException(status_code=401, detail="Access denied. Please sign in.")
    return auth


def require_role(*allowed_roles: str):
    def _require_role(
        auth: AuthenticatedSession = Depends(require_session),
    ) -> AuthenticatedSession:
        role = auth.user.role or UserRole.user.value
        if role not in allowed_roles:
            raise HTTPException(
                status_code=403, detail="Access denied. Insufficient permissions."
            )
        return auth

    return _require_role
