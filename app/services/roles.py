"""User role assignment and role predicates.

The first registered user becomes ``super_admin``; everyone after that is a
plain ``user``. The decision reads the current user count, so two sign-ups
racing through an empty table can both be promoted. Treat it as best-effort.
"""

import logging

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from app.models.user import User, UserRole

logger = logging.getLogger(__name__)


def _set_role(db: Session, user_id: str, role: str) -> None:
    db.execute(update(User).where(User.id == user_id).values(role=role))
    db.commit()


def assign_user_role(db: Session, user_id: str) -> str | None:
    """Assign the sign-up role for ``user_id`` and return it.

    Falls back to the default role when the first attempt fails; returns
    ``None`` when even that fails.
    """
    try:
        total_users = db.scalar(select(func.count()).select_from(User)) or 0
        role = UserRole.super_admin if total_users <= 1 else UserRole.user
        _set_role(db, user_id, role.value)
        logger.info(
            "User role assigned: %s for user ID: %s",
            role.value,
            user_id,
            extra={"user_id": user_id},
        )
        return role.value
    except Exception:
        db.rollback()
        logger.exception("Error assigning user role", extra={"user_id": user_id})

    try:
        _set_role(db, user_id, UserRole.user.value)
        return UserRole.user.value
    except Exception:
        db.rollback()
        logger.exception("Error assigning fallback role", extra={"user_id": user_id})
        return None


def get_user_by_id(db: Session, user_id: str) -> User | None:
    try:
        return db.get(User, user_id)
    except Exception:
        logger.exception("Error fetching user", extra={"user_id": user_id})
        return None


def get_user_role(db: Session, user_id: str) -> str | None:
    user = get_user_by_id(db, user_id)
    return user.role if user and user.role else None


def is_super_admin(role: str | None) -> bool:
    return role == UserRole.super_admin.value


def is_user(role: str | None) -> bool:
    return role == UserRole.user.value
