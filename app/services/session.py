"""Resolve the authenticated session for an inbound request.

Two credential shapes are accepted:

* ``Authorization: Bearer <jwt>``, an access token whose ``sub`` is the user
  id and whose ``session_id`` names a live row in ``sessions``;
* an opaque session token, from the ``x-session-token`` header or the
  session cookie, looked up by its SHA-256 hash.

``get_session`` never raises: anything that does not resolve to an active,
unexpired session yields ``None``.
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime

from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.config import settings
from app.models.auth import Session as AuthSession
from app.models.auth import SessionStatus
from app.models.user import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthenticatedSession:
    session_id: str
    user: User


def _now() -> datetime:
    return datetime.now(UTC)


def _make_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is timezone-aware (UTC). SQLite doesn't preserve tz info."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def hash_session_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def _extract_bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    parts = authorization.split(" ", 1)
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1].strip()
    return None


def _is_live(session: AuthSession | None, now: datetime) -> bool:
    if session is None:
        return False
    if session.status != SessionStatus.active or session.revoked_at:
        return False
    return _make_aware(session.expires_at) > now


def decode_access_token(token: str) -> dict | None:
    if not settings.jwt_secret:
        return None
    try:
        payload = jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm]
        )
    except JWTError:
        return None
    if payload.get("typ") != "access":
        return None
    return payload


def _session_from_jwt(db: Session, token: str, now: datetime) -> AuthSession | None:
    payload = decode_access_token(token)
    if not payload:
        return None
    user_id = payload.get("sub")
    session_id = payload.get("session_id")
    if not user_id or not session_id:
        return None
    session = db.get(AuthSession, str(session_id))
    if not _is_live(session, now) or session.user_id != str(user_id):
        return None
    return session


def _session_from_token(db: Session, token: str, now: datetime) -> AuthSession | None:
    stmt = select(AuthSession).where(
        AuthSession.token_hash == hash_session_token(token),
        AuthSession.status == SessionStatus.active,
        AuthSession.revoked_at.is_(None),
    )
    session = db.scalar(stmt)
    if not _is_live(session, now):
        return None
    return session


def get_session(
    db: Session,
    headers: Mapping[str, str],
    cookies: Mapping[str, str] | None = None,
) -> AuthenticatedSession | None:
    """Return the caller's session, or ``None`` when unauthenticated.

    ``cookies`` is the parsed cookie jar, normally ``request.cookies``.
    """
    now = _now()
    bearer = _extract_bearer_token(headers.get("authorization"))
    opaque = headers.get("x-session-token") or (cookies or {}).get(
        settings.session_cookie_name
    )
    try:
        session = None
        if bearer and bearer.count(".") == 2:
            session = _session_from_jwt(db, bearer, now)
        elif bearer:
            opaque = opaque or bearer
        if session is None and opaque:
            session = _session_from_token(db, opaque, now)
        if session is None:
            return None
        user = db.get(User, session.user_id)
    except Exception:
        logger.exception("Error resolving session")
        return None
    if user is None:
        return None
    return AuthenticatedSession(session_id=session.id, user=user)
