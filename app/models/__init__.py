from app.models.auth import Session, SessionStatus  # noqa: F401
from app.models.subscription import Subscription  # noqa: F401
from app.models.user import User, UserRole  # noqa: F401
