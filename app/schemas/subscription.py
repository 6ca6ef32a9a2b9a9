import enum
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from app.schemas.plans import Plan


class SubscriptionErrorType(str, enum.Enum):
    canceled = "CANCELED"
    expired = "EXPIRED"
    general = "GENERAL"


class SubscriptionDetails(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    product_id: str
    status: str
    amount: int
    currency: str
    recurring_interval: str
    current_period_start: datetime
    current_period_end: datetime
    cancel_at_period_end: bool
    canceled_at: datetime | None = None
    organization_id: str | None = None
    plan: Plan | None = None


class SubscriptionDetailsResult(BaseModel):
    has_subscription: bool
    subscription: SubscriptionDetails | None = None
    error: str | None = None
    error_type: SubscriptionErrorType | None = None


class ProductAccess(BaseModel):
    has_access: bool
    active_product: str | None = None


class ProductAccessRequest(BaseModel):
    product_ids: list[str] = Field(min_length=1)


class SubscriptionStatusRead(BaseModel):
    status: str
