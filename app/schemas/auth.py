from datetime import datetime

from pydantic import BaseModel, ConfigDict


class UserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    name: str
    email: str
    role: str | None = None
    email_verified: bool
    image: str | None = None
    created_at: datetime
    updated_at: datetime


class AssignRoleRequest(BaseModel):
    user_id: str | None = None


class AssignRoleResponse(BaseModel):
    success: bool

