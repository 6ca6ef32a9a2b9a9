import enum

from pydantic import BaseModel


class WebhookOutcome(str, enum.Enum):
    processed = "processed"
    ignored = "ignored"
    failed = "failed"


class WebhookAck(BaseModel):
    status: str = "ok"
    event_type: str
    outcome: WebhookOutcome
