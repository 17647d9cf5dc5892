from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from src.core.utils.datetime_utils import get_utc_now


class EventName(StrEnum):
    USER_REGISTERED = "user.registered"
    EMAIL_CONFIRMATION_REQUESTED = "email.confirmation.requested"
    PASSWORD_RESET_REQUESTED = "password.reset.requested"
    PASSWORD_CHANGED = "password.changed"


class DomainEvent(BaseModel):
    name: EventName
    payload: dict[str, Any] = Field(default_factory=dict)
    occurred_at: datetime = Field(default_factory=get_utc_now)
