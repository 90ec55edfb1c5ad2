from pydantic import BaseModel, Field
from typing import Any, Dict, Optional
from datetime import datetime, timezone
import uuid
from enum import Enum


class EventType(str, Enum):
    PLATFORM_INITIALIZED = "PLATFORM_INITIALIZED"
    ADMIN_UPDATED = "ADMIN_UPDATED"
    MERCHANT_MANAGER_ADDED_OR_UPDATED = "MERCHANT_MANAGER_ADDED_OR_UPDATED"
    MERCHANT_DEBITOR_ADDED_OR_UPDATED = "MERCHANT_DEBITOR_ADDED_OR_UPDATED"
    MERCHANT_DESTINATION_ADDED_OR_UPDATED = "MERCHANT_DESTINATION_ADDED_OR_UPDATED"
    USER_DELEGATE_ADDED_OR_UPDATED = "USER_DELEGATE_ADDED_OR_UPDATED"
    USER_DEBITED = "USER_DEBITED"
    RECORD_CLOSED = "RECORD_CLOSED"


class Notification(BaseModel):
    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    event_type: EventType
    scope: Dict[str, Any] = Field(default_factory=dict)
    previous_state: Optional[Dict[str, Any]] = None
    new_state: Optional[Dict[str, Any]] = None
