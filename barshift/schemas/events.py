"""Domain event schemas emitted for the notification dispatcher."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class EventType(str, Enum):
    """Domain event type enumeration."""

    ASSIGNMENT_CREATED = "assignment.created"
    OVERRIDE_REQUESTED = "override.requested"
    OVERRIDE_APPROVED = "override.approved"
    OVERRIDE_DECLINED = "override.declined"
    OVERRIDE_ACTIVATED = "override.activated"
    TRADE_PROPOSED = "trade.proposed"
    TRADE_ACCEPTED = "trade.accepted"
    TRADE_APPROVED = "trade.approved"
    TRADE_DECLINED = "trade.declined"
    TRADE_CANCELLED = "trade.cancelled"
    TIPS_PUBLISHED = "tips.published"


class DomainEvent(BaseModel):
    """A committed state change, as plain data."""

    event_type: EventType
    occurred_at: datetime
    payload: dict[str, Any] = Field(default_factory=dict)
