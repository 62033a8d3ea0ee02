"""Notification entity for the crossbook application."""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, Optional
from uuid import uuid4

from crossbook.timeutil import utc_now, to_iso


class NotificationType(Enum):
    """Kinds of notifications shown in a user's inbox."""
    BOOKING_CONFIRMED = "BOOKING_CONFIRMED"
    BOOKING_CANCELLED = "BOOKING_CANCELLED"
    DRIVER_ASSIGNED = "DRIVER_ASSIGNED"
    TRIP_STARTED = "TRIP_STARTED"
    TRIP_COMPLETED = "TRIP_COMPLETED"
    SYSTEM_UPDATE = "SYSTEM_UPDATE"


@dataclass
class Notification:
    """
    A message addressed to one user.

    Attributes:
        user_id: Recipient user ID
        type: Notification kind
        title: Short heading
        message: Human-readable body
        data: Structured payload, e.g. the related booking ID
        is_read: Whether the recipient opened it
    """
    user_id: str
    type: NotificationType
    title: str
    message: str
    data: Dict[str, Any] = field(default_factory=dict)
    is_read: bool = False
    id: Optional[str] = None
    created_at: Optional[str] = None

    def __post_init__(self):
        """Initialize default values."""
        if self.id is None:
            self.id = str(uuid4())
        if self.created_at is None:
            self.created_at = to_iso(utc_now())

    def to_dict(self) -> Dict[str, Any]:
        record = asdict(self)
        record["type"] = self.type.value
        return record
