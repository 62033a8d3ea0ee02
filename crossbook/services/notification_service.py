"""Outbound booking events and driver notifications."""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List

import requests

from crossbook.config import BASE_URL
from crossbook.models.notification import Notification, NotificationType
from crossbook.timeutil import utc_now, to_iso

logger = logging.getLogger(__name__)

DRIVER_ASSIGNED = "booking.driver_assigned"


@dataclass(frozen=True)
class BookingEvent:
    """
    Something that happened to a booking, published after it is persisted.

    Attributes:
        name: Event name, e.g. ``booking.driver_assigned``
        booking_id: ID of the booking concerned
        recipient_user_id: User the event is addressed to
        payload: Event-specific details
        occurred_at: When the event was raised
    """
    name: str
    booking_id: str
    recipient_user_id: str
    payload: Dict[str, Any] = field(default_factory=dict)
    occurred_at: str = field(default_factory=lambda: to_iso(utc_now()))

    @classmethod
    def driver_assigned(cls, booking: Dict[str, Any], driver_user_id: str) -> "BookingEvent":
        return cls(
            name=DRIVER_ASSIGNED,
            booking_id=booking["id"],
            recipient_user_id=driver_user_id,
            payload={
                "pickup_address": booking["pickup_location"]["address"],
                "dropoff_address": booking["dropoff_location"]["address"],
                "scheduled_date": booking["scheduled_date"],
            },
        )


Handler = Callable[[BookingEvent], None]


def store_driver_notification(event: BookingEvent) -> None:
    """
    Write an inbox notification for a driver-assignment event.

    Raises:
        requests.RequestException: If the store rejects the write
    """
    if event.name != DRIVER_ASSIGNED:
        return

    notification = Notification(
        user_id=event.recipient_user_id,
        type=NotificationType.BOOKING_CONFIRMED,
        title="New Booking Assignment",
        message=(f"You have been assigned a new booking from "
                 f"{event.payload['pickup_address']} to {event.payload['dropoff_address']}"),
        data={"booking_id": event.booking_id},
    )
    response = requests.post(f"{BASE_URL}/notifications", json=notification.to_dict())
    response.raise_for_status()


class NotificationDispatcher:
    """
    Delivers booking events to subscribed handlers.

    Delivery is at-most-once and best-effort: a failing handler is logged
    and skipped, and never affects the caller.
    """

    def __init__(self, handlers: List[Handler] = None):
        self._handlers = list(handlers) if handlers is not None else [store_driver_notification]

    def subscribe(self, handler: Handler) -> None:
        self._handlers.append(handler)

    def publish(self, event: BookingEvent) -> int:
        """
        Hand an event to every handler.

        Returns:
            int: Number of handlers that completed without error
        """
        delivered = 0
        for handler in self._handlers:
            try:
                handler(event)
                delivered += 1
            except Exception:
                logger.exception(f"Failed to deliver {event.name} for booking {event.booking_id}")
        return delivered
