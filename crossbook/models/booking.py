"""Booking entity for the crossbook application."""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict, Optional
from uuid import uuid4

from crossbook.timeutil import utc_now, to_iso


class BookingStatus(Enum):
    """Possible statuses for a booking."""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

    def can_transition_to(self, target: "BookingStatus") -> bool:
        """Check whether moving from this status to ``target`` is allowed."""
        return target in _TRANSITIONS[self]

    @classmethod
    def active(cls):
        """Statuses that occupy a driver's time."""
        return (cls.PENDING, cls.CONFIRMED, cls.IN_PROGRESS)


_TRANSITIONS = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED: {BookingStatus.IN_PROGRESS, BookingStatus.CANCELLED},
    BookingStatus.IN_PROGRESS: {BookingStatus.COMPLETED},
    BookingStatus.COMPLETED: set(),
    BookingStatus.CANCELLED: set(),
}


class Region(Enum):
    """Side of the border a location is on."""
    HK = "HK"
    CHINA = "CHINA"


@dataclass(frozen=True)
class Location:
    """
    A geocoded pickup or dropoff point.

    Attributes:
        address: Street address as entered by the client
        lat: Latitude in degrees
        lng: Longitude in degrees
        type: Region tag used to detect border crossings
    """
    address: str
    lat: float
    lng: float
    type: Region = Region.HK

    @property
    def coordinates(self) -> tuple:
        """Get the coordinates as a tuple."""
        return (self.lat, self.lng)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "lat": self.lat,
            "lng": self.lng,
            "type": self.type.value,
        }


@dataclass
class Booking:
    """
    Represents one requested or confirmed trip.

    Pricing fields are a snapshot taken at creation time and are never
    recomputed. A booking carries a driver and a vehicle together, or
    neither.

    Attributes:
        id: Unique identifier for the booking
        client_id: ID of the client user who booked
        driver_id: ID of the assigned driver profile, if matched
        vehicle_id: ID of the assigned vehicle, if matched
        pickup_location: Where the trip starts
        dropoff_location: Where the trip ends
        scheduled_date: Requested pickup time (ISO-8601, UTC)
        estimated_duration: Estimated trip length in minutes
        distance: Route distance in kilometres
        base_price: Distance-based price before surcharges
        surcharges: Surcharge name to amount (discounts are negative)
        total_price: base_price plus all surcharges
        status: Current status of the booking
        passenger_count: Number of passengers (1-8)
        luggage: Optional luggage description
        special_requests: Optional free-text requests
        idempotency_key: Client-supplied key used to deduplicate retries
    """
    client_id: str
    pickup_location: Location
    dropoff_location: Location
    scheduled_date: str
    estimated_duration: int
    distance: float
    base_price: float
    surcharges: Dict[str, float]
    total_price: float
    passenger_count: int
    driver_id: Optional[str] = None
    vehicle_id: Optional[str] = None
    status: BookingStatus = BookingStatus.PENDING
    currency: str = "HKD"
    luggage: Optional[str] = None
    special_requests: Optional[str] = None
    idempotency_key: Optional[str] = None
    id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def __post_init__(self):
        """Initialize default values and check the driver/vehicle pairing."""
        if (self.driver_id is None) != (self.vehicle_id is None):
            raise ValueError("A booking needs both a driver and a vehicle, or neither")
        if not 1 <= self.passenger_count <= 8:
            raise ValueError("passenger_count must be between 1 and 8")
        if self.id is None:
            self.id = str(uuid4())
        if self.created_at is None:
            self.created_at = to_iso(utc_now())
        if self.updated_at is None:
            self.updated_at = self.created_at

    @property
    def is_assigned(self) -> bool:
        return self.driver_id is not None

    def to_dict(self) -> Dict[str, Any]:
        """Serialise to the record shape kept in the document store."""
        record = asdict(self)
        record["pickup_location"] = self.pickup_location.to_dict()
        record["dropoff_location"] = self.dropoff_location.to_dict()
        record["status"] = self.status.value
        return record
