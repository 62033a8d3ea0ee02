"""Driver entities for the crossbook application."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from crossbook.models.vehicle import Vehicle


@dataclass
class DriverProfile:
    """
    Driver-specific data attached to a user account.

    Attributes:
        id: Unique identifier for the driver profile
        user_id: ID of the user account behind the profile
        license_number: Driving licence number
        is_approved: Whether an admin approved the driver's documents
        is_available: Whether the driver currently accepts bookings
        rating: Average rating (0-5)
        created_at: When the profile was created
    """
    id: str
    user_id: str
    license_number: str = ""
    is_approved: bool = False
    is_available: bool = True
    rating: float = 0.0
    created_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DriverProfile":
        return cls(
            id=data["id"],
            user_id=data["user_id"],
            license_number=data.get("license_number", ""),
            is_approved=bool(data.get("is_approved", False)),
            is_available=bool(data.get("is_available", True)),
            rating=data.get("rating") or 0.0,
            created_at=data.get("created_at"),
        )


@dataclass
class DriverCandidate:
    """
    A driver considered for a booking, with what disqualifies it.

    Not persisted. Built by the availability filter for one vehicle
    class and one requested time.
    """
    profile: DriverProfile
    vehicles: List[Vehicle] = field(default_factory=list)
    conflicting_bookings: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def is_eligible(self) -> bool:
        return bool(self.vehicles) and not self.conflicting_bookings


@dataclass(frozen=True)
class DriverMatch:
    """The driver and vehicle bound to a booking at creation time."""
    driver_id: str
    user_id: str
    vehicle_id: str
    vehicle: Dict[str, Any] = field(default_factory=dict, compare=False)
