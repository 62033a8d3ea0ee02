"""Vehicle entity for the crossbook application."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class VehicleType(Enum):
    """Service tiers a booking can request."""
    BUSINESS = "BUSINESS"
    EXECUTIVE = "EXECUTIVE"
    LUXURY = "LUXURY"
    SUV = "SUV"
    VAN = "VAN"

    @classmethod
    def parse(cls, value) -> "VehicleType":
        """
        Convert a string or enum member to a VehicleType.

        Raises:
            ValueError: If the value is not a known vehicle class
        """
        if isinstance(value, cls):
            return value
        try:
            return cls[str(value).upper()]
        except KeyError:
            valid_types = ", ".join(t.name for t in cls)
            raise ValueError(f"Invalid vehicle type '{value}'. Choose from: {valid_types}")


@dataclass
class Vehicle:
    """
    Represents a vehicle owned by a driver.

    Attributes:
        id: Unique identifier for the vehicle
        driver_id: ID of the driver profile owning the vehicle
        make: Vehicle manufacturer
        model: Vehicle model
        vehicle_type: Service tier of the vehicle
        plate_number: Licence plate
        capacity: Maximum number of passengers
        is_active: Whether the vehicle can take bookings
        created_at: When the vehicle was registered
    """
    id: str
    driver_id: str
    vehicle_type: VehicleType
    make: str = ""
    model: str = ""
    plate_number: str = ""
    capacity: int = 4
    is_active: bool = True
    created_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Vehicle":
        return cls(
            id=data["id"],
            driver_id=data.get("driver_id"),
            vehicle_type=VehicleType.parse(data.get("vehicle_type")),
            make=data.get("make", ""),
            model=data.get("model", ""),
            plate_number=data.get("plate_number", ""),
            capacity=data.get("capacity", 4),
            is_active=data.get("is_active", True),
            created_at=data.get("created_at"),
        )
