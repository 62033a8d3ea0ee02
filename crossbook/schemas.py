"""Request schemas for the booking API."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from crossbook.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from crossbook.models.booking import BookingStatus, Location, Region
from crossbook.models.vehicle import VehicleType
from crossbook.timeutil import ensure_utc, utc_now


class LocationIn(BaseModel):
    """A geocoded point as sent by the client."""
    address: str = Field(min_length=1)
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)
    type: Region

    def to_location(self) -> Location:
        return Location(address=self.address, lat=self.lat, lng=self.lng, type=self.type)


class BookingRequest(BaseModel):
    """Body of ``POST /bookings``. Accepts camelCase or snake_case keys."""
    model_config = ConfigDict(populate_by_name=True)

    pickup_location: LocationIn = Field(alias="pickupLocation")
    dropoff_location: LocationIn = Field(alias="dropoffLocation")
    scheduled_date: datetime = Field(alias="scheduledDate")
    vehicle_type: VehicleType = Field(default=VehicleType.BUSINESS, alias="vehicleType")
    passenger_count: int = Field(alias="passengerCount", ge=1, le=8)
    luggage: Optional[str] = Field(default=None, max_length=500)
    special_requests: Optional[str] = Field(default=None, alias="specialRequests", max_length=1000)
    idempotency_key: Optional[str] = Field(default=None, alias="idempotencyKey",
                                           min_length=1, max_length=128)

    @field_validator("scheduled_date")
    @classmethod
    def scheduled_in_future(cls, value: datetime) -> datetime:
        value = ensure_utc(value)
        if value <= utc_now():
            raise ValueError("scheduledDate must be in the future")
        return value


class EstimateRequest(BaseModel):
    """Body of ``POST /bookings/estimate``."""
    model_config = ConfigDict(populate_by_name=True)

    pickup: LocationIn
    dropoff: LocationIn
    vehicle_type: VehicleType = Field(alias="vehicleType")
    scheduled_date: Optional[datetime] = Field(default=None, alias="scheduledDate")


class BookingListQuery(BaseModel):
    """Query string of ``GET /bookings``."""
    model_config = ConfigDict(populate_by_name=True)

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)
    status: Optional[BookingStatus] = None
    from_date: Optional[datetime] = Field(default=None, alias="fromDate")
    to_date: Optional[datetime] = Field(default=None, alias="toDate")
    client_id: Optional[str] = Field(default=None, alias="clientId")
    driver_id: Optional[str] = Field(default=None, alias="driverId")


def format_errors(error) -> list:
    """Flatten a pydantic ValidationError into JSON-safe field errors."""
    return [
        {
            "field": ".".join(str(part) for part in item["loc"]),
            "message": item["msg"],
            "type": item["type"],
        }
        for item in error.errors()
    ]
