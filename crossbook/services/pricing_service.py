"""Pricing service for crossbook bookings."""

import math
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Union
from zoneinfo import ZoneInfo

from crossbook.config import PRICING_TIMEZONE
from crossbook.models.booking import Location
from crossbook.models.vehicle import VehicleType
from crossbook.timeutil import ensure_utc

EARTH_RADIUS_KM = 6371
AVERAGE_SPEED_KMH = 40
BORDER_CROSSING_MINUTES = 60

# Base pricing per vehicle type (HKD per km)
VEHICLE_RATES = {
    VehicleType.BUSINESS: Decimal("12"),
    VehicleType.EXECUTIVE: Decimal("18"),
    VehicleType.LUXURY: Decimal("25"),
    VehicleType.SUV: Decimal("20"),
    VehicleType.VAN: Decimal("15"),
}

BORDER_FEE = Decimal("200")
PEAK_HOUR_RATE = Decimal("0.3")
LONG_DISTANCE_THRESHOLD_KM = 50
LONG_DISTANCE_DISCOUNT_RATE = Decimal("0.2")
NIGHT_SURCHARGE = Decimal("100")
WEEKEND_SURCHARGE = Decimal("50")

# Upper end of a quoted range, relative to the base price
ESTIMATE_MAX_MULTIPLIER = Decimal("1.5")

CENT = Decimal("0.01")


class PricingError(Exception):
    """Raised when a route or vehicle class cannot be priced."""

    INVALID_ROUTE = "INVALID_ROUTE"
    INVALID_VEHICLE_CLASS = "INVALID_VEHICLE_CLASS"

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code


@dataclass(frozen=True)
class PriceQuote:
    """Pricing snapshot frozen onto a booking."""
    distance: float
    estimated_duration: int
    base_price: Decimal
    surcharges: Dict[str, Decimal] = field(default_factory=dict)

    @property
    def surcharge_total(self) -> Decimal:
        return sum(self.surcharges.values(), Decimal("0"))

    @property
    def total_price(self) -> Decimal:
        return self.base_price + self.surcharge_total

    def to_dict(self) -> Dict[str, Any]:
        return {
            "distance": self.distance,
            "estimated_duration": self.estimated_duration,
            "base_price": float(self.base_price),
            "surcharges": {name: float(amount) for name, amount in self.surcharges.items()},
            "total_price": float(self.total_price),
        }


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _calculate_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in kilometres (haversine)."""
    rlat1, rlng1 = math.radians(lat1), math.radians(lng1)
    rlat2, rlng2 = math.radians(lat2), math.radians(lng2)

    dlat = rlat2 - rlat1
    dlng = rlng2 - rlng1

    a = math.sin(dlat / 2) ** 2 + math.cos(rlat1) * \
        math.cos(rlat2) * math.sin(dlng / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def _is_peak_hour(local_time: datetime) -> bool:
    # Weekdays 7-9 AM and 5-7 PM
    if local_time.weekday() >= 5:
        return False
    return 7 <= local_time.hour <= 9 or 17 <= local_time.hour <= 19


class PricingService:
    """Pure price calculations. Nothing here performs I/O."""

    @staticmethod
    def calculate_booking_price(pickup: Location, dropoff: Location,
                                vehicle_type: Union[str, VehicleType],
                                scheduled_date: datetime) -> PriceQuote:
        """
        Price a trip.

        Args:
            pickup: Pickup location
            dropoff: Dropoff location
            vehicle_type: Requested vehicle class
            scheduled_date: Requested pickup time

        Returns:
            PriceQuote: distance, duration, base price and surcharges

        Raises:
            PricingError: If the route is degenerate or the class unknown
        """
        try:
            vehicle_class = VehicleType.parse(vehicle_type)
        except ValueError as e:
            raise PricingError(PricingError.INVALID_VEHICLE_CLASS, str(e))

        if pickup.coordinates == dropoff.coordinates:
            raise PricingError(PricingError.INVALID_ROUTE,
                               "Pickup and dropoff must be different locations")

        raw_distance = _calculate_distance(pickup.lat, pickup.lng, dropoff.lat, dropoff.lng)
        is_cross_border = pickup.type != dropoff.type

        estimated_duration = round(raw_distance / AVERAGE_SPEED_KMH * 60)
        if is_cross_border:
            estimated_duration += BORDER_CROSSING_MINUTES

        base_price = Decimal(str(raw_distance)) * VEHICLE_RATES[vehicle_class]
        local_time = ensure_utc(scheduled_date).astimezone(ZoneInfo(PRICING_TIMEZONE))

        surcharges = {}
        if is_cross_border:
            surcharges["border_fee"] = BORDER_FEE
        if _is_peak_hour(local_time):
            surcharges["peak_hour"] = base_price * PEAK_HOUR_RATE
        if raw_distance > LONG_DISTANCE_THRESHOLD_KM:
            surcharges["long_distance_discount"] = -base_price * LONG_DISTANCE_DISCOUNT_RATE
        if local_time.hour >= 22 or local_time.hour <= 6:
            surcharges["night"] = NIGHT_SURCHARGE
        if local_time.weekday() >= 5:
            surcharges["weekend"] = WEEKEND_SURCHARGE

        return PriceQuote(
            distance=round(raw_distance, 1),
            estimated_duration=estimated_duration,
            base_price=_money(base_price),
            surcharges={name: _money(amount) for name, amount in surcharges.items()},
        )

    @staticmethod
    def estimate_range(pickup: Location, dropoff: Location,
                       vehicle_type: Union[str, VehicleType],
                       at: datetime) -> Dict[str, Any]:
        """
        Quote a price range for a trip before it is booked.

        The low end is the base price; the high end allows for surcharges.

        Raises:
            PricingError: Same conditions as calculate_booking_price
        """
        quote = PricingService.calculate_booking_price(pickup, dropoff, vehicle_type, at)
        return {
            "min_price": float(quote.base_price),
            "max_price": float(_money(quote.base_price * ESTIMATE_MAX_MULTIPLIER)),
            "distance": quote.distance,
            "estimated_duration": quote.estimated_duration,
            "is_cross_border": pickup.type != dropoff.type,
        }
