"""Driver availability matching for crossbook bookings."""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

import requests

from crossbook.config import BASE_URL, CONFLICT_WINDOW_BEFORE_HOURS, CONFLICT_WINDOW_AFTER_HOURS
from crossbook.models.booking import BookingStatus
from crossbook.models.driver import DriverCandidate, DriverMatch, DriverProfile
from crossbook.models.vehicle import Vehicle, VehicleType
from crossbook.timeutil import ensure_utc, parse_iso

logger = logging.getLogger(__name__)


class AvailabilityServiceError(Exception):
    """Raised when driver data cannot be read from the store."""
    pass


def conflict_window(scheduled_date: datetime) -> Tuple[datetime, datetime]:
    """Time range in which an existing booking blocks a driver."""
    scheduled_date = ensure_utc(scheduled_date)
    return (
        scheduled_date - timedelta(hours=CONFLICT_WINDOW_BEFORE_HOURS),
        scheduled_date + timedelta(hours=CONFLICT_WINDOW_AFTER_HOURS),
    )


def is_conflicting(booking: Dict[str, Any], window_start: datetime, window_end: datetime) -> bool:
    """Check whether an existing booking occupies the driver inside the window."""
    active = {status.value for status in BookingStatus.active()}
    if booking.get("status") not in active:
        return False
    try:
        scheduled = parse_iso(booking["scheduled_date"])
    except (KeyError, TypeError, ValueError):
        # Unreadable dates count as conflicts
        logger.warning(f"Booking {booking.get('id')} has no valid scheduled_date")
        return True
    return window_start <= scheduled <= window_end


def _ordering_key(record) -> Tuple[str, str]:
    return (record.created_at or "", record.id)


def _get_list(url: str) -> List[Dict[str, Any]]:
    response = requests.get(url)
    if response.status_code == 404:
        # Collection not created yet
        return []
    response.raise_for_status()
    return response.json()


class AvailabilityService:
    """Finds a driver and vehicle able to take a booking."""

    @staticmethod
    def list_candidates(vehicle_type: Union[str, VehicleType],
                        scheduled_date: datetime) -> List[DriverCandidate]:
        """
        Build the candidate list for a vehicle class and pickup time.

        Candidates are approved, available drivers owning at least one
        active vehicle of the class. Each carries its active bookings that
        fall inside the conflict window. Order is (created_at, id) of the
        driver profile, oldest first.

        Raises:
            AvailabilityServiceError: If the store cannot be read
        """
        vehicle_class = VehicleType.parse(vehicle_type)
        window_start, window_end = conflict_window(scheduled_date)

        try:
            profiles = [
                DriverProfile.from_dict(p) for p in _get_list(
                    f"{BASE_URL}/driver_profiles/query?is_approved=True&is_available=True")
            ]

            candidates = []
            for profile in sorted(profiles, key=_ordering_key):
                vehicles = [
                    Vehicle.from_dict(v) for v in _get_list(
                        f"{BASE_URL}/vehicles/query?driver_id={profile.id}"
                        f"&vehicle_type={vehicle_class.value}&is_active=True")
                ]
                if not vehicles:
                    continue

                bookings = _get_list(f"{BASE_URL}/bookings/query?driver_id={profile.id}")
                conflicts = [b for b in bookings if is_conflicting(b, window_start, window_end)]

                candidates.append(DriverCandidate(
                    profile=profile,
                    vehicles=sorted(vehicles, key=_ordering_key),
                    conflicting_bookings=conflicts,
                ))

            return candidates

        except requests.RequestException as e:
            raise AvailabilityServiceError(f"Failed to load driver availability: {str(e)}")

    @staticmethod
    def find_available_driver(vehicle_type: Union[str, VehicleType], scheduled_date: datetime,
                              exclude_driver_ids: Iterable[str] = ()) -> Optional[DriverMatch]:
        """
        Pick the first eligible driver for a booking.

        Args:
            vehicle_type: Requested vehicle class
            scheduled_date: Requested pickup time
            exclude_driver_ids: Drivers already ruled out by the caller

        Returns:
            DriverMatch or None when no driver is free

        Raises:
            AvailabilityServiceError: If the store cannot be read
        """
        excluded = set(exclude_driver_ids)

        for candidate in AvailabilityService.list_candidates(vehicle_type, scheduled_date):
            if candidate.profile.id in excluded:
                continue
            if not candidate.is_eligible:
                logger.debug(f"Driver {candidate.profile.id} has "
                             f"{len(candidate.conflicting_bookings)} conflicting booking(s)")
                continue

            vehicle = candidate.vehicles[0]
            return DriverMatch(
                driver_id=candidate.profile.id,
                user_id=candidate.profile.user_id,
                vehicle_id=vehicle.id,
                vehicle=vehicle_record(vehicle),
            )

        return None


def vehicle_record(vehicle: Vehicle) -> Dict[str, Any]:
    """Vehicle fields shown alongside a booking."""
    return {
        "id": vehicle.id,
        "make": vehicle.make,
        "model": vehicle.model,
        "plate_number": vehicle.plate_number,
        "vehicle_type": vehicle.vehicle_type.value,
        "capacity": vehicle.capacity,
    }
