"""Tests for crossbook entity models."""

import pytest

from crossbook.models import (
    Booking, BookingStatus, DriverCandidate, DriverProfile, Location, Region, User, UserRole,
    Vehicle, VehicleType,
)

PICKUP = Location("Central, Hong Kong", 22.28, 114.15, Region.HK)
DROPOFF = Location("Futian, Shenzhen", 22.53, 114.06, Region.CHINA)


def _booking(**overrides):
    fields = dict(
        client_id="client-1",
        pickup_location=PICKUP,
        dropoff_location=DROPOFF,
        scheduled_date="2030-01-08T02:00:00+00:00",
        estimated_duration=104,
        distance=29.3,
        base_price=351.6,
        surcharges={"border_fee": 200.0},
        total_price=551.6,
        passenger_count=2,
    )
    fields.update(overrides)
    return Booking(**fields)


class TestBookingStatus:
    """Lifecycle transitions."""

    @pytest.mark.parametrize("source, target", [
        (BookingStatus.PENDING, BookingStatus.CONFIRMED),
        (BookingStatus.PENDING, BookingStatus.CANCELLED),
        (BookingStatus.CONFIRMED, BookingStatus.IN_PROGRESS),
        (BookingStatus.CONFIRMED, BookingStatus.CANCELLED),
        (BookingStatus.IN_PROGRESS, BookingStatus.COMPLETED),
    ])
    def test_allowed(self, source, target):
        assert source.can_transition_to(target)

    @pytest.mark.parametrize("source, target", [
        (BookingStatus.PENDING, BookingStatus.COMPLETED),
        (BookingStatus.IN_PROGRESS, BookingStatus.CANCELLED),
        (BookingStatus.COMPLETED, BookingStatus.PENDING),
        (BookingStatus.CANCELLED, BookingStatus.CONFIRMED),
    ])
    def test_forbidden(self, source, target):
        assert not source.can_transition_to(target)

    def test_active_statuses(self):
        assert set(BookingStatus.active()) == {
            BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.IN_PROGRESS,
        }


class TestBooking:
    """Booking construction and serialisation."""

    def test_defaults(self):
        booking = _booking()

        assert booking.id
        assert booking.status == BookingStatus.PENDING
        assert booking.created_at == booking.updated_at
        assert booking.currency == "HKD"
        assert not booking.is_assigned

    def test_driver_and_vehicle_go_together(self):
        with pytest.raises(ValueError):
            _booking(driver_id="drv-1")
        with pytest.raises(ValueError):
            _booking(vehicle_id="veh-1")

        assert _booking(driver_id="drv-1", vehicle_id="veh-1").is_assigned

    @pytest.mark.parametrize("count", [0, 9])
    def test_passenger_count_bounds(self, count):
        with pytest.raises(ValueError):
            _booking(passenger_count=count)

    def test_to_dict(self):
        record = _booking(status=BookingStatus.CONFIRMED, driver_id="drv-1", vehicle_id="veh-1").to_dict()

        assert record["status"] == "CONFIRMED"
        assert record["pickup_location"] == {
            "address": "Central, Hong Kong", "lat": 22.28, "lng": 114.15, "type": "HK",
        }
        assert record["dropoff_location"]["type"] == "CHINA"


class TestOtherModels:
    """Users, drivers and vehicles."""

    def test_vehicle_type_parse(self):
        assert VehicleType.parse("suv") is VehicleType.SUV
        assert VehicleType.parse(VehicleType.VAN) is VehicleType.VAN
        with pytest.raises(ValueError):
            VehicleType.parse("BUS")

    def test_vehicle_from_dict(self):
        vehicle = Vehicle.from_dict({"id": "veh-1", "driver_id": "drv-1", "vehicle_type": "LUXURY"})

        assert vehicle.vehicle_type is VehicleType.LUXURY
        assert vehicle.is_active

    def test_user_roles(self):
        user = User.from_dict({"id": "u-1", "email": "a@example.com", "name": "A", "roles": ["CLIENT", "DRIVER"]})

        assert user.has_role(UserRole.DRIVER)
        assert not user.has_role(UserRole.ADMIN)
        assert user.display_fields == {"name": "A", "phone": None, "avatar": None}

    def test_candidate_eligibility(self):
        profile = DriverProfile.from_dict({"id": "drv-1", "user_id": "u-1", "is_approved": True})
        vehicle = Vehicle.from_dict({"id": "veh-1", "driver_id": "drv-1", "vehicle_type": "BUSINESS"})

        assert DriverCandidate(profile, [vehicle]).is_eligible
        assert not DriverCandidate(profile, []).is_eligible
        assert not DriverCandidate(profile, [vehicle], [{"id": "b-1"}]).is_eligible
