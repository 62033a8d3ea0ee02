"""Tests for trip pricing in crossbook."""

import pytest
from datetime import datetime
from decimal import Decimal
from zoneinfo import ZoneInfo

from crossbook.models.booking import Location, Region
from crossbook.models.vehicle import VehicleType
from crossbook.services.pricing_service import PricingService, PricingError

HKT = ZoneInfo("Asia/Hong_Kong")

CENTRAL = Location("Central, Hong Kong", 22.28, 114.15, Region.HK)
FUTIAN = Location("Futian, Shenzhen", 22.53, 114.06, Region.CHINA)
FUTIAN_AS_HK = Location("Futian, Shenzhen", 22.53, 114.06, Region.HK)
TIANHE = Location("Tianhe, Guangzhou", 23.13, 113.32, Region.CHINA)

# 2030-01-08 is a Tuesday, 2030-01-12 a Saturday
WEEKDAY_NOON = datetime(2030, 1, 8, 12, 0, tzinfo=HKT)
WEEKDAY_MORNING_PEAK = datetime(2030, 1, 8, 8, 0, tzinfo=HKT)
SATURDAY_NOON = datetime(2030, 1, 12, 12, 0, tzinfo=HKT)


def _price(pickup=CENTRAL, dropoff=FUTIAN, vehicle_type=VehicleType.BUSINESS, when=WEEKDAY_NOON):
    return PricingService.calculate_booking_price(pickup, dropoff, vehicle_type, when)


class TestPriceBreakdown:
    """Base price, surcharges and totals."""

    @pytest.mark.parametrize("vehicle_type", list(VehicleType))
    @pytest.mark.parametrize("when", [
        WEEKDAY_NOON,
        WEEKDAY_MORNING_PEAK,
        SATURDAY_NOON,
        datetime(2030, 1, 8, 23, 30, tzinfo=HKT),
        datetime(2030, 1, 13, 18, 0, tzinfo=HKT),
    ])
    def test_total_is_base_plus_surcharges(self, vehicle_type, when):
        """The total never drifts from the sum of its parts."""
        for dropoff in (FUTIAN, FUTIAN_AS_HK, TIANHE):
            quote = _price(dropoff=dropoff, vehicle_type=vehicle_type, when=when)

            assert quote.total_price == quote.base_price + sum(quote.surcharges.values())
            record = quote.to_dict()
            assert record["total_price"] == pytest.approx(
                record["base_price"] + sum(record["surcharges"].values()))

    def test_amounts_are_rounded_to_cents(self):
        quote = _price(when=WEEKDAY_MORNING_PEAK)

        assert quote.base_price == quote.base_price.quantize(Decimal("0.01"))
        for amount in quote.surcharges.values():
            assert amount == amount.quantize(Decimal("0.01"))

    def test_border_fee_only_for_cross_border_trips(self):
        cross_border = _price(dropoff=FUTIAN)
        domestic = _price(dropoff=FUTIAN_AS_HK)

        assert cross_border.surcharges["border_fee"] == Decimal("200")
        assert "border_fee" not in domestic.surcharges
        assert cross_border.base_price == domestic.base_price
        assert domestic.surcharges == {}

    def test_border_crossing_adds_an_hour(self):
        cross_border = _price(dropoff=FUTIAN)
        domestic = _price(dropoff=FUTIAN_AS_HK)

        assert cross_border.estimated_duration == domestic.estimated_duration + 60

    def test_distance_is_rounded_to_one_decimal(self):
        quote = _price()

        assert 25 < quote.distance < 35
        assert quote.distance == round(quote.distance, 1)

    def test_rate_depends_on_vehicle_class(self):
        business = _price(vehicle_type=VehicleType.BUSINESS)
        luxury = _price(vehicle_type=VehicleType.LUXURY)

        ratio = float(luxury.base_price) / float(business.base_price)
        assert ratio == pytest.approx(25 / 12, rel=1e-3)

    def test_vehicle_class_accepts_string(self):
        assert _price(vehicle_type="executive") == _price(vehicle_type=VehicleType.EXECUTIVE)

    def test_pricing_is_deterministic(self):
        assert _price(when=WEEKDAY_MORNING_PEAK) == _price(when=WEEKDAY_MORNING_PEAK)


class TestTimeSurcharges:
    """Surcharges that depend on the local pickup time."""

    def test_weekday_peak_hour(self):
        quote = _price(when=WEEKDAY_MORNING_PEAK)

        expected = quote.base_price * Decimal("0.3")
        assert abs(quote.surcharges["peak_hour"] - expected) <= Decimal("0.01")
        assert "night" not in quote.surcharges
        assert "weekend" not in quote.surcharges

    @pytest.mark.parametrize("hour", [7, 9, 17, 19])
    def test_peak_hour_bounds_are_inclusive(self, hour):
        quote = _price(when=datetime(2030, 1, 8, hour, 0, tzinfo=HKT))

        assert "peak_hour" in quote.surcharges

    @pytest.mark.parametrize("hour", [10, 12, 16, 20])
    def test_off_peak_weekday(self, hour):
        quote = _price(when=datetime(2030, 1, 8, hour, 0, tzinfo=HKT))

        assert "peak_hour" not in quote.surcharges

    @pytest.mark.parametrize("hour", [22, 23, 0, 3, 6])
    def test_night_surcharge(self, hour):
        quote = _price(when=datetime(2030, 1, 9, hour, 0, tzinfo=HKT))

        assert quote.surcharges["night"] == Decimal("100")

    def test_seven_am_is_peak_not_night(self):
        quote = _price(when=datetime(2030, 1, 8, 7, 0, tzinfo=HKT))

        assert "night" not in quote.surcharges
        assert "peak_hour" in quote.surcharges

    def test_weekend_surcharge_without_peak(self):
        quote = _price(when=datetime(2030, 1, 12, 8, 0, tzinfo=HKT))

        assert quote.surcharges["weekend"] == Decimal("50")
        assert "peak_hour" not in quote.surcharges

    def test_rules_use_hong_kong_time(self):
        # 00:00 UTC is 08:00 in Hong Kong
        naive_utc = datetime(2030, 1, 8, 0, 0)

        quote = _price(when=naive_utc)

        assert "peak_hour" in quote.surcharges
        assert "night" not in quote.surcharges


class TestLongDistance:
    """Discount for long trips."""

    def test_long_trip_discount(self):
        quote = _price(dropoff=TIANHE)

        assert quote.distance > 50
        expected = -quote.base_price * Decimal("0.2")
        assert quote.surcharges["long_distance_discount"] < 0
        assert abs(quote.surcharges["long_distance_discount"] - expected) <= Decimal("0.01")

    def test_short_trip_has_no_discount(self):
        assert "long_distance_discount" not in _price(dropoff=FUTIAN).surcharges


class TestPricingErrors:
    """Routes and classes that cannot be priced."""

    def test_identical_pickup_and_dropoff(self):
        with pytest.raises(PricingError) as excinfo:
            _price(dropoff=Location("Same place", CENTRAL.lat, CENTRAL.lng, Region.CHINA))

        assert excinfo.value.code == PricingError.INVALID_ROUTE

    def test_unknown_vehicle_class(self):
        with pytest.raises(PricingError) as excinfo:
            _price(vehicle_type="BUS")

        assert excinfo.value.code == PricingError.INVALID_VEHICLE_CLASS
        assert "BUSINESS" in str(excinfo.value)


class TestEstimateRange:
    """Price ranges quoted before booking."""

    def test_range_spans_base_to_one_and_a_half_times(self):
        quote = _price()
        estimate = PricingService.estimate_range(CENTRAL, FUTIAN, VehicleType.BUSINESS, WEEKDAY_NOON)

        assert estimate["min_price"] == float(quote.base_price)
        assert estimate["max_price"] == pytest.approx(float(quote.base_price) * 1.5, abs=0.01)
        assert estimate["distance"] == quote.distance
        assert estimate["estimated_duration"] == quote.estimated_duration
        assert estimate["is_cross_border"] is True

    def test_domestic_estimate(self):
        estimate = PricingService.estimate_range(CENTRAL, FUTIAN_AS_HK, "VAN", WEEKDAY_NOON)

        assert estimate["is_cross_border"] is False
        assert estimate["min_price"] < estimate["max_price"]
