"""Tests for the booking CLI commands."""

import unittest
from unittest.mock import patch

from click.testing import CliRunner

from crossbook.cli_module.cli import cli
from crossbook.services.auth_service import RoleForbiddenError
from crossbook.services.booking_service import BookingServiceError, BookingValidationError


def _booking(**overrides):
    booking = {
        "id": "b-1",
        "status": "CONFIRMED",
        "scheduled_date": "2030-01-08T02:00:00+00:00",
        "pickup_location": {"address": "Central, Hong Kong", "lat": 22.28, "lng": 114.15, "type": "HK"},
        "dropoff_location": {"address": "Futian, Shenzhen", "lat": 22.53, "lng": 114.06, "type": "CHINA"},
        "distance": 29.3,
        "estimated_duration": 104,
        "currency": "HKD",
        "base_price": 351.6,
        "surcharges": {"border_fee": 200.0},
        "total_price": 551.6,
        "driver": {"id": "drv-1", "name": "Test Driver", "phone": "+852 5555 0000"},
        "vehicle": {"make": "Toyota", "model": "Alphard", "plate_number": "AB 1234"},
    }
    booking.update(overrides)
    return booking


CREATE_ARGS = [
    "booking", "create",
    "--pickup", "Central, Hong Kong", "--pickup-lat", "22.28", "--pickup-lng", "114.15",
    "--dropoff", "Futian, Shenzhen", "--dropoff-lat", "22.53", "--dropoff-lng", "114.06",
    "--date", "2030-01-08T10:00:00+08:00", "--passengers", "2",
]


class TestBookingCommands(unittest.TestCase):
    """Test suite for the booking command group."""

    def setUp(self):
        self.runner = CliRunner()

        # Signed in as a client for every test unless overridden
        patchers = [
            patch('crossbook.cli_module.utils.get_token', return_value="test-token"),
            patch('crossbook.cli_module.commands.booking_commands.get_token', return_value="test-token"),
            patch('crossbook.services.auth_service.AuthService.require_role',
                  return_value={"id": "client-1", "roles": ["CLIENT"]}),
        ]
        for patcher in patchers:
            patcher.start()
            self.addCleanup(patcher.stop)

    @patch('crossbook.services.booking_service.BookingService.create_booking')
    def test_create_confirmed(self, mock_create):
        mock_create.return_value = {"booking": _booking(), "created": True}

        result = self.runner.invoke(cli, CREATE_ARGS + ["--idempotency-key", "k-1"])

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Booking created successfully!", result.output)
        self.assertIn("Status: CONFIRMED", result.output)
        self.assertIn("Border Fee: HKD 200.00", result.output)
        self.assertIn("Test Driver", result.output)

        token, payload, key = mock_create.call_args[0]
        self.assertEqual(token, "test-token")
        self.assertEqual(key, "k-1")
        self.assertEqual(payload["pickupLocation"]["type"], "HK")
        self.assertEqual(payload["dropoffLocation"]["type"], "CHINA")
        self.assertEqual(payload["passengerCount"], 2)
        self.assertEqual(payload["vehicleType"], "BUSINESS")

    @patch('crossbook.services.booking_service.BookingService.create_booking')
    def test_create_pending(self, mock_create):
        mock_create.return_value = {
            "booking": _booking(status="PENDING", driver=None, vehicle=None),
            "created": True,
        }

        result = self.runner.invoke(cli, CREATE_ARGS)

        self.assertIn("Status: PENDING", result.output)
        self.assertIn("No driver assigned yet", result.output)

    @patch('crossbook.services.booking_service.BookingService.create_booking')
    def test_create_replayed(self, mock_create):
        mock_create.return_value = {"booking": _booking(), "created": False}

        result = self.runner.invoke(cli, CREATE_ARGS + ["--idempotency-key", "k-1"])

        self.assertIn("This booking already exists.", result.output)

    @patch('crossbook.services.booking_service.BookingService.create_booking')
    def test_create_validation_error(self, mock_create):
        mock_create.side_effect = BookingValidationError([
            {"field": "passengerCount", "message": "Input should be less than or equal to 8", "type": "less_than_equal"},
        ])

        result = self.runner.invoke(cli, CREATE_ARGS)

        self.assertIn("passengerCount: Input should be less than or equal to 8", result.output)

    @patch('crossbook.services.booking_service.BookingService.create_booking')
    def test_create_as_driver(self, mock_create):
        with patch('crossbook.services.auth_service.AuthService.require_role',
                   side_effect=RoleForbiddenError("requires CLIENT")):
            result = self.runner.invoke(cli, CREATE_ARGS)

        self.assertIn("Access denied", result.output)
        mock_create.assert_not_called()

    def test_create_rejects_unknown_region(self):
        result = self.runner.invoke(cli, CREATE_ARGS + ["--pickup-region", "MACAU"])

        self.assertNotEqual(result.exit_code, 0)

    @patch('crossbook.services.booking_service.BookingService.list_bookings')
    def test_list(self, mock_list):
        mock_list.return_value = {
            "bookings": [_booking(), _booking(id="b-2", status="PENDING", driver=None)],
            "pagination": {"page": 1, "limit": 10, "total": 2, "pages": 1},
        }

        result = self.runner.invoke(cli, ["booking", "list", "--status", "pending"])

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("b-2", result.output)
        self.assertIn("551.60", result.output)
        self.assertIn("Page 1 of 1 (2 bookings)", result.output)
        mock_list.assert_called_once_with("test-token", {"page": 1, "limit": 10, "status": "PENDING"})

    @patch('crossbook.services.booking_service.BookingService.list_bookings')
    def test_list_empty(self, mock_list):
        mock_list.return_value = {"bookings": [], "pagination": {"page": 1, "limit": 10, "total": 0, "pages": 0}}

        result = self.runner.invoke(cli, ["booking", "list"])

        self.assertIn("You have no bookings.", result.output)

    @patch('crossbook.services.booking_service.BookingService.get_booking')
    def test_show(self, mock_get):
        mock_get.return_value = _booking()

        result = self.runner.invoke(cli, ["booking", "show", "b-1"])

        self.assertIn("Booking ID: b-1", result.output)
        self.assertIn("Toyota Alphard AB 1234", result.output)
        mock_get.assert_called_once_with("test-token", "b-1")

    @patch('crossbook.services.booking_service.BookingService.get_booking')
    def test_show_failure(self, mock_get):
        mock_get.side_effect = BookingServiceError("Failed to retrieve booking: timeout")

        result = self.runner.invoke(cli, ["booking", "show", "b-1"])

        self.assertIn("Error: Failed to retrieve booking: timeout", result.output)

    def test_estimate(self):
        result = self.runner.invoke(cli, [
            "booking", "estimate",
            "--pickup-lat", "22.28", "--pickup-lng", "114.15",
            "--dropoff-lat", "22.53", "--dropoff-lng", "114.06",
        ])

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Estimated price: HKD", result.output)
        self.assertIn("border fee", result.output)

    def test_estimate_same_place(self):
        result = self.runner.invoke(cli, [
            "booking", "estimate",
            "--pickup-lat", "22.28", "--pickup-lng", "114.15",
            "--dropoff-lat", "22.28", "--dropoff-lng", "114.15",
        ])

        self.assertIn("Error: Pickup and dropoff must be different locations", result.output)


class TestSignedOut(unittest.TestCase):
    """Commands that need a session refuse to run without one."""

    @patch('crossbook.cli_module.utils.get_token', return_value=None)
    @patch('crossbook.services.booking_service.BookingService.list_bookings')
    def test_list_requires_sign_in(self, mock_list, mock_get_token):
        result = CliRunner().invoke(cli, ["booking", "list"])

        self.assertIn("You are not signed in", result.output)
        mock_list.assert_not_called()
