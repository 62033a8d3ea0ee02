"""Booking commands for the crossbook CLI."""

from datetime import datetime

import click
from tabulate import tabulate

from crossbook.models.booking import BookingStatus, Location, Region
from crossbook.models.user import UserRole
from crossbook.models.vehicle import VehicleType
from crossbook.services.auth_service import AuthError
from crossbook.services.booking_service import (
    BookingService, BookingServiceError, BookingValidationError,
)
from crossbook.services.pricing_service import PricingService, PricingError
from crossbook.cli_module.utils import get_token, require_role

REGIONS = click.Choice([r.value for r in Region], case_sensitive=False)
VEHICLE_TYPES = click.Choice([t.value for t in VehicleType], case_sensitive=False)
STATUSES = click.Choice([s.value for s in BookingStatus], case_sensitive=False)


@click.group(name="booking")
def booking_group():
    """Booking commands."""
    pass


def _echo_validation_errors(error: BookingValidationError) -> None:
    click.echo("Error: validation failed", err=True)
    for detail in error.details:
        click.echo(f"  {detail['field']}: {detail['message']}", err=True)


def _format_date(value):
    if not value:
        return "-"
    try:
        return datetime.fromisoformat(value.replace('Z', '+00:00')).strftime('%Y-%m-%d %H:%M')
    except (ValueError, TypeError, AttributeError):
        return value


def _echo_booking(booking):
    click.echo(f"Booking ID: {booking['id']}")
    click.echo(f"Status: {booking['status']}")
    click.echo(f"Scheduled: {_format_date(booking.get('scheduled_date'))} UTC")
    click.echo(f"From: {booking['pickup_location']['address']} ({booking['pickup_location']['type']})")
    click.echo(f"To:   {booking['dropoff_location']['address']} ({booking['dropoff_location']['type']})")
    click.echo(f"Distance: {booking['distance']} km, about {booking['estimated_duration']} minutes")

    click.echo("\nPrice:")
    click.echo(f"   Base: {booking['currency']} {booking['base_price']:.2f}")
    for name, amount in (booking.get('surcharges') or {}).items():
        click.echo(f"   {name.replace('_', ' ').title()}: {booking['currency']} {amount:.2f}")
    click.echo(f"   Total: {booking['currency']} {booking['total_price']:.2f}")

    driver = booking.get('driver')
    if driver:
        click.echo("\nDriver:")
        click.echo(f"   {driver.get('name') or 'Unknown'}  {driver.get('phone') or ''}")
        vehicle = booking.get('vehicle') or {}
        if vehicle:
            click.echo(f"   {vehicle.get('make', '')} {vehicle.get('model', '')} "
                       f"{vehicle.get('plate_number', '')}".rstrip())
    else:
        click.echo("\nNo driver assigned yet. We will notify you once one is.")


@booking_group.command(name="create")
@click.option("--pickup", prompt="Pickup address", help="Pickup street address")
@click.option("--pickup-lat", type=float, prompt=True, help="Pickup latitude")
@click.option("--pickup-lng", type=float, prompt=True, help="Pickup longitude")
@click.option("--pickup-region", type=REGIONS, default="HK", help="Pickup side of the border")
@click.option("--dropoff", prompt="Dropoff address", help="Dropoff street address")
@click.option("--dropoff-lat", type=float, prompt=True, help="Dropoff latitude")
@click.option("--dropoff-lng", type=float, prompt=True, help="Dropoff longitude")
@click.option("--dropoff-region", type=REGIONS, default="CHINA", help="Dropoff side of the border")
@click.option("--date", "scheduled_date", prompt="Pickup time (ISO 8601)", help="Pickup time, e.g. 2026-11-02T10:00:00+08:00")
@click.option("--vehicle-type", type=VEHICLE_TYPES, default="BUSINESS", help="Vehicle class")
@click.option("--passengers", type=int, default=1, help="Number of passengers (1-8)")
@click.option("--luggage", default=None, help="Luggage description")
@click.option("--requests", "special_requests", default=None, help="Special requests for the driver")
@click.option("--idempotency-key", default=None, help="Reuse to safely retry the same booking")
@require_role([UserRole.CLIENT.value])
def create_booking(pickup, pickup_lat, pickup_lng, pickup_region, dropoff, dropoff_lat,
                   dropoff_lng, dropoff_region, scheduled_date, vehicle_type, passengers,
                   luggage, special_requests, idempotency_key):
    """Book a trip."""
    payload = {
        "pickupLocation": {"address": pickup, "lat": pickup_lat, "lng": pickup_lng,
                           "type": pickup_region.upper()},
        "dropoffLocation": {"address": dropoff, "lat": dropoff_lat, "lng": dropoff_lng,
                            "type": dropoff_region.upper()},
        "scheduledDate": scheduled_date,
        "vehicleType": vehicle_type.upper(),
        "passengerCount": passengers,
        "luggage": luggage,
        "specialRequests": special_requests,
    }

    try:
        result = BookingService.create_booking(get_token(), payload, idempotency_key)
    except BookingValidationError as e:
        _echo_validation_errors(e)
        return
    except (BookingServiceError, AuthError) as e:
        click.echo(f"Error: {str(e)}", err=True)
        return

    if result["created"]:
        click.echo("Booking created successfully!\n")
    else:
        click.echo("This booking already exists.\n")
    _echo_booking(result["booking"])


@booking_group.command(name="list")
@click.option("--status", type=STATUSES, default=None, help="Filter by booking status")
@click.option("--page", type=int, default=1, help="Page number")
@click.option("--limit", type=int, default=10, help="Bookings per page")
@require_role([UserRole.CLIENT.value, UserRole.DRIVER.value, UserRole.ADMIN.value])
def list_bookings(status, page, limit):
    """List your bookings, newest first."""
    params = {"page": page, "limit": limit}
    if status:
        params["status"] = status.upper()

    try:
        result = BookingService.list_bookings(get_token(), params)
    except BookingValidationError as e:
        _echo_validation_errors(e)
        return
    except (BookingServiceError, AuthError) as e:
        click.echo(f"Error: {str(e)}", err=True)
        return

    bookings = result["bookings"]
    if not bookings:
        click.echo("You have no bookings." +
                   (f" with status '{status.upper()}'" if status else ""))
        return

    table_data = [
        [
            booking.get('id'),
            _format_date(booking.get('scheduled_date')),
            booking['pickup_location']['address'],
            booking['dropoff_location']['address'],
            booking.get('status'),
            (booking.get('driver') or {}).get('name') or '-',
            f"{booking.get('total_price', 0):.2f}",
        ]
        for booking in bookings
    ]
    headers = ["ID", "Scheduled (UTC)", "From", "To", "Status", "Driver", "Total (HKD)"]
    click.echo(tabulate(table_data, headers=headers, tablefmt="simple"))

    pagination = result["pagination"]
    click.echo(f"\nPage {pagination['page']} of {max(pagination['pages'], 1)} "
               f"({pagination['total']} bookings)")


@booking_group.command(name="show")
@click.argument("booking_id")
@require_role([UserRole.CLIENT.value, UserRole.DRIVER.value, UserRole.ADMIN.value])
def show_booking(booking_id):
    """Show one booking in detail."""
    try:
        booking = BookingService.get_booking(get_token(), booking_id)
    except (BookingServiceError, AuthError) as e:
        click.echo(f"Error: {str(e)}", err=True)
        return

    _echo_booking(booking)


@booking_group.command(name="estimate")
@click.option("--pickup-lat", type=float, required=True, help="Pickup latitude")
@click.option("--pickup-lng", type=float, required=True, help="Pickup longitude")
@click.option("--pickup-region", type=REGIONS, default="HK", help="Pickup side of the border")
@click.option("--dropoff-lat", type=float, required=True, help="Dropoff latitude")
@click.option("--dropoff-lng", type=float, required=True, help="Dropoff longitude")
@click.option("--dropoff-region", type=REGIONS, default="CHINA", help="Dropoff side of the border")
@click.option("--vehicle-type", type=VEHICLE_TYPES, default="BUSINESS", help="Vehicle class")
def estimate(pickup_lat, pickup_lng, pickup_region, dropoff_lat, dropoff_lng,
             dropoff_region, vehicle_type):
    """Quote a price range without booking."""
    pickup = Location("pickup", pickup_lat, pickup_lng, Region(pickup_region.upper()))
    dropoff = Location("dropoff", dropoff_lat, dropoff_lng, Region(dropoff_region.upper()))

    try:
        quote = PricingService.estimate_range(pickup, dropoff, vehicle_type, datetime.now().astimezone())
    except PricingError as e:
        click.echo(f"Error: {str(e)}", err=True)
        return

    click.echo(f"Estimated price: HKD {quote['min_price']:.2f} - {quote['max_price']:.2f}")
    click.echo(f"Distance: {quote['distance']} km, about {quote['estimated_duration']} minutes")
    if quote['is_cross_border']:
        click.echo("Includes a border crossing (HKD 200 border fee applies).")
