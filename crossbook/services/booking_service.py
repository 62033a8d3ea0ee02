"""Booking service for crossbook."""

import logging
import math
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlencode

import requests
from pydantic import ValidationError

from crossbook.config import BASE_URL, CURRENCY
from crossbook.models.booking import Booking, BookingStatus
from crossbook.models.driver import DriverMatch
from crossbook.models.user import User, UserRole
from crossbook.schemas import BookingRequest, BookingListQuery, format_errors
from crossbook.services.auth_service import AuthService, RoleForbiddenError
from crossbook.services.availability_service import (
    AvailabilityService, AvailabilityServiceError, conflict_window,
)
from crossbook.services.notification_service import BookingEvent, NotificationDispatcher
from crossbook.services.pricing_service import PricingService, PricingError, PriceQuote
from crossbook.timeutil import parse_iso, to_iso

logger = logging.getLogger(__name__)

# Drivers tried before a booking is saved unassigned
MAX_CLAIM_ATTEMPTS = 5


class BookingServiceError(Exception):
    """Raised when a booking operation fails on the server side."""
    pass


class BookingValidationError(BookingServiceError):
    """Raised when a booking request fails validation."""

    def __init__(self, details: List[Dict[str, Any]]):
        super().__init__("Validation failed")
        self.details = details


class BookingNotFoundError(BookingServiceError):
    """Raised when a booking or a profile it refers to does not exist."""
    pass


def _assemble(client_id: str, request: BookingRequest, quote: PriceQuote,
              match: Optional[DriverMatch]) -> Booking:
    """Combine the pricing snapshot and the optional match into a booking."""
    return Booking(
        client_id=client_id,
        driver_id=match.driver_id if match else None,
        vehicle_id=match.vehicle_id if match else None,
        status=BookingStatus.CONFIRMED if match else BookingStatus.PENDING,
        pickup_location=request.pickup_location.to_location(),
        dropoff_location=request.dropoff_location.to_location(),
        scheduled_date=to_iso(request.scheduled_date),
        estimated_duration=quote.estimated_duration,
        distance=quote.distance,
        base_price=float(quote.base_price),
        surcharges={name: float(amount) for name, amount in quote.surcharges.items()},
        total_price=float(quote.total_price),
        currency=CURRENCY,
        passenger_count=request.passenger_count,
        luggage=request.luggage,
        special_requests=request.special_requests,
        idempotency_key=request.idempotency_key,
    )


def _claim(booking: Booking, request: BookingRequest) -> Tuple[int, Optional[Dict[str, Any]]]:
    """
    Insert a booking through the store's atomic claim endpoint.

    The store re-checks the driver's conflict window and the client's
    idempotency key under its write lock.

    Returns:
        Tuple: (201, record) when created, (200, record) when the
        idempotency key was already used, (409, None) when the driver
        was taken in the meantime
    """
    window_start, window_end = conflict_window(request.scheduled_date)
    response = requests.post(f"{BASE_URL}/bookings/claim", json={
        "booking": booking.to_dict(),
        "conflict_window": {"start": to_iso(window_start), "end": to_iso(window_end)},
        "active_statuses": [status.value for status in BookingStatus.active()],
    })

    if response.status_code == 409:
        return 409, None

    response.raise_for_status()
    return response.status_code, response.json()


def _get_or_none(url: str) -> Optional[Dict[str, Any]]:
    try:
        response = requests.get(url)
        if response.status_code == 200:
            return response.json()
    except requests.RequestException as e:
        logger.warning(f"Could not load {url}: {str(e)}")
    return None


def _attach_party_details(booking: Dict[str, Any],
                          match: Optional[DriverMatch] = None) -> Dict[str, Any]:
    """Add driver display fields and vehicle details to a booking record."""
    booking = dict(booking)
    booking["driver"] = None
    booking["vehicle"] = None

    driver_id = booking.get("driver_id")
    if not driver_id:
        return booking

    if match is not None and match.driver_id == driver_id:
        user_id, rating = match.user_id, None
    else:
        profile = _get_or_none(f"{BASE_URL}/driver_profiles/{driver_id}") or {}
        user_id, rating = profile.get("user_id"), profile.get("rating")

    user = _get_or_none(f"{BASE_URL}/users/{user_id}") if user_id else None
    display = User.from_dict(user).display_fields if user else dict.fromkeys(("name", "phone", "avatar"))
    booking["driver"] = {"id": driver_id, **display, "rating": rating}

    vehicle_id = booking.get("vehicle_id")
    if match is not None and match.vehicle_id == vehicle_id and match.vehicle:
        booking["vehicle"] = dict(match.vehicle)
    elif vehicle_id:
        booking["vehicle"] = _get_or_none(f"{BASE_URL}/vehicles/{vehicle_id}")

    return booking


def _driver_profile_for(user_id: str) -> Optional[Dict[str, Any]]:
    response = requests.get(f"{BASE_URL}/driver_profiles/query?user_id={user_id}")
    if response.status_code == 404:
        return None
    response.raise_for_status()
    profiles = response.json()
    return profiles[0] if profiles else None


def _query_bookings(filters: Dict[str, Any]) -> List[Dict[str, Any]]:
    if filters:
        response = requests.get(f"{BASE_URL}/bookings/query?{urlencode(filters)}")
    else:
        response = requests.get(f"{BASE_URL}/bookings")
    if response.status_code == 404:
        return []
    response.raise_for_status()
    return response.json()


class BookingService:
    """Service for creating and reading bookings."""

    dispatcher = NotificationDispatcher()

    @staticmethod
    def validate_request(payload: Dict[str, Any],
                         idempotency_key: Optional[str] = None) -> BookingRequest:
        """
        Validate a booking request body.

        Raises:
            BookingValidationError: With one entry per failing field
        """
        if not isinstance(payload, dict):
            raise BookingValidationError([{
                "field": "body", "message": "Request body must be a JSON object", "type": "dict_type",
            }])

        data = dict(payload)
        if idempotency_key:
            data["idempotencyKey"] = idempotency_key
            data.pop("idempotency_key", None)

        try:
            return BookingRequest.model_validate(data)
        except ValidationError as e:
            raise BookingValidationError(format_errors(e))

    @staticmethod
    def create_booking(token: str, payload: Dict[str, Any],
                       idempotency_key: Optional[str] = None) -> Dict[str, Any]:
        """
        Create a booking, assigning a driver when one is free.

        The booking is CONFIRMED with a driver and vehicle bound when the
        availability filter finds a candidate, and PENDING with neither
        otherwise. A driver notification is published only after the
        booking is stored.

        Args:
            token: JWT token for authentication
            payload: Request body (see BookingRequest)
            idempotency_key: Optional key deduplicating client retries

        Returns:
            Dict: ``{"booking": record, "created": bool}``; ``created`` is
            False when an earlier booking with the same key is returned

        Raises:
            AuthError: If authentication fails
            RoleForbiddenError: If the caller is not a client
            BookingValidationError: If the request is invalid
            BookingServiceError: If the booking cannot be stored
        """
        client = AuthService.require_role(token, [UserRole.CLIENT.value])
        request = BookingService.validate_request(payload, idempotency_key)

        try:
            quote = PricingService.calculate_booking_price(
                request.pickup_location.to_location(),
                request.dropoff_location.to_location(),
                request.vehicle_type,
                request.scheduled_date,
            )
        except PricingError as e:
            raise BookingValidationError([{"field": "route", "message": str(e), "type": e.code}])

        try:
            if request.idempotency_key:
                existing = BookingService._find_by_idempotency_key(client["id"], request.idempotency_key)
                if existing:
                    logger.info(f"Replaying booking {existing['id']} for idempotency key")
                    return {"booking": _attach_party_details(existing), "created": False}

            saved, match, created = BookingService._assign_and_persist(client["id"], request, quote)

        except (requests.RequestException, AvailabilityServiceError) as e:
            logger.error(f"Booking creation failed for client {client['id']}: {str(e)}")
            raise BookingServiceError(f"Booking creation failed: {str(e)}")

        if created:
            logger.info(f"Created booking {saved['id']} with status {saved['status']}")
            if match is not None and saved.get("driver_id") == match.driver_id:
                BookingService.dispatcher.publish(BookingEvent.driver_assigned(saved, match.user_id))

        return {"booking": _attach_party_details(saved, match), "created": created}

    @staticmethod
    def _assign_and_persist(client_id: str, request: BookingRequest,
                            quote: PriceQuote) -> Tuple[Dict[str, Any], Optional[DriverMatch], bool]:
        """Match a driver and claim the slot, moving on when a driver is taken."""
        excluded = set()

        for _ in range(MAX_CLAIM_ATTEMPTS):
            match = AvailabilityService.find_available_driver(
                request.vehicle_type, request.scheduled_date, excluded)

            status_code, record = _claim(_assemble(client_id, request, quote, match), request)
            if status_code == 409 and match is not None:
                logger.info(f"Driver {match.driver_id} was booked concurrently, trying the next one")
                excluded.add(match.driver_id)
                continue

            return record, match, status_code == 201

        logger.warning(f"No driver could be claimed after {MAX_CLAIM_ATTEMPTS} attempts")
        status_code, record = _claim(_assemble(client_id, request, quote, None), request)
        return record, None, status_code == 201

    @staticmethod
    def _find_by_idempotency_key(client_id: str, key: str) -> Optional[Dict[str, Any]]:
        query = urlencode({"client_id": client_id, "idempotency_key": key})
        response = requests.get(f"{BASE_URL}/bookings/query?{query}")
        if response.status_code == 404:
            return None
        response.raise_for_status()
        matches = [b for b in response.json() if b.get("idempotency_key") == key]
        return matches[0] if matches else None

    @staticmethod
    def list_bookings(token: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        List the bookings visible to the caller, newest first.

        Clients see their own bookings and drivers the bookings assigned to
        them. An account holding both roles sees both sets. Admins see
        everything, optionally filtered by client or driver.

        Args:
            token: JWT token for authentication
            params: page, limit, status, fromDate, toDate, clientId, driverId

        Returns:
            Dict: ``{"bookings": [...], "pagination": {page, limit, total, pages}}``

        Raises:
            AuthError: If authentication fails
            RoleForbiddenError: If the caller has no booking-related role
            BookingValidationError: If the query parameters are invalid
            BookingNotFoundError: If a driver-only caller has no driver profile
            BookingServiceError: If the store cannot be read
        """
        user = AuthService.verify_token(token)
        roles = set(user.get("roles", []))

        try:
            query = BookingListQuery.model_validate(params or {})
        except ValidationError as e:
            raise BookingValidationError(format_errors(e))

        try:
            scopes = []
            if UserRole.ADMIN.value in roles:
                scope = {}
                if query.client_id:
                    scope["client_id"] = query.client_id
                if query.driver_id:
                    scope["driver_id"] = query.driver_id
                scopes.append(scope)
            else:
                if UserRole.CLIENT.value in roles:
                    scopes.append({"client_id": user["id"]})
                if UserRole.DRIVER.value in roles:
                    profile = _driver_profile_for(user["id"])
                    if profile is not None:
                        scopes.append({"driver_id": profile["id"]})
                    elif not scopes:
                        raise BookingNotFoundError(f"No driver profile for user {user['id']}")
                if not scopes:
                    raise RoleForbiddenError("Insufficient permissions to view bookings")

            if query.status:
                for scope in scopes:
                    scope["status"] = query.status.value

            # A client who also drives sees both sides, each booking once
            bookings_by_id = {}
            for scope in scopes:
                for booking in _query_bookings(scope):
                    bookings_by_id.setdefault(booking["id"], booking)
            bookings = list(bookings_by_id.values())

        except requests.RequestException as e:
            raise BookingServiceError(f"Failed to retrieve bookings: {str(e)}")

        if query.from_date or query.to_date:
            bookings = [b for b in bookings if _scheduled_between(b, query.from_date, query.to_date)]

        bookings.sort(key=lambda b: b.get("created_at", ""), reverse=True)

        total = len(bookings)
        offset = (query.page - 1) * query.limit
        page_items = bookings[offset:offset + query.limit]

        return {
            "bookings": [_attach_party_details(b) for b in page_items],
            "pagination": {
                "page": query.page,
                "limit": query.limit,
                "total": total,
                "pages": math.ceil(total / query.limit),
            },
        }

    @staticmethod
    def get_booking(token: str, booking_id: str) -> Dict[str, Any]:
        """
        Get one booking the caller is a party to.

        Raises:
            AuthError: If authentication fails
            RoleForbiddenError: If the caller may not see the booking
            BookingNotFoundError: If the booking does not exist
            BookingServiceError: If the store cannot be read
        """
        user = AuthService.verify_token(token)
        roles = set(user.get("roles", []))

        try:
            response = requests.get(f"{BASE_URL}/bookings/{booking_id}")
            if response.status_code == 404:
                raise BookingNotFoundError(f"Booking with ID {booking_id} not found")
            response.raise_for_status()
            booking = response.json()

            allowed = UserRole.ADMIN.value in roles or booking.get("client_id") == user["id"]
            if not allowed and UserRole.DRIVER.value in roles and booking.get("driver_id"):
                profile = _driver_profile_for(user["id"])
                allowed = profile is not None and profile["id"] == booking["driver_id"]

        except requests.RequestException as e:
            raise BookingServiceError(f"Failed to retrieve booking: {str(e)}")

        if not allowed:
            raise RoleForbiddenError("You are not a party to this booking")

        return _attach_party_details(booking)


def _scheduled_between(booking: Dict[str, Any], start, end) -> bool:
    try:
        scheduled = parse_iso(booking["scheduled_date"])
    except (KeyError, TypeError, ValueError):
        return False
    if start is not None and scheduled < parse_iso(start):
        return False
    if end is not None and scheduled > parse_iso(end):
        return False
    return True
