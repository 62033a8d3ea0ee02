"""Services implementing crossbook's booking workflow."""
from crossbook.services.auth_service import AuthService, AuthError, RoleForbiddenError
from crossbook.services.pricing_service import PricingService, PricingError, PriceQuote
from crossbook.services.availability_service import AvailabilityService, AvailabilityServiceError
from crossbook.services.notification_service import BookingEvent, NotificationDispatcher
from crossbook.services.booking_service import (
    BookingService,
    BookingServiceError,
    BookingValidationError,
    BookingNotFoundError,
)

__all__ = [
    'AuthService',
    'AuthError',
    'RoleForbiddenError',
    'PricingService',
    'PricingError',
    'PriceQuote',
    'AvailabilityService',
    'AvailabilityServiceError',
    'BookingEvent',
    'NotificationDispatcher',
    'BookingService',
    'BookingServiceError',
    'BookingValidationError',
    'BookingNotFoundError',
]
