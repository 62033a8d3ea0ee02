"""Entity models for the crossbook application."""
from crossbook.models.user import User, UserRole
from crossbook.models.driver import DriverProfile, DriverCandidate, DriverMatch
from crossbook.models.vehicle import Vehicle, VehicleType
from crossbook.models.booking import Booking, BookingStatus, Location, Region
from crossbook.models.notification import Notification, NotificationType


__all__ = [
    'User',
    'UserRole',
    'DriverProfile',
    'DriverCandidate',
    'DriverMatch',
    'Vehicle',
    'VehicleType',
    'Booking',
    'BookingStatus',
    'Location',
    'Region',
    'Notification',
    'NotificationType',
]
