from .directory import User, Project, USER_ROLES, OPERATIONS_ROLES
from .travel import TravelRequest, Booking, REQUEST_STATUSES, TRAVEL_PURPOSES, BOOKING_TYPES, BOOKING_STATUSES
from .documents import EmployeeDocument, DOCUMENT_TYPES
from .security import SecurityEvent

__all__ = [
    'User', 'Project', 'USER_ROLES', 'OPERATIONS_ROLES',
    'TravelRequest', 'Booking',
    'REQUEST_STATUSES', 'TRAVEL_PURPOSES', 'BOOKING_TYPES', 'BOOKING_STATUSES',
    'EmployeeDocument', 'DOCUMENT_TYPES',
    'SecurityEvent',
]
