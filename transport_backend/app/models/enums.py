"""
Enumerations for the transport management domain.

Roles are stored lower-case, the way the identity provider carries them in
session metadata. Status values are upper-case.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    Roles:
        ADMIN: Manages users, fleet, trips, shipments and expenses
        DRIVER: Executes assigned trips
        CLIENT: Requests and tracks shipments (default role)
    """
    ADMIN = "admin"
    DRIVER = "driver"
    CLIENT = "client"


class DriverStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"


class VehicleStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    IN_MAINTENANCE = "IN_MAINTENANCE"
    INACTIVE = "INACTIVE"


class TripStatus(str, enum.Enum):
    """Trip status enumeration."""
    PLANNED = "PLANNED"  # Created by an admin, not started
    ONGOING = "ONGOING"  # Driver is on the road
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class ShipmentStatus(str, enum.Enum):
    PENDING = "PENDING"  # Requested, no trip yet
    ASSIGNED = "ASSIGNED"  # Attached to a trip
    IN_TRANSIT = "IN_TRANSIT"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class PriorityLevel(str, enum.Enum):
    """Shared by shipment priority and issue severity."""
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    URGENT = "URGENT"


class ExpenseType(str, enum.Enum):
    FUEL = "FUEL"
    TOLL = "TOLL"
    REPAIR = "REPAIR"
    MAINTENANCE = "MAINTENANCE"
    OTHER = "OTHER"


class IssueType(str, enum.Enum):
    VEHICLE_BREAKDOWN = "VEHICLE_BREAKDOWN"
    ACCIDENT = "ACCIDENT"
    DELAY = "DELAY"
    SHIPMENT_PROBLEM = "SHIPMENT_PROBLEM"
    OTHER = "OTHER"


class IssueStatus(str, enum.Enum):
    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"


class NotificationType(str, enum.Enum):
    GENERAL = "GENERAL"
    TRIP_UPDATE = "TRIP_UPDATE"
    SHIPMENT_UPDATE = "SHIPMENT_UPDATE"
    SYSTEM = "SYSTEM"


class NotificationStatus(str, enum.Enum):
    UNREAD = "UNREAD"
    READ = "READ"
