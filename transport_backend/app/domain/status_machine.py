"""
Status machines for trips, shipments, vehicles and drivers.

Each machine is a fixed transition table. Terminal states have no outgoing
transitions, and a state never transitions to itself.
"""

import enum
from typing import Dict, FrozenSet, Generic, Mapping, Type, TypeVar
from transport_backend.app.core.exceptions import InvalidStatusTransitionError
from transport_backend.app.models.enums import (
    DriverStatus, ShipmentStatus, TripStatus, VehicleStatus
)

S = TypeVar("S", bound=enum.Enum)


class StatusMachine(Generic[S]):
    """
    Transition table for one entity type.

    Usage:
        TRIP_STATUS_MACHINE.ensure_transition(trip.status, TripStatus.ONGOING)
    """

    def __init__(self, entity: str, status_type: Type[S], transitions: Mapping[S, Mapping]):
        missing = set(status_type) - set(transitions)
        if missing:
            raise ValueError(f"{entity} transition table misses {sorted(s.value for s in missing)}")

        self.entity = entity
        self.status_type = status_type
        self.transitions: Dict[S, FrozenSet[S]] = {
            state: frozenset(targets) for state, targets in transitions.items()
        }

    @property
    def terminal_states(self) -> FrozenSet[S]:
        return frozenset(state for state, targets in self.transitions.items() if not targets)

    def coerce(self, value) -> S:
        """Accept enum members or their raw values."""
        if isinstance(value, self.status_type):
            return value
        try:
            return self.status_type(value)
        except ValueError:
            raise InvalidStatusTransitionError(self.entity, "?", str(value))

    def is_terminal(self, state) -> bool:
        return not self.transitions[self.coerce(state)]

    def allowed_targets(self, state) -> FrozenSet[S]:
        return self.transitions[self.coerce(state)]

    def can_transition(self, current, requested) -> bool:
        try:
            current, requested = self.coerce(current), self.coerce(requested)
        except InvalidStatusTransitionError:
            return False
        return requested in self.transitions[current]

    def ensure_transition(self, current, requested) -> S:
        """
        Validate a transition.

        Returns:
            The requested state as an enum member

        Raises:
            InvalidStatusTransitionError: transition not in the table
        """
        current = self.coerce(current)
        requested_state = self.coerce(requested)
        if requested_state not in self.transitions[current]:
            raise InvalidStatusTransitionError(self.entity, current.value, requested_state.value)
        return requested_state


TRIP_STATUS_MACHINE = StatusMachine("Trip", TripStatus, {
    TripStatus.PLANNED: {TripStatus.ONGOING, TripStatus.CANCELLED},
    TripStatus.ONGOING: {TripStatus.COMPLETED, TripStatus.CANCELLED},
    TripStatus.COMPLETED: set(),
    TripStatus.CANCELLED: set(),
})

SHIPMENT_STATUS_MACHINE = StatusMachine("Shipment", ShipmentStatus, {
    ShipmentStatus.PENDING: {ShipmentStatus.ASSIGNED, ShipmentStatus.CANCELLED},
    ShipmentStatus.ASSIGNED: {ShipmentStatus.IN_TRANSIT, ShipmentStatus.CANCELLED},
    ShipmentStatus.IN_TRANSIT: {ShipmentStatus.DELIVERED, ShipmentStatus.CANCELLED},
    ShipmentStatus.DELIVERED: set(),
    ShipmentStatus.CANCELLED: set(),
})

VEHICLE_STATUS_MACHINE = StatusMachine("Vehicle", VehicleStatus, {
    VehicleStatus.ACTIVE: {VehicleStatus.IN_MAINTENANCE, VehicleStatus.INACTIVE},
    VehicleStatus.IN_MAINTENANCE: {VehicleStatus.ACTIVE, VehicleStatus.INACTIVE},
    VehicleStatus.INACTIVE: set(),
})

DRIVER_STATUS_MACHINE = StatusMachine("Driver", DriverStatus, {
    DriverStatus.ACTIVE: {DriverStatus.SUSPENDED, DriverStatus.INACTIVE},
    DriverStatus.SUSPENDED: {DriverStatus.ACTIVE, DriverStatus.INACTIVE},
    DriverStatus.INACTIVE: set(),
})
