"""
Parcel lifecycle transition table.

Pending → {Assigned, Cancelled}
Assigned → {InTransit, Delivered, Failed}
InTransit → {Delivered, Failed}
Delivered, Failed, Cancelled are terminal.
"""

from typing import Dict, FrozenSet

from backend.app.models.parcel_enums import ParcelStatus


ALLOWED_TRANSITIONS: Dict[ParcelStatus, FrozenSet[ParcelStatus]] = {
    ParcelStatus.PENDING: frozenset({ParcelStatus.ASSIGNED, ParcelStatus.CANCELLED}),
    ParcelStatus.ASSIGNED: frozenset({ParcelStatus.IN_TRANSIT, ParcelStatus.DELIVERED, ParcelStatus.FAILED}),
    ParcelStatus.IN_TRANSIT: frozenset({ParcelStatus.DELIVERED, ParcelStatus.FAILED}),
    ParcelStatus.DELIVERED: frozenset(),
    ParcelStatus.FAILED: frozenset(),
    ParcelStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES: FrozenSet[ParcelStatus] = frozenset(
    status for status, successors in ALLOWED_TRANSITIONS.items() if not successors
)

# Terminal states reached by an agent; these release the agent and notify the owner
COMPLETION_STATUSES: FrozenSet[ParcelStatus] = frozenset({ParcelStatus.DELIVERED, ParcelStatus.FAILED})


def is_terminal(status: ParcelStatus) -> bool:
    return status in TERMINAL_STATUSES


def can_transition(current: ParcelStatus, requested: ParcelStatus) -> bool:
    """True only for listed edges; self-transitions are never allowed."""
    return requested in ALLOWED_TRANSITIONS[current]
