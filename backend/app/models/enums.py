"""
User role and agent availability enumerations.

Defines the closed set of account roles for the parcel delivery system.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    Roles:
        CUSTOMER: Books parcels (default role at registration)
        DELIVERY_AGENT: Picks up and delivers assigned parcels
        ADMIN: Manages users, agent applications and assignments
    """
    CUSTOMER = "customer"
    DELIVERY_AGENT = "deliveryAgent"
    ADMIN = "admin"


class AgentAvailability(str, enum.Enum):
    """
    Delivery agent availability.

    An agent is BUSY while holding at least one open assignment.
    """
    AVAILABLE = "available"
    BUSY = "busy"
