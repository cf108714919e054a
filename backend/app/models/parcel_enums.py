"""
Parcel enumerations.
"""

import enum


class ParcelStatus(str, enum.Enum):
    """
    Parcel status enumeration.

    Status flow:
        Pending → Assigned → InTransit → Delivered | Failed
        Pending → Cancelled
        Assigned → Delivered | Failed
    """
    PENDING = "Pending"
    ASSIGNED = "Assigned"
    IN_TRANSIT = "InTransit"
    DELIVERED = "Delivered"
    FAILED = "Failed"
    CANCELLED = "Cancelled"


class ParcelSize(str, enum.Enum):
    SMALL = "Small"
    MEDIUM = "Medium"
    LARGE = "Large"


class PaymentType(str, enum.Enum):
    CASH_ON_DELIVERY = "CashOnDelivery"
    PREPAID = "Prepaid"
