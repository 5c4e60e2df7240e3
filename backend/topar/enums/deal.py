"""
Deal related enums
"""

import enum


class DealStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    SHIPPED = "shipped"
    DELIVERED = "delivered"  # reserved, no operation produces it
    COMPLETED = "completed"
    DISPUTED = "disputed"
    REFUNDED = "refunded"  # reserved, no operation produces it


class DealRole(str, enum.Enum):
    BUYER = "buyer"
    SELLER = "seller"


class DeliveryOption(str, enum.Enum):
    PICKUP = "pickup"
    COURIER = "courier"
    PICKUP_POINT = "pickup_point"


# Statuses a deal can still move out of
ACTIVE_DEAL_STATUSES = frozenset({
    DealStatus.PENDING,
    DealStatus.PAID,
    DealStatus.SHIPPED,
})
