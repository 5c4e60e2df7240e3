"""
Listing related enums
"""

import enum


class ListingStatus(str, enum.Enum):
    ACTIVE = "active"
    RESERVED = "reserved"
    SOLD = "sold"
    EXPIRED = "expired"
    DELETED = "deleted"


class Currency(str, enum.Enum):
    UZS = "UZS"
    USD = "USD"
