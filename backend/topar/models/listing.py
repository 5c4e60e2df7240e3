"""
Listing model for marketplace items
"""

from sqlalchemy import Column, Integer, ForeignKey, String, Text, Float, Boolean, DateTime, Enum, JSON
from sqlalchemy.orm import relationship
from .base import BaseModel
from ..enums.listing import ListingStatus, Currency


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Listing(BaseModel):
    __tablename__ = "listings"

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, default="")
    price = Column(Float, nullable=False)
    currency = Column(
        Enum(Currency, name="currency", values_callable=_enum_values),
        nullable=False,
        default=Currency.UZS,
    )
    category = Column(String(100), nullable=False, default="other")
    images = Column(JSON, nullable=False, default=list)

    seller_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Safe Deal is opt-in per listing
    is_safe_deal = Column(Boolean, default=False, nullable=False)

    # [{"type": "pickup" | "courier" | "pickup_point", "price": float, "description": str}]
    delivery_options = Column(JSON, nullable=False, default=list)

    status = Column(
        Enum(ListingStatus, name="listing_status", values_callable=_enum_values),
        nullable=False,
        default=ListingStatus.ACTIVE,
        index=True,
    )

    # Derived popularity counter, kept in step with the favorites table
    likes = Column(Integer, default=0, nullable=False)
    views = Column(Integer, default=0, nullable=False)

    expires_at = Column(DateTime, nullable=True)

    # Relationships
    seller = relationship("User", foreign_keys=[seller_id], backref="listings")
