"""
Deal model for Safe Deal transactions
"""

from sqlalchemy import Column, Integer, ForeignKey, Float, Text, Enum, CheckConstraint
from sqlalchemy.orm import relationship
from .base import BaseModel
from .listing import _enum_values
from ..enums.deal import DealStatus, DeliveryOption
from ..enums.listing import Currency


class Deal(BaseModel):
    __tablename__ = "deals"
    __table_args__ = (
        CheckConstraint("buyer_id <> seller_id", name="ck_deals_buyer_not_seller"),
        CheckConstraint("amount > 0", name="ck_deals_amount_positive"),
    )

    listing_id = Column(Integer, ForeignKey("listings.id"), nullable=False, index=True)
    buyer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    # Copied from the listing when the deal is created
    seller_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    amount = Column(Float, nullable=False)
    currency = Column(
        Enum(Currency, name="currency", values_callable=_enum_values),
        nullable=False,
        default=Currency.UZS,
    )
    delivery_option = Column(
        Enum(DeliveryOption, name="delivery_option", values_callable=_enum_values),
        nullable=False,
    )

    status = Column(
        Enum(DealStatus, name="deal_status", values_callable=_enum_values),
        nullable=False,
        default=DealStatus.PENDING,
        index=True,
    )

    # Set only when the deal is disputed
    dispute_reason = Column(Text, nullable=True)
    disputed_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    # Relationships
    listing = relationship("Listing", backref="deals")
    buyer = relationship("User", foreign_keys=[buyer_id], backref="purchases")
    seller = relationship("User", foreign_keys=[seller_id], backref="sales")
