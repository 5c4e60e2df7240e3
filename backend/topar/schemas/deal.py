"""
Deal schemas for request/response models
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime
from ..enums.deal import DealStatus, DealRole, DeliveryOption
from ..enums.listing import Currency, ListingStatus


class DealCreate(BaseModel):
    listing_id: int
    delivery_option: DeliveryOption
    amount: Optional[float] = Field(None, gt=0, description="Defaults to the listing price")


class DealDispute(BaseModel):
    reason: str = Field(..., min_length=1, max_length=2000)

    @field_validator("reason")
    @classmethod
    def reason_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Dispute reason must not be blank")
        return value


class ListingSummary(BaseModel):
    id: int
    title: str
    images: List[str] = []
    price: float
    currency: Currency
    status: ListingStatus

    class Config:
        from_attributes = True


class AccountSummary(BaseModel):
    id: int
    first_name: str
    username: str
    telegram: Optional[str]

    class Config:
        from_attributes = True


class DealResponse(BaseModel):
    id: int
    listing_id: int
    buyer_id: int
    seller_id: int
    amount: float
    currency: Currency
    delivery_option: DeliveryOption
    status: DealStatus
    dispute_reason: Optional[str]
    disputed_by: Optional[int]
    created_at: datetime
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class DealDetailResponse(DealResponse):
    """Deal as seen by one of its parties"""
    role: DealRole
    listing: Optional[ListingSummary]
    buyer: Optional[AccountSummary]
    seller: Optional[AccountSummary]
