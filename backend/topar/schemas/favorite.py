"""
Favorite schemas
"""

from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime
from ..enums.listing import Currency, ListingStatus
from .deal import AccountSummary


class FavoriteToggleResponse(BaseModel):
    is_favorite: bool
    likes: int


class FavoriteListingResponse(BaseModel):
    id: int
    title: str
    images: List[str] = []
    price: float
    currency: Currency
    status: ListingStatus
    likes: int
    is_safe_deal: bool
    favorited_at: datetime
    seller: Optional[AccountSummary]
