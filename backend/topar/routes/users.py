"""
User routes for the authenticated account
"""

from fastapi import APIRouter, Depends
from typing import List

from ..auth.dependencies import get_current_user
from ..models.user import User
from ..schemas.deal import AccountSummary
from ..schemas.favorite import FavoriteListingResponse
from ..services.favorites import FavoriteIndex
from .listings import get_favorite_index

router = APIRouter()


@router.get("/me/favorites", response_model=List[FavoriteListingResponse])
def get_my_favorites(
    current_user: User = Depends(get_current_user),
    favorites: FavoriteIndex = Depends(get_favorite_index),
):
    """Listings the caller has saved, most recent first"""
    result = []
    for favorite in favorites.list_for_user(current_user.id):
        listing = favorite.listing
        if not listing:
            continue
        result.append(FavoriteListingResponse(
            id=listing.id,
            title=listing.title,
            images=listing.images or [],
            price=listing.price,
            currency=listing.currency,
            status=listing.status,
            likes=listing.likes,
            is_safe_deal=listing.is_safe_deal,
            favorited_at=favorite.created_at,
            seller=AccountSummary.model_validate(listing.seller) if listing.seller else None,
        ))
    return result
