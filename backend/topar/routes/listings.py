"""
Listing routes owned by this service (favorites toggle)
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth.dependencies import get_app_settings, get_current_user
from ..config import Settings
from ..database import get_db
from ..models.user import User
from ..schemas.favorite import FavoriteToggleResponse
from ..services.favorites import FavoriteIndex

router = APIRouter()


def get_favorite_index(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> FavoriteIndex:
    return FavoriteIndex(db, settings)


@router.post("/{listing_id}/favorite", response_model=FavoriteToggleResponse)
def toggle_favorite(
    listing_id: int,
    current_user: User = Depends(get_current_user),
    favorites: FavoriteIndex = Depends(get_favorite_index),
):
    """Add or remove the listing from the caller's favorites"""
    is_favorite, likes = favorites.toggle(current_user.id, listing_id)
    return FavoriteToggleResponse(is_favorite=is_favorite, likes=likes)
