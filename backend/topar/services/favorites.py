"""
Favorite index: saved listings and the listing like counter
"""

from typing import List, Tuple

from sqlalchemy import case
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from ..config import Settings
from ..core.exceptions import NotFoundError, StorageError
from ..core.logging import get_logger
from ..core.retry import retry_on_storage_error
from ..models.favorite import Favorite
from ..models.listing import Listing

logger = get_logger(__name__)

# A toggle that loses an insert race is replayed this many times
MAX_TOGGLE_REPLAYS = 3


class FavoriteIndex:
    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings

    @retry_on_storage_error
    def toggle(self, user_id: int, listing_id: int) -> Tuple[bool, int]:
        """
        Flip the (user, listing) favorite and move the like counter with it.

        Returns:
            (is_favorite, likes) after the toggle
        """
        exists = self.db.query(Listing.id).filter(Listing.id == listing_id).first()
        if not exists:
            raise NotFoundError("Listing not found")

        for _ in range(MAX_TOGGLE_REPLAYS):
            try:
                is_favorite = self._flip(user_id, listing_id)
                self.db.commit()
                break
            except IntegrityError:
                # Same pair inserted concurrently; replaying now removes it
                self.db.rollback()
                logger.warning(f"Favorite insert race for user {user_id} on listing {listing_id}, replaying")
        else:
            raise StorageError("Could not update favorite, please retry")

        likes = self.db.query(Listing.likes).filter(Listing.id == listing_id).scalar()
        logger.info(
            f"User {user_id} {'added' if is_favorite else 'removed'} favorite on listing {listing_id}",
            extra={"event": "favorite_toggled", "user_id": user_id, "listing_id": listing_id, "likes": likes},
        )
        return is_favorite, likes

    def _flip(self, user_id: int, listing_id: int) -> bool:
        removed = self.db.query(Favorite).filter(
            Favorite.user_id == user_id,
            Favorite.listing_id == listing_id,
        ).delete(synchronize_session=False)

        if removed:
            self._adjust_likes(listing_id, -1)
            return False

        self.db.add(Favorite(user_id=user_id, listing_id=listing_id))
        self.db.flush()
        self._adjust_likes(listing_id, 1)
        return True

    def _adjust_likes(self, listing_id: int, delta: int) -> None:
        """Atomic counter delta in SQL, floored at zero"""
        if delta >= 0:
            new_value = Listing.likes + delta
        else:
            new_value = case((Listing.likes + delta < 0, 0), else_=Listing.likes + delta)
        self.db.query(Listing).filter(Listing.id == listing_id).update(
            {"likes": new_value},
            synchronize_session=False,
        )

    @retry_on_storage_error
    def list_for_user(self, user_id: int) -> List[Favorite]:
        return (
            self.db.query(Favorite)
            .options(joinedload(Favorite.listing).joinedload(Listing.seller))
            .filter(Favorite.user_id == user_id)
            .order_by(Favorite.created_at.desc(), Favorite.id.desc())
            .all()
        )

