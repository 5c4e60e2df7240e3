"""
Listing operations the deal flow depends on
"""

from dataclasses import dataclass
from typing import FrozenSet

from sqlalchemy.orm import Session

from ..core.exceptions import NotFoundError
from ..core.logging import get_logger
from ..enums.deal import DeliveryOption
from ..enums.listing import Currency, ListingStatus
from ..models.base import utcnow
from ..models.listing import Listing

logger = get_logger(__name__)


@dataclass(frozen=True)
class ListingForDeal:
    id: int
    seller_id: int
    price: float
    currency: Currency
    is_safe_deal: bool
    status: ListingStatus
    delivery_options: FrozenSet[DeliveryOption]


def _offered_options(raw) -> FrozenSet[DeliveryOption]:
    offered = set()
    for option in raw or []:
        kind = option.get("type") if isinstance(option, dict) else option
        try:
            offered.add(DeliveryOption(kind))
        except ValueError:
            logger.warning(f"Ignoring unknown delivery option {kind!r}")
    return frozenset(offered)


class ListingRegistry:
    """
    Listing reads and status writes used by the deal ledger.

    None of these methods commit; they join the caller's transaction so a
    listing write and a deal write land together or not at all.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_for_deal(self, listing_id: int) -> ListingForDeal:
        listing = self.db.query(Listing).filter(Listing.id == listing_id).first()
        if not listing:
            raise NotFoundError("Listing not found")

        return ListingForDeal(
            id=listing.id,
            seller_id=listing.seller_id,
            price=listing.price,
            currency=listing.currency,
            is_safe_deal=listing.is_safe_deal,
            status=listing.status,
            delivery_options=_offered_options(listing.delivery_options),
        )

    def set_status(self, listing_id: int, new_status: ListingStatus) -> None:
        """Unconditional, idempotent status write"""
        updated = self.db.query(Listing).filter(Listing.id == listing_id).update(
            {"status": new_status, "updated_at": utcnow()},
            synchronize_session=False,
        )
        if updated != 1:
            raise NotFoundError("Listing not found")
        logger.debug(f"Listing {listing_id} status set to {new_status.value}")

    def reserve(self, listing_id: int) -> bool:
        """
        Move an active listing to reserved.
        Returns False when the listing was not active at write time.
        """
        updated = self.db.query(Listing).filter(
            Listing.id == listing_id,
            Listing.status == ListingStatus.ACTIVE,
        ).update(
            {"status": ListingStatus.RESERVED, "updated_at": utcnow()},
            synchronize_session=False,
        )
        return updated == 1
