"""
Safe Deal ledger: creates deals and moves them through their statuses

    pending -> paid -> shipped -> completed
    pending | paid | shipped -> disputed

Every transition is a conditional UPDATE keyed on the expected prior
status, so two racing requests can never both apply the same step.
"""

from typing import Dict, FrozenSet, Iterable, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from ..config import Settings
from ..core.exceptions import (
    ForbiddenError,
    InvalidOperationError,
    InvalidStateError,
    NotFoundError,
)
from ..core.logging import get_logger
from ..core.retry import retry_on_storage_error
from ..enums.deal import ACTIVE_DEAL_STATUSES, DealRole, DealStatus
from ..enums.listing import ListingStatus
from ..models.base import utcnow
from ..models.deal import Deal
from ..schemas.deal import DealCreate
from .listing_registry import ListingRegistry

logger = get_logger(__name__)


ALLOWED_TRANSITIONS: Dict[DealStatus, FrozenSet[DealStatus]] = {
    DealStatus.PENDING: frozenset({DealStatus.PAID}),
    DealStatus.PAID: frozenset({DealStatus.SHIPPED}),
    DealStatus.SHIPPED: frozenset({DealStatus.COMPLETED}),
    DealStatus.DELIVERED: frozenset(),
    DealStatus.COMPLETED: frozenset(),
    DealStatus.DISPUTED: frozenset(),
    DealStatus.REFUNDED: frozenset(),
}

# Either party may dispute while the deal is still open
for _status in ACTIVE_DEAL_STATUSES:
    ALLOWED_TRANSITIONS[_status] = ALLOWED_TRANSITIONS[_status] | {DealStatus.DISPUTED}


def can_transition(current: DealStatus, target: DealStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def sources_of(target: DealStatus) -> FrozenSet[DealStatus]:
    """Statuses from which ``target`` can be reached"""
    return frozenset(s for s, nexts in ALLOWED_TRANSITIONS.items() if target in nexts)


def is_party(deal: Deal, account_id: int) -> bool:
    return account_id in (deal.buyer_id, deal.seller_id)


def deal_role(deal: Deal, account_id: int) -> DealRole:
    """Role of an account on a deal; callers must have checked is_party first"""
    return DealRole.BUYER if deal.buyer_id == account_id else DealRole.SELLER


class DealLedger:
    def __init__(self, db: Session, settings: Settings, listings: Optional[ListingRegistry] = None):
        self.db = db
        self.settings = settings
        self.listings = listings or ListingRegistry(db)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _load(self, deal_id: int, with_related: bool = False) -> Deal:
        query = self.db.query(Deal)
        if with_related:
            query = query.options(
                joinedload(Deal.listing),
                joinedload(Deal.buyer),
                joinedload(Deal.seller),
            )
        deal = query.filter(Deal.id == deal_id).first()
        if not deal:
            raise NotFoundError("Deal not found")
        return deal

    @retry_on_storage_error
    def get(self, deal_id: int, caller_id: int) -> Deal:
        deal = self._load(deal_id, with_related=True)
        if not is_party(deal, caller_id):
            raise ForbiddenError("Not authorized")
        return deal

    @retry_on_storage_error
    def list_for_account(self, account_id: int) -> List[Deal]:
        return (
            self.db.query(Deal)
            .options(
                joinedload(Deal.listing),
                joinedload(Deal.buyer),
                joinedload(Deal.seller),
            )
            .filter(or_(Deal.buyer_id == account_id, Deal.seller_id == account_id))
            .order_by(Deal.created_at.desc(), Deal.id.desc())
            .all()
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @retry_on_storage_error
    def initiate(self, buyer_id: int, data: DealCreate) -> Deal:
        """
        Open a deal on a Safe Deal listing. The caller becomes the buyer and
        the listing is reserved in the same transaction.
        """
        listing = self.listings.get_for_deal(data.listing_id)

        if not listing.is_safe_deal:
            raise InvalidOperationError("Safe deal not available for this listing")

        if listing.seller_id == buyer_id:
            raise InvalidOperationError("Cannot buy your own listing")

        if listing.delivery_options and data.delivery_option not in listing.delivery_options:
            raise InvalidOperationError(
                f"Delivery option '{data.delivery_option.value}' is not offered for this listing"
            )

        # Only one open deal per listing: the reservation is the gate
        if not self.listings.reserve(listing.id):
            logger.warning(
                f"Deal rejected: listing {listing.id} is {listing.status.value}, not available",
                extra={"listing_id": listing.id, "actor_id": buyer_id},
            )
            raise InvalidOperationError("Listing is not available for a safe deal")

        deal = Deal(
            listing_id=listing.id,
            buyer_id=buyer_id,
            seller_id=listing.seller_id,
            amount=data.amount if data.amount is not None else listing.price,
            currency=listing.currency,
            delivery_option=data.delivery_option,
            status=DealStatus.PENDING,
        )
        self.db.add(deal)
        self.db.commit()
        self.db.refresh(deal)

        logger.info(
            f"Deal {deal.id} created on listing {listing.id} by buyer {buyer_id}",
            extra={
                "event": "deal_created",
                "deal_id": deal.id,
                "listing_id": listing.id,
                "actor_id": buyer_id,
                "to_status": DealStatus.PENDING.value,
            },
        )
        return deal

    @retry_on_storage_error
    def pay(self, deal_id: int, caller_id: int) -> Deal:
        deal = self._load(deal_id)
        if deal.buyer_id != caller_id:
            raise ForbiddenError("Only buyer can pay")
        previous = self._advance(deal, caller_id, DealStatus.PAID, "Deal already processed")
        self.db.commit()
        self._log_transition(deal, caller_id, previous, DealStatus.PAID)
        return deal

    @retry_on_storage_error
    def ship(self, deal_id: int, caller_id: int) -> Deal:
        deal = self._load(deal_id)
        if deal.seller_id != caller_id:
            raise ForbiddenError("Only seller can mark as shipped")
        previous = self._advance(deal, caller_id, DealStatus.SHIPPED, "Deal must be paid first")
        self.db.commit()
        self._log_transition(deal, caller_id, previous, DealStatus.SHIPPED)
        return deal

    @retry_on_storage_error
    def confirm(self, deal_id: int, caller_id: int) -> Deal:
        """
        Buyer confirms receipt. The deal and its listing are written in one
        transaction: a completed deal always has a sold listing.
        """
        deal = self._load(deal_id)
        if deal.buyer_id != caller_id:
            raise ForbiddenError("Only buyer can confirm")
        previous = self._advance(deal, caller_id, DealStatus.COMPLETED, "Deal must be shipped first")
        self.listings.set_status(deal.listing_id, ListingStatus.SOLD)
        self.db.commit()
        self._log_transition(deal, caller_id, previous, DealStatus.COMPLETED)
        return deal

    @retry_on_storage_error
    def dispute(self, deal_id: int, caller_id: int, reason: str) -> Deal:
        deal = self._load(deal_id)
        if not is_party(deal, caller_id):
            raise ForbiddenError("Not authorized")
        previous = self._advance(
            deal,
            caller_id,
            DealStatus.DISPUTED,
            "Deal can no longer be disputed",
            dispute_reason=reason,
            disputed_by=caller_id,
        )
        self.db.commit()
        self._log_transition(deal, caller_id, previous, DealStatus.DISPUTED)
        return deal

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _advance(self, deal: Deal, actor_id: int, target: DealStatus, message: str, **values) -> DealStatus:
        """
        Apply ``target`` only if the stored status still allows it.
        Returns the status the deal was in. Does not commit.
        """
        allowed_from = sources_of(target)
        previous = deal.status

        if not can_transition(previous, target):
            self._reject(deal, actor_id, target)
            raise InvalidStateError(message)

        values.update({"status": target, "updated_at": utcnow()})
        updated = self.db.query(Deal).filter(
            Deal.id == deal.id,
            Deal.status.in_(_as_list(allowed_from)),
        ).update(values, synchronize_session=False)

        if updated != 1:
            # Another request moved the deal between our read and write
            self._reject(deal, actor_id, target)
            raise InvalidStateError(message)

        return previous

    def _reject(self, deal: Deal, actor_id: int, target: DealStatus) -> None:
        logger.warning(
            f"Deal {deal.id}: {deal.status.value} -> {target.value} rejected for user {actor_id}",
            extra={
                "event": "deal_transition_rejected",
                "deal_id": deal.id,
                "actor_id": actor_id,
                "from_status": deal.status.value,
                "to_status": target.value,
            },
        )

    def _log_transition(self, deal: Deal, actor_id: int, previous: DealStatus, target: DealStatus) -> None:
        logger.info(
            f"Deal {deal.id}: {previous.value} -> {target.value} by user {actor_id}",
            extra={
                "event": "deal_transition",
                "deal_id": deal.id,
                "listing_id": deal.listing_id,
                "actor_id": actor_id,
                "from_status": previous.value,
                "to_status": target.value,
            },
        )


def _as_list(statuses: Iterable[DealStatus]) -> List[DealStatus]:
    # Stable order keeps the generated SQL identical between calls
    return sorted(statuses, key=lambda s: s.value)

