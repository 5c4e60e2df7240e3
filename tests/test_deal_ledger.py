"""Service-level tests for the deal ledger.

Covers the transition table, linearizable transitions under concurrent
requests, and the Confirm write staying atomic when storage fails.
"""

import threading

import pytest
from sqlalchemy.exc import OperationalError

from topar.core.exceptions import InvalidOperationError, InvalidStateError, StorageError
from topar.enums.deal import ACTIVE_DEAL_STATUSES, DealRole, DealStatus, DeliveryOption
from topar.enums.listing import ListingStatus
from topar.models import Deal, Listing
from topar.schemas.deal import DealCreate
from topar.services.deal_ledger import (
    ALLOWED_TRANSITIONS,
    DealLedger,
    can_transition,
    deal_role,
    sources_of,
)
from topar.services.listing_registry import ListingRegistry


def _storage_fault() -> OperationalError:
    return OperationalError("UPDATE listings SET status=?", {}, Exception("disk I/O error"))


class FailingRegistry(ListingRegistry):
    """Listing registry whose status write fails a set number of times."""

    def __init__(self, db, failures: int, error_factory=_storage_fault):
        super().__init__(db)
        self.remaining = failures
        self.error_factory = error_factory
        self.calls = 0

    def set_status(self, listing_id, new_status):
        self.calls += 1
        if self.remaining > 0:
            self.remaining -= 1
            raise self.error_factory()
        super().set_status(listing_id, new_status)


@pytest.fixture
def ledger(db, settings):
    return DealLedger(db, settings)


@pytest.fixture
def shipped_deal(session_factory, settings, buyer, seller, listing):
    session = session_factory()
    try:
        ledger = DealLedger(session, settings)
        deal = ledger.initiate(buyer.id, DealCreate(listing_id=listing.id, delivery_option=DeliveryOption.PICKUP))
        ledger.pay(deal.id, buyer.id)
        ledger.ship(deal.id, seller.id)
        return deal.id
    finally:
        session.close()


# ── Transition table ──────────────────────────────────────────────────────────


def test_only_the_documented_transitions_exist():
    allowed = {
        (current, target)
        for current in DealStatus
        for target in DealStatus
        if can_transition(current, target)
    }
    assert allowed == {
        (DealStatus.PENDING, DealStatus.PAID),
        (DealStatus.PAID, DealStatus.SHIPPED),
        (DealStatus.SHIPPED, DealStatus.COMPLETED),
        (DealStatus.PENDING, DealStatus.DISPUTED),
        (DealStatus.PAID, DealStatus.DISPUTED),
        (DealStatus.SHIPPED, DealStatus.DISPUTED),
    }


def test_every_status_has_an_entry():
    assert set(ALLOWED_TRANSITIONS) == set(DealStatus)


def test_dispute_reachable_from_every_active_status():
    assert sources_of(DealStatus.DISPUTED) == ACTIVE_DEAL_STATUSES


def test_reserved_statuses_are_unreachable():
    assert sources_of(DealStatus.REFUNDED) == frozenset()
    assert sources_of(DealStatus.DELIVERED) == frozenset()


def test_role_is_derived_from_each_deal():
    first = Deal(buyer_id=1, seller_id=2)
    second = Deal(buyer_id=2, seller_id=1)

    assert deal_role(first, 1) == DealRole.BUYER
    assert deal_role(second, 1) == DealRole.SELLER
    assert deal_role(first, 2) == DealRole.SELLER


# ── Initiate ──────────────────────────────────────────────────────────────────


def test_initiate_snapshots_seller_and_currency(ledger, buyer, seller, listing, db):
    deal = ledger.initiate(buyer.id, DealCreate(listing_id=listing.id, delivery_option=DeliveryOption.COURIER))

    # Editing the listing afterwards does not touch the deal
    db.query(Listing).filter(Listing.id == listing.id).update({"price": 999.0})
    db.commit()
    db.refresh(deal)

    assert deal.seller_id == seller.id
    assert deal.amount == 100.0
    assert deal.currency.value == "USD"
    assert deal.status == DealStatus.PENDING


def test_listing_without_delivery_set_accepts_any_option(ledger, buyer, seller, make_listing):
    listing = make_listing(seller, delivery_options=[])

    deal = ledger.initiate(buyer.id, DealCreate(listing_id=listing.id, delivery_option=DeliveryOption.PICKUP_POINT))

    assert deal.delivery_option == DeliveryOption.PICKUP_POINT


# ── Concurrency ───────────────────────────────────────────────────────────────


def test_concurrent_pay_has_exactly_one_winner(session_factory, settings, buyer, listing, fetch):
    session = session_factory()
    deal_id = DealLedger(session, settings).initiate(
        buyer.id, DealCreate(listing_id=listing.id, delivery_option=DeliveryOption.PICKUP)
    ).id
    buyer_id = buyer.id
    session.close()

    barrier = threading.Barrier(2)
    outcomes = []
    lock = threading.Lock()

    def attempt():
        worker_session = session_factory()
        try:
            barrier.wait()
            DealLedger(worker_session, settings).pay(deal_id, buyer_id)
            result = "paid"
        except InvalidStateError:
            result = "invalid_state"
        finally:
            worker_session.close()
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=attempt) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert sorted(outcomes) == ["invalid_state", "paid"]
    assert fetch(Deal, deal_id).status == DealStatus.PAID


def test_concurrent_initiates_reserve_listing_once(
    session_factory, settings, buyer, stranger, listing, count_deals, fetch
):
    listing_id = listing.id
    account_ids = (buyer.id, stranger.id)
    barrier = threading.Barrier(2)
    outcomes = []
    lock = threading.Lock()

    def attempt(account_id):
        worker_session = session_factory()
        try:
            barrier.wait()
            DealLedger(worker_session, settings).initiate(
                account_id, DealCreate(listing_id=listing_id, delivery_option=DeliveryOption.PICKUP)
            )
            result = "created"
        except InvalidOperationError:
            result = "not_available"
        except Exception as exc:
            result = f"unexpected: {exc!r}"
        finally:
            worker_session.close()
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=attempt, args=(uid,)) for uid in account_ids]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert sorted(outcomes) == ["created", "not_available"]
    assert count_deals() == 1
    assert fetch(Listing, listing_id).status == ListingStatus.RESERVED


# ── Confirm atomicity ─────────────────────────────────────────────────────────


def test_confirm_rolls_back_when_listing_write_keeps_failing(session_factory, settings, buyer, listing, shipped_deal, fetch):
    session = session_factory()
    registry = FailingRegistry(session, failures=100)
    try:
        with pytest.raises(StorageError):
            DealLedger(session, settings, listings=registry).confirm(shipped_deal, buyer.id)
    finally:
        session.close()

    assert registry.calls == settings.storage_retry_attempts
    assert fetch(Deal, shipped_deal).status == DealStatus.SHIPPED
    assert fetch(Listing, listing.id).status == ListingStatus.RESERVED


def test_confirm_rolls_back_on_unexpected_error(session_factory, settings, buyer, listing, shipped_deal, fetch):
    session = session_factory()
    registry = FailingRegistry(session, failures=1, error_factory=lambda: RuntimeError("boom"))
    try:
        with pytest.raises(RuntimeError):
            DealLedger(session, settings, listings=registry).confirm(shipped_deal, buyer.id)
    finally:
        session.close()

    assert fetch(Deal, shipped_deal).status == DealStatus.SHIPPED
    assert fetch(Listing, listing.id).status == ListingStatus.RESERVED


def test_confirm_succeeds_after_transient_fault(session_factory, settings, buyer, listing, shipped_deal, fetch):
    session = session_factory()
    registry = FailingRegistry(session, failures=1)
    try:
        deal = DealLedger(session, settings, listings=registry).confirm(shipped_deal, buyer.id)
        assert deal.status == DealStatus.COMPLETED
    finally:
        session.close()

    assert registry.calls == 2
    assert fetch(Deal, shipped_deal).status == DealStatus.COMPLETED
    assert fetch(Listing, listing.id).status == ListingStatus.SOLD
