"""
Safe Deal routes: buyer/seller transaction flow
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List

from ..auth.dependencies import get_app_settings, get_current_user
from ..config import Settings
from ..database import get_db
from ..models.deal import Deal
from ..models.user import User
from ..schemas.deal import (
    AccountSummary,
    DealCreate,
    DealDetailResponse,
    DealDispute,
    DealResponse,
    ListingSummary,
)
from ..services.deal_ledger import DealLedger, deal_role

router = APIRouter()


def get_deal_ledger(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> DealLedger:
    return DealLedger(db, settings)


def serialize_deal(deal: Deal, caller_id: int) -> DealDetailResponse:
    """Deal plus the caller's role and display summaries of the listing and both parties"""
    base = DealResponse.model_validate(deal)
    return DealDetailResponse(
        **base.model_dump(),
        role=deal_role(deal, caller_id),
        listing=ListingSummary.model_validate(deal.listing) if deal.listing else None,
        buyer=AccountSummary.model_validate(deal.buyer) if deal.buyer else None,
        seller=AccountSummary.model_validate(deal.seller) if deal.seller else None,
    )


@router.post("/", response_model=DealDetailResponse, status_code=status.HTTP_201_CREATED)
def create_deal(
    deal_data: DealCreate,
    current_user: User = Depends(get_current_user),
    ledger: DealLedger = Depends(get_deal_ledger),
):
    """
    Start a safe deal on a listing; the caller becomes the buyer
    """
    deal = ledger.initiate(current_user.id, deal_data)
    return serialize_deal(deal, current_user.id)


@router.get("/", response_model=List[DealDetailResponse])
def get_my_deals(
    current_user: User = Depends(get_current_user),
    ledger: DealLedger = Depends(get_deal_ledger),
):
    """Deals where the caller is buyer or seller, newest first"""
    deals = ledger.list_for_account(current_user.id)
    return [serialize_deal(deal, current_user.id) for deal in deals]


@router.get("/{deal_id}", response_model=DealDetailResponse)
def get_deal(
    deal_id: int,
    current_user: User = Depends(get_current_user),
    ledger: DealLedger = Depends(get_deal_ledger),
):
    deal = ledger.get(deal_id, current_user.id)
    return serialize_deal(deal, current_user.id)


@router.post("/{deal_id}/pay", response_model=DealDetailResponse)
def pay_deal(
    deal_id: int,
    current_user: User = Depends(get_current_user),
    ledger: DealLedger = Depends(get_deal_ledger),
):
    """Buyer pays into escrow"""
    deal = ledger.pay(deal_id, current_user.id)
    return serialize_deal(deal, current_user.id)


@router.post("/{deal_id}/ship", response_model=DealDetailResponse)
def ship_deal(
    deal_id: int,
    current_user: User = Depends(get_current_user),
    ledger: DealLedger = Depends(get_deal_ledger),
):
    """Seller marks the item as shipped"""
    deal = ledger.ship(deal_id, current_user.id)
    return serialize_deal(deal, current_user.id)


@router.post("/{deal_id}/confirm", response_model=DealDetailResponse)
def confirm_deal(
    deal_id: int,
    current_user: User = Depends(get_current_user),
    ledger: DealLedger = Depends(get_deal_ledger),
):
    """Buyer confirms delivery; the listing becomes sold"""
    deal = ledger.confirm(deal_id, current_user.id)
    return serialize_deal(deal, current_user.id)


@router.post("/{deal_id}/dispute", response_model=DealDetailResponse)
def dispute_deal(
    deal_id: int,
    dispute_data: DealDispute,
    current_user: User = Depends(get_current_user),
    ledger: DealLedger = Depends(get_deal_ledger),
):
    """Either party opens a dispute"""
    deal = ledger.dispute(deal_id, current_user.id, dispute_data.reason)
    return serialize_deal(deal, current_user.id)
