from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..models.credit import (
    BalanceResponse,
    ChargeRequest,
    ChargeResponse,
    CreditConfig,
    CreditHistoryResponse,
    CreditPackListResponse,
    PurchaseRequest,
    PurchaseResponse,
)
from ..services.credit_service import CreditService, build_credit_service

router = APIRouter(prefix="/credits", tags=["Credits"])


_credit_service: Optional[CreditService] = None


async def get_credit_service() -> CreditService:
    """Dependency: one ledger per process so the in-memory fallback is shared."""
    global _credit_service
    if _credit_service is None:
        _credit_service = await build_credit_service()
    return _credit_service


@router.get("/packs", response_model=CreditPackListResponse)
async def credit_packs(credits: CreditService = Depends(get_credit_service)):
    """List purchasable credit packs."""
    return CreditPackListResponse(packs=credits.get_credit_packs())


@router.get("/config", response_model=CreditConfig)
async def credit_config(credits: CreditService = Depends(get_credit_service)):
    """Starting balance and per-operation costs."""
    return credits.get_config()


@router.get("/balance", response_model=BalanceResponse)
async def credit_balance(
    user_id: str = Query(..., alias="userId"),
    credits: CreditService = Depends(get_credit_service)
):
    """Return current credit balance."""
    balance = await credits.get_balance(user_id)
    return BalanceResponse(balance=balance)


@router.get("/history", response_model=CreditHistoryResponse)
async def credit_history(
    user_id: str = Query(..., alias="userId"),
    limit: int = Query(50, ge=1, le=200),
    credits: CreditService = Depends(get_credit_service)
):
    """Return transactions for a user (newest first)."""
    transactions = await credits.get_transactions(user_id, limit=limit)
    return CreditHistoryResponse(transactions=transactions)


@router.post("/purchase", response_model=PurchaseResponse)
async def purchase_credit_pack(
    request: PurchaseRequest,
    credits: CreditService = Depends(get_credit_service)
):
    """Buy a credit pack from the catalog."""
    balance, pack = await credits.purchase_credit_pack(request.user_id, request.pack_id)
    return PurchaseResponse(balance=balance, pack=pack)


@router.post("/charge", response_model=ChargeResponse)
async def charge_credits(
    request: ChargeRequest,
    credits: CreditService = Depends(get_credit_service)
):
    """
    Charge for a generation before it runs.
    Responds 402 when the user cannot afford it.
    """
    if request.operation == "remix":
        charged = credits.settings.remix_look_credit_cost
        balance = await credits.charge_for_remix(request.user_id)
    else:
        charged = credits.personalized_looks_cost(request.look_count)
        balance = await credits.charge_for_personalized_looks(request.user_id, request.look_count)
    return ChargeResponse(balance=balance, charged=charged)
