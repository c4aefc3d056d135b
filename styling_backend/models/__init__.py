"""Pydantic models for data validation."""

from .credit import (
    CreditAccount,
    CreditTransaction,
    CreditTransactionCreate,
    CreditPack,
    CreditConfig,
    CreditReason,
    PurchaseRequest,
    ChargeRequest,
    BalanceResponse,
    ChargeResponse,
    PurchaseResponse,
    CreditPackListResponse,
    CreditHistoryResponse,
)

__all__ = [
    "CreditAccount",
    "CreditTransaction",
    "CreditTransactionCreate",
    "CreditPack",
    "CreditConfig",
    "CreditReason",
    "PurchaseRequest",
    "ChargeRequest",
    "BalanceResponse",
    "ChargeResponse",
    "PurchaseResponse",
    "CreditPackListResponse",
    "CreditHistoryResponse",
]
