"""Service layer for business logic."""

from .credit_service import CreditService, build_credit_service
from .credit_store import CreditStore, InMemoryCreditStore, StoreResult, SupabaseCreditStore
from .credit_packs import CREDIT_PACKS, find_credit_pack, list_credit_packs

__all__ = [
    "CreditService",
    "build_credit_service",
    "CreditStore",
    "InMemoryCreditStore",
    "StoreResult",
    "SupabaseCreditStore",
    "CREDIT_PACKS",
    "find_credit_pack",
    "list_credit_packs",
]
