"""Static catalog of purchasable credit packs."""

from typing import List, Optional

from ..models.credit import CreditPack

CREDIT_PACKS: List[CreditPack] = [
    CreditPack(
        id="starter",
        label="Starter Pack",
        description="Great for trying a handful of looks",
        credits=15,
        price_cents=900,
    ),
    CreditPack(
        id="creator",
        label="Creator Pack",
        description="For weekly outfit refreshes",
        credits=40,
        price_cents=2200,
        best_value=True,
    ),
    CreditPack(
        id="studio",
        label="Studio Pack",
        description="Power users and stylists",
        credits=120,
        price_cents=5400,
    ),
]


def list_credit_packs() -> List[CreditPack]:
    return list(CREDIT_PACKS)


def find_credit_pack(pack_id: str) -> Optional[CreditPack]:
    return next((pack for pack in CREDIT_PACKS if pack.id == pack_id), None)
