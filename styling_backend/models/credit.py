"""Credit account, transaction and pack Pydantic models."""

from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Literal, Optional
from datetime import datetime

CreditReason = Literal["personalized_looks", "remix", "pack_purchase"]
ChargeOperation = Literal["personalized_looks", "remix"]


class CreditAccount(BaseModel):
    """Row of the user_credits table."""
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    credits: int = Field(ge=0)
    updated_at: datetime


class CreditTransactionCreate(BaseModel):
    """Model for appending a transaction to the credit log."""
    user_id: str
    delta: int
    reason: CreditReason
    metadata: Dict[str, Any] = Field(default_factory=dict)


class CreditTransaction(CreditTransactionCreate):
    """Stored transaction; id and created_at are assigned by the store."""
    model_config = ConfigDict(from_attributes=True)

    id: Optional[str] = None
    created_at: Optional[datetime] = None


class CreditPack(BaseModel):
    """Purchasable bundle of credits."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    label: str
    description: str
    credits: int = Field(gt=0)
    price_cents: int = Field(gt=0, alias="priceCents")
    best_value: bool = Field(False, alias="bestValue")


class CreditConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    starting_credits: int = Field(alias="startingCredits")
    personal_look_cost: int = Field(alias="personalLookCost")
    remix_cost: int = Field(alias="remixCost")


class PurchaseRequest(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "userId": "firebase-uid-123",
                "packId": "starter"
            }
        }
    )

    user_id: str = Field(..., min_length=1, alias="userId")
    pack_id: str = Field(..., min_length=1, alias="packId")


class ChargeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., min_length=1, alias="userId")
    operation: ChargeOperation
    look_count: int = Field(1, alias="lookCount", description="Only used for personalized_looks")


class BalanceResponse(BaseModel):
    balance: int


class ChargeResponse(BaseModel):
    balance: int
    charged: int


class PurchaseResponse(BaseModel):
    balance: int
    pack: CreditPack


class CreditPackListResponse(BaseModel):
    packs: List[CreditPack]


class CreditHistoryResponse(BaseModel):
    transactions: List[CreditTransaction]
