"""Backing stores for the credit ledger.

Both stores share the CreditStore contract. Every method returns a
StoreResult instead of raising, so the ledger can decide what a failure
means (see CreditService._with_fallback).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Generic, List, Optional, TypeVar
from uuid import uuid4
from supabase import AsyncClient
import logging

from ..exceptions import StoreError
from ..models.credit import CreditAccount, CreditTransaction, CreditTransactionCreate

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class StoreResult(Generic[T]):
    """Either a value or a StoreError."""
    value: Optional[T] = None
    error: Optional[StoreError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Optional[T] = None) -> "StoreResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, operation: str, cause: Optional[BaseException] = None) -> "StoreResult[T]":
        return cls(error=StoreError(operation, cause))


class CreditStore(ABC):
    """Contract shared by the primary store and the in-memory fallback."""

    name = "store"

    @abstractmethod
    async def get_account(self, user_id: str) -> StoreResult[Optional[CreditAccount]]:
        """Return the account row, or a None value when it does not exist."""

    @abstractmethod
    async def create_account(self, user_id: str, credits: int) -> StoreResult[CreditAccount]:
        ...

    @abstractmethod
    async def update_credits(
        self,
        user_id: str,
        credits: int,
        expected: Optional[int] = None
    ) -> StoreResult[Optional[CreditAccount]]:
        """
        Set the balance of an existing account.

        When expected is given the write only applies if the stored balance
        still equals it; a None value means nothing matched (conflict).
        """

    @abstractmethod
    async def insert_transaction(self, transaction: CreditTransactionCreate) -> StoreResult[None]:
        ...

    @abstractmethod
    async def list_transactions(self, user_id: str, limit: int = 50) -> StoreResult[List[CreditTransaction]]:
        """Newest first."""

    async def ensure_account(self, user_id: str, starting_credits: int) -> StoreResult[CreditAccount]:
        """Get the account, creating it with starting_credits if absent."""
        existing = await self.get_account(user_id)
        if not existing.ok:
            return StoreResult(error=existing.error)
        if existing.value is not None:
            return StoreResult.success(existing.value)

        created = await self.create_account(user_id, starting_credits)
        if created.ok:
            return created

        # Another request may have created the row between our read and insert
        retry = await self.get_account(user_id)
        if retry.ok and retry.value is not None:
            return StoreResult.success(retry.value)
        return created


class SupabaseCreditStore(CreditStore):
    """Credit store backed by two Supabase (PostgREST) tables."""

    name = "supabase"

    def __init__(
        self,
        client: AsyncClient,
        accounts_table: str = "user_credits",
        transactions_table: str = "credit_transactions"
    ):
        self.client = client
        self.accounts_table = accounts_table
        self.transactions_table = transactions_table

    @staticmethod
    def _to_account(row: Dict[str, Any]) -> CreditAccount:
        return CreditAccount(
            user_id=row["user_id"],
            credits=row["credits"],
            updated_at=row.get("updated_at") or _now()
        )

    async def get_account(self, user_id: str) -> StoreResult[Optional[CreditAccount]]:
        try:
            result = await (
                self.client.table(self.accounts_table)
                .select("*")
                .eq("user_id", user_id)
                .limit(1)
                .execute()
            )
            if result.data:
                return StoreResult.success(self._to_account(result.data[0]))
            return StoreResult.success(None)
        except Exception as e:
            logger.error(f"Error reading credit account for {user_id}: {e}")
            return StoreResult.failure("get_account", e)

    async def create_account(self, user_id: str, credits: int) -> StoreResult[CreditAccount]:
        try:
            result = await self.client.table(self.accounts_table).insert({
                "user_id": user_id,
                "credits": credits,
                "updated_at": _now().isoformat()
            }).execute()

            if not result.data:
                return StoreResult.failure("create_account", RuntimeError("No row returned from insert"))

            logger.info(f"Created credit account for {user_id} with {credits} credits")
            return StoreResult.success(self._to_account(result.data[0]))
        except Exception as e:
            logger.error(f"Error creating credit account for {user_id}: {e}")
            return StoreResult.failure("create_account", e)

    async def update_credits(
        self,
        user_id: str,
        credits: int,
        expected: Optional[int] = None
    ) -> StoreResult[Optional[CreditAccount]]:
        try:
            query = (
                self.client.table(self.accounts_table)
                .update({"credits": credits, "updated_at": _now().isoformat()})
                .eq("user_id", user_id)
            )
            if expected is not None:
                # Compare-and-swap: only matches if nobody changed the balance since we read it
                query = query.eq("credits", expected)
            result = await query.execute()

            if not result.data:
                if expected is None:
                    return StoreResult.failure("update_credits", RuntimeError(f"No credit account for {user_id}"))
                return StoreResult.success(None)
            return StoreResult.success(self._to_account(result.data[0]))
        except Exception as e:
            logger.error(f"Error updating credits for {user_id}: {e}")
            return StoreResult.failure("update_credits", e)

    async def insert_transaction(self, transaction: CreditTransactionCreate) -> StoreResult[None]:
        try:
            await self.client.table(self.transactions_table).insert(transaction.model_dump()).execute()
            return StoreResult.success()
        except Exception as e:
            logger.error(f"Error recording credit transaction for {transaction.user_id}: {e}")
            return StoreResult.failure("insert_transaction", e)

    async def list_transactions(self, user_id: str, limit: int = 50) -> StoreResult[List[CreditTransaction]]:
        try:
            result = await (
                self.client.table(self.transactions_table)
                .select("*")
                .eq("user_id", user_id)
                .order("created_at", desc=True)
                .limit(limit)
                .execute()
            )
            transactions = [
                CreditTransaction(
                    id=str(row["id"]) if row.get("id") is not None else None,
                    user_id=row["user_id"],
                    delta=row["delta"],
                    reason=row["reason"],
                    metadata=row.get("metadata") or {},
                    created_at=row.get("created_at")
                )
                for row in result.data or []
            ]
            return StoreResult.success(transactions)
        except Exception as e:
            logger.error(f"Error getting credit history for {user_id}: {e}")
            return StoreResult.failure("list_transactions", e)


class InMemoryCreditStore(CreditStore):
    """
    Process-local credit store.

    Not durable: balances go back to the starting value on restart. Used
    when Supabase is not configured or is failing.
    """

    name = "memory"

    def __init__(self):
        self._accounts: Dict[str, CreditAccount] = {}
        self._transactions: Dict[str, List[CreditTransaction]] = {}

    async def get_account(self, user_id: str) -> StoreResult[Optional[CreditAccount]]:
        return StoreResult.success(self._accounts.get(user_id))

    async def create_account(self, user_id: str, credits: int) -> StoreResult[CreditAccount]:
        existing = self._accounts.get(user_id)
        if existing is not None:
            return StoreResult.success(existing)
        account = CreditAccount(user_id=user_id, credits=credits, updated_at=_now())
        self._accounts[user_id] = account
        return StoreResult.success(account)

    async def update_credits(
        self,
        user_id: str,
        credits: int,
        expected: Optional[int] = None
    ) -> StoreResult[Optional[CreditAccount]]:
        current = self._accounts.get(user_id)
        if expected is not None and current is not None and current.credits != expected:
            return StoreResult.success(None)
        # Upsert: the account may have been read from the primary store before it failed
        account = CreditAccount(user_id=user_id, credits=credits, updated_at=_now())
        self._accounts[user_id] = account
        return StoreResult.success(account)

    async def insert_transaction(self, transaction: CreditTransactionCreate) -> StoreResult[None]:
        stored = CreditTransaction(
            **transaction.model_dump(),
            id=str(uuid4()),
            created_at=_now()
        )
        self._transactions.setdefault(transaction.user_id, []).append(stored)
        return StoreResult.success()

    async def list_transactions(self, user_id: str, limit: int = 50) -> StoreResult[List[CreditTransaction]]:
        entries = self._transactions.get(user_id, [])
        return StoreResult.success(list(reversed(entries))[:limit])

    def clear(self) -> None:
        self._accounts.clear()
        self._transactions.clear()
