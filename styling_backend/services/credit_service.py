"""Credit management service."""

import asyncio
import weakref
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, TypeVar
import logging

from ..config import Settings, get_settings
from ..database.supabase_client import get_service_client
from ..exceptions import (
    CreditConflictError,
    InsufficientCreditsError,
    InvalidArgumentError,
    NotFoundError,
    StoreError,
)
from ..models.credit import (
    CreditAccount,
    CreditConfig,
    CreditPack,
    CreditTransaction,
    CreditTransactionCreate,
)
from .credit_packs import find_credit_pack, list_credit_packs
from .credit_store import CreditStore, InMemoryCreditStore, StoreResult, SupabaseCreditStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

REASON_PERSONALIZED_LOOKS = "personalized_looks"
REASON_REMIX = "remix"
REASON_PACK_PURCHASE = "pack_purchase"
REASONS = (REASON_PERSONALIZED_LOOKS, REASON_REMIX, REASON_PACK_PURCHASE)


def _require_user_id(user_id: str) -> None:
    if not isinstance(user_id, str) or not user_id.strip():
        raise InvalidArgumentError("Missing user id")


def _require_positive_amount(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidArgumentError("Amount must be a positive integer", details={"amount": amount})


def _require_reason(reason: str) -> None:
    if reason not in REASONS:
        raise InvalidArgumentError(f"Invalid reason: {reason}", details={"allowed": list(REASONS)})


class CreditService:
    """
    Ledger for per-user credit balances.

    Reads and writes go to the primary store; when it reports a StoreError
    the same call is repeated on the in-memory fallback store. Balance
    mutations for one user are serialized in-process and written with a
    compare-and-swap on the balance that was read.
    """

    def __init__(
        self,
        store: Optional[CreditStore] = None,
        fallback: Optional[InMemoryCreditStore] = None,
        settings: Optional[Settings] = None
    ):
        """
        Initialize CreditService.

        Args:
            store: Primary credit store (None runs on the fallback only)
            fallback: In-memory store used when the primary fails
            settings: Credit costs and starting balance (global settings by default)
        """
        self.settings = settings or get_settings()
        self.fallback = fallback or InMemoryCreditStore()
        self.store = store or self.fallback
        # Entries disappear once no task holds or waits on the lock
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    @property
    def degraded(self) -> bool:
        """True when there is no primary store at all."""
        return self.store is self.fallback

    def _lock_for(self, user_id: str) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock

    def _log_fallback(self, operation: str, error: Exception) -> None:
        logger.warning(
            f"[credits] {self.store.name} unavailable during {operation}, "
            f"using in-memory credits store: {error}"
        )

    async def _call_with_fallback(
        self,
        operation: str,
        call: Callable[[CreditStore], Awaitable[StoreResult[T]]]
    ) -> Tuple[T, CreditStore]:
        """Run call on the primary store; on StoreError run it on the fallback.

        Returns the value together with the store that produced it.
        """
        if not self.degraded:
            result = await call(self.store)
            if result.ok:
                return result.value, self.store
            self._log_fallback(operation, result.error)

        result = await call(self.fallback)
        if not result.ok:
            raise result.error
        return result.value, self.fallback

    async def _with_fallback(
        self,
        operation: str,
        call: Callable[[CreditStore], Awaitable[StoreResult[T]]]
    ) -> T:
        value, _ = await self._call_with_fallback(operation, call)
        return value

    async def _read_account(self, user_id: str) -> Tuple[CreditAccount, CreditStore]:
        starting = self.settings.default_starting_credits
        return await self._call_with_fallback(
            "ensure_account",
            lambda store: store.ensure_account(user_id, starting)
        )

    async def _ensure_account(self, user_id: str) -> CreditAccount:
        account, _ = await self._read_account(user_id)
        return account

    @staticmethod
    def _check_affordable(user_id: str, balance: int, delta: int) -> None:
        if balance + delta < 0:
            logger.warning(f"Insufficient credits for user {user_id}: {balance} < {-delta}")
            raise InsufficientCreditsError(
                "Insufficient credits",
                details={"balance": balance, "required": -delta}
            )

    async def _apply_on_fallback(self, user_id: str, delta: int, seed_credits: int) -> CreditAccount:
        """
        Apply delta to the in-memory account.

        The in-memory balance wins once it exists; seed_credits (the balance
        last read from the primary) only creates it. Runs under the user lock,
        so the compare-and-swap here cannot miss.
        """
        account = (await self.fallback.get_account(user_id)).value
        if account is None:
            account = (await self.fallback.create_account(user_id, seed_credits)).value

        self._check_affordable(user_id, account.credits, delta)
        result = await self.fallback.update_credits(
            user_id, account.credits + delta, expected=account.credits
        )
        if not result.ok or result.value is None:
            raise StoreError("update_credits", result.error)
        return result.value

    async def _record_transaction(self, transaction: CreditTransactionCreate) -> None:
        """Append to the transaction log. The balance change stands even if this fails."""
        try:
            await self._with_fallback(
                "insert_transaction",
                lambda store: store.insert_transaction(transaction)
            )
        except Exception as e:
            logger.warning(
                f"[credits] Dropped {transaction.reason} transaction ({transaction.delta:+d}) "
                f"for user {transaction.user_id}: {e}"
            )

    async def _apply_delta(
        self,
        user_id: str,
        delta: int,
        reason: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> int:
        """
        Read, check, write with compare-and-swap, then log. Returns new balance.

        Only a compare-and-swap miss on the primary store is retried. A
        primary read or write failure moves the whole mutation to the
        in-memory store, where it is re-read and re-checked.
        """
        async with self._lock_for(user_id):
            for attempt in range(1, self.settings.store_write_retries + 1):
                account, source = await self._read_account(user_id)
                if source is self.fallback:
                    updated = await self._apply_on_fallback(user_id, delta, account.credits)
                    break

                self._check_affordable(user_id, account.credits, delta)
                result = await source.update_credits(
                    user_id, account.credits + delta, expected=account.credits
                )
                if not result.ok:
                    self._log_fallback("update_credits", result.error)
                    updated = await self._apply_on_fallback(user_id, delta, account.credits)
                    break

                updated = result.value
                if updated is not None:
                    break
                logger.info(
                    f"Credit balance for user {user_id} changed concurrently "
                    f"(attempt {attempt}/{self.settings.store_write_retries}), retrying"
                )
            else:
                raise CreditConflictError(
                    "Credit balance changed while updating, please retry",
                    details={"userId": user_id}
                )

        await self._record_transaction(CreditTransactionCreate(
            user_id=user_id,
            delta=delta,
            reason=reason,
            metadata=metadata or {}
        ))
        return updated.credits

    async def get_balance(self, user_id: str) -> int:
        """
        Get user's current credit balance, creating the account if needed.

        Args:
            user_id: Identity-provider user id

        Returns:
            Current credit balance
        """
        _require_user_id(user_id)
        account = await self._ensure_account(user_id)
        return account.credits

    async def add_credits(
        self,
        user_id: str,
        amount: int,
        reason: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> int:
        """
        Add credits to user account.

        Args:
            user_id: Identity-provider user id
            amount: Positive number of credits to add
            reason: Transaction reason tag
            metadata: Extra data stored with the transaction

        Returns:
            New balance
        """
        _require_user_id(user_id)
        _require_positive_amount(amount)
        _require_reason(reason)

        new_balance = await self._apply_delta(user_id, amount, reason, metadata)
        logger.info(f"Added {amount} credits to user {user_id} ({reason}). New balance: {new_balance}")
        return new_balance

    async def deduct_credits(self, user_id: str, amount: int, reason: str) -> int:
        """
        Deduct credits from user account.

        Args:
            user_id: Identity-provider user id
            amount: Positive number of credits to remove
            reason: Transaction reason tag

        Returns:
            New balance

        Raises:
            InsufficientCreditsError: balance is lower than amount; nothing is changed
        """
        _require_user_id(user_id)
        _require_positive_amount(amount)
        _require_reason(reason)

        new_balance = await self._apply_delta(user_id, -amount, reason)
        logger.info(f"Deducted {amount} credits from user {user_id} ({reason}). New balance: {new_balance}")
        return new_balance

    def personalized_looks_cost(self, look_count: int) -> int:
        return self.settings.personal_look_credit_cost * max(look_count, 1)

    async def charge_for_personalized_looks(self, user_id: str, look_count: int) -> int:
        return await self.deduct_credits(
            user_id,
            self.personalized_looks_cost(look_count),
            REASON_PERSONALIZED_LOOKS
        )

    async def charge_for_remix(self, user_id: str) -> int:
        return await self.deduct_credits(user_id, self.settings.remix_look_credit_cost, REASON_REMIX)

    async def purchase_credit_pack(self, user_id: str, pack_id: str) -> Tuple[int, CreditPack]:
        """
        Credit a pack from the catalog to the user.

        Returns:
            (new balance, purchased pack)
        """
        pack = find_credit_pack(pack_id)
        if pack is None:
            raise NotFoundError("Unknown credit pack", details={"packId": pack_id})

        balance = await self.add_credits(user_id, pack.credits, REASON_PACK_PURCHASE, {"packId": pack.id})
        return balance, pack

    def get_credit_packs(self) -> List[CreditPack]:
        return list_credit_packs()

    def get_config(self) -> CreditConfig:
        return CreditConfig(
            starting_credits=self.settings.default_starting_credits,
            personal_look_cost=self.settings.personal_look_credit_cost,
            remix_cost=self.settings.remix_look_credit_cost
        )

    async def get_transactions(self, user_id: str, limit: int = 50) -> List[CreditTransaction]:
        """
        Get user's credit transaction history, newest first.

        Args:
            user_id: Identity-provider user id
            limit: Maximum number of transactions to return
        """
        _require_user_id(user_id)
        return await self._with_fallback(
            "list_transactions",
            lambda store: store.list_transactions(user_id, limit)
        )


async def build_credit_service(settings: Optional[Settings] = None) -> CreditService:
    """Wire a CreditService to Supabase when configured, else to memory only."""
    settings = settings or get_settings()
    client = await get_service_client(settings)
    store = None
    if client is not None:
        store = SupabaseCreditStore(
            client,
            accounts_table=settings.credits_table,
            transactions_table=settings.credit_transactions_table
        )
    return CreditService(store=store, settings=settings)
