"""Ledger behaviour on the in-memory store."""

import asyncio
import gc

import pytest

from styling_backend.exceptions import InsufficientCreditsError, InvalidArgumentError, NotFoundError

pytestmark = pytest.mark.asyncio


async def test_get_balance_creates_account_with_starting_credits(ledger, fallback):
    assert await ledger.get_balance("new-user") == 5

    account = (await fallback.get_account("new-user")).value
    assert account is not None
    assert account.credits == 5


@pytest.mark.parametrize("user_id", ["", "   "])
async def test_get_balance_rejects_empty_user_id(ledger, fallback, user_id):
    with pytest.raises(InvalidArgumentError):
        await ledger.get_balance(user_id)
    assert (await fallback.get_account(user_id)).value is None


@pytest.mark.parametrize("amount", [0, -3, True])
async def test_add_credits_rejects_non_positive_amount(ledger, amount):
    with pytest.raises(InvalidArgumentError):
        await ledger.add_credits("user-1", amount, "pack_purchase")


async def test_deduct_credits_rejects_unknown_reason(ledger):
    with pytest.raises(InvalidArgumentError):
        await ledger.deduct_credits("user-1", 1, "free_lunch")
    assert await ledger.get_balance("user-1") == 5


async def test_add_and_deduct_return_new_balance(ledger):
    assert await ledger.add_credits("user-1", 10, "pack_purchase") == 15
    assert await ledger.deduct_credits("user-1", 4, "remix") == 11
    assert await ledger.get_balance("user-1") == 11


async def test_deduct_more_than_balance_changes_nothing(ledger):
    with pytest.raises(InsufficientCreditsError) as exc_info:
        await ledger.deduct_credits("user-1", 6, "remix")

    assert exc_info.value.status_code == 402
    assert await ledger.get_balance("user-1") == 5
    assert await ledger.get_transactions("user-1") == []


async def test_deduct_exact_balance_reaches_zero(ledger):
    assert await ledger.deduct_credits("user-1", 5, "remix") == 0
    with pytest.raises(InsufficientCreditsError):
        await ledger.deduct_credits("user-1", 1, "remix")


async def test_remix_then_personalized_looks_scenario(ledger):
    assert await ledger.charge_for_remix("user-1") == 4

    with pytest.raises(InsufficientCreditsError):
        await ledger.charge_for_personalized_looks("user-1", 3)

    assert await ledger.get_balance("user-1") == 4


async def test_personalized_looks_charge_at_least_one_look(ledger):
    assert ledger.personalized_looks_cost(0) == 2
    assert await ledger.charge_for_personalized_looks("user-1", 0) == 3

    transactions = await ledger.get_transactions("user-1")
    assert transactions[0].delta == -2
    assert transactions[0].reason == "personalized_looks"


async def test_purchase_starter_pack(ledger):
    balance, pack = await ledger.purchase_credit_pack("user-1", "starter")

    assert balance == 20
    assert pack.id == "starter"
    assert pack.credits == 15

    transactions = await ledger.get_transactions("user-1")
    assert len(transactions) == 1
    assert transactions[0].delta == 15
    assert transactions[0].reason == "pack_purchase"
    assert transactions[0].metadata == {"packId": "starter"}


async def test_purchase_unknown_pack(ledger):
    before = await ledger.get_balance("user-1")

    with pytest.raises(NotFoundError) as exc_info:
        await ledger.purchase_credit_pack("user-1", "doesnotexist")

    assert exc_info.value.status_code == 404
    assert await ledger.get_balance("user-1") == before


async def test_get_credit_packs_is_stable(ledger):
    first = ledger.get_credit_packs()
    first.clear()
    second = ledger.get_credit_packs()
    third = ledger.get_credit_packs()

    assert second == third
    assert [pack.id for pack in second] == ["starter", "creator", "studio"]
    assert [pack.id for pack in second if pack.best_value] == ["creator"]


async def test_transaction_deltas_match_balance(ledger, settings):
    await ledger.purchase_credit_pack("user-1", "creator")
    await ledger.charge_for_remix("user-1")
    await ledger.charge_for_personalized_looks("user-1", 4)
    with pytest.raises(InsufficientCreditsError):
        await ledger.deduct_credits("user-1", 1000, "remix")

    balance = await ledger.get_balance("user-1")
    transactions = await ledger.get_transactions("user-1")

    assert balance == 5 + 40 - 1 - 8
    assert sum(t.delta for t in transactions) == balance - settings.default_starting_credits
    assert [t.reason for t in transactions] == ["personalized_looks", "remix", "pack_purchase"]


async def test_balance_never_negative(ledger):
    operations = [("add", 3), ("deduct", 7), ("deduct", 2), ("add", 1), ("deduct", 1), ("deduct", 5)]
    for kind, amount in operations:
        try:
            if kind == "add":
                await ledger.add_credits("user-1", amount, "pack_purchase")
            else:
                await ledger.deduct_credits("user-1", amount, "remix")
        except InsufficientCreditsError:
            pass
        assert await ledger.get_balance("user-1") >= 0


async def test_concurrent_deductions_cannot_overdraw(ledger):
    results = await asyncio.gather(
        *(ledger.deduct_credits("user-1", 2, "remix") for _ in range(5)),
        return_exceptions=True
    )

    succeeded = [r for r in results if isinstance(r, int)]
    rejected = [r for r in results if isinstance(r, InsufficientCreditsError)]
    assert len(succeeded) == 2
    assert len(rejected) == 3
    assert await ledger.get_balance("user-1") == 1


async def test_accounts_are_independent(ledger):
    await ledger.charge_for_remix("user-1")
    assert await ledger.get_balance("user-2") == 5


async def test_get_config(ledger):
    config = ledger.get_config()
    assert config.starting_credits == 5
    assert config.personal_look_cost == 2
    assert config.remix_cost == 1


async def test_user_locks_are_released_after_use(ledger):
    await asyncio.gather(*(ledger.charge_for_remix(f"user-{i}") for i in range(20)))
    gc.collect()

    assert len(ledger._locks) == 0
