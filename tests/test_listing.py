import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from tracker.domain import CASH, Category, Expense, ExpenseForm
from tracker.entry import submit_expense
from tracker.errors import AuthenticationRequired, StoreOperationFailed
from tracker.events import EXPENSE_DELETED, EventBus, collect_notifications
from tracker.functional import category_icon
from tracker.gateway import InMemoryGateway
from tracker.grouping import group_expenses, total_amount
from tracker.listing import (
    ExpenseListing,
    ListingState,
    confirm_prompt,
    fetch_failed,
    fetch_succeeded,
    refresh_requested,
)

BASE = datetime(2025, 3, 1, 10, 0, tzinfo=timezone.utc)


def make_exp(id, days, amount, category="Food", user_id="u1"):
    return Expense(
        id=id, user_id=user_id, expense_time=BASE + timedelta(days=days), is_auto_time=False,
        category=category, payment_type=CASH, total_amount=amount,
    )


def make_gateway():
    cats = (Category(1, "Food", "🍜"), Category(2, "Misc", "📦"))
    expenses = (
        make_exp("x1", 0, 10000),
        make_exp("x2", 1, 20000, "Misc"),
        make_exp("x3", 35, 5000),
        make_exp("other", 2, 99999, user_id="u2"),
    )
    return InMemoryGateway(cats, (), expenses, user_id="u1")


def test_stale_fetch_result_is_dropped():
    state = refresh_requested(ListingState())
    first = state.latest_request
    state = refresh_requested(state)
    second = state.latest_request

    newer = (make_exp("new", 0, 1),)
    state = fetch_succeeded(state, second, newer, ())
    state = fetch_succeeded(state, first, (make_exp("old", 0, 2),), ())
    assert state.expenses == newer
    assert state.refresh_counter == 2


def test_fetch_failure_keeps_previous_expenses():
    state = refresh_requested(ListingState())
    kept = (make_exp("a", 0, 1),)
    state = fetch_succeeded(state, state.latest_request, kept, ())
    state = refresh_requested(state)
    state = fetch_failed(state, state.latest_request, StoreOperationFailed("down"))
    assert state.expenses == kept
    assert state.error == StoreOperationFailed("down")
    assert state.loading is False


@pytest.mark.asyncio
async def test_refresh_loads_only_own_expenses():
    gw = make_gateway()
    listing = ExpenseListing(gw, EventBus())
    state = await listing.refresh()
    assert [e.id for e in state.expenses] == ["x3", "x2", "x1"]
    assert len(state.categories) == 2
    assert state.loaded


@pytest.mark.asyncio
async def test_refetch_without_mutation_is_identical():
    listing = ExpenseListing(make_gateway(), EventBus())
    first = group_expenses((await listing.refresh()).expenses)
    second = group_expenses((await listing.refresh()).expenses)
    assert first == second


@pytest.mark.asyncio
async def test_superseded_concurrent_fetch_does_not_win():
    gw = make_gateway()
    listing = ExpenseListing(gw, EventBus())

    gw.delays["select_expenses"] = 0.05
    slow = asyncio.create_task(listing.refresh())
    await asyncio.sleep(0)
    gw.delays["select_expenses"] = 0
    gw.expenses.pop("x1")
    await listing.refresh()
    await slow

    assert [e.id for e in listing.state.expenses] == ["x3", "x2"]


@pytest.mark.asyncio
async def test_superseded_fetch_skips_category_load():
    gw = make_gateway()
    bus = EventBus()
    notes = collect_notifications(bus)
    listing = ExpenseListing(gw, bus)

    gw.delays["select_expenses"] = 0.05
    slow = asyncio.create_task(listing.refresh())
    await asyncio.sleep(0)
    gw.delays["select_expenses"] = 0
    await listing.refresh()
    gw.fail.add("select_all_categories")
    await slow

    assert gw.calls.count("select_all_categories") == 1
    assert notes == []
    assert len(listing.state.categories) == 2


@pytest.mark.asyncio
async def test_refresh_without_user_reports_and_keeps_data():
    gw = make_gateway()
    bus = EventBus()
    notes = collect_notifications(bus)
    listing = ExpenseListing(gw, bus)
    await listing.refresh()

    gw.user_id = None
    state = await listing.refresh()
    assert isinstance(state.error, AuthenticationRequired)
    assert len(state.expenses) == 3
    assert notes[-1] == ("error", "Failed to load expenses")


@pytest.mark.asyncio
async def test_category_failure_does_not_block_listing():
    gw = make_gateway()
    gw.fail.add("select_all_categories")
    bus = EventBus()
    notes = collect_notifications(bus)
    state = await ExpenseListing(gw, bus).refresh()
    assert len(state.expenses) == 3
    assert state.categories == ()
    assert notes[-1] == ("error", "Failed to load categories")


@pytest.mark.asyncio
async def test_delete_then_refetch():
    gw = make_gateway()
    bus = EventBus()
    deleted = []
    bus.subscribe(EXPENSE_DELETED, lambda e, p: deleted.append(p["expense_id"]) or {})
    listing = ExpenseListing(gw, bus)
    await listing.refresh()
    before = total_amount(listing.state.expenses)

    target = next(e for e in listing.state.expenses if e.id == "x2")
    listing.request_delete(target)
    assert confirm_prompt(listing.state.pending_delete)[1:] == ("Misc", 20000)

    assert await listing.confirm_delete() is True
    ids = [e.id for e in listing.state.expenses]
    assert "x2" not in ids
    assert total_amount(listing.state.expenses) == before - 20000
    assert listing.state.pending_delete is None
    assert deleted == ["x2"]
    assert gw.calls.count("select_expenses") == 2


@pytest.mark.asyncio
async def test_cancelled_delete_touches_nothing():
    gw = make_gateway()
    listing = ExpenseListing(gw, EventBus())
    await listing.refresh()
    listing.request_delete(listing.state.expenses[0])
    listing.cancel_delete()
    assert await listing.confirm_delete() is False
    assert "delete_expense" not in gw.calls


@pytest.mark.asyncio
async def test_failed_delete_leaves_list_unchanged():
    gw = make_gateway()
    bus = EventBus()
    notes = collect_notifications(bus)
    listing = ExpenseListing(gw, bus)
    await listing.refresh()
    snapshot = listing.state.expenses

    gw.fail.add("delete_expense")
    listing.request_delete(snapshot[0])
    assert await listing.confirm_delete() is False
    assert listing.state.expenses == snapshot
    assert notes[-1] == ("error", "Failed to delete expense")


@pytest.mark.asyncio
async def test_submission_marks_listing_for_refresh():
    gw = make_gateway()
    bus = EventBus()
    listing = ExpenseListing(gw, bus)
    await listing.refresh()
    assert not listing.needs_refresh

    await submit_expense(gw, ExpenseForm(category="Food", amount=25000), bus)
    assert listing.needs_refresh
    state = await listing.refresh()
    assert total_amount(state.expenses) == 35000 + 25000


@pytest.mark.asyncio
async def test_deactivated_category_keeps_label_but_loses_icon():
    gw = make_gateway()
    listing = ExpenseListing(gw, EventBus())
    gw.deactivate_category("Misc")
    state = await listing.refresh()

    misc = next(e for e in state.expenses if e.id == "x2")
    assert misc.category == "Misc"
    assert category_icon(state.categories, misc.category) == "💰"
    assert category_icon(state.categories, "Food") == "🍜"
