"""Expense list state and the controller that keeps it in sync with the store.

ListingState is replaced, never mutated. Each refresh takes a new request
sequence number; a fetch result is applied only if it belongs to the latest
request, so a slow superseded fetch cannot overwrite a newer one.
"""
import logging
from dataclasses import dataclass, replace
from typing import Optional, Tuple

from tracker.domain import Category, Expense
from tracker.errors import AuthenticationRequired, TrackerError
from tracker.events import EXPENSE_ADDED, EXPENSE_DELETED, Event, EventBus, notify
from tracker.gateway import Gateway
from tracker.reference import load_icon_categories

log = logging.getLogger(__name__)

EMPTY_MESSAGE = "No expenses recorded yet. Add your first expense!"


@dataclass(frozen=True)
class ListingState:
    expenses: Tuple[Expense, ...] = ()
    categories: Tuple[Category, ...] = ()
    refresh_counter: int = 0
    latest_request: int = 0
    loading: bool = False
    loaded: bool = False
    error: Optional[TrackerError] = None
    pending_delete: Optional[Expense] = None


def refresh_requested(state: ListingState) -> ListingState:
    return replace(
        state,
        refresh_counter=state.refresh_counter + 1,
        latest_request=state.latest_request + 1,
        loading=True,
    )


def is_current(state: ListingState, seq: int) -> bool:
    return seq == state.latest_request


def fetch_succeeded(
    state: ListingState, seq: int, expenses: Tuple[Expense, ...], categories: Tuple[Category, ...]
) -> ListingState:
    if not is_current(state, seq):
        log.debug("dropping superseded fetch %d (latest %d)", seq, state.latest_request)
        return state
    return replace(
        state, expenses=tuple(expenses), categories=tuple(categories),
        loading=False, loaded=True, error=None,
    )


def fetch_failed(state: ListingState, seq: int, error: TrackerError) -> ListingState:
    if not is_current(state, seq):
        return state
    # previous expenses stay visible
    return replace(state, loading=False, error=error)


def delete_requested(state: ListingState, expense: Expense) -> ListingState:
    return replace(state, pending_delete=expense)


def delete_cancelled(state: ListingState) -> ListingState:
    return replace(state, pending_delete=None)


def confirm_prompt(expense: Expense) -> Tuple[str, str, int]:
    return (
        "Are you sure you want to delete this expense? This action cannot be undone.",
        expense.category,
        expense.total_amount,
    )


class ExpenseListing:
    """Owns one session's ListingState and talks to the gateway for it."""

    def __init__(self, gateway: Gateway, bus: EventBus, state: Optional[ListingState] = None):
        self.gateway = gateway
        self.bus = bus
        self.state = state or ListingState()
        bus.subscribe(EXPENSE_ADDED, self._on_expense_added)

    def _on_expense_added(self, event: Event, payload: dict) -> dict:
        # the refetch itself is awaited by whoever drives the event loop
        self.state = replace(self.state, loaded=False)
        return {"refresh": True}

    def reset(self) -> None:
        self.state = ListingState()

    @property
    def needs_refresh(self) -> bool:
        return not self.state.loaded and not self.state.loading

    async def refresh(self) -> ListingState:
        self.state = refresh_requested(self.state)
        seq = self.state.latest_request
        log.debug("fetching expenses, request %d", seq)

        try:
            user_id = await self.gateway.get_current_user()
            if not user_id:
                raise AuthenticationRequired("You must be logged in to view expenses")
            expenses = await self.gateway.select_expenses(user_id)
        except TrackerError as e:
            log.error("error fetching expenses: %s", e)
            self.state = fetch_failed(self.state, seq, e)
            if is_current(self.state, seq):
                notify(self.bus, "error", "Failed to load expenses")
            return self.state

        if not is_current(self.state, seq):
            log.debug("dropping superseded request %d", seq)
            return self.state
        categories = await load_icon_categories(self.gateway, self.bus)
        self.state = fetch_succeeded(self.state, seq, expenses, categories)
        return self.state

    def request_delete(self, expense: Expense) -> None:
        self.state = delete_requested(self.state, expense)

    def cancel_delete(self) -> None:
        self.state = delete_cancelled(self.state)

    async def confirm_delete(self) -> bool:
        target = self.state.pending_delete
        if target is None:
            return False
        self.state = delete_cancelled(self.state)

        try:
            await self.gateway.delete_expense(target.id)
        except TrackerError as e:
            log.error("error deleting expense %s: %s", target.id, e)
            notify(self.bus, "error", "Failed to delete expense")
            return False

        notify(self.bus, "success", "Expense deleted successfully")
        self.bus.publish(EXPENSE_DELETED, {"expense_id": target.id, "amount": target.total_amount})
        await self.refresh()
        return True
