import logging
from typing import NamedTuple, Optional, Tuple

from tracker.domain import CashlessType, Category
from tracker.errors import TrackerError
from tracker.events import EventBus, notify
from tracker.gateway import Gateway

log = logging.getLogger(__name__)


class FormOptions(NamedTuple):
    categories: Tuple[Category, ...]
    cashless_types: Tuple[CashlessType, ...]


async def load_form_options(gateway: Gateway, bus: EventBus) -> FormOptions:
    """Active categories and cashless types, name ascending.

    A set that fails to load comes back empty after an error notification,
    so the form still renders.
    """
    categories: Tuple[Category, ...] = ()
    cashless_types: Tuple[CashlessType, ...] = ()

    try:
        categories = await gateway.select_active_categories()
    except TrackerError as e:
        log.error("error fetching categories: %s", e)
        notify(bus, "error", "Failed to load categories")

    try:
        cashless_types = await gateway.select_active_cashless_types()
    except TrackerError as e:
        log.error("error fetching cashless types: %s", e)
        notify(bus, "error", "Failed to load cashless types")

    return FormOptions(categories, cashless_types)


async def load_icon_categories(gateway: Gateway, bus: EventBus) -> Tuple[Category, ...]:
    # inactive rows included: old expenses may still name them
    try:
        return await gateway.select_all_categories()
    except TrackerError as e:
        log.error("error fetching category icons: %s", e)
        notify(bus, "error", "Failed to load categories")
        return ()


async def ensure_form_options(
    gateway: Gateway, bus: EventBus, cached: Optional[FormOptions] = None
) -> FormOptions:
    """Reuse cached options unless a set is missing, then load them again."""
    if cached is not None and cached.categories and cached.cashless_types:
        return cached
    return await load_form_options(gateway, bus)
