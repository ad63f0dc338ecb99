import json
import logging
from typing import NamedTuple, Tuple

from tracker.domain import CashlessType, Category
from tracker.sql_gateway import SqlGateway

log = logging.getLogger(__name__)


class Seed(NamedTuple):
    categories: Tuple[Category, ...]
    cashless_types: Tuple[CashlessType, ...]
    users: Tuple[Tuple[str, str], ...]   # (email, password)


def load_seed(path: str) -> Seed:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    categories = tuple(Category(**c) for c in data.get("categories", []))
    cashless_types = tuple(CashlessType(**t) for t in data.get("cashless_types", []))
    users = tuple((u["email"], u["password"]) for u in data.get("users", []))

    return Seed(categories, cashless_types, users)


async def seed_database(gateway: SqlGateway, seed: Seed) -> None:
    """Create tables and fill empty reference tables and users."""
    await gateway.init_db()

    if not await gateway.select_all_categories():
        await gateway.add_categories(seed.categories)
        log.info("seeded %d categories", len(seed.categories))

    if not await gateway.select_active_cashless_types():
        await gateway.add_cashless_types(seed.cashless_types)
        log.info("seeded %d cashless types", len(seed.cashless_types))

    for email, password in seed.users:
        if not await gateway.user_exists(email):
            await gateway.create_user(email, password)

