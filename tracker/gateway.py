"""Data store gateway: the only way the application reaches stored rows.

Every method is a coroutine. Failures surface as StoreOperationFailed.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, Iterable, Optional, Tuple
from uuid import uuid4

from tracker.domain import CashlessType, Category, Expense, ExpenseInput
from tracker.errors import StoreOperationFailed

log = logging.getLogger(__name__)


class Gateway(ABC):

    @abstractmethod
    async def get_current_user(self) -> Optional[str]:
        pass

    @abstractmethod
    async def select_active_categories(self) -> Tuple[Category, ...]:
        pass

    @abstractmethod
    async def select_active_cashless_types(self) -> Tuple[CashlessType, ...]:
        pass

    @abstractmethod
    async def select_all_categories(self) -> Tuple[Category, ...]:
        pass

    @abstractmethod
    async def select_expenses(self, user_id: str) -> Tuple[Expense, ...]:
        pass

    @abstractmethod
    async def insert_expense(self, row: ExpenseInput) -> Expense:
        pass

    @abstractmethod
    async def delete_expense(self, expense_id: str) -> None:
        pass


class InMemoryGateway(Gateway):
    """Dict-backed gateway, used by the tests.

    `fail` names operations that should raise StoreOperationFailed, and
    `delays` adds an await before an operation returns.
    """

    def __init__(
        self,
        categories: Iterable[Category] = (),
        cashless_types: Iterable[CashlessType] = (),
        expenses: Iterable[Expense] = (),
        user_id: Optional[str] = None,
    ):
        self.categories: Tuple[Category, ...] = tuple(categories)
        self.cashless_types: Tuple[CashlessType, ...] = tuple(cashless_types)
        self.expenses: Dict[str, Expense] = {e.id: e for e in expenses}
        self.user_id = user_id
        self.fail: set = set()
        self.delays: Dict[str, float] = {}
        self.calls: list = []

    async def _enter(self, op: str) -> None:
        self.calls.append(op)
        if op in self.fail:
            log.error("in-memory store rejected %s", op)
            raise StoreOperationFailed(f"{op} rejected by store", operation=op)
        delay = self.delays.get(op)
        if delay:
            await asyncio.sleep(delay)

    async def get_current_user(self) -> Optional[str]:
        await self._enter("get_current_user")
        return self.user_id

    async def select_active_categories(self) -> Tuple[Category, ...]:
        await self._enter("select_active_categories")
        return tuple(sorted((c for c in self.categories if c.is_active), key=lambda c: c.name))

    async def select_active_cashless_types(self) -> Tuple[CashlessType, ...]:
        await self._enter("select_active_cashless_types")
        return tuple(sorted((t for t in self.cashless_types if t.is_active), key=lambda t: t.name))

    async def select_all_categories(self) -> Tuple[Category, ...]:
        await self._enter("select_all_categories")
        return self.categories

    async def select_expenses(self, user_id: str) -> Tuple[Expense, ...]:
        # rows are read when the request is made, delivered after any delay
        own = (e for e in self.expenses.values() if e.user_id == user_id)
        rows = tuple(sorted(own, key=lambda e: e.expense_time, reverse=True))
        await self._enter("select_expenses")
        return rows

    async def insert_expense(self, row: ExpenseInput) -> Expense:
        await self._enter("insert_expense")
        now = datetime.now(timezone.utc)
        expense = Expense(
            id=str(uuid4()),
            user_id=row.user_id,
            expense_time=row.expense_time,
            is_auto_time=row.is_auto_time,
            category=row.category,
            payment_type=row.payment_type,
            total_amount=row.total_amount,
            cashless_type=row.cashless_type,
            comment=row.comment,
            created_at=now,
            updated_at=now,
        )
        self.expenses[expense.id] = expense
        return expense

    async def delete_expense(self, expense_id: str) -> None:
        await self._enter("delete_expense")
        self.expenses.pop(expense_id, None)

    def deactivate_category(self, name: str) -> None:
        self.categories = tuple(
            replace(c, is_active=False) if c.name == name else c for c in self.categories
        )
