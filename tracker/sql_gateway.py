import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional, Tuple

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool
from werkzeug.security import check_password_hash, generate_password_hash

from tracker.domain import CashlessType, Category, Expense, ExpenseInput
from tracker.errors import AuthenticationRequired, StoreOperationFailed
from tracker.gateway import Gateway
from tracker.models import Base, CashlessTypeRow, CategoryRow, ExpenseRow, UserRow

log = logging.getLogger(__name__)


def _to_db(dt: datetime) -> datetime:
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def _from_db(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _category(row: CategoryRow) -> Category:
    return Category(id=row.id, name=row.name, icon=row.icon, is_active=bool(row.is_active))


def _cashless_type(row: CashlessTypeRow) -> CashlessType:
    return CashlessType(id=row.id, name=row.name, is_active=bool(row.is_active))


def _expense(row: ExpenseRow) -> Expense:
    return Expense(
        id=row.id,
        user_id=row.user_id,
        expense_time=_from_db(row.expense_time),
        is_auto_time=bool(row.is_auto_time),
        category=row.category,
        payment_type=row.payment_type,
        total_amount=int(row.total_amount),
        cashless_type=row.cashless_type,
        comment=row.comment,
        created_at=_from_db(row.created_at),
        updated_at=_from_db(row.updated_at),
    )


def make_engine(database_url: str) -> AsyncEngine:
    # no pooling: the UI runs every interaction in a fresh event loop
    return create_async_engine(database_url, echo=False, future=True, poolclass=NullPool)


class SqlGateway(Gateway):
    """Gateway over an async SQLAlchemy engine.

    Holds the signed-in user for one session; the user row is re-read on
    every get_current_user call so a removed account stops working at once.
    """

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self._sessions = sessionmaker(
            bind=engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        self._user_id: Optional[str] = None

    @asynccontextmanager
    async def _session(self, op: str):
        try:
            async with self._sessions() as db:
                yield db
        except (SQLAlchemyError, OverflowError) as e:
            log.error("store operation %s failed: %s", op, e)
            raise StoreOperationFailed(f"{op} failed", operation=op) from e

    async def init_db(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    # --- auth

    async def create_user(self, email: str, password: str) -> str:
        async with self._session("create_user") as db:
            user = UserRow(email=email.strip().lower(), hashed_password=generate_password_hash(password))
            db.add(user)
            await db.commit()
            log.info("created user %s", user.email)
            return user.id

    async def user_exists(self, email: str) -> bool:
        async with self._session("user_exists") as db:
            result = await db.execute(select(UserRow.id).where(UserRow.email == email.strip().lower()))
            return result.first() is not None

    async def sign_in(self, email: str, password: str) -> Optional[str]:
        async with self._session("sign_in") as db:
            result = await db.execute(select(UserRow).where(UserRow.email == email.strip().lower()))
            user = result.scalars().first()
        if user is None or not check_password_hash(user.hashed_password, password):
            log.info("sign-in rejected for %s", email)
            return None
        self._user_id = user.id
        return user.id

    def sign_out(self) -> None:
        self._user_id = None

    async def get_current_user(self) -> Optional[str]:
        if self._user_id is None:
            return None
        async with self._session("get_current_user") as db:
            user = await db.get(UserRow, self._user_id)
        if user is None:
            self._user_id = None
            return None
        return user.id

    # --- reference data

    async def select_active_categories(self) -> Tuple[Category, ...]:
        async with self._session("select_active_categories") as db:
            result = await db.execute(
                select(CategoryRow).where(CategoryRow.is_active.is_(True)).order_by(CategoryRow.name.asc())
            )
            return tuple(_category(r) for r in result.scalars().all())

    async def select_active_cashless_types(self) -> Tuple[CashlessType, ...]:
        async with self._session("select_active_cashless_types") as db:
            result = await db.execute(
                select(CashlessTypeRow)
                .where(CashlessTypeRow.is_active.is_(True))
                .order_by(CashlessTypeRow.name.asc())
            )
            return tuple(_cashless_type(r) for r in result.scalars().all())

    async def select_all_categories(self) -> Tuple[Category, ...]:
        async with self._session("select_all_categories") as db:
            result = await db.execute(select(CategoryRow).order_by(CategoryRow.id.asc()))
            return tuple(_category(r) for r in result.scalars().all())

    async def add_categories(self, categories) -> None:
        async with self._session("add_categories") as db:
            db.add_all(CategoryRow(name=c.name, icon=c.icon, is_active=c.is_active) for c in categories)
            await db.commit()

    async def add_cashless_types(self, types) -> None:
        async with self._session("add_cashless_types") as db:
            db.add_all(CashlessTypeRow(name=t.name, is_active=t.is_active) for t in types)
            await db.commit()

    # --- expenses

    async def select_expenses(self, user_id: str) -> Tuple[Expense, ...]:
        async with self._session("select_expenses") as db:
            result = await db.execute(
                select(ExpenseRow)
                .where(ExpenseRow.user_id == user_id)
                .order_by(ExpenseRow.expense_time.desc())
            )
            return tuple(_expense(r) for r in result.scalars().all())

    async def insert_expense(self, row: ExpenseInput) -> Expense:
        now = _to_db(datetime.now(timezone.utc))
        async with self._session("insert_expense") as db:
            new = ExpenseRow(
                user_id=row.user_id,
                expense_time=_to_db(row.expense_time),
                is_auto_time=row.is_auto_time,
                category=row.category,
                payment_type=row.payment_type,
                cashless_type=row.cashless_type,
                total_amount=row.total_amount,
                comment=row.comment,
                created_at=now,
                updated_at=now,
            )
            db.add(new)
            await db.commit()
            await db.refresh(new)
            log.debug("inserted expense %s", new.id)
            return _expense(new)

    async def delete_expense(self, expense_id: str) -> None:
        if self._user_id is None:
            raise AuthenticationRequired("You must be logged in to delete expenses")
        async with self._session("delete_expense") as db:
            await db.execute(
                delete(ExpenseRow).where(ExpenseRow.id == expense_id, ExpenseRow.user_id == self._user_id)
            )
            await db.commit()
            log.debug("deleted expense %s", expense_id)
