"""Expense entry: form transitions, validation and submission.

Form state is an immutable ExpenseForm; each set_* function returns a new one.
submit_expense validates in a fixed order (auth, category, cashless type,
amount), stops at the first failure and never writes a partial row.
"""
import logging
import re
from dataclasses import replace
from datetime import datetime, timezone, tzinfo
from typing import Callable, Iterable, NamedTuple, Optional, Union

from tracker.domain import CASH, CASHLESS, MAX_AMOUNT, PAYMENT_TYPES, Category, ExpenseForm, ExpenseInput
from tracker.errors import AuthenticationRequired, TrackerError, ValidationFailed
from tracker.events import EXPENSE_ADDED, EventBus, notify
from tracker.functional import Either, Left, Right, find_active_category
from tracker.gateway import Gateway

log = logging.getLogger(__name__)

Clock = Callable[[], datetime]

_DIGITS = re.compile(r"\+?[0-9]+")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def reset_form(now: Optional[datetime] = None) -> ExpenseForm:
    return ExpenseForm(expense_time=now or utc_now())


def set_auto_time(form: ExpenseForm, is_auto_time: bool) -> ExpenseForm:
    return replace(form, is_auto_time=is_auto_time)


def set_expense_time(form: ExpenseForm, expense_time: datetime) -> ExpenseForm:
    return replace(form, expense_time=expense_time)


def set_category(form: ExpenseForm, category: str) -> ExpenseForm:
    return replace(form, category=category or "")


def set_payment_type(form: ExpenseForm, payment_type: str) -> ExpenseForm:
    if payment_type not in PAYMENT_TYPES:
        raise ValueError(f"Unknown payment type: {payment_type}")
    cashless_type = None if payment_type == CASH else form.cashless_type
    return replace(form, payment_type=payment_type, cashless_type=cashless_type)


def set_cashless_type(form: ExpenseForm, cashless_type: Optional[str]) -> ExpenseForm:
    return replace(form, cashless_type=cashless_type or None)


def set_amount(form: ExpenseForm, amount: Union[int, str]) -> ExpenseForm:
    return replace(form, amount=amount)


def set_comment(form: ExpenseForm, comment: str) -> ExpenseForm:
    return replace(form, comment=comment or "")


def parse_amount(value) -> Optional[int]:
    """Positive whole amount that fits the store, or None for anything else."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        amount = value
    elif isinstance(value, float):
        if not value.is_integer():
            return None
        amount = int(value)
    elif isinstance(value, str):
        text = value.strip()
        if not _DIGITS.fullmatch(text):
            return None
        amount = int(text)
    else:
        return None
    return amount if 0 < amount <= MAX_AMOUNT else None


def validate_form(
    form: ExpenseForm, active_categories: Optional[Iterable[Category]] = None
) -> Either[ValidationFailed, int]:
    """Field checks in submission order. Right carries the parsed amount."""
    if not form.category:
        return Left(ValidationFailed("Please select a category", field="category"))

    if active_categories is not None and find_active_category(active_categories, form.category).is_none():
        return Left(ValidationFailed(f"Category {form.category} is not available", field="category"))

    if form.payment_type == CASHLESS and not (form.cashless_type or "").strip():
        return Left(ValidationFailed("Please select a cashless type", field="cashless_type"))

    amount = parse_amount(form.amount)
    if amount is None:
        return Left(ValidationFailed("Please enter a valid amount", field="amount"))

    return Right(amount)


def _manual_time(value: datetime, display_tz: tzinfo) -> datetime:
    # naive values come from the date/time pickers, in display time
    if value.tzinfo is None:
        value = value.replace(tzinfo=display_tz)
    return value.astimezone(timezone.utc)


def normalize(
    form: ExpenseForm,
    user_id: str,
    amount: int,
    submitted_at: datetime,
    display_tz: tzinfo = timezone.utc,
) -> ExpenseInput:
    expense_time = submitted_at if form.is_auto_time else _manual_time(form.expense_time, display_tz)
    comment = (form.comment or "").strip()
    return ExpenseInput(
        user_id=user_id,
        expense_time=expense_time,
        is_auto_time=form.is_auto_time,
        category=form.category,
        payment_type=form.payment_type,
        total_amount=amount,
        cashless_type=form.cashless_type if form.payment_type == CASHLESS else None,
        comment=comment or None,
    )


async def build_expense_input(
    gateway: Gateway,
    form: ExpenseForm,
    clock: Clock = utc_now,
    display_tz: tzinfo = timezone.utc,
    active_categories: Optional[Iterable[Category]] = None,
) -> Either[TrackerError, ExpenseInput]:
    user_id = await gateway.get_current_user()
    if not user_id:
        return Left(AuthenticationRequired())

    return validate_form(form, active_categories).map(
        lambda amount: normalize(form, user_id, amount, clock(), display_tz)
    )


class SubmitResult(NamedTuple):
    form: ExpenseForm
    result: Either[TrackerError, ExpenseInput]


async def submit_expense(
    gateway: Gateway,
    form: ExpenseForm,
    bus: EventBus,
    clock: Clock = utc_now,
    display_tz: tzinfo = timezone.utc,
    active_categories: Optional[Iterable[Category]] = None,
) -> SubmitResult:
    try:
        built = await build_expense_input(gateway, form, clock, display_tz, active_categories)
        if built.is_left():
            error = built.get_error()
            notify(bus, "error", error.message)
            return SubmitResult(form, built)

        row = built.get_or_else(None)
        expense = await gateway.insert_expense(row)
    except TrackerError as e:
        log.error("error adding expense: %s", e)
        notify(bus, "error", "Failed to add expense")
        return SubmitResult(form, Left(e))

    log.info("expense %s added (%s, %d)", expense.id, expense.category, expense.total_amount)
    notify(bus, "success", "Expense added successfully!")
    bus.publish(EXPENSE_ADDED, {"expense_id": expense.id, "amount": expense.total_amount})
    return SubmitResult(reset_form(clock()), Right(row))
