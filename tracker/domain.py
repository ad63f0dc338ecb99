from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Union

CASH = "Cash"
CASHLESS = "Cashless"
PAYMENT_TYPES = (CASH, CASHLESS)

DEFAULT_ICON = "💰"

# amounts are stored in a signed 64-bit INTEGER column
MAX_AMOUNT = 2**63 - 1


@dataclass(frozen=True)
class Category:
    id: int
    name: str
    icon: str
    is_active: bool = True


@dataclass(frozen=True)
class CashlessType:
    id: int
    name: str
    is_active: bool = True


# Normalized row handed to the gateway for insertion
@dataclass(frozen=True)
class ExpenseInput:
    user_id: str
    expense_time: datetime  # aware, UTC
    is_auto_time: bool
    category: str
    payment_type: str       # CASH or CASHLESS
    total_amount: int       # smallest currency unit
    cashless_type: Optional[str] = None
    comment: Optional[str] = None


@dataclass(frozen=True)
class Expense:
    id: str
    user_id: str
    expense_time: datetime
    is_auto_time: bool
    category: str
    payment_type: str
    total_amount: int
    cashless_type: Optional[str] = None
    comment: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ExpenseForm:
    """What the entry form currently holds.

    amount keeps whatever the user typed (text or int) until validation.
    """
    expense_time: datetime = field(default_factory=_utcnow)
    is_auto_time: bool = True
    category: str = ""
    payment_type: str = CASH
    cashless_type: Optional[str] = None
    amount: Union[int, str] = 0
    comment: str = ""
