from collections import defaultdict
from datetime import date, datetime, timezone, tzinfo
from typing import Dict, Iterable, List, NamedTuple, Tuple

from tracker.domain import Expense


class DayGroup(NamedTuple):
    day: date
    total: int
    expenses: Tuple[Expense, ...]


class MonthGroup(NamedTuple):
    key: str        # YYYY-MM
    total: int
    count: int
    days: Tuple[DayGroup, ...]


class Summary(NamedTuple):
    months: Tuple[MonthGroup, ...]
    grand_total: int
    month_total: int
    day_total: int
    count: int


def local_time(ts: datetime, tz: tzinfo) -> datetime:
    # naive timestamps are taken as already being display time
    if ts.tzinfo is None:
        return ts
    return ts.astimezone(tz)


def month_key(ts: datetime, tz: tzinfo = timezone.utc) -> str:
    local = local_time(ts, tz)
    return f"{local.year:04d}-{local.month:02d}"


def day_key(ts: datetime, tz: tzinfo = timezone.utc) -> date:
    return local_time(ts, tz).date()


def total_amount(expenses: Iterable[Expense]) -> int:
    return sum(int(e.total_amount) for e in expenses)


def _newest_first(expenses: Iterable[Expense]) -> Tuple[Expense, ...]:
    # id breaks exact-timestamp ties so output is stable between fetches
    return tuple(sorted(expenses, key=lambda e: (e.expense_time, e.id), reverse=True))


def group_expenses(expenses: Iterable[Expense], tz: tzinfo = timezone.utc) -> Tuple[MonthGroup, ...]:
    """Month groups newest first, each holding day groups newest first."""
    by_month: Dict[str, Dict[date, List[Expense]]] = defaultdict(lambda: defaultdict(list))
    for e in expenses:
        by_month[month_key(e.expense_time, tz)][day_key(e.expense_time, tz)].append(e)

    months = []
    for key in sorted(by_month, reverse=True):
        days = tuple(
            DayGroup(day=d, total=total_amount(items), expenses=_newest_first(items))
            for d, items in sorted(by_month[key].items(), key=lambda kv: kv[0], reverse=True)
        )
        months.append(MonthGroup(
            key=key,
            total=sum(d.total for d in days),
            count=sum(len(d.expenses) for d in days),
            days=days,
        ))
    return tuple(months)


def summarize(expenses: Iterable[Expense], now: datetime, tz: tzinfo = timezone.utc) -> Summary:
    expenses = tuple(expenses)
    this_month = month_key(now, tz)
    today = day_key(now, tz)
    return Summary(
        months=group_expenses(expenses, tz),
        grand_total=total_amount(expenses),
        month_total=total_amount(e for e in expenses if month_key(e.expense_time, tz) == this_month),
        day_total=total_amount(e for e in expenses if day_key(e.expense_time, tz) == today),
        count=len(expenses),
    )


def monthly_totals(summary: Summary) -> List[Tuple[str, int]]:
    """(month key, total) oldest first, for charting."""
    return [(m.key, m.total) for m in reversed(summary.months)]
