from datetime import date, datetime, timezone, tzinfo

from tracker.domain import CASH
from tracker.grouping import local_time

MONTH_NAMES = (
    "Januari", "Februari", "Maret", "April", "Mei", "Juni",
    "Juli", "Agustus", "September", "Oktober", "November", "Desember",
)
WEEKDAY_NAMES = ("Sen", "Sel", "Rab", "Kam", "Jum", "Sab", "Min")


def format_currency(amount: int, symbol: str = "Rp") -> str:
    """Rupiah with dot thousands separators, e.g. 'Rp 25.000'."""
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol} {abs(int(amount)):,}".replace(",", ".")


def format_month_header(key: str) -> str:
    year, month = key.split("-")
    return f"{MONTH_NAMES[int(month) - 1]} {int(year)}"


def format_day_header(d: date) -> str:
    return f"{WEEKDAY_NAMES[d.weekday()]}, {d.day} {MONTH_NAMES[d.month - 1]}"


def format_expense_time(ts: datetime, tz: tzinfo = timezone.utc, is_auto_time: bool = False) -> str:
    local = local_time(ts, tz)
    label = f"{WEEKDAY_NAMES[local.weekday()]} {local.day}, {local:%H.%M}"
    return f"{label} (Auto)" if is_auto_time else label


def payment_badge(payment_type: str) -> str:
    return f"{'💵' if payment_type == CASH else '💳'} {payment_type}"
