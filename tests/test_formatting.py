from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from tracker.formatting import (
    format_currency,
    format_day_header,
    format_expense_time,
    format_month_header,
    payment_badge,
)


def test_format_currency():
    assert format_currency(25000) == "Rp 25.000"
    assert format_currency(1234567) == "Rp 1.234.567"
    assert format_currency(0) == "Rp 0"


def test_month_header():
    assert format_month_header("2025-01") == "Januari 2025"
    assert format_month_header("2024-12") == "Desember 2024"


def test_day_header():
    # 2025-02-14 is a Friday
    assert format_day_header(date(2025, 2, 14)) == "Jum, 14 Februari"


def test_expense_time_in_display_zone():
    ts = datetime(2025, 2, 14, 1, 5, tzinfo=timezone.utc)
    assert format_expense_time(ts, ZoneInfo("Asia/Jakarta")) == "Jum 14, 08.05"
    assert format_expense_time(ts, timezone.utc, is_auto_time=True) == "Jum 14, 01.05 (Auto)"


def test_payment_badge():
    assert payment_badge("Cash") == "💵 Cash"
    assert payment_badge("Cashless") == "💳 Cashless"
