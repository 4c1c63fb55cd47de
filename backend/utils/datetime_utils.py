from datetime import datetime, date, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def utcnow_naive() -> datetime:
    """UTC now without tzinfo, matching how DateTime columns round-trip."""
    return utcnow().replace(tzinfo=None)


def today_utc() -> date:
    return datetime.now(timezone.utc).date()


def first_of_next_month(d: date) -> date:
    if d.month == 12:
        return date(d.year + 1, 1, 1)
    return date(d.year, d.month + 1, 1)


def month_bounds(month: str) -> tuple[date, date]:
    """Parse 'YYYY-MM' into [first day, first day of next month)."""
    try:
        year_str, month_str = month.split("-", 1)
        start = date(int(year_str), int(month_str), 1)
    except (ValueError, TypeError):
        raise ValueError(f"Invalid month '{month}'. Use YYYY-MM")
    return start, first_of_next_month(start)
