"""
Display formatting for amounts and dates.

Amounts use Bangladeshi digit grouping (thousands, then lakhs and crores:
12,34,567) and the Taka sign.
"""

from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

DateLike = Union[str, date, datetime]

CURRENCY_SYMBOL = "৳"


def group_digits(value: float, max_fraction_digits: int = 2) -> str:
    """
    Format a number with South Asian digit grouping.

    Fraction digits are rounded half-up to max_fraction_digits and trailing
    zeros dropped.
    """
    quantum = Decimal(1).scaleb(-max_fraction_digits)
    rounded = Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    negative = rounded < 0
    integer, _, fraction = f"{abs(rounded):f}".partition(".")
    fraction = fraction.rstrip("0")

    if len(integer) > 3:
        head, tail = integer[:-3], integer[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        integer = ",".join(groups + [tail])

    text = f"{integer}.{fraction}" if fraction else integer
    return f"-{text}" if negative else text


def format_currency(amount: float) -> str:
    """Format an amount in Taka, e.g. ৳1,50,000."""
    return f"{CURRENCY_SYMBOL}{group_digits(amount)}"


def to_datetime(value: DateLike) -> datetime:
    """Coerce an ISO string, date or datetime into a datetime."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def format_date(value: DateLike) -> str:
    """Format as day, short month and year, e.g. 18 Oct 2026."""
    moment = to_datetime(value)
    return f"{moment.day} {moment:%b %Y}"


def format_datetime(value: DateLike) -> str:
    """Format as date plus 12-hour time, e.g. 18 Oct 2026, 02:30 pm."""
    moment = to_datetime(value)
    meridiem = "am" if moment.hour < 12 else "pm"
    return f"{format_date(moment)}, {moment:%I:%M} {meridiem}"


def get_relative_time(value: DateLike, now: Optional[datetime] = None) -> str:
    """Describe how long ago a moment was; older than a week falls back to the date."""
    moment = to_datetime(value)
    if now is None:
        now = datetime.now(timezone.utc) if moment.tzinfo else datetime.now()

    diff = int((now - moment).total_seconds())
    if diff < 60:
        return "Just now"
    if diff < 3600:
        return f"{diff // 60}m ago"
    if diff < 86400:
        return f"{diff // 3600}h ago"
    if diff < 604800:
        return f"{diff // 86400}d ago"
    return format_date(moment)


def truncate(text: str, length: int) -> str:
    """Shorten text to at most length characters, ending with an ellipsis."""
    return text[: length - 3] + "..." if len(text) > length else text
