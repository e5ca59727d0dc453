"""Receipt numbers for recorded contributions."""

import re
import secrets
import time
from typing import Optional

BASE36_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"

RECEIPT_NUMBER_PATTERN = re.compile(r"^RCP-[0-9A-Z]+-[0-9A-Z]{4}$")


def to_base36(number: int) -> str:
    """Upper-case base 36 representation of a non-negative integer."""
    if number < 0:
        raise ValueError(f"Cannot encode negative number: {number}")
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def generate_receipt_number(timestamp_ms: Optional[int] = None) -> str:
    """
    Generate a receipt number: RCP-<base36 millisecond timestamp>-<4 random chars>.

    Numbers sort by creation time; the random suffix separates receipts
    created within the same millisecond.
    """
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    suffix = "".join(secrets.choice(BASE36_ALPHABET) for _ in range(4))
    return f"RCP-{to_base36(timestamp_ms)}-{suffix}"


def is_receipt_number(value: str) -> bool:
    return bool(RECEIPT_NUMBER_PATTERN.match(value))
