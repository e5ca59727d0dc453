"""
Bangladeshi land units and conversion to the standard display unit (decimal).

1 bigha = 20 katha = 33 decimal, 1 katha = 1.65 decimal,
1 acre = 100 decimal, 1 decimal = 435.6 square feet.
"""

from enum import Enum
from typing import Dict

from .formatting import group_digits


class LandUnit(str, Enum):
    DECIMAL = "decimal"
    KATHA = "katha"
    BIGHA = "bigha"
    ACRE = "acre"
    SQFT = "sqft"


STANDARD_LAND_UNIT = LandUnit.DECIMAL

LAND_UNIT_TO_DECIMAL: Dict[str, float] = {
    LandUnit.DECIMAL.value: 1,
    LandUnit.KATHA.value: 1.65,
    LandUnit.BIGHA.value: 33,
    LandUnit.ACRE.value: 100,
    LandUnit.SQFT.value: 0.002296,
}

LAND_UNIT_LABELS: Dict[str, str] = {
    LandUnit.DECIMAL.value: "শতাংশ",
    LandUnit.KATHA.value: "কাঠা",
    LandUnit.BIGHA.value: "বিঘা",
    LandUnit.ACRE.value: "একর",
    LandUnit.SQFT.value: "বর্গফুট",
}


def _unit_key(unit) -> str:
    return unit.value if isinstance(unit, LandUnit) else str(unit)


def convert_to_decimal(amount: float, from_unit: str) -> float:
    """Convert an amount to decimal; unknown units are taken as decimal."""
    return amount * LAND_UNIT_TO_DECIMAL.get(_unit_key(from_unit), 1)


def format_land_amount(amount: float, unit: str) -> str:
    """Amount converted to decimal, rounded to 2 places, with the Bengali unit label."""
    decimal_amount = convert_to_decimal(amount, unit)
    return f"{group_digits(decimal_amount, 2)} {LAND_UNIT_LABELS['decimal']}"


def format_land_amount_with_unit(amount: float, unit: str) -> str:
    """Amount in its original unit, for admin views."""
    key = _unit_key(unit)
    return f"{group_digits(amount, 3)} {LAND_UNIT_LABELS.get(key, key)}"
