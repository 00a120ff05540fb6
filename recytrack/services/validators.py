"""Input parsing shared by the lifecycle services."""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

# Weights are stored with gram precision
WEIGHT_QUANTUM = Decimal("0.001")
# Largest value a Numeric(12, 3) column holds
MAX_WEIGHT = Decimal("999999999.999")


def parse_weight(value: Any) -> Optional[Decimal]:
    """
    Parse a weight in kg.

    Returns the weight rounded to grams, or None if the value is not a finite
    number greater than zero and at most MAX_WEIGHT.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        weight = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not weight.is_finite():
        return None
    try:
        weight = weight.quantize(WEIGHT_QUANTUM, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        # More digits than the decimal context can hold
        return None
    if weight <= 0 or weight > MAX_WEIGHT:
        return None
    return weight


def to_weight(value: Any) -> Decimal:
    """Normalize a stored or summed weight to a gram-precision Decimal."""
    if value is None:
        return Decimal("0.000")
    return Decimal(str(value)).quantize(WEIGHT_QUANTUM, rounding=ROUND_HALF_UP)


def is_blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def clean(value: Optional[str]) -> Optional[str]:
    """Strip a text field; blank becomes None."""
    if value is None:
        return None
    value = str(value).strip()
    return value or None
