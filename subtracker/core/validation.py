from __future__ import annotations

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from subtracker.core.errors import ValidationError

CENT = Decimal("0.01")
MAX_COST = Decimal("99999999.99")  # NUMERIC(10, 2)
BILLING_CYCLES = ("day", "week", "month", "annual")


def require_name(value: Any, label: str = "name") -> str:
    """Return the trimmed name or raise when it is missing or blank."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"Invalid {label}")
    return value.strip()


def parse_cost(value: Any) -> Decimal:
    """Parse a non-negative monetary amount into a 2-place Decimal.

    Accepts ints, floats, Decimals and plain numeric strings ("9.99").
    Booleans, blanks, NaN/Infinity and negatives are rejected.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError("Invalid cost")

    if isinstance(value, float):
        # go through repr so 9.99 stays 9.99 instead of its binary expansion
        raw = repr(value)
    elif isinstance(value, (int, Decimal)):
        raw = str(value)
    elif isinstance(value, str) and value.strip():
        raw = value.strip()
    else:
        raise ValidationError("Invalid cost")

    try:
        amount = Decimal(raw)
    except InvalidOperation:
        raise ValidationError("Invalid cost") from None

    if not amount.is_finite() or amount < 0 or amount > MAX_COST:
        raise ValidationError("Invalid cost")

    amount = amount.quantize(CENT, rounding=ROUND_HALF_UP)
    if amount > MAX_COST:
        raise ValidationError("Invalid cost")
    return amount


def parse_billing_cycle(value: Any) -> str:
    if not isinstance(value, str) or value.strip().lower() not in BILLING_CYCLES:
        raise ValidationError("Invalid billing cycle")
    return value.strip().lower()


def parse_renewal_date(value: Any) -> int:
    """Day of month the subscription renews on, 1 through 31."""
    if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 31:
        raise ValidationError("Invalid renewal date")
    return value


def parse_identifier(value: Any, label: str = "ID") -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValidationError(f"Invalid {label}")
    return value


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 string (or None) into a naive UTC datetime."""
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            raise ValidationError("Invalid cancelled_at value") from None
    else:
        raise ValidationError("Invalid cancelled_at value")

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def to_money(value: Decimal | float | int | None) -> Decimal:
    """Normalize a stored amount for display, rounding to cents."""
    if value is None:
        return Decimal("0.00")
    if not isinstance(value, Decimal):
        value = Decimal(repr(value)) if isinstance(value, float) else Decimal(value)
    return value.quantize(CENT, rounding=ROUND_HALF_UP)
