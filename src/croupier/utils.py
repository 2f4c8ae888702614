from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation

WEI_PER_ETHER = Decimal(10**18)


def utc_now_iso() -> str:
    """UTC timestamp in the ``2024-01-01T00:00:00.000Z`` form."""
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def to_decimal(value: object) -> Decimal:
    """Parse a numeric amount.

    Raises:
        ValueError: If ``value`` is not a finite number
    """
    if isinstance(value, bool):
        raise ValueError(f"Not a number: {value!r}")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValueError(f"Not a number: {value!r}") from None
    if not amount.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return amount


def parse_ether(value: object) -> int:
    """Convert a native-currency amount to wei."""
    wei = to_decimal(value) * WEI_PER_ETHER
    if wei != wei.to_integral_value():
        raise ValueError(f"Too many decimals: {value!r}")
    return int(wei)


def format_ether(wei: int) -> str:
    """Render wei as a decimal string, always with a fractional part."""
    sign = "-" if wei < 0 else ""
    whole, frac = divmod(abs(int(wei)), 10**18)
    frac_str = f"{frac:018d}".rstrip("0") or "0"
    return f"{sign}{whole}.{frac_str}"


def hex_to_int(value: str | int | None) -> int:
    if value is None:
        return 0
    if isinstance(value, int):
        return value
    return int(value, 16)
