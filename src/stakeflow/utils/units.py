"""Conversion between display amounts and natural token units."""

from decimal import ROUND_DOWN, Decimal, InvalidOperation

from stakeflow.constants.staking import BASE58_ALPHABET


def parse_decimal_amount(value: str | None) -> Decimal | None:
    """Parse a user-entered display amount.

    Args:
        value: Amount as typed, e.g. "2.5".

    Returns:
        The amount as a positive finite Decimal, or None if the string is
        empty, non-numeric, zero or negative.
    """
    if value is None:
        return None
    text = value.strip()
    if not text:
        return None
    try:
        amount = Decimal(text)
    except InvalidOperation:
        return None
    if not amount.is_finite() or amount <= 0:
        return None
    return amount


def parse_natural_amount_from_decimal(value: str, decimals: int) -> int:
    """Convert a display amount to the mint's natural integer unit.

    Digits beyond the mint's precision are truncated.

    Example:
        parse_natural_amount_from_decimal("2.5", 6) == 2_500_000

    Raises:
        ValueError: If the amount is not a positive number or decimals < 0.
    """
    if decimals < 0:
        raise ValueError(f"Invalid decimal precision: {decimals}")
    amount = parse_decimal_amount(value)
    if amount is None:
        raise ValueError(f"Invalid amount: {value!r}")
    scaled = (amount * (Decimal(10) ** decimals)).quantize(
        Decimal(1), rounding=ROUND_DOWN
    )
    return int(scaled)


def is_valid_address(value: str | None) -> bool:
    """Check base58 format and length (32-44 characters) of an address."""
    if not value or not (32 <= len(value) <= 44):
        return False
    return set(value).issubset(BASE58_ALPHABET)


def short(address: str | None) -> str:
    """Truncate an address for log context."""
    if not address:
        return "none"
    return address[:8] + "..."
