"""Decimal-string to base-unit conversion for transaction values.

``parse_units("1.5", 18)`` → ``1500000000000000000``. Empty input yields
``0`` so a cost string the wallet renders without a number still produces
a defined amount.
"""

from __future__ import annotations

import re

_DECIMAL_RE = re.compile(r"^([+-])?(\d*)(?:\.(\d*))?$")
_AMOUNT_RE = re.compile(r"\d+(?:\.\d+)?|\.\d+")


def parse_units(text: str | None, decimals: int) -> int:
    """Convert a decimal string into an integer amount of base units.

    Args:
        text: Decimal quantity such as ``"1.5"`` or ``"-0.25"``. ``None``,
            empty and whitespace-only strings are treated as zero.
        decimals: Number of fractional digits in one whole unit (18 for ether).

    Returns:
        The integer number of base units.

    Raises:
        ValueError: If *text* is not a decimal number, or carries more
            fractional digits than *decimals* allows.
    """
    if decimals < 0:
        raise ValueError(f"decimals must be non-negative, got {decimals}")

    value = (text or "").strip().replace("_", "")
    if not value:
        return 0

    match = _DECIMAL_RE.match(value)
    if match is None:
        raise ValueError(f"invalid decimal number {text!r}")

    sign, whole, fraction = match.group(1), match.group(2), match.group(3) or ""
    if not whole and not fraction:
        raise ValueError(f"invalid decimal number {text!r}")

    fraction = fraction.rstrip("0")
    if len(fraction) > decimals:
        raise ValueError(f"too many decimal places in {text!r} (max {decimals})")

    amount = int(whole or "0") * 10**decimals + int(fraction.ljust(decimals, "0") or "0")
    return -amount if sign == "-" else amount


def extract_amount(text: str | None) -> str:
    """Pull the first decimal number out of a human-readable cost string.

    ``"0.0015 ETH"`` → ``"0.0015"``, ``"$1,204.50"`` → ``"1204.50"``.
    Returns ``""`` when no number is present.
    """
    if not text:
        return ""
    match = _AMOUNT_RE.search(text.replace(",", ""))
    return match.group(0) if match else ""
