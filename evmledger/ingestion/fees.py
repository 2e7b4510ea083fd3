"""Network fee computation and integer-to-decimal scaling."""
from __future__ import annotations

from decimal import Decimal


def decimal_from_int(value: int, scale: int) -> Decimal:
    """Shift an on-chain integer ``scale`` digits to the right.

    Built from the digit tuple so the result is exact regardless of the
    active decimal context precision.  Zero is returned unscaled.
    """
    if scale < 0:
        raise ValueError(f"Decimal scale must be non-negative, got {scale}")
    if value == 0:
        return Decimal(0)
    sign, digits, _ = Decimal(value).as_tuple()
    return Decimal((sign, digits, -scale))


def compute_fee(gas_used: int, gas_price: int, native_scale: int) -> Decimal:
    """Fee paid in native units: ``gas_used * gas_price`` at ``native_scale``."""
    return decimal_from_int(gas_used * gas_price, native_scale)
