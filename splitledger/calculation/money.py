"""
Minor Unit Arithmetic

DESIGN DECISION: Every calculation in the engine runs on integers counted
in the currency's minor unit (cents for USD, yen for JPY). Decimal values
are converted on the way in and on the way out, nowhere else. This is what
makes the exact-sum and zero-sum invariants hold by construction instead
of approximately.
"""

from decimal import ROUND_HALF_EVEN, Decimal
from typing import Optional, Sequence


def to_decimal(value) -> Optional[Decimal]:
    """Coerce caller input to Decimal. Floats go through str to keep their shortest repr."""
    if value is None or isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def to_minor(amount: Decimal, exponent: int) -> int:
    """
    Convert a Decimal amount to integer minor units.

    Sub-minor digits are rounded half-to-even.
    """
    scaled = Decimal(amount).scaleb(exponent)
    return int(scaled.quantize(Decimal("1"), rounding=ROUND_HALF_EVEN))


def from_minor(minor: int, exponent: int) -> Decimal:
    """Convert integer minor units back to a Decimal with `exponent` places."""
    return Decimal(minor).scaleb(-exponent).quantize(Decimal(1).scaleb(-exponent))


def quantize(amount: Decimal, exponent: int) -> Decimal:
    """Round a Decimal to the currency's minor unit."""
    return from_minor(to_minor(amount, exponent), exponent)


def integer_weights(weights: Sequence[Decimal]) -> list[int]:
    """
    Scale Decimal weights to integers while keeping their ratios.

    33.5 and 66.5 become 335 and 665.
    """
    if not weights:
        return []
    places = max(max(-Decimal(w).as_tuple().exponent, 0) for w in weights)
    factor = 10 ** places
    return [int(Decimal(w) * factor) for w in weights]


def allocate(total_minor: int, weights: Sequence[int]) -> list[int]:
    """
    Split total_minor across weights using the largest remainder method.

    1. Each slot gets floor(total * w_i / W).
    2. The leftover units (fewer than len(weights)) go one at a time to the
       slots with the largest fractional remainder, ties by position.

    The result always sums to total_minor exactly and is identical for
    identical inputs.
    """
    if not weights:
        raise ValueError("Cannot allocate across zero weights")
    if total_minor < 0:
        raise ValueError("Cannot allocate a negative total")
    if any(w < 0 for w in weights):
        raise ValueError("Weights cannot be negative")

    weight_sum = sum(weights)
    if weight_sum == 0:
        raise ValueError("Weights must not all be zero")

    shares = []
    remainders = []
    for weight in weights:
        share, remainder = divmod(total_minor * weight, weight_sum)
        shares.append(share)
        remainders.append(remainder)

    leftover = total_minor - sum(shares)
    order = sorted(range(len(weights)), key=lambda i: (-remainders[i], i))
    for i in order[:leftover]:
        shares[i] += 1

    return shares
