"""
Fixed-width integer arithmetic for pool accounting.

Two regimes live side by side:
- Fee-growth accumulators are uint256 values that wrap by design, so their
  sums and differences are taken modulo 2**256.
- Liquidity, token counters and tick indexes are checked: leaving the
  representable range raises ArithmeticFault instead of wrapping.
"""

from __future__ import annotations

from ..range_exceptions import ArithmeticFault

# Fixed-point bases
Q96 = 1 << 96
Q128 = 1 << 128

# Type bounds
MAX_UINT128 = (1 << 128) - 1
MAX_UINT256 = (1 << 256) - 1
MIN_INT128 = -(1 << 127)
MAX_INT128 = (1 << 127) - 1

# Tick bounds (inclusive)
MIN_TICK = -887272
MAX_TICK = 887272

UINT256_MODULUS = 1 << 256


def wrapping_add(a: int, b: int) -> int:
    """Add two uint256 accumulators modulo 2**256."""
    return (a + b) % UINT256_MODULUS


def wrapping_sub(a: int, b: int) -> int:
    """Subtract two uint256 accumulators modulo 2**256."""
    return (a - b) % UINT256_MODULUS


def mul_div(a: int, b: int, denominator: int, round_up: bool = False) -> int:
    """
    Calculate (a * b) / denominator with full precision.

    Args:
        a: First multiplicand
        b: Second multiplicand
        denominator: Divisor
        round_up: If True, round up (charging users); otherwise round down

    Returns:
        Result of (a * b) / denominator

    Raises:
        ArithmeticFault: If denominator is zero or an operand is negative
    """
    if denominator == 0:
        raise ArithmeticFault("Division by zero")
    if a < 0 or b < 0 or denominator < 0:
        raise ArithmeticFault("mul_div operands must be non-negative")

    product = a * b
    if round_up:
        return (product + denominator - 1) // denominator
    return product // denominator


def check_uint128(value: int, what: str = "value") -> int:
    """Return value if it fits uint128, else raise ArithmeticFault."""
    if not isinstance(value, int) or isinstance(value, bool):
        raise ArithmeticFault(f"{what} must be an integer", details={what: value})
    if value < 0 or value > MAX_UINT128:
        raise ArithmeticFault(
            f"{what} outside uint128 range",
            details={what: value},
        )
    return value


def check_tick(tick: int) -> int:
    """Return tick if it is an integer inside [MIN_TICK, MAX_TICK]."""
    if not isinstance(tick, int) or isinstance(tick, bool):
        raise ArithmeticFault("Tick must be an integer", details={"tick": tick})
    if tick < MIN_TICK or tick > MAX_TICK:
        raise ArithmeticFault(
            f"Tick {tick} outside [{MIN_TICK}, {MAX_TICK}]",
            details={"tick": tick},
        )
    return tick


def add_delta(liquidity: int, delta: int) -> int:
    """
    Apply a signed liquidity delta to an unsigned liquidity value.

    Raises:
        ArithmeticFault: On underflow below zero or overflow past uint128
    """
    result = liquidity + delta
    if result < 0:
        raise ArithmeticFault(
            "Liquidity underflow",
            details={"liquidity": liquidity, "delta": delta},
        )
    if result > MAX_UINT128:
        raise ArithmeticFault(
            "Liquidity overflow",
            details={"liquidity": liquidity, "delta": delta},
        )
    return result


def tick_spacing_to_max_liquidity_per_tick(tick_spacing: int) -> int:
    """Derive the max gross liquidity a single tick may carry for a spacing."""
    if tick_spacing <= 0:
        raise ArithmeticFault("Tick spacing must be positive")
    min_tick = -(-MIN_TICK // tick_spacing) * tick_spacing
    max_tick = (MAX_TICK // tick_spacing) * tick_spacing
    num_ticks = (max_tick - min_tick) // tick_spacing + 1
    return MAX_UINT128 // num_ticks
