"""
Fee growth accounting.

Fee growth values are Q128.128 per-unit-liquidity accumulators that wrap
modulo 2**256. Every difference taken here is modular; a "negative" result
is the expected wrapped value, never an error.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, NamedTuple

from .safe_math import Q128, mul_div, wrapping_sub

if TYPE_CHECKING:
    from .tick_ledger import TickLedger


class FeeGrowthPair(NamedTuple):
    """One accumulator per pool token."""

    token0: int = 0
    token1: int = 0


def inside_growth(
    tick_lower: int,
    tick_upper: int,
    current_tick: int,
    outside_lower: int,
    outside_upper: int,
    global_growth: int,
) -> int:
    """
    Fee growth per unit of liquidity accrued inside [tick_lower, tick_upper).

    Args:
        tick_lower: Lower boundary of the range
        tick_upper: Upper boundary of the range
        current_tick: Pool tick the outside values are relative to
        outside_lower: fee_growth_outside recorded at tick_lower
        outside_upper: fee_growth_outside recorded at tick_upper
        global_growth: Pool fee_growth_global for the same token

    Returns:
        Inside growth modulo 2**256
    """
    if current_tick < tick_lower:
        return wrapping_sub(outside_lower, outside_upper)
    if current_tick >= tick_upper:
        return wrapping_sub(outside_upper, outside_lower)
    return wrapping_sub(wrapping_sub(global_growth, outside_lower), outside_upper)


def inside_growth_pair(
    ledger: "TickLedger",
    tick_lower: int,
    tick_upper: int,
    current_tick: int,
    global_growth: FeeGrowthPair,
) -> FeeGrowthPair:
    """Evaluate inside growth for both tokens from ledger outside values."""
    lower = ledger.get(tick_lower)
    upper = ledger.get(tick_upper)
    return FeeGrowthPair(
        inside_growth(
            tick_lower,
            tick_upper,
            current_tick,
            lower.fee_growth_outside_0,
            upper.fee_growth_outside_0,
            global_growth.token0,
        ),
        inside_growth(
            tick_lower,
            tick_upper,
            current_tick,
            lower.fee_growth_outside_1,
            upper.fee_growth_outside_1,
            global_growth.token1,
        ),
    )


def fees_owed(liquidity: int, inside_now: int, inside_last: int) -> int:
    """
    Tokens earned by `liquidity` since the inside snapshot `inside_last`.

    Rounded down, since the amount is paid out to the position owner.
    """
    return mul_div(wrapping_sub(inside_now, inside_last), liquidity, Q128, round_up=False)


def fees_owed_pair(
    liquidity: int,
    inside_now: FeeGrowthPair,
    inside_last: FeeGrowthPair,
) -> FeeGrowthPair:
    return FeeGrowthPair(
        fees_owed(liquidity, inside_now.token0, inside_last.token0),
        fees_owed(liquidity, inside_now.token1, inside_last.token1),
    )
