"""
Tick <-> sqrt price conversion.

sqrt_price = sqrt(1.0001 ** tick) * 2**96, computed with the same bit
decomposition as the on-chain TickMath library so results match exactly.
"""

from __future__ import annotations

import math

from ..range_exceptions import ArithmeticFault
from .safe_math import MAX_TICK, MIN_TICK, check_tick

MIN_SQRT_RATIO = 4295128739
MAX_SQRT_RATIO = 1461446703485210103287273052203988822378723970342

# (bit, Q128 multiplier) pairs: multiplier = 2**128 / sqrt(1.0001) ** bit
_RATIO_STEPS = (
    (0x2, 0xFFF97272373D413259A46990580E213A),
    (0x4, 0xFFF2E50F5F656932EF12357CF3C7FDCC),
    (0x8, 0xFFE5CACA7E10E4E61C3624EAA0941CD0),
    (0x10, 0xFFCB9843D60F6159C9DB58835C926644),
    (0x20, 0xFF973B41FA98C081472E6896DFB254C0),
    (0x40, 0xFF2EA16466C96A3843EC78B326B52861),
    (0x80, 0xFE5DEE046A99A2A811C461F1969C3053),
    (0x100, 0xFCBE86C7900A88AEDCFFC83B479AA3A4),
    (0x200, 0xF987A7253AC413176F2B074CF7815E54),
    (0x400, 0xF3392B0822B70005940C7A398E4B70F3),
    (0x800, 0xE7159475A2C29B7443B29C7FA6E889D9),
    (0x1000, 0xD097F3BDFD2022B8845AD8F792AA5825),
    (0x2000, 0xA9F746462D870FDF8A65DC1F90E061E5),
    (0x4000, 0x70D869A156D2A1B890BB3DF62BAF32F7),
    (0x8000, 0x31BE135F97D08FD981231505542FCFA6),
    (0x10000, 0x9AA508B5B7A84E1C677DE54F3E99BC9),
    (0x20000, 0x5D6AF8DEDB81196699C329225EE604),
    (0x40000, 0x2216E584F5FA1EA926041BEDFE98),
    (0x80000, 0x48A170391F7DC42444E8FA2),
)


def tick_to_sqrt_price(tick: int) -> int:
    """
    Convert tick to sqrt price in Q64.96 format.

    Raises:
        ArithmeticFault: If tick is outside [MIN_TICK, MAX_TICK]
    """
    check_tick(tick)
    abs_tick = abs(tick)

    if abs_tick & 0x1:
        ratio = 0xFFFCB933BD6FAD37AA2D162D1A594001
    else:
        ratio = 1 << 128

    for bit, multiplier in _RATIO_STEPS:
        if abs_tick & bit:
            ratio = (ratio * multiplier) >> 128

    if tick > 0:
        ratio = ((1 << 256) - 1) // ratio

    # Q128.128 -> Q64.96, rounding up
    return (ratio >> 32) + (1 if ratio % (1 << 32) else 0)


def sqrt_price_to_tick(sqrt_price: int) -> int:
    """
    Convert sqrt price to the greatest tick whose sqrt price is <= sqrt_price.

    Raises:
        ArithmeticFault: If sqrt_price is outside [MIN_SQRT_RATIO, MAX_SQRT_RATIO)
    """
    if sqrt_price < MIN_SQRT_RATIO or sqrt_price >= MAX_SQRT_RATIO:
        raise ArithmeticFault(
            "Sqrt price out of range",
            details={"sqrt_price": sqrt_price},
        )

    low, high = MIN_TICK, MAX_TICK

    while low < high:
        mid = (low + high + 1) // 2
        if tick_to_sqrt_price(mid) <= sqrt_price:
            low = mid
        else:
            high = mid - 1

    return low


def tick_to_price(tick: int) -> float:
    """Convert tick to actual price (for display)."""
    return 1.0001 ** tick


def price_to_tick(price: float) -> int:
    """Convert price to the nearest tick at or below it."""
    if price <= 0:
        raise ArithmeticFault("Price must be positive")
    return math.floor(math.log(price) / math.log(1.0001))
