"""
Tick ledger: per-boundary liquidity aggregates shared by all positions.

Entries are immutable; every change stores a replacement value. An entry
exists exactly while its gross liquidity is non-zero.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Dict, Iterator, List

from ..range_exceptions import ArithmeticFault
from .fee_growth import FeeGrowthPair
from .safe_math import (
    MAX_INT128,
    MAX_UINT128,
    MIN_INT128,
    add_delta,
    check_tick,
    wrapping_sub,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TickEntry:
    """Information stored for each initialized tick."""

    liquidity_gross: int = 0  # Total liquidity referencing this tick
    liquidity_net: int = 0  # Net liquidity change when crossing left to right
    fee_growth_outside_0: int = 0
    fee_growth_outside_1: int = 0
    initialized: bool = False

    @property
    def fee_growth_outside(self) -> FeeGrowthPair:
        return FeeGrowthPair(self.fee_growth_outside_0, self.fee_growth_outside_1)


_EMPTY = TickEntry()


class TickLedger:
    """Mapping of tick index to TickEntry for a single pool."""

    def __init__(self, max_liquidity_per_tick: int = MAX_UINT128) -> None:
        self.max_liquidity_per_tick = max_liquidity_per_tick
        self._ticks: Dict[int, TickEntry] = {}

    def __contains__(self, tick: int) -> bool:
        return tick in self._ticks

    def __iter__(self) -> Iterator[int]:
        return iter(sorted(self._ticks))

    def __len__(self) -> int:
        return len(self._ticks)

    def get(self, tick: int) -> TickEntry:
        """Return the entry at tick, or an empty uninitialized entry."""
        return self._ticks.get(tick, _EMPTY)

    def is_initialized(self, tick: int) -> bool:
        return self.get(tick).initialized

    def initialized_ticks(self) -> List[int]:
        return sorted(self._ticks)

    def adjust_net(self, tick: int, liquidity_delta: int, upper: bool = False) -> bool:
        """
        Apply a liquidity change referencing tick as a position boundary.

        Gross liquidity moves by liquidity_delta. Net liquidity moves by
        liquidity_delta for a lower boundary and by -liquidity_delta for an
        upper boundary.

        Args:
            tick: Boundary tick
            liquidity_delta: Signed liquidity change
            upper: True when tick is the position's upper boundary

        Returns:
            True if the tick flipped between initialized and uninitialized

        Raises:
            ArithmeticFault: On gross underflow, gross above the per-tick
                maximum, or net outside int128
        """
        check_tick(tick)
        before = self.get(tick)

        gross = add_delta(before.liquidity_gross, liquidity_delta)
        if gross > self.max_liquidity_per_tick:
            raise ArithmeticFault(
                "Tick liquidity above per-tick maximum",
                details={
                    "tick": tick,
                    "liquidity_gross": gross,
                    "max_liquidity_per_tick": self.max_liquidity_per_tick,
                },
            )

        net = before.liquidity_net - liquidity_delta if upper else before.liquidity_net + liquidity_delta
        if net < MIN_INT128 or net > MAX_INT128:
            raise ArithmeticFault(
                "Tick net liquidity outside int128",
                details={"tick": tick, "liquidity_net": net},
            )

        flipped = (gross == 0) != (before.liquidity_gross == 0)

        if gross == 0:
            # Clearing drops the outside values along with the entry
            self._ticks.pop(tick, None)
        else:
            self._ticks[tick] = replace(
                before,
                liquidity_gross=gross,
                liquidity_net=net,
                initialized=True,
            )

        if flipped:
            logger.debug(
                "Tick %s",
                "initialized" if gross else "cleared",
                extra={"event": "clrange.tick.flip", "tick": tick, "liquidity_gross": gross},
            )

        return flipped

    def record_outside_on_init(
        self,
        tick: int,
        fee_growth_global: FeeGrowthPair,
        current_tick: int,
    ) -> None:
        """
        Seed fee_growth_outside for a freshly initialized tick.

        By convention all growth so far happened below the current tick, so a
        tick at or below the current tick starts with the global value and a
        tick above it starts at zero.
        """
        entry = self._ticks.get(tick)
        if entry is None:
            raise ArithmeticFault(
                "Cannot record outside growth on an uninitialized tick",
                details={"tick": tick},
            )
        if tick <= current_tick:
            outside = fee_growth_global
        else:
            outside = FeeGrowthPair(0, 0)
        self._ticks[tick] = replace(
            entry,
            fee_growth_outside_0=outside.token0,
            fee_growth_outside_1=outside.token1,
        )

    def cross(self, tick: int, fee_growth_global: FeeGrowthPair) -> int:
        """
        Flip a tick's outside values as the price moves across it.

        Returns:
            The tick's liquidity_net (zero if the tick is not initialized)
        """
        entry = self._ticks.get(tick)
        if entry is None:
            return 0
        self._ticks[tick] = replace(
            entry,
            fee_growth_outside_0=wrapping_sub(fee_growth_global.token0, entry.fee_growth_outside_0),
            fee_growth_outside_1=wrapping_sub(fee_growth_global.token1, entry.fee_growth_outside_1),
        )
        return entry.liquidity_net

    def active_liquidity_at(self, tick: int) -> int:
        """Sum of liquidity_net over initialized ticks at or below tick."""
        return sum(entry.liquidity_net for t, entry in self._ticks.items() if t <= tick)

    def ticks_between(self, low: int, high: int) -> List[int]:
        """Initialized ticks in (low, high], ascending."""
        return sorted(t for t in self._ticks if low < t <= high)

    # ==================== Rollback ====================

    def snapshot(self) -> Dict[int, TickEntry]:
        # Entries are frozen, so a shallow copy is a full snapshot
        return dict(self._ticks)

    def restore(self, snapshot: Dict[int, TickEntry]) -> None:
        self._ticks = dict(snapshot)
