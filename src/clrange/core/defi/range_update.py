"""
Atomic range updates for concentrated liquidity positions.

Moves a position's liquidity from [old_lower, old_upper) to
[new_lower, new_upper) in one step instead of a withdraw followed by a
deposit:

1. Settle fees earned under the old range into the uncollected counters
2. Retire the old boundaries from the tick ledger
3. Install the new boundaries, seeding outside growth on fresh ticks
4. Snapshot inside growth for the new range
5. Replace the position value under its stable id

Hooks may run before and after. Any failure after the checkpoint restores
the tick ledger, the position store and active liquidity exactly.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Tuple

from ..range_exceptions import (
    ContinuityViolation,
    InvalidPosition,
    InvalidRange,
    get_error_context,
)
from .fee_growth import fees_owed_pair, inside_growth_pair
from .positions import Position, PositionKey, PositionRef
from .safe_math import add_delta, check_tick, check_uint128

if TYPE_CHECKING:
    from .concentrated_liquidity import ConcentratedLiquidityPool, PoolStateSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UpdateRangeParams:
    """Caller-supplied target range and callback payload."""

    new_tick_lower: int
    new_tick_upper: int
    must_continue_trading: bool = False
    data: bytes = b""


class UpdateOutcome(Enum):
    UPDATED = "updated"
    NO_OP_RANGE = "no_op_range"


@dataclass(frozen=True)
class RangeUpdated:
    """Record emitted once per successful range move."""

    pool: str
    position_id: int
    old_key: PositionKey
    new_key: PositionKey
    old_range: Tuple[int, int]
    new_range: Tuple[int, int]
    liquidity: int
    tokens_owed_0: int
    tokens_owed_1: int
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "RangeUpdated",
            "pool": self.pool,
            "position_id": self.position_id,
            "old_key": self.old_key.to_dict(),
            "new_key": self.new_key.to_dict(),
            "old_range": list(self.old_range),
            "new_range": list(self.new_range),
            "liquidity": self.liquidity,
            "tokens_owed_0": self.tokens_owed_0,
            "tokens_owed_1": self.tokens_owed_1,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class RangeUpdateReceipt:
    position: Position
    outcome: UpdateOutcome
    event: RangeUpdated | None = None

    @property
    def updated(self) -> bool:
        return self.outcome is UpdateOutcome.UPDATED


class RangeUpdateOrchestrator:
    """Runs range updates against a single pool's state."""

    def __init__(self, pool: "ConcentratedLiquidityPool") -> None:
        self.pool = pool

    def update_range(self, caller: str, key: PositionRef, params: UpdateRangeParams) -> Position:
        return self.execute(caller, key, params).position

    def execute(self, caller: str, key: PositionRef, params: UpdateRangeParams) -> RangeUpdateReceipt:
        """
        Move a position to a new tick range.

        Args:
            caller: Owner, approved delegate, or operator of the position
            key: PositionKey or stable position id
            params: Target range, continuity flag and hook payload

        Returns:
            Receipt with the finalized position. A request for the range the
            position already has returns it unchanged with NO_OP_RANGE.

        Raises:
            AccessDenied, InvalidPosition, InvalidRange, ContinuityViolation,
            CallbackRejected, ReentrancyDetected, ArithmeticFault
        """
        pool = self.pool
        with pool.guard.hold("update_range"):
            position = pool.store.resolve(key)
            pool.store.require_authorized(caller, position)
            if position.liquidity <= 0:
                raise InvalidPosition(
                    "Position has no liquidity",
                    details={"position_id": position.position_id},
                )

            new_lower, new_upper = params.new_tick_lower, params.new_tick_upper
            pool.validate_range(new_lower, new_upper)

            if (new_lower, new_upper) == (position.tick_lower, position.tick_upper):
                logger.debug(
                    "Range unchanged, nothing to do",
                    extra={
                        "event": "clrange.range_update.no_op",
                        "pool": pool.address[:10],
                        "position_id": position.position_id,
                    },
                )
                return RangeUpdateReceipt(position, UpdateOutcome.NO_OP_RANGE)

            new_key = position.key.with_range(new_lower, new_upper)
            holder = pool.store.key_holder(new_key)
            if holder is not None and holder != position.position_id:
                raise InvalidRange(
                    "Target range already held by another position",
                    details={"position_id": holder, **new_key.to_dict()},
                )

            state = pool.snapshot_state()
            if params.must_continue_trading and not (new_lower <= state.tick < new_upper):
                raise ContinuityViolation(
                    "New range does not contain the current tick",
                    details={"tick": state.tick, "new_range": [new_lower, new_upper]},
                )

            checkpoint = pool.checkpoint()
            try:
                pool.gateway.before_update_range(caller, pool.pool_key, params)
                moved = self._move(position, new_lower, new_upper, state)
                pool.store.replace(moved)
                pool.gateway.after_update_range(caller, pool.pool_key, params, moved)
            except BaseException as exc:
                pool.rollback(checkpoint)
                logger.warning(
                    "Range update rolled back",
                    extra={
                        "event": "clrange.range_update.rolled_back",
                        "pool": pool.address[:10],
                        "position_id": position.position_id,
                        **get_error_context(exc),
                    },
                )
                raise

            event = RangeUpdated(
                pool=pool.address,
                position_id=moved.position_id,
                old_key=position.key,
                new_key=moved.key,
                old_range=(position.tick_lower, position.tick_upper),
                new_range=(new_lower, new_upper),
                liquidity=moved.liquidity,
                tokens_owed_0=moved.tokens_owed_0,
                tokens_owed_1=moved.tokens_owed_1,
            )
            pool.record_event(event)

            logger.info(
                "Position range updated",
                extra={
                    "event": "clrange.range_update.updated",
                    "pool": pool.address[:10],
                    "position_id": moved.position_id,
                    "old_range": f"[{position.tick_lower}, {position.tick_upper})",
                    "new_range": f"[{new_lower}, {new_upper})",
                    "liquidity": moved.liquidity,
                },
            )
            return RangeUpdateReceipt(moved, UpdateOutcome.UPDATED, event)

    def _move(
        self,
        position: Position,
        new_lower: int,
        new_upper: int,
        state: "PoolStateSnapshot",
    ) -> Position:
        pool = self.pool
        ledger = pool.ledger
        liquidity = position.liquidity

        # Settle under the old range
        inside_old = inside_growth_pair(
            ledger, position.tick_lower, position.tick_upper, state.tick, state.fee_growth_global
        )
        owed = fees_owed_pair(liquidity, inside_old, position.fee_growth_inside_last)
        tokens_owed_0 = check_uint128(position.tokens_owed_0 + owed.token0, "tokens_owed_0")
        tokens_owed_1 = check_uint128(position.tokens_owed_1 + owed.token1, "tokens_owed_1")

        ledger.adjust_net(position.tick_lower, -liquidity)
        ledger.adjust_net(position.tick_upper, -liquidity, upper=True)
        if position.is_in_range(state.tick):
            pool.liquidity = add_delta(pool.liquidity, -liquidity)

        for tick, upper in ((new_lower, False), (new_upper, True)):
            if ledger.adjust_net(tick, liquidity, upper=upper):
                ledger.record_outside_on_init(tick, state.fee_growth_global, state.tick)
        if new_lower <= state.tick < new_upper:
            pool.liquidity = add_delta(pool.liquidity, liquidity)

        inside_new = inside_growth_pair(ledger, new_lower, new_upper, state.tick, state.fee_growth_global)

        return replace(
            position,
            tick_lower=new_lower,
            tick_upper=new_upper,
            fee_growth_inside_0_last=inside_new.token0,
            fee_growth_inside_1_last=inside_new.token1,
            tokens_owed_0=tokens_owed_0,
            tokens_owed_1=tokens_owed_1,
        )


def check_range_bounds(tick_lower: int, tick_upper: int, tick_spacing: int) -> None:
    """
    Validate a tick range for a pool with the given spacing.

    Raises:
        ArithmeticFault: If either tick is outside [MIN_TICK, MAX_TICK]
        InvalidRange: If lower >= upper or a tick is off the spacing grid
    """
    check_tick(tick_lower)
    check_tick(tick_upper)
    if tick_lower >= tick_upper:
        raise InvalidRange(
            "tick_lower must be less than tick_upper",
            details={"tick_lower": tick_lower, "tick_upper": tick_upper},
        )
    if tick_lower % tick_spacing != 0 or tick_upper % tick_spacing != 0:
        raise InvalidRange(
            f"Ticks must be multiples of {tick_spacing}",
            details={"tick_lower": tick_lower, "tick_upper": tick_upper, "tick_spacing": tick_spacing},
        )
