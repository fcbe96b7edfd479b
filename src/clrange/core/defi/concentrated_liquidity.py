"""
Concentrated Liquidity Pool Implementation (Uniswap V3 Style).

Holds the per-pool state the range-update engine works on:
- Current price, tick and active liquidity
- Global fee growth accumulators
- Tick ledger and position store
- Hook permissions and the reentrancy guard

Besides atomic range updates the pool offers the minimal surface needed to
drive them: seeding positions, fee accrual, price moves, fee collection and
delegation.
"""

from __future__ import annotations

import hashlib
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Deque, NamedTuple, Optional, Tuple

from ..range_exceptions import ArithmeticFault, InvalidPosition, PoolAlreadyExists, PoolNotFound
from .fee_growth import FeeGrowthPair, fees_owed_pair, inside_growth_pair
from .hook_gateway import HookGateway, RangeUpdateHooks
from .hook_permissions import NO_HOOKS, HookFlag, PermissionRegistry
from .positions import Position, PositionRef, PositionStore, StoreSnapshot
from .range_update import (
    RangeUpdated,
    RangeUpdateOrchestrator,
    RangeUpdateReceipt,
    UpdateRangeParams,
    check_range_bounds,
)
from .reentrancy import ReentrancyGuard
from .safe_math import (
    Q96,
    Q128,
    add_delta,
    check_tick,
    check_uint128,
    mul_div,
    tick_spacing_to_max_liquidity_per_tick,
    wrapping_add,
)
from .tick_ledger import TickEntry, TickLedger
from .tick_math import price_to_tick, sqrt_price_to_tick, tick_to_price, tick_to_sqrt_price

logger = logging.getLogger(__name__)

DEFAULT_MAX_EVENTS = 1000


class FeeTier(Enum):
    """Available fee tiers with corresponding tick spacing."""
    LOW = (100, 1)      # 0.01% fee, 1 tick spacing
    MEDIUM = (500, 10)   # 0.05% fee, 10 tick spacing
    STANDARD = (3000, 60)  # 0.30% fee, 60 tick spacing
    HIGH = (10000, 200)   # 1.00% fee, 200 tick spacing

    def __init__(self, fee: int, tick_spacing: int):
        self.fee = fee  # In hundredths of a basis point (1_000_000 = 100%)
        self.tick_spacing = tick_spacing


class PoolKey(NamedTuple):
    """Identity of a pool as seen by hook contracts."""
    token0: str
    token1: str
    fee: int
    tick_spacing: int
    pool: str


@dataclass(frozen=True)
class PoolStateSnapshot:
    """Pool state read once at the start of a range update."""
    sqrt_price: int
    tick: int
    fee_growth_global: FeeGrowthPair
    liquidity: int


Checkpoint = Tuple[dict[int, TickEntry], StoreSnapshot, int]


@dataclass
class ConcentratedLiquidityPool:
    """
    Uniswap V3-style concentrated liquidity pool.

    Price representation:
    - Uses sqrt price (Q64.96 format) for precision
    - Ticks represent discretized price points
    - tick = log1.0001(price)
    """

    address: str = ""
    token0: str = ""
    token1: str = ""
    fee_tier: FeeTier = FeeTier.STANDARD

    # Current state
    sqrt_price: int = 0  # Q64.96 format
    tick: int = 0
    liquidity: int = 0  # Active liquidity

    # Fee tracking
    fee_growth_global_0: int = 0  # Q128.128
    fee_growth_global_1: int = 0

    # Hooks; hook_flags is registered at construction unless the registry
    # already holds this address
    hooks: Optional[RangeUpdateHooks] = None
    hook_flags: HookFlag = NO_HOOKS
    registry: PermissionRegistry = field(default_factory=PermissionRegistry)

    max_events: int = DEFAULT_MAX_EVENTS

    ledger: TickLedger = field(init=False)
    store: PositionStore = field(init=False, default_factory=PositionStore)
    events: Deque[RangeUpdated] = field(init=False)
    guard: ReentrancyGuard = field(init=False)
    gateway: HookGateway = field(init=False)
    orchestrator: RangeUpdateOrchestrator = field(init=False)

    def __post_init__(self) -> None:
        """Initialize pool."""
        if not self.address:
            addr_hash = hashlib.sha3_256(
                f"clp:{self.token0}:{self.token1}:{self.fee_tier.fee}:{time.time()}".encode()
            ).digest()
            self.address = f"0x{addr_hash[-20:].hex()}"
        if self.sqrt_price:
            self.tick = sqrt_price_to_tick(self.sqrt_price)
        else:
            self.sqrt_price = tick_to_sqrt_price(self.tick)

        self.ledger = TickLedger(tick_spacing_to_max_liquidity_per_tick(self.fee_tier.tick_spacing))
        self.events = deque(maxlen=self.max_events)
        if self.address not in self.registry:
            self.registry.register(self.address, self.hook_flags, self.hooks)
        if self.hooks is not None and not self.permissions:
            logger.warning(
                "Hook contract attached without permissions, callbacks will not fire",
                extra={"event": "clrange.pool.hooks_unregistered", "pool": self.address[:10]},
            )

        self.guard = ReentrancyGuard(self.address)
        self.gateway = HookGateway(self.address, self.registry, self.hooks)
        self.orchestrator = RangeUpdateOrchestrator(self)

    # ==================== Price Utilities ====================

    tick_to_sqrt_price = staticmethod(tick_to_sqrt_price)
    sqrt_price_to_tick = staticmethod(sqrt_price_to_tick)
    tick_to_price = staticmethod(tick_to_price)
    price_to_tick = staticmethod(price_to_tick)

    # ==================== State Access ====================

    @property
    def tick_spacing(self) -> int:
        return self.fee_tier.tick_spacing

    @property
    def pool_key(self) -> PoolKey:
        return PoolKey(self.token0, self.token1, self.fee_tier.fee, self.tick_spacing, self.address)

    @property
    def fee_growth_global(self) -> FeeGrowthPair:
        return FeeGrowthPair(self.fee_growth_global_0, self.fee_growth_global_1)

    @property
    def permissions(self) -> HookFlag:
        return self.registry.flags_for(self.address)

    def snapshot_state(self) -> PoolStateSnapshot:
        return PoolStateSnapshot(
            sqrt_price=self.sqrt_price,
            tick=self.tick,
            fee_growth_global=self.fee_growth_global,
            liquidity=self.liquidity,
        )

    def validate_range(self, tick_lower: int, tick_upper: int) -> None:
        check_range_bounds(tick_lower, tick_upper, self.tick_spacing)

    def checkpoint(self) -> Checkpoint:
        return self.ledger.snapshot(), self.store.snapshot(), self.liquidity

    def rollback(self, checkpoint: Checkpoint) -> None:
        ticks, positions, liquidity = checkpoint
        self.ledger.restore(ticks)
        self.store.restore(positions)
        self.liquidity = liquidity

    def record_event(self, event: RangeUpdated) -> None:
        self.events.append(event)

    # ==================== Range Updates ====================

    def update_range(self, caller: str, key: PositionRef, params: UpdateRangeParams) -> Position:
        """Move a position to a new range atomically. See RangeUpdateOrchestrator."""
        return self.orchestrator.update_range(caller, key, params)

    def execute_range_update(
        self,
        caller: str,
        key: PositionRef,
        params: UpdateRangeParams,
    ) -> RangeUpdateReceipt:
        return self.orchestrator.execute(caller, key, params)

    # ==================== Position Management ====================

    def mint(
        self,
        caller: str,
        tick_lower: int,
        tick_upper: int,
        amount: int,
        salt: bytes = b"",
    ) -> Position:
        """
        Seed a new liquidity position.

        No token amounts are computed or transferred; the position only
        enters the ledger and starts earning fees.

        Args:
            caller: Position owner
            tick_lower: Lower tick of range
            tick_upper: Upper tick of range
            amount: Liquidity amount
            salt: Distinguishes positions sharing owner and range

        Returns:
            The new position
        """
        with self.guard.hold("mint"):
            self.validate_range(tick_lower, tick_upper)
            check_uint128(amount, "amount")
            if amount == 0:
                raise InvalidPosition("Liquidity amount must be positive", details={"amount": amount})

            checkpoint = self.checkpoint()
            try:
                global_growth = self.fee_growth_global
                for tick, upper in ((tick_lower, False), (tick_upper, True)):
                    if self.ledger.adjust_net(tick, amount, upper=upper):
                        self.ledger.record_outside_on_init(tick, global_growth, self.tick)

                inside = inside_growth_pair(self.ledger, tick_lower, tick_upper, self.tick, global_growth)
                position = self.store.open(caller, tick_lower, tick_upper, amount, inside, salt)

                # Update pool liquidity if in range
                if tick_lower <= self.tick < tick_upper:
                    self.liquidity = add_delta(self.liquidity, amount)
            except BaseException:
                self.rollback(checkpoint)
                raise

            logger.info(
                "Position minted",
                extra={
                    "event": "clrange.pool.mint",
                    "pool": self.address[:10],
                    "position_id": position.position_id,
                    "range": f"[{tick_lower}, {tick_upper})",
                    "liquidity": amount,
                }
            )

            return position

    def collect(
        self,
        caller: str,
        key: PositionRef,
        amount0_requested: int,
        amount1_requested: int,
    ) -> tuple[int, int]:
        """
        Collect accumulated fees from a position.

        Fees earned under the current range are settled first, then up to the
        requested amounts are paid out of the uncollected counters.

        Returns:
            (amount0, amount1) - fees collected
        """
        with self.guard.hold("collect"):
            position = self.store.resolve(key)
            self.store.require_authorized(caller, position)

            inside = inside_growth_pair(
                self.ledger, position.tick_lower, position.tick_upper, self.tick, self.fee_growth_global
            )
            owed = fees_owed_pair(position.liquidity, inside, position.fee_growth_inside_last)
            owed_0 = check_uint128(position.tokens_owed_0 + owed.token0, "tokens_owed_0")
            owed_1 = check_uint128(position.tokens_owed_1 + owed.token1, "tokens_owed_1")

            amount0 = min(max(amount0_requested, 0), owed_0)
            amount1 = min(max(amount1_requested, 0), owed_1)

            self.store.update(
                position.position_id,
                fee_growth_inside_0_last=inside.token0,
                fee_growth_inside_1_last=inside.token1,
                tokens_owed_0=owed_0 - amount0,
                tokens_owed_1=owed_1 - amount1,
            )

            logger.info(
                "Fees collected",
                extra={
                    "event": "clrange.pool.collect",
                    "pool": self.address[:10],
                    "position_id": position.position_id,
                    "amount0": amount0,
                    "amount1": amount1,
                }
            )

            return amount0, amount1

    def approve(self, owner: str, key: PositionRef, delegate: str) -> None:
        with self.guard.hold("approve"):
            self.store.approve(owner, self.store.resolve(key).position_id, delegate)

    def revoke(self, owner: str, key: PositionRef, delegate: str) -> None:
        with self.guard.hold("revoke"):
            self.store.revoke(owner, self.store.resolve(key).position_id, delegate)

    def set_operator(self, owner: str, operator: str, approved: bool = True) -> None:
        with self.guard.hold("set_operator"):
            self.store.set_operator(owner, operator, approved)

    # ==================== Pool Dynamics ====================

    def accrue_fees(self, amount0: int, amount1: int) -> FeeGrowthPair:
        """
        Distribute fee amounts over the active liquidity.

        Stands in for the fee side of swaps executed at the current tick.

        Returns:
            The new global fee growth
        """
        with self.guard.hold("accrue_fees"):
            check_uint128(amount0, "amount0")
            check_uint128(amount1, "amount1")
            if self.liquidity == 0:
                raise ArithmeticFault(
                    "No active liquidity to accrue fees to",
                    details={"tick": self.tick},
                )

            # Use full precision, no rounding for global accounting
            self.fee_growth_global_0 = wrapping_add(
                self.fee_growth_global_0, mul_div(amount0, Q128, self.liquidity)
            )
            self.fee_growth_global_1 = wrapping_add(
                self.fee_growth_global_1, mul_div(amount1, Q128, self.liquidity)
            )

            logger.debug(
                "Fees accrued",
                extra={
                    "event": "clrange.pool.accrue_fees",
                    "pool": self.address[:10],
                    "amount0": amount0,
                    "amount1": amount1,
                    "liquidity": self.liquidity,
                }
            )
            return self.fee_growth_global

    def move_to_tick(self, target_tick: int) -> int:
        """
        Move the price to target_tick, crossing every initialized tick passed.

        Returns:
            Active liquidity at the new tick
        """
        with self.guard.hold("move_to_tick"):
            check_tick(target_tick)
            global_growth = self.fee_growth_global
            liquidity = self.liquidity
            crossed = 0

            if target_tick > self.tick:
                for t in self.ledger.ticks_between(self.tick, target_tick):
                    liquidity = add_delta(liquidity, self.ledger.cross(t, global_growth))
                    crossed += 1
            elif target_tick < self.tick:
                for t in reversed(self.ledger.ticks_between(target_tick, self.tick)):
                    liquidity = add_delta(liquidity, -self.ledger.cross(t, global_growth))
                    crossed += 1

            previous = self.tick
            self.liquidity = liquidity
            self.tick = target_tick
            self.sqrt_price = tick_to_sqrt_price(target_tick)

            logger.info(
                "Price moved",
                extra={
                    "event": "clrange.pool.move",
                    "pool": self.address[:10],
                    "from_tick": previous,
                    "to_tick": target_tick,
                    "ticks_crossed": crossed,
                    "liquidity": liquidity,
                }
            )
            return liquidity

    # ==================== View Functions ====================

    def get_position(self, key: PositionRef) -> dict | None:
        """Get position details."""
        position = self.store.find(key)
        if not position:
            return None

        inside = inside_growth_pair(
            self.ledger, position.tick_lower, position.tick_upper, self.tick, self.fee_growth_global
        )
        pending = fees_owed_pair(position.liquidity, inside, position.fee_growth_inside_last)

        details = position.to_dict()
        details.update({
            "price_lower": self.tick_to_price(position.tick_lower),
            "price_upper": self.tick_to_price(position.tick_upper),
            "uncollected_fees_0": position.tokens_owed_0 + pending.token0,
            "uncollected_fees_1": position.tokens_owed_1 + pending.token1,
            "in_range": position.is_in_range(self.tick),
        })
        return details

    def get_pool_state(self) -> dict:
        """Get current pool state."""
        return {
            "address": self.address,
            "token0": self.token0,
            "token1": self.token1,
            "fee": self.fee_tier.fee,
            "tick_spacing": self.tick_spacing,
            "sqrt_price": self.sqrt_price,
            "tick": self.tick,
            "price": self.tick_to_price(self.tick),
            "liquidity": self.liquidity,
            "fee_growth_global_0": self.fee_growth_global_0,
            "fee_growth_global_1": self.fee_growth_global_1,
            "initialized_ticks": len(self.ledger),
            "positions": len(self.store),
            "permissions": int(self.permissions),
        }

    def check_liquidity_invariant(self) -> bool:
        """Active liquidity equals the net liquidity summed up to the current tick."""
        return self.ledger.active_liquidity_at(self.tick) == self.liquidity


@dataclass
class ConcentratedLiquidityFactory:
    """Factory for deploying concentrated liquidity pools."""

    address: str = ""
    owner: str = ""
    default_fee_tier: FeeTier = FeeTier.STANDARD
    max_events: int = DEFAULT_MAX_EVENTS

    # Deployed pools
    pools: dict[str, ConcentratedLiquidityPool] = field(default_factory=dict)

    # Pool lookup by pair
    pool_by_pair: dict[str, dict[int, str]] = field(default_factory=dict)

    # Hook permissions of every deployed pool
    registry: PermissionRegistry = field(default_factory=PermissionRegistry)

    def __post_init__(self) -> None:
        """Initialize factory."""
        if not self.address:
            addr_hash = hashlib.sha3_256(
                f"clp_factory:{time.time()}".encode()
            ).digest()
            self.address = f"0x{addr_hash[-20:].hex()}"

    @classmethod
    def from_config(cls, config: Any, **kwargs: Any) -> "ConcentratedLiquidityFactory":
        """Build a factory from a PoolConfig section."""
        return cls(
            default_fee_tier=FeeTier[config.default_fee_tier],
            max_events=config.max_events,
            **kwargs,
        )

    def create_pool(
        self,
        caller: str,
        token0: str,
        token1: str,
        fee_tier: FeeTier | None,
        initial_sqrt_price: int,
        hooks: RangeUpdateHooks | None = None,
        permissions: HookFlag = NO_HOOKS,
    ) -> ConcentratedLiquidityPool:
        """
        Create a new concentrated liquidity pool.

        Args:
            caller: Pool creator
            token0: First token (alphabetically)
            token1: Second token
            fee_tier: Fee tier configuration, or None for the default tier
            initial_sqrt_price: Initial sqrt price (Q64.96)
            hooks: Hook contract receiving enabled callbacks
            permissions: Callback points enabled for this pool, fixed for life

        Returns:
            Created pool

        Raises:
            PermissionRegistryError: If flags are set without a hook contract
                or carry reserved bits
            ArithmeticFault: If the initial price is out of range
        """
        fee_tier = fee_tier or self.default_fee_tier

        # Sort tokens
        if token0 > token1:
            token0, token1 = token1, token0
            # Invert sqrt price with full precision
            initial_sqrt_price = mul_div(Q96, Q96, initial_sqrt_price, round_up=False)

        pair_key = f"{token0}:{token1}"

        # Check if pool exists for this pair and fee
        if fee_tier.fee in self.pool_by_pair.get(pair_key, {}):
            raise PoolAlreadyExists(
                f"Pool already exists for {pair_key} at {fee_tier.fee} fee",
                details={"pair": pair_key, "fee": fee_tier.fee},
            )

        pool = ConcentratedLiquidityPool(
            token0=token0,
            token1=token1,
            fee_tier=fee_tier,
            sqrt_price=initial_sqrt_price,
            hooks=hooks,
            hook_flags=permissions,
            registry=self.registry,
            max_events=self.max_events,
        )

        self.pools[pool.address] = pool
        self.pool_by_pair.setdefault(pair_key, {})[fee_tier.fee] = pool.address

        logger.info(
            "Concentrated liquidity pool created",
            extra={
                "event": "clrange.factory.pool_created",
                "pool": pool.address[:10],
                "pair": pair_key,
                "fee": fee_tier.fee,
                "creator": caller,
                "permissions": int(permissions),
            }
        )

        return pool

    def get_pool(
        self,
        token0: str,
        token1: str,
        fee: int,
    ) -> ConcentratedLiquidityPool | None:
        """Get pool by token pair and fee."""
        if token0 > token1:
            token0, token1 = token1, token0

        pool_address = self.pool_by_pair.get(f"{token0}:{token1}", {}).get(fee)
        if not pool_address:
            return None

        return self.pools.get(pool_address)

    def require_pool(self, token0: str, token1: str, fee: int) -> ConcentratedLiquidityPool:
        pool = self.get_pool(token0, token1, fee)
        if pool is None:
            raise PoolNotFound(
                "No pool for pair and fee",
                details={"token0": token0, "token1": token1, "fee": fee},
            )
        return pool

    def get_all_pools_for_pair(
        self,
        token0: str,
        token1: str,
    ) -> list[ConcentratedLiquidityPool]:
        """Get all pools for a token pair (all fee tiers)."""
        if token0 > token1:
            token0, token1 = token1, token0

        pair_key = f"{token0}:{token1}"

        if pair_key not in self.pool_by_pair:
            return []

        return [
            self.pools[addr]
            for addr in self.pool_by_pair[pair_key].values()
            if addr in self.pools
        ]
