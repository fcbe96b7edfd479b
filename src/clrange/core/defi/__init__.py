"""
clrange concentrated-liquidity engine.

This module provides:
- Tick Ledger: shared per-boundary liquidity aggregates
- Fee Growth: inside-range accounting over wrapping accumulators
- Positions: stable-id position store with delegates and operators
- Hooks: per-pool permission bitmask and acknowledged callbacks
- Range Update: atomic relocation of a position's range
- Concentrated Liquidity: the pool and factory tying them together
"""

from .concentrated_liquidity import (
    ConcentratedLiquidityFactory,
    ConcentratedLiquidityPool,
    FeeTier,
    PoolKey,
    PoolStateSnapshot,
)
from .fee_growth import FeeGrowthPair, fees_owed, inside_growth, inside_growth_pair
from .hook_gateway import (
    AFTER_UPDATE_RANGE_ACK,
    BEFORE_UPDATE_RANGE_ACK,
    BaseRangeUpdateHooks,
    HookGateway,
    RangeUpdateHooks,
)
from .hook_permissions import HookFlag, PermissionRegistry
from .positions import Position, PositionKey, PositionStore
from .range_update import (
    RangeUpdated,
    RangeUpdateOrchestrator,
    RangeUpdateReceipt,
    UpdateOutcome,
    UpdateRangeParams,
)
from .reentrancy import ReentrancyGuard
from .tick_ledger import TickEntry, TickLedger

__all__ = [
    # Pool
    "ConcentratedLiquidityPool",
    "ConcentratedLiquidityFactory",
    "FeeTier",
    "PoolKey",
    "PoolStateSnapshot",
    # Ledger & fees
    "TickEntry",
    "TickLedger",
    "FeeGrowthPair",
    "inside_growth",
    "inside_growth_pair",
    "fees_owed",
    # Positions
    "Position",
    "PositionKey",
    "PositionStore",
    # Hooks
    "HookFlag",
    "PermissionRegistry",
    "HookGateway",
    "RangeUpdateHooks",
    "BaseRangeUpdateHooks",
    "BEFORE_UPDATE_RANGE_ACK",
    "AFTER_UPDATE_RANGE_ACK",
    # Range updates
    "UpdateRangeParams",
    "UpdateOutcome",
    "RangeUpdated",
    "RangeUpdateReceipt",
    "RangeUpdateOrchestrator",
    "ReentrancyGuard",
]
