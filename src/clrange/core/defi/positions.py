"""
Position store with stable identity and delegated access.

A position is addressed two ways: by its stable integer id, which survives
range moves, and by the range-derived PositionKey, which the store
re-points whenever a position is replaced under a new range.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional, Set, Tuple, Union

from ..range_exceptions import AccessDenied, InvalidRange, PositionNotFound
from .fee_growth import FeeGrowthPair
from .safe_math import check_uint128

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PositionKey:
    """(owner, tick_lower, tick_upper, salt) lookup key."""

    owner: str
    tick_lower: int
    tick_upper: int
    salt: bytes = b""

    def __post_init__(self) -> None:
        # Addresses compare case-insensitively
        object.__setattr__(self, "owner", self.owner.lower())

    def with_range(self, tick_lower: int, tick_upper: int) -> "PositionKey":
        return PositionKey(self.owner, tick_lower, tick_upper, self.salt)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "owner": self.owner,
            "tick_lower": self.tick_lower,
            "tick_upper": self.tick_upper,
            "salt": self.salt.hex(),
        }


@dataclass(frozen=True)
class Position:
    """
    Liquidity position within a price range.

    Values are immutable; the store swaps in a new value on every change.
    """

    position_id: int
    owner: str
    tick_lower: int
    tick_upper: int
    liquidity: int
    fee_growth_inside_0_last: int = 0
    fee_growth_inside_1_last: int = 0
    tokens_owed_0: int = 0
    tokens_owed_1: int = 0
    salt: bytes = b""
    created_at: float = field(default_factory=time.time)

    @property
    def key(self) -> PositionKey:
        return PositionKey(self.owner, self.tick_lower, self.tick_upper, self.salt)

    @property
    def fee_growth_inside_last(self) -> FeeGrowthPair:
        return FeeGrowthPair(self.fee_growth_inside_0_last, self.fee_growth_inside_1_last)

    def is_in_range(self, current_tick: int) -> bool:
        """Check if current price is within position's range."""
        return self.tick_lower <= current_tick < self.tick_upper

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.position_id,
            "owner": self.owner,
            "tick_lower": self.tick_lower,
            "tick_upper": self.tick_upper,
            "salt": self.salt.hex(),
            "liquidity": self.liquidity,
            "fee_growth_inside_0_last": self.fee_growth_inside_0_last,
            "fee_growth_inside_1_last": self.fee_growth_inside_1_last,
            "tokens_owed_0": self.tokens_owed_0,
            "tokens_owed_1": self.tokens_owed_1,
            "created_at": self.created_at,
        }


PositionRef = Union[PositionKey, int]

StoreSnapshot = Tuple[
    Dict[int, Position], Dict[PositionKey, int], int, Dict[int, Set[str]], Dict[str, Set[str]]
]


class PositionStore:
    """Positions indexed by id and by key, plus delegation records."""

    def __init__(self) -> None:
        self._positions: Dict[int, Position] = {}
        self._by_key: Dict[PositionKey, int] = {}
        self._next_id = 1
        # position_id -> approved delegates
        self._delegates: Dict[int, Set[str]] = {}
        # owner -> operators approved for all of the owner's positions
        self._operators: Dict[str, Set[str]] = {}

    def __len__(self) -> int:
        return len(self._positions)

    def __contains__(self, ref: PositionRef) -> bool:
        return self.find(ref) is not None

    def all(self) -> list[Position]:
        return [self._positions[pid] for pid in sorted(self._positions)]

    # ==================== Lookup ====================

    def find(self, ref: PositionRef) -> Optional[Position]:
        if isinstance(ref, PositionKey):
            position_id = self._by_key.get(ref)
            if position_id is None:
                return None
            return self._positions.get(position_id)
        return self._positions.get(ref)

    def get(self, position_id: int) -> Position:
        position = self._positions.get(position_id)
        if position is None:
            raise PositionNotFound(
                f"Position {position_id} not found",
                details={"position_id": position_id},
            )
        return position

    def get_by_key(self, key: PositionKey) -> Position:
        position = self.find(key)
        if position is None:
            raise PositionNotFound("No position for key", details=key.to_dict())
        return position

    def resolve(self, ref: PositionRef) -> Position:
        """Look a position up by id or key, raising PositionNotFound."""
        if isinstance(ref, PositionKey):
            return self.get_by_key(ref)
        return self.get(ref)

    def key_holder(self, key: PositionKey) -> Optional[int]:
        return self._by_key.get(key)

    # ==================== Mutation ====================

    def open(
        self,
        owner: str,
        tick_lower: int,
        tick_upper: int,
        liquidity: int,
        fee_growth_inside: FeeGrowthPair,
        salt: bytes = b"",
    ) -> Position:
        """Create a position under a fresh id."""
        key = PositionKey(owner, tick_lower, tick_upper, salt)
        if key in self._by_key:
            raise InvalidRange("Position key already in use", details=key.to_dict())
        check_uint128(liquidity, "liquidity")

        position = Position(
            position_id=self._next_id,
            owner=key.owner,
            tick_lower=tick_lower,
            tick_upper=tick_upper,
            liquidity=liquidity,
            fee_growth_inside_0_last=fee_growth_inside.token0,
            fee_growth_inside_1_last=fee_growth_inside.token1,
            salt=salt,
        )
        self._next_id += 1
        self._positions[position.position_id] = position
        self._by_key[key] = position.position_id
        return position

    def replace(self, position: Position) -> Position:
        """
        Swap in a new value for an existing position id.

        The key index is re-pointed in the same step. A key held by a
        different position raises InvalidRange and leaves the store as is.
        """
        current = self.get(position.position_id)
        new_key = position.key
        holder = self._by_key.get(new_key)
        if holder is not None and holder != position.position_id:
            raise InvalidRange("Position key already in use", details=new_key.to_dict())
        check_uint128(position.tokens_owed_0, "tokens_owed_0")
        check_uint128(position.tokens_owed_1, "tokens_owed_1")

        old_key = current.key
        if old_key != new_key:
            del self._by_key[old_key]
        self._by_key[new_key] = position.position_id
        self._positions[position.position_id] = position
        return position

    def update(self, position_id: int, **changes: Any) -> Position:
        return self.replace(replace(self.get(position_id), **changes))

    # ==================== Delegation ====================

    def approve(self, caller: str, position_id: int, delegate: str) -> None:
        position = self.get(position_id)
        self._require_owner(caller, position)
        self._delegates.setdefault(position_id, set()).add(delegate.lower())
        logger.info(
            "Position delegate approved",
            extra={"event": "clrange.position.approve", "position_id": position_id, "delegate": delegate},
        )

    def revoke(self, caller: str, position_id: int, delegate: str) -> None:
        position = self.get(position_id)
        self._require_owner(caller, position)
        self._delegates.get(position_id, set()).discard(delegate.lower())
        logger.info(
            "Position delegate revoked",
            extra={"event": "clrange.position.revoke", "position_id": position_id, "delegate": delegate},
        )

    def set_operator(self, owner: str, operator: str, approved: bool) -> None:
        operators = self._operators.setdefault(owner.lower(), set())
        if approved:
            operators.add(operator.lower())
        else:
            operators.discard(operator.lower())
        logger.info(
            "Operator %s",
            "approved" if approved else "removed",
            extra={"event": "clrange.position.set_operator", "owner": owner, "operator": operator},
        )

    def is_authorized(self, caller: str, position: Position) -> bool:
        """Owner, per-position delegate, or owner-wide operator."""
        caller = caller.lower()
        if caller == position.owner:
            return True
        if caller in self._delegates.get(position.position_id, ()):
            return True
        return caller in self._operators.get(position.owner, ())

    def require_authorized(self, caller: str, position: Position) -> None:
        if not self.is_authorized(caller, position):
            raise AccessDenied(
                "Caller is not owner, delegate or operator",
                details={"caller": caller, "position_id": position.position_id},
            )

    def _require_owner(self, caller: str, position: Position) -> None:
        if caller.lower() != position.owner:
            raise AccessDenied(
                "Not position owner",
                details={"caller": caller, "position_id": position.position_id},
            )

    # ==================== Rollback ====================

    def snapshot(self) -> StoreSnapshot:
        return (
            dict(self._positions),
            dict(self._by_key),
            self._next_id,
            {pid: set(names) for pid, names in self._delegates.items()},
            {owner: set(names) for owner, names in self._operators.items()},
        )

    def restore(self, snapshot: StoreSnapshot) -> None:
        positions, by_key, next_id, delegates, operators = snapshot
        self._positions = dict(positions)
        self._by_key = dict(by_key)
        self._next_id = next_id
        self._delegates = {pid: set(names) for pid, names in delegates.items()}
        self._operators = {owner: set(names) for owner, names in operators.items()}
