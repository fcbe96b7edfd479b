"""
Property-based tests for range update invariants.

For arbitrary positions, fee accruals, price moves and range moves:
- active liquidity always equals the telescoped sum of tick net liquidity
- settled fees do not depend on the range a position moves to
- a rejected move leaves the ledger, the store and active liquidity untouched

Uses Hypothesis for property-based testing with random inputs.
"""

import pytest
from hypothesis import HealthCheck, assume, given, settings, strategies as st

from clrange.core.defi.concentrated_liquidity import ConcentratedLiquidityFactory, FeeTier
from clrange.core.defi.hook_permissions import HookFlag
from clrange.core.defi.range_update import UpdateRangeParams
from clrange.core.defi.tick_math import tick_to_sqrt_price
from clrange.core.range_exceptions import CallbackRejected
from support import ALICE, RejectingHooks

SPACING = FeeTier.MEDIUM.tick_spacing
EXACT_L = 1 << 64

grid_tick = st.integers(min_value=-50, max_value=50).map(lambda n: n * SPACING)


@st.composite
def tick_range(draw):
    lower = draw(grid_tick)
    width = draw(st.integers(min_value=1, max_value=20))
    return lower, lower + width * SPACING


@st.composite
def range_with_tick_inside(draw):
    lower, upper = draw(tick_range())
    return (lower, upper), draw(st.integers(min_value=lower, max_value=upper - 1))


def new_pool(tick=0, hooks=None, permissions=HookFlag(0)):
    factory = ConcentratedLiquidityFactory()
    return factory.create_pool(
        ALICE, "0xA", "0xB", FeeTier.MEDIUM, tick_to_sqrt_price(tick),
        hooks=hooks, permissions=permissions,
    )


def ledger_state(pool):
    return {tick: pool.ledger.get(tick) for tick in pool.ledger.initialized_ticks()}


class TestTelescopingInvariant:
    @given(
        start_tick=st.integers(min_value=-500, max_value=500),
        ranges=st.lists(tick_range(), min_size=1, max_size=5),
        moves=st.lists(st.tuples(st.integers(min_value=0, max_value=4), tick_range()), max_size=8),
        price_path=st.lists(st.integers(min_value=-600, max_value=600), max_size=4),
    )
    @settings(max_examples=60, suppress_health_check=[HealthCheck.too_slow])
    def test_active_liquidity_matches_ledger(self, start_tick, ranges, moves, price_path):
        pool = new_pool(start_tick)
        positions = [
            pool.mint(ALICE, lower, upper, EXACT_L, salt=bytes([i]))
            for i, (lower, upper) in enumerate(ranges)
        ]
        assert pool.check_liquidity_invariant()

        for step, (index, (lower, upper)) in enumerate(moves):
            position = positions[index % len(positions)]
            if pool.store.key_holder(position.key.with_range(lower, upper)) not in (None, position.position_id):
                continue
            pool.update_range(ALICE, position.position_id, UpdateRangeParams(lower, upper))
            assert pool.check_liquidity_invariant()
            if step < len(price_path):
                pool.move_to_tick(price_path[step])
                assert pool.check_liquidity_invariant()

        gross = sum(pool.ledger.get(t).liquidity_gross for t in pool.ledger.initialized_ticks())
        assert gross == 2 * EXACT_L * len(positions)


class TestFeeConservation:
    @given(
        setup=range_with_tick_inside(),
        first=tick_range(),
        second=tick_range(),
        fee0=st.integers(min_value=0, max_value=10**12),
        fee1=st.integers(min_value=0, max_value=10**12),
    )
    @settings(max_examples=60)
    def test_settled_fees_independent_of_target(self, setup, first, second, fee0, fee1):
        old_range, start_tick = setup
        assume(first != old_range and second != old_range)

        owed = []
        for target in (first, second):
            pool = new_pool(start_tick)
            position = pool.mint(ALICE, *old_range, EXACT_L)
            pool.accrue_fees(fee0, fee1)
            moved = pool.update_range(ALICE, position.position_id, UpdateRangeParams(*target))
            owed.append((moved.tokens_owed_0, moved.tokens_owed_1))

        assert owed[0] == owed[1] == (fee0, fee1)


class TestAtomicRollback:
    @given(
        start_tick=st.integers(min_value=-300, max_value=300),
        old_range=tick_range(),
        target=tick_range(),
        fee0=st.integers(min_value=0, max_value=10**9),
    )
    @settings(max_examples=40)
    def test_rejected_move_changes_nothing(self, start_tick, old_range, target, fee0):
        assume(target != old_range)
        pool = new_pool(
            start_tick,
            hooks=RejectingHooks(),
            permissions=HookFlag.BEFORE_UPDATE_RANGE | HookFlag.AFTER_UPDATE_RANGE,
        )
        position = pool.mint(ALICE, *old_range, EXACT_L)
        pool.mint(ALICE, -1000, 1000, EXACT_L, salt=b"anchor")
        pool.accrue_fees(fee0, 0)

        ledger_before = ledger_state(pool)
        store_before = pool.store.all()
        liquidity_before = pool.liquidity

        with pytest.raises(CallbackRejected):
            pool.update_range(ALICE, position.position_id, UpdateRangeParams(*target))

        assert ledger_state(pool) == ledger_before
        assert pool.store.all() == store_before
        assert pool.liquidity == liquidity_before
        assert not pool.guard.locked
