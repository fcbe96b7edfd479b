import sys
from pathlib import Path

import pytest

# Ensure src and this directory (for the support module) are importable.
project_root = Path(__file__).resolve().parents[2]
sys.path.insert(0, str(project_root / "src"))
sys.path.insert(0, str(Path(__file__).resolve().parent))

from clrange.core.defi.concentrated_liquidity import (  # noqa: E402
    ConcentratedLiquidityFactory,
    FeeTier,
)
from clrange.core.defi.hook_permissions import HookFlag  # noqa: E402
from clrange.core.defi.tick_math import tick_to_sqrt_price  # noqa: E402
from support import ALICE, LIQUIDITY, TOKEN_A, TOKEN_B  # noqa: E402


@pytest.fixture
def factory():
    """Factory with default settings"""
    return ConcentratedLiquidityFactory(owner=ALICE)


@pytest.fixture
def make_pool(factory):
    """Build a pool (MEDIUM tier, tick spacing 10 by default) at the given tick."""
    counter = iter(range(1_000_000))

    def _make(tick=180, hooks=None, permissions=HookFlag(0), fee_tier=FeeTier.MEDIUM):
        n = next(counter)
        return factory.create_pool(
            ALICE,
            f"{TOKEN_A}{n}",
            f"{TOKEN_B}{n}",
            fee_tier,
            tick_to_sqrt_price(tick),
            hooks=hooks,
            permissions=permissions,
        )

    return _make


@pytest.fixture
def pool(make_pool):
    """Hookless pool at tick 180"""
    return make_pool()


@pytest.fixture
def position(pool):
    """ALICE position of LIQUIDITY over [100, 200), in range at tick 180"""
    return pool.mint(ALICE, 100, 200, LIQUIDITY)
