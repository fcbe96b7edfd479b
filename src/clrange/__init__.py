"""
clrange - Atomic range updates for concentrated-liquidity positions.

Main Components:
- Tick Ledger: per-tick liquidity and fee-growth-outside bookkeeping
- Fee Growth: inside-range fee growth with wrap-around arithmetic
- Position Store: stable-id positions with delegated access
- Hooks: per-pool callback permissions and acknowledgement checks
- Range Update: the orchestrator that moves a position's range atomically
"""

__version__ = "0.1.0"
__author__ = "clrange Development Team"

__all__ = []
