"""
clrange Core Module

Core functionality shared by the range-update engine:
- Typed exceptions for every failure kind
- Configuration loading (defaults, YAML, environment)
- Structured JSON logging
- The concentrated-liquidity DeFi package
"""

__all__ = []
