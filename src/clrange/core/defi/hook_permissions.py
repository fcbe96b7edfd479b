"""
Per-pool hook permission bitmask.

Flags are fixed when a pool is created and never change afterwards.
"""

from __future__ import annotations

import logging
import threading
from enum import IntFlag
from typing import Any, Dict, Optional

from ..range_exceptions import PermissionRegistryError

logger = logging.getLogger(__name__)


class HookFlag(IntFlag):
    """
    Callback points a pool's hook contract may be invoked at.

    Only the two range-update bits are dispatched by this engine. The
    remaining bits keep their standard positions but are reserved and
    refused at registration.
    """

    BEFORE_UPDATE_RANGE = 1 << 15
    AFTER_UPDATE_RANGE = 1 << 14
    BEFORE_INITIALIZE = 1 << 13
    AFTER_INITIALIZE = 1 << 12
    BEFORE_ADD_LIQUIDITY = 1 << 11
    AFTER_ADD_LIQUIDITY = 1 << 10
    BEFORE_REMOVE_LIQUIDITY = 1 << 9
    AFTER_REMOVE_LIQUIDITY = 1 << 8
    BEFORE_SWAP = 1 << 7
    AFTER_SWAP = 1 << 6
    BEFORE_DONATE = 1 << 5
    AFTER_DONATE = 1 << 4
    BEFORE_SWAP_RETURNS_DELTA = 1 << 3
    AFTER_SWAP_RETURNS_DELTA = 1 << 2
    AFTER_ADD_LIQUIDITY_RETURNS_DELTA = 1 << 1
    AFTER_REMOVE_LIQUIDITY_RETURNS_DELTA = 1 << 0


NO_HOOKS = HookFlag(0)
ALL_HOOK_FLAGS = HookFlag((1 << 16) - 1)
DISPATCHED_HOOK_FLAGS = HookFlag.BEFORE_UPDATE_RANGE | HookFlag.AFTER_UPDATE_RANGE
RESERVED_HOOK_FLAGS = HookFlag(int(ALL_HOOK_FLAGS) ^ int(DISPATCHED_HOOK_FLAGS))


class PermissionRegistry:
    """Write-once map of pool id to HookFlag bitmask."""

    def __init__(self) -> None:
        self._flags: Dict[str, HookFlag] = {}
        self._lock = threading.Lock()

    def register(self, pool_id: str, flags: HookFlag, hooks: Optional[Any] = None) -> None:
        """
        Record a pool's permissions.

        Raises:
            PermissionRegistryError: If the pool is already registered, the
                flags carry unknown or reserved bits, or flags are set with
                no hook object
        """
        flags = HookFlag(flags)
        if int(flags) & ~int(ALL_HOOK_FLAGS):
            raise PermissionRegistryError(
                "Unknown hook permission bits",
                details={"pool_id": pool_id, "flags": int(flags)},
            )
        if flags & RESERVED_HOOK_FLAGS:
            raise PermissionRegistryError(
                "Reserved hook permission bits are never dispatched",
                details={"pool_id": pool_id, "reserved": int(flags & RESERVED_HOOK_FLAGS)},
            )
        if flags and hooks is None:
            raise PermissionRegistryError(
                "Hook permissions set without a hook contract",
                details={"pool_id": pool_id, "flags": int(flags)},
            )

        with self._lock:
            if pool_id in self._flags:
                raise PermissionRegistryError(
                    f"Permissions already registered for pool {pool_id}",
                    details={"pool_id": pool_id},
                )
            self._flags[pool_id] = flags

        logger.info(
            "Hook permissions registered",
            extra={"event": "clrange.permissions.registered", "pool": pool_id[:10], "flags": int(flags)},
        )

    def flags_for(self, pool_id: str) -> HookFlag:
        """Return the pool's flags; unregistered pools have none."""
        return self._flags.get(pool_id, NO_HOOKS)

    def is_enabled(self, pool_id: str, flag: HookFlag) -> bool:
        return bool(self.flags_for(pool_id) & flag)

    def __contains__(self, pool_id: str) -> bool:
        return pool_id in self._flags
