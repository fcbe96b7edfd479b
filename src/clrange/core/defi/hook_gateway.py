"""
Hook gateway for range-update callbacks.

A callback runs only when the pool's permission bitmask enables it, and
must answer with its fixed 4-byte acknowledgement selector. Anything else,
including an exception out of the hook, rejects the update.
"""

from __future__ import annotations

import hashlib
import logging
from typing import TYPE_CHECKING, Any, Optional, Protocol, runtime_checkable

from ..range_exceptions import CallbackRejected
from .hook_permissions import HookFlag, PermissionRegistry

if TYPE_CHECKING:
    from .positions import Position
    from .range_update import UpdateRangeParams

logger = logging.getLogger(__name__)


def _selector(signature: str) -> bytes:
    return hashlib.sha3_256(signature.encode()).digest()[:4]


BEFORE_UPDATE_RANGE_ACK = _selector("before_update_range(address,PoolKey,UpdateRangeParams,bytes)")
AFTER_UPDATE_RANGE_ACK = _selector("after_update_range(address,PoolKey,UpdateRangeParams,Position,bytes)")


@runtime_checkable
class RangeUpdateHooks(Protocol):
    """Callbacks a hook contract implements for range updates."""

    def before_update_range(
        self,
        caller: str,
        pool_key: Any,
        params: "UpdateRangeParams",
        data: bytes,
    ) -> bytes: ...

    def after_update_range(
        self,
        caller: str,
        pool_key: Any,
        params: "UpdateRangeParams",
        position: "Position",
        data: bytes,
    ) -> bytes: ...


class BaseRangeUpdateHooks:
    """Hook contract that acknowledges every callback. Subclass to customize."""

    def before_update_range(self, caller, pool_key, params, data) -> bytes:
        return BEFORE_UPDATE_RANGE_ACK

    def after_update_range(self, caller, pool_key, params, position, data) -> bytes:
        return AFTER_UPDATE_RANGE_ACK


class HookGateway:
    """Dispatches range-update callbacks for one pool."""

    def __init__(
        self,
        pool_id: str,
        registry: PermissionRegistry,
        hooks: Optional[RangeUpdateHooks] = None,
    ) -> None:
        self.pool_id = pool_id
        self.registry = registry
        self.hooks = hooks

    def before_update_range(self, caller: str, pool_key: Any, params: "UpdateRangeParams") -> bool:
        """Run the before callback. Returns False when the flag is unset."""
        if not self.registry.is_enabled(self.pool_id, HookFlag.BEFORE_UPDATE_RANGE):
            return False
        self._invoke(
            "before_update_range",
            BEFORE_UPDATE_RANGE_ACK,
            caller,
            pool_key,
            params,
            params.data,
        )
        return True

    def after_update_range(
        self,
        caller: str,
        pool_key: Any,
        params: "UpdateRangeParams",
        position: "Position",
    ) -> bool:
        """Run the after callback. Returns False when the flag is unset."""
        if not self.registry.is_enabled(self.pool_id, HookFlag.AFTER_UPDATE_RANGE):
            return False
        self._invoke(
            "after_update_range",
            AFTER_UPDATE_RANGE_ACK,
            caller,
            pool_key,
            params,
            position,
            params.data,
        )
        return True

    def _invoke(self, callback: str, expected: bytes, *args: Any) -> None:
        if self.hooks is None:
            raise CallbackRejected(
                "Hook permission enabled without a hook contract",
                callback=callback,
                details={"pool": self.pool_id},
            )

        try:
            result = getattr(self.hooks, callback)(*args)
        except Exception as exc:
            logger.warning(
                "Hook %s raised %s",
                callback,
                type(exc).__name__,
                extra={
                    "event": "clrange.hook.failed",
                    "pool": self.pool_id[:10],
                    "callback": callback,
                    "error_type": type(exc).__name__,
                },
            )
            raise CallbackRejected(
                f"Hook {callback} failed: {exc}",
                callback=callback,
                details={"pool": self.pool_id, "error_type": type(exc).__name__},
            ) from exc

        if result != expected:
            logger.warning(
                "Hook %s returned an invalid acknowledgement",
                callback,
                extra={"event": "clrange.hook.rejected", "pool": self.pool_id[:10], "callback": callback},
            )
            raise CallbackRejected(
                f"Hook {callback} returned an invalid acknowledgement",
                callback=callback,
                details={"pool": self.pool_id, "expected": expected.hex()},
            )

        logger.debug(
            "Hook %s acknowledged",
            callback,
            extra={"event": "clrange.hook.acknowledged", "pool": self.pool_id[:10], "callback": callback},
        )
