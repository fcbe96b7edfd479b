"""
Pool-scoped reentrancy guard.

Same-thread re-entry is rejected immediately; other threads block until the
holder releases, so operations on one pool never interleave.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from ..range_exceptions import ReentrancyDetected

logger = logging.getLogger(__name__)


class ReentrancyGuard:
    """Mutual exclusion for state-mutating pool operations."""

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._lock = threading.Lock()
        self._owner: Optional[int] = None
        self._operation: Optional[str] = None

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    @property
    def current_operation(self) -> Optional[str]:
        return self._operation

    @contextmanager
    def hold(self, operation: str) -> Iterator[None]:
        """
        Hold the guard for the duration of operation.

        Raises:
            ReentrancyDetected: If the calling thread already holds the guard
        """
        if self._owner == threading.get_ident():
            logger.warning(
                "Reentrant %s rejected during %s",
                operation,
                self._operation,
                extra={
                    "event": "clrange.guard.reentrancy",
                    "pool": self.name[:10],
                    "operation": operation,
                    "active_operation": self._operation,
                },
            )
            raise ReentrancyDetected(
                f"Pool is locked by {self._operation}",
                operation=operation,
                details={"pool": self.name, "active_operation": self._operation},
            )

        self._lock.acquire()
        self._owner = threading.get_ident()
        self._operation = operation
        try:
            yield
        finally:
            self._owner = None
            self._operation = None
            self._lock.release()
