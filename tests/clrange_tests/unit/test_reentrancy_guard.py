"""
Reentrancy guard tests.
"""

import threading
import time

import pytest

from clrange.core.defi.reentrancy import ReentrancyGuard
from clrange.core.range_exceptions import ReentrancyDetected


class TestReentrancyGuard:
    def test_released_after_success(self):
        guard = ReentrancyGuard("0xpool")
        with guard.hold("mint"):
            assert guard.locked
            assert guard.current_operation == "mint"
        assert not guard.locked
        assert guard.current_operation is None

    def test_released_after_error(self):
        guard = ReentrancyGuard()
        with pytest.raises(ValueError):
            with guard.hold("mint"):
                raise ValueError("boom")
        assert not guard.locked

    def test_same_thread_reentry_rejected(self):
        guard = ReentrancyGuard()
        with guard.hold("update_range"):
            with pytest.raises(ReentrancyDetected) as exc_info:
                with guard.hold("collect"):
                    pass
            assert exc_info.value.operation == "collect"
            assert guard.locked
        assert not guard.locked

    def test_other_threads_are_serialized(self):
        guard = ReentrancyGuard()
        order = []

        def worker():
            with guard.hold("worker"):
                order.append("worker")

        with guard.hold("main"):
            thread = threading.Thread(target=worker)
            thread.start()
            time.sleep(0.05)
            order.append("main")
        thread.join(timeout=5)

        assert order == ["main", "worker"]
