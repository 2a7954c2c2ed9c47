"""Tests for KeyedLockRegistry."""

import threading
import time
from uuid import uuid4

from timesheet_services.key_lock import KeyedLockRegistry, month_key


class TestKeyedLockRegistry:
    def test_slot_is_discarded_after_release(self):
        registry = KeyedLockRegistry()

        with registry.hold("a"):
            assert registry.active_keys() == 1

        assert registry.active_keys() == 0

    def test_slot_is_discarded_after_exception(self):
        registry = KeyedLockRegistry()

        try:
            with registry.hold("a"):
                raise RuntimeError("boom")
        except RuntimeError:
            pass

        assert registry.active_keys() == 0

    def test_same_key_is_exclusive(self):
        registry = KeyedLockRegistry()
        inside = 0
        max_inside = 0
        counter_lock = threading.Lock()

        def worker():
            nonlocal inside, max_inside
            with registry.hold("k"):
                with counter_lock:
                    inside += 1
                    max_inside = max(max_inside, inside)
                time.sleep(0.01)
                with counter_lock:
                    inside -= 1

        threads = [threading.Thread(target=worker) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert max_inside == 1
        assert registry.active_keys() == 0

    def test_different_keys_do_not_block(self):
        registry = KeyedLockRegistry()
        entered = threading.Event()

        def other():
            with registry.hold("b"):
                entered.set()

        with registry.hold("a"):
            t = threading.Thread(target=other)
            t.start()
            assert entered.wait(timeout=2)
            t.join()


def test_month_key_distinguishes_kind_and_month():
    user = uuid4()

    assert month_key("timesheet", user, 2024, 5) == month_key("timesheet", user, 2024, 5)
    assert month_key("timesheet", user, 2024, 5) != month_key("invoice", user, 2024, 5)
    assert month_key("timesheet", user, 2024, 5) != month_key("timesheet", user, 2024, 6)
