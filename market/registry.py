# market/registry.py
import threading


class BuyerRegistry:
    """Count of buyers currently connected to the broker."""

    def __init__(self):
        self._count = 0
        self._lock = threading.Lock()

    def increase(self) -> int:
        with self._lock:
            self._count += 1
            return self._count

    def decrease(self) -> int:
        with self._lock:
            self._count -= 1
            return self._count

    def count(self) -> int:
        with self._lock:
            return self._count
