"""
Per-product commit locks.

Stock mutations on the same product are serialized through one lock per
product id. Multi-product holders acquire in sorted id order so two sales
touching overlapping products cannot deadlock, and every wait is bounded.
"""

import logging
import threading
import time
from contextlib import contextmanager
from typing import Dict, Iterable, Iterator, List

from salon_os.config import defaults
from salon_os.stock.exceptions import ConcurrencyTimeoutError

logger = logging.getLogger(__name__)


class ProductLockManager:
    """Thread-safe registry of per-product locks."""

    def __init__(self, timeout_s: float = defaults.DEFAULT_LOCK_TIMEOUT_S):
        self.timeout_s = timeout_s
        self._locks: Dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, product_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(product_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[product_id] = lock
            return lock

    @contextmanager
    def hold(self, product_ids: Iterable[str], timeout_s: float = None) -> Iterator[List[str]]:
        """
        Hold the locks of every product in ``product_ids``.

        Args:
            product_ids: Products to lock (duplicates are ignored)
            timeout_s: Total time allowed for acquiring all locks

        Yields:
            The sorted list of locked product ids

        Raises:
            ConcurrencyTimeoutError: if the locks are not all acquired in time;
                nothing is left held in that case
        """
        timeout = self.timeout_s if timeout_s is None else timeout_s
        ordered = sorted(set(product_ids))
        deadline = time.monotonic() + timeout
        acquired: List[threading.Lock] = []

        try:
            for product_id in ordered:
                lock = self._lock_for(product_id)
                remaining = max(0.0, deadline - time.monotonic())
                if not lock.acquire(timeout=remaining):
                    logger.warning(f"Lock timeout on {product_id} after {timeout:.2f}s")
                    raise ConcurrencyTimeoutError(ordered, timeout)
                acquired.append(lock)
            yield ordered
        finally:
            for lock in reversed(acquired):
                lock.release()
