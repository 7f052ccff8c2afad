"""
Tests for per-product commit locks.
"""
import threading
import time

import pytest

from salon_os.stock.exceptions import ConcurrencyTimeoutError
from salon_os.stock.locks import ProductLockManager


def test_hold_yields_sorted_unique_ids():
    locks = ProductLockManager(timeout_s=1.0)
    with locks.hold(["mask", "dye", "mask"]) as held:
        assert held == ["dye", "mask"]


def test_locks_are_released_after_block():
    locks = ProductLockManager(timeout_s=0.1)
    with locks.hold(["dye"]):
        pass
    with locks.hold(["dye"]):
        pass


def test_timeout_releases_partial_acquisitions():
    locks = ProductLockManager(timeout_s=0.05)
    blocker_ready = threading.Event()
    release = threading.Event()

    def blocker():
        with locks.hold(["mask"]):
            blocker_ready.set()
            release.wait(5)

    t = threading.Thread(target=blocker)
    t.start()
    blocker_ready.wait(5)
    try:
        with pytest.raises(ConcurrencyTimeoutError):
            with locks.hold(["dye", "mask"]):
                pass
        # "dye" was acquired before the timeout on "mask" and must be free again
        with locks.hold(["dye"], timeout_s=0.05):
            pass
    finally:
        release.set()
        t.join()


def test_overlapping_holders_do_not_deadlock():
    locks = ProductLockManager(timeout_s=5.0)
    done = []

    def worker(ids):
        for _ in range(50):
            with locks.hold(ids):
                time.sleep(0)
        done.append(ids)

    threads = [
        threading.Thread(target=worker, args=(["dye", "mask"],)),
        threading.Thread(target=worker, args=(["mask", "dye"],)),
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join(10)

    assert len(done) == 2
