import random
import threading
import time

import pytest

from tgstack.semaphore import CountingSemaphore


def test_counting_semaphore_happy_path():
    semaphore = CountingSemaphore(1)
    semaphore.acquire()
    semaphore.release()
    with pytest.raises(ValueError):
        semaphore.release()

    holders = []

    def worker():
        with semaphore as held:
            holders.append(held)

    thread = threading.Thread(target=worker)
    thread.start()
    thread.join(timeout=5)
    assert holders == [semaphore]


def test_acquire_blocks_when_no_permits_left():
    semaphore = CountingSemaphore(1)
    semaphore.acquire()
    entered = threading.Event()
    holders = []

    def worker():
        with semaphore as held:
            holders.append(held)
            entered.set()

    thread = threading.Thread(target=worker)
    thread.start()
    assert not entered.wait(0.1)
    assert holders == []
    semaphore.release()
    assert entered.wait(5)
    thread.join(timeout=5)
    assert holders == [semaphore]
    with pytest.raises(ValueError):
        semaphore.release()


def test_release_without_acquire_raises():
    semaphore = CountingSemaphore(2)
    with pytest.raises(ValueError):
        semaphore.release()


def test_context_manager_releases():
    semaphore = CountingSemaphore(1)
    with semaphore as held:
        assert held is semaphore
    with pytest.raises(ValueError):
        semaphore.release()