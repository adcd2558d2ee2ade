"""Tests for the reader/writer lock."""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import threading
import time

import pytest

from privacy_rag.locks import ReadWriteLock

SETTLE = 0.2   # long enough for a blocked thread to have run if it could
TIMEOUT = 5


def _start(fn):
    t = threading.Thread(target=fn, daemon=True)
    t.start()
    return t


def _wait_for(predicate):
    deadline = time.monotonic() + TIMEOUT
    while not predicate():
        if time.monotonic() > deadline:
            pytest.fail("condition not reached")
        time.sleep(0.01)


def test_reader_blocks_while_writer_holds():
    lock = ReadWriteLock()
    entered = threading.Event()

    def reader():
        with lock.read():
            entered.set()

    lock.acquire_write()
    t = _start(reader)
    assert not entered.wait(SETTLE)

    lock.release_write()
    assert entered.wait(TIMEOUT)
    t.join(TIMEOUT)
    assert not t.is_alive()


def test_writer_blocks_while_reader_holds():
    lock = ReadWriteLock()
    entered = threading.Event()

    def writer():
        with lock.write():
            entered.set()

    lock.acquire_read()
    t = _start(writer)
    assert not entered.wait(SETTLE)

    lock.release_read()
    assert entered.wait(TIMEOUT)
    t.join(TIMEOUT)


def test_waiting_writer_blocks_new_readers():
    lock = ReadWriteLock()
    order = []
    writer_in = threading.Event()
    reader_in = threading.Event()

    def writer():
        with lock.write():
            order.append("writer")
            writer_in.set()

    def late_reader():
        with lock.read():
            order.append("reader")
            reader_in.set()

    lock.acquire_read()
    w = _start(writer)
    _wait_for(lambda: lock._writers_waiting == 1)

    r = _start(late_reader)
    assert not reader_in.wait(SETTLE)
    assert not writer_in.is_set()

    lock.release_read()
    assert writer_in.wait(TIMEOUT)
    assert reader_in.wait(TIMEOUT)
    w.join(TIMEOUT)
    r.join(TIMEOUT)
    assert order == ["writer", "reader"]


def test_readers_share_the_lock():
    lock = ReadWriteLock()
    barrier = threading.Barrier(3, timeout=TIMEOUT)
    errors = []

    def reader():
        try:
            with lock.read():
                barrier.wait()
        except threading.BrokenBarrierError as e:
            errors.append(e)

    threads = [_start(reader) for _ in range(3)]
    for t in threads:
        t.join(TIMEOUT)
    assert errors == []


def test_writers_exclude_each_other():
    lock = ReadWriteLock()
    inside = []
    overlaps = []

    def writer():
        for _ in range(50):
            with lock.write():
                inside.append(1)
                if len(inside) > 1:
                    overlaps.append(len(inside))
                time.sleep(0.0005)
                inside.pop()

    threads = [_start(writer) for _ in range(4)]
    for t in threads:
        t.join(TIMEOUT * 4)
    assert overlaps == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
