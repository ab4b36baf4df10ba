"""
Unit tests for ReadWriteLock.

Tests shared reads, exclusive writes and writer reentrancy.
"""

import threading

import pytest

from flashcards.rwlock import ReadWriteLock

TIMEOUT = 5


class TestSharedReads:
    def test_two_readers_hold_the_lock_together(self):
        lock = ReadWriteLock()
        both_inside = threading.Barrier(2, timeout=TIMEOUT)
        errors = []

        def reader():
            try:
                with lock.read_locked():
                    # Blocks until the other reader is also inside
                    both_inside.wait()
            except threading.BrokenBarrierError as e:
                errors.append(e)

        threads = [threading.Thread(target=reader) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(TIMEOUT)

        assert not errors

    def test_release_read_without_acquire_raises(self):
        lock = ReadWriteLock()
        with pytest.raises(RuntimeError):
            lock.release_read()


class TestExclusiveWrites:
    def test_writer_waits_for_reader(self):
        lock = ReadWriteLock()
        writer_done = threading.Event()

        def writer():
            with lock.write_locked():
                writer_done.set()

        lock.acquire_read()
        t = threading.Thread(target=writer)
        t.start()

        assert not writer_done.wait(0.2)

        lock.release_read()
        t.join(TIMEOUT)
        assert writer_done.is_set()

    def test_reader_waits_for_writer(self):
        lock = ReadWriteLock()
        reader_done = threading.Event()

        def reader():
            with lock.read_locked():
                reader_done.set()

        lock.acquire_write()
        t = threading.Thread(target=reader)
        t.start()

        assert not reader_done.wait(0.2)

        lock.release_write()
        t.join(TIMEOUT)
        assert reader_done.is_set()

    def test_release_write_from_other_thread_raises(self):
        lock = ReadWriteLock()
        lock.acquire_write()
        errors = []

        def intruder():
            try:
                lock.release_write()
            except RuntimeError as e:
                errors.append(e)

        t = threading.Thread(target=intruder)
        t.start()
        t.join(TIMEOUT)
        lock.release_write()

        assert len(errors) == 1

    def test_increments_are_not_lost(self):
        lock = ReadWriteLock()
        counter = {"n": 0}

        def bump():
            for _ in range(500):
                with lock.write_locked():
                    counter["n"] += 1

        threads = [threading.Thread(target=bump) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(TIMEOUT)

        assert counter["n"] == 2000


class TestReentrancy:
    def test_writer_can_nest_write_and_read(self):
        lock = ReadWriteLock()
        with lock.write_locked():
            assert lock.write_held
            with lock.write_locked():
                with lock.read_locked():
                    assert lock.write_held
            assert lock.write_held
        assert not lock.write_held

    def test_lock_is_free_after_nested_release(self):
        lock = ReadWriteLock()
        with lock.write_locked():
            with lock.write_locked():
                pass

        acquired = threading.Event()

        def other():
            with lock.write_locked():
                acquired.set()

        t = threading.Thread(target=other)
        t.start()
        t.join(TIMEOUT)
        assert acquired.is_set()
