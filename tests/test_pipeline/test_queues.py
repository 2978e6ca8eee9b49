"""Tests for cancellation-aware queue operations."""

from __future__ import annotations

import queue
import threading
import time
from typing import Any

from reviewer.pipeline.queues import (
    CANCELLED,
    drain,
    get_or_cancel,
    put_or_cancel,
)


class TestPutOrCancel:
    def test_put_succeeds_with_room(self) -> None:
        q: queue.Queue[Any] = queue.Queue(maxsize=1)
        assert put_or_cancel(q, "x", threading.Event()) is True
        assert q.get_nowait() == "x"

    def test_full_queue_gives_up_on_cancel(self) -> None:
        q: queue.Queue[Any] = queue.Queue(maxsize=1)
        q.put("occupied")
        cancel = threading.Event()
        cancel.set()
        assert put_or_cancel(q, "x", cancel) is False

    def test_grace_allows_late_delivery(self) -> None:
        q: queue.Queue[Any] = queue.Queue(maxsize=1)
        q.put("occupied")
        cancel = threading.Event()
        cancel.set()

        def _consume() -> None:
            time.sleep(0.2)
            q.get()

        consumer = threading.Thread(target=_consume)
        consumer.start()
        assert put_or_cancel(q, "late", cancel, grace=5.0) is True
        consumer.join()
        assert q.get_nowait() == "late"

    def test_grace_expires(self) -> None:
        q: queue.Queue[Any] = queue.Queue(maxsize=1)
        q.put("occupied")
        cancel = threading.Event()
        cancel.set()
        started = time.monotonic()
        assert put_or_cancel(q, "x", cancel, grace=0.2) is False
        assert time.monotonic() - started < 2.0


class TestGetOrCancel:
    def test_returns_item(self) -> None:
        q: queue.Queue[Any] = queue.Queue()
        q.put(1)
        assert get_or_cancel(q, threading.Event()) == 1

    def test_cancelled_caller_takes_nothing(self) -> None:
        q: queue.Queue[Any] = queue.Queue()
        q.put(1)
        cancel = threading.Event()
        cancel.set()
        assert get_or_cancel(q, cancel) is CANCELLED
        assert q.qsize() == 1

    def test_wakes_on_cancel_while_waiting(self) -> None:
        q: queue.Queue[Any] = queue.Queue()
        cancel = threading.Event()
        threading.Timer(0.1, cancel.set).start()
        assert get_or_cancel(q, cancel) is CANCELLED


def test_drain_returns_end_marker() -> None:
    q: queue.Queue[Any] = queue.Queue()
    threading.Timer(0.1, q.put, args=(None,)).start()
    assert drain(q) is None
