"""Cancellation-aware operations on bounded ``queue.Queue`` channels.

``None`` is the end-of-stream marker on every pipeline queue. No
operation here blocks without re-checking the cancellation event at
least every QUEUE_POLL_INTERVAL seconds.
"""

from __future__ import annotations

import queue
import threading
import time
from typing import Any

from reviewer.constants import QUEUE_POLL_INTERVAL

CLOSED = None


class _Cancelled:
    def __repr__(self) -> str:
        return "CANCELLED"


CANCELLED: Any = _Cancelled()


def put_or_cancel(
    q: queue.Queue[Any],
    item: Any,
    cancel: threading.Event,
    *,
    grace: float | None = None,
) -> bool:
    """Put *item*, giving up once *cancel* is set.

    With *grace*, keep trying for that many seconds after
    cancellation is first observed so that already-computed results
    still reach a consumer that is draining. Returns True if the
    item was enqueued.
    """
    deadline: float | None = None
    while True:
        try:
            q.put(item, timeout=QUEUE_POLL_INTERVAL)
            return True
        except queue.Full:
            pass
        if not cancel.is_set():
            continue
        if grace is None:
            return False
        now = time.monotonic()
        if deadline is None:
            deadline = now + grace
        elif now >= deadline:
            return False


def get_or_cancel(q: queue.Queue[Any], cancel: threading.Event) -> Any:
    """Take the next item, or return CANCELLED once *cancel* is set.

    Cancellation is checked before every attempt, so a cancelled
    caller never takes another item off the queue.
    """
    while not cancel.is_set():
        try:
            return q.get(timeout=QUEUE_POLL_INTERVAL)
        except queue.Empty:
            continue
    return CANCELLED


def drain(q: queue.Queue[Any]) -> Any:
    """Block until an item is available; wakes periodically for signals."""
    while True:
        try:
            return q.get(timeout=QUEUE_POLL_INTERVAL)
        except queue.Empty:
            continue
