"""In-memory fake analysis service for testing.

No network, no litellm — deterministic reviews, scripted failures and
optional latency so concurrency behaviour can be observed.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from pathlib import Path

from reviewer.pipeline.schemas import Review


class FakeAnalysisService:
    """Thread-safe AnalysisService double that records every call."""

    def __init__(
        self,
        *,
        fail_on: set[str] | None = None,
        delay: float = 0.0,
        review_factory: Callable[[str, str, int], Review] | None = None,
    ) -> None:
        self._fail_on = fail_on or set()
        self._delay = delay
        self._factory = review_factory
        self._lock = threading.Lock()
        self.calls: list[tuple[str, int]] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.started = threading.Event()

    def review(self, path: str, content: str, level: int) -> Review:
        with self._lock:
            self.calls.append((path, level))
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        self.started.set()
        try:
            if self._delay:
                time.sleep(self._delay)
            if Path(path).name in self._fail_on:
                raise ConnectionError(
                    f"analysis backend unreachable for {Path(path).name}"
                )
            if self._factory is not None:
                return self._factory(path, content, level)
            return Review(
                score=min(100, len(content)),
                importance=0.5,
                summary=f"Reviewed {Path(path).name}",
                strengths=["readable"],
                issues=[] if level < 4 else ["nitpick"],
                suggestion="",
            )
        finally:
            with self._lock:
                self.in_flight -= 1

    @property
    def call_count(self) -> int:
        with self._lock:
            return len(self.calls)
