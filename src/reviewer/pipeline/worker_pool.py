"""Bounded worker pool driving one analysis call per file.

Topology for one run::

    producer ──► jobs (maxsize=N) ──► N workers ──► results (maxsize=2N) ──► consumer
        └──────────── early outcomes ───────────────────┘

A closer thread joins the producer and every worker before putting
the end-of-stream marker on the results queue, so the consumer sees
closure exactly once and only after the last outcome.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from collections.abc import Iterator, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any

from reviewer.constants import (
    CANCEL_GRACE_SECONDS,
    DEFAULT_CONCURRENCY,
    DEFAULT_LEVEL,
    MAX_FILE_SIZE,
    ErrorKind,
    PoolState,
    normalize_level,
)
from reviewer.pipeline.producer import JobProducer
from reviewer.pipeline.queues import (
    CANCELLED,
    CLOSED,
    drain,
    get_or_cancel,
    put_or_cancel,
)
from reviewer.pipeline.schemas import Job, Outcome, Review
from reviewer.resilience.errors import (
    ConfigurationError,
    classify_error,
    describe_error,
    is_retryable,
)

if TYPE_CHECKING:
    from reviewer.analysis.protocols import AnalysisService
    from reviewer.config import PipelineConfig

logger = logging.getLogger(__name__)


class ReviewRun:
    """Handle on one running pipeline: iterate it to receive outcomes.

    Iteration ends when the results queue is closed. ``cancel()``
    stops the producer from opening new files and the workers from
    taking new jobs; jobs already in flight finish and their outcomes
    are still delivered.
    """

    def __init__(
        self,
        results: queue.Queue[Any],
        cancel_event: threading.Event,
        total: int,
    ) -> None:
        self._results = results
        self._cancel = cancel_event
        self._closed = threading.Event()
        self._exhausted = False
        self.total = total
        self.state = PoolState.RUNNING
        self.started_at = time.monotonic()
        self.finished_at: float | None = None

    def __iter__(self) -> Iterator[Outcome]:
        while not self._exhausted:
            item = drain(self._results)
            if item is CLOSED:
                self._exhausted = True
                return
            yield item

    def cancel(self) -> None:
        if not self._cancel.is_set():
            logger.info("event=run_cancel_requested")
        self._cancel.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    @property
    def duration(self) -> float:
        end = self.finished_at or time.monotonic()
        return end - self.started_at

    def wait_closed(self, timeout: float | None = None) -> bool:
        """Wait until every thread has exited and closure was enqueued."""
        return self._closed.wait(timeout)

    def _mark_closed(self) -> None:
        self.finished_at = time.monotonic()
        self.state = PoolState.CLOSED
        self._closed.set()


class WorkerPool:
    """Fixed number of worker threads sharing one analysis service.

    ``concurrency <= 0`` falls back to the default worker count and a
    level outside 1..6 to the default level. A missing service is the
    only construction error.
    """

    def __init__(
        self,
        service: AnalysisService | None,
        concurrency: int = DEFAULT_CONCURRENCY,
        level: int = DEFAULT_LEVEL,
        *,
        max_file_size: int = MAX_FILE_SIZE,
        cancel_grace_seconds: float = CANCEL_GRACE_SECONDS,
    ) -> None:
        if service is None:
            raise ConfigurationError("An analysis service is required")
        self._service = service
        self.concurrency = concurrency if concurrency > 0 else DEFAULT_CONCURRENCY
        self.level = normalize_level(level)
        self._max_file_size = max_file_size
        self._grace = cancel_grace_seconds

    @classmethod
    def from_config(
        cls, service: AnalysisService | None, config: PipelineConfig
    ) -> WorkerPool:
        return cls(
            service,
            config.concurrency,
            config.strictness_level,
            max_file_size=config.max_file_size,
            cancel_grace_seconds=config.cancel_grace_seconds,
        )

    def start(
        self,
        files: Sequence[Path],
        cancel_event: threading.Event | None = None,
    ) -> ReviewRun:
        """Launch producer, workers and closer; return immediately."""
        cancel = cancel_event or threading.Event()
        jobs: queue.Queue[Any] = queue.Queue(maxsize=self.concurrency)
        results: queue.Queue[Any] = queue.Queue(
            maxsize=self.concurrency * 2
        )
        run = ReviewRun(results, cancel, total=len(files))

        logger.info(
            "event=run_start files=%d concurrency=%d level=%d",
            len(files),
            self.concurrency,
            self.level,
        )

        producer = JobProducer(self._max_file_size, self._grace)

        def _produce() -> None:
            producer.run(files, jobs, results, cancel)
            run.state = PoolState.DRAINING

        producer_thread = threading.Thread(
            target=_produce, name="review-producer", daemon=True
        )
        workers = [
            threading.Thread(
                target=self._worker,
                args=(jobs, results, cancel),
                name=f"review-worker-{i}",
                daemon=True,
            )
            for i in range(self.concurrency)
        ]

        def _close() -> None:
            producer_thread.join()
            for w in workers:
                w.join()
            # Plain put: the consumer contract is to drain until closure
            results.put(CLOSED)
            run._mark_closed()
            logger.info(
                "event=run_closed duration_s=%.2f cancelled=%s",
                run.duration,
                cancel.is_set(),
            )

        closer = threading.Thread(
            target=_close, name="review-closer", daemon=True
        )

        producer_thread.start()
        for w in workers:
            w.start()
        closer.start()
        return run

    def _worker(
        self,
        jobs: queue.Queue[Any],
        results: queue.Queue[Any],
        cancel: threading.Event,
    ) -> None:
        while True:
            item = get_or_cancel(jobs, cancel)
            if item is CANCELLED:
                return
            if item is CLOSED:
                # Pass the marker on so sibling workers exit too
                put_or_cancel(jobs, CLOSED, cancel)
                return

            outcome = self._review(item)
            if not put_or_cancel(results, outcome, cancel, grace=self._grace):
                logger.warning(
                    "event=outcome_dropped path=%s reason=cancelled",
                    item.path,
                )
                return

    def _review(self, job: Job) -> Outcome:
        """One analysis call; every failure becomes a FAILED outcome."""
        start = time.monotonic()
        try:
            review = self._service.review(
                str(job.path), job.content, self.level
            )
            if not isinstance(review, Review):
                raise TypeError(
                    f"review() returned {type(review).__name__}, "
                    "expected Review"
                )
        except Exception as exc:
            logger.warning(
                "event=review_failed path=%s error_class=%s retryable=%s error=%s",
                job.path,
                classify_error(exc).value,
                is_retryable(exc),
                type(exc).__name__,
            )
            return Outcome.failed(
                job.path,
                job.size,
                ErrorKind.ANALYSIS_ERROR,
                detail=describe_error(exc),
            )

        logger.debug(
            "event=review_done path=%s score=%d duration_ms=%.0f",
            job.path,
            review.score,
            (time.monotonic() - start) * 1000,
        )
        return Outcome.reviewed(job.path, job.size, review)
