"""Read candidate files under a size cap and feed the job queue."""

from __future__ import annotations

import logging
import os
import queue
import threading
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from reviewer.constants import (
    CANCEL_GRACE_SECONDS,
    MAX_FILE_SIZE,
    ErrorKind,
    SkipReason,
)
from reviewer.pipeline.queues import CLOSED, put_or_cancel
from reviewer.pipeline.schemas import Job, Outcome

logger = logging.getLogger(__name__)


def _too_large(path: Path, size: int, limit: int) -> Outcome:
    return Outcome.skipped(
        path,
        size,
        SkipReason.TOO_LARGE,
        detail=(
            f"File too large ({size / 1024:.1f} KB > "
            f"{limit // 1024} KB), skipped"
        ),
    )


def read_candidate(path: Path, max_size: int = MAX_FILE_SIZE) -> Job | Outcome:
    """Read *path* into a Job, or return its terminal Outcome.

    The stat size is checked first so oversized files are never read.
    The read itself is bounded to ``max_size + 1`` bytes and checked
    again, since the file may grow between stat and read.
    """
    size: int | None = None
    try:
        with open(path, "rb") as f:
            size = os.fstat(f.fileno()).st_size
            if size > max_size:
                return _too_large(path, size, max_size)
            data = f.read(max_size + 1)
    except OSError as exc:
        return Outcome.failed(
            path,
            size,
            ErrorKind.READ_ERROR,
            detail=f"Cannot read file: {exc.strerror or exc}",
        )

    if len(data) > max_size:
        return _too_large(path, len(data), max_size)

    return Job(
        path=path,
        content=data.decode("utf-8", errors="replace"),
        size=len(data),
    )


class JobProducer:
    """Turn candidate paths into jobs or early outcomes.

    Every path yields exactly one of the two. The job queue is
    closed when the producer finishes; under cancellation it stops
    opening files and leaves closure to the workers' own
    cancellation checks.
    """

    def __init__(
        self,
        max_file_size: int = MAX_FILE_SIZE,
        cancel_grace_seconds: float = CANCEL_GRACE_SECONDS,
    ) -> None:
        self._max_file_size = max_file_size
        self._grace = cancel_grace_seconds
        self.jobs_sent = 0
        self.outcomes_sent = 0

    def run(
        self,
        files: Sequence[Path],
        jobs: queue.Queue[Any],
        results: queue.Queue[Any],
        cancel: threading.Event,
    ) -> None:
        try:
            self._produce(files, jobs, results, cancel)
        finally:
            put_or_cancel(jobs, CLOSED, cancel)
            logger.info(
                "event=producer_done jobs=%d early_outcomes=%d cancelled=%s",
                self.jobs_sent,
                self.outcomes_sent,
                cancel.is_set(),
            )

    def _produce(
        self,
        files: Sequence[Path],
        jobs: queue.Queue[Any],
        results: queue.Queue[Any],
        cancel: threading.Event,
    ) -> None:
        for path in files:
            if cancel.is_set():
                return

            item = read_candidate(path, self._max_file_size)
            if isinstance(item, Outcome):
                logger.info(
                    "event=file_not_queued path=%s status=%s detail=%s",
                    path,
                    item.status,
                    item.detail,
                )
                if put_or_cancel(results, item, cancel, grace=self._grace):
                    self.outcomes_sent += 1
                else:
                    logger.warning(
                        "event=outcome_dropped path=%s reason=cancelled",
                        path,
                    )
                    return
                continue

            if not put_or_cancel(jobs, item, cancel):
                return
            self.jobs_sent += 1
