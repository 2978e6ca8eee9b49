"""Drain a run's results stream to closure."""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from reviewer.constants import OutcomeStatus
from reviewer.pipeline.schemas import Outcome

type OutcomeCallback = Callable[[Outcome], None]


def collect_outcomes(
    run: Iterable[Outcome],
    on_outcome: OutcomeCallback | None = None,
) -> list[Outcome]:
    """Consume every outcome until the stream closes.

    The callback runs on the consuming thread, once per outcome, in
    arrival order (which is not discovery order).
    """
    outcomes: list[Outcome] = []
    for outcome in run:
        outcomes.append(outcome)
        if on_outcome is not None:
            on_outcome(outcome)
    return outcomes


@dataclass(frozen=True)
class RunSummary:
    """Counts over a finished run."""

    total: int
    reviewed: int
    skipped: int
    failed: int
    issues: int


def summarize(outcomes: Iterable[Outcome]) -> RunSummary:
    counts: Counter[OutcomeStatus] = Counter()
    issues = 0
    for o in outcomes:
        counts[o.status] += 1
        if o.review is not None:
            issues += len(o.review.issues)
    return RunSummary(
        total=sum(counts.values()),
        reviewed=counts[OutcomeStatus.REVIEWED],
        skipped=counts[OutcomeStatus.SKIPPED],
        failed=counts[OutcomeStatus.FAILED],
        issues=issues,
    )
