"""Protocol for the code analysis collaborator.

Any object with a matching ``review`` method satisfies it; the
pipeline never imports a concrete implementation.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from reviewer.pipeline.schemas import Review


@runtime_checkable
class AnalysisService(Protocol):
    """Produces a structured review for one file.

    Called from several worker threads at once, so implementations
    must be safe for concurrent use. Failures are raised; the caller
    records them per file and never retries.
    """

    def review(self, path: str, content: str, level: int) -> Review: ...
