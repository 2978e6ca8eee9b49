"""Data flowing through the review pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, field_validator

from reviewer.constants import ErrorKind, OutcomeStatus, SkipReason


class Review(BaseModel):
    """Structured review returned by an analysis service."""

    score: int = Field(ge=0, le=100)
    importance: float = Field(default=0.5, ge=0.0, le=1.0)
    summary: str = ""
    strengths: list[str] = Field(
        default_factory=lambda: list[str](),
        validation_alias=AliasChoices("strengths", "pros"),
    )
    issues: list[str] = Field(default_factory=lambda: list[str]())
    suggestion: str = ""

    model_config = {"populate_by_name": True, "frozen": True}

    @field_validator("score", mode="before")
    @classmethod
    def _round_score(cls, v: Any) -> Any:
        # Models occasionally answer 87.5
        if isinstance(v, float):
            return round(v)
        return v


@dataclass(frozen=True)
class Job:
    """A file's content, read under the size cap, for one worker."""

    path: Path
    content: str
    size: int


@dataclass(frozen=True)
class Outcome:
    """Terminal record for one file. Exactly one per candidate path.

    ``status`` is the variant tag; ``review`` is set only for
    REVIEWED, ``skip_reason`` only for SKIPPED and ``error_kind``
    only for FAILED.
    """

    file_path: Path
    status: OutcomeStatus
    file_size: int | None = None
    review: Review | None = None
    skip_reason: SkipReason | None = None
    error_kind: ErrorKind | None = None
    detail: str = ""

    def __post_init__(self) -> None:
        if not self.file_path.parts:
            raise ValueError("Outcome requires a non-empty file_path")
        expected = {
            OutcomeStatus.REVIEWED: self.review is not None,
            OutcomeStatus.SKIPPED: self.skip_reason is not None,
            OutcomeStatus.FAILED: self.error_kind is not None,
        }
        if not expected[self.status]:
            raise ValueError(
                f"{self.status} outcome is missing its payload"
            )

    @classmethod
    def reviewed(
        cls, path: Path, size: int | None, review: Review
    ) -> Outcome:
        return cls(
            file_path=path,
            status=OutcomeStatus.REVIEWED,
            file_size=size,
            review=review,
        )

    @classmethod
    def skipped(
        cls,
        path: Path,
        size: int | None,
        reason: SkipReason,
        detail: str = "",
    ) -> Outcome:
        return cls(
            file_path=path,
            status=OutcomeStatus.SKIPPED,
            file_size=size,
            skip_reason=reason,
            detail=detail,
        )

    @classmethod
    def failed(
        cls,
        path: Path,
        size: int | None,
        kind: ErrorKind,
        detail: str = "",
    ) -> Outcome:
        return cls(
            file_path=path,
            status=OutcomeStatus.FAILED,
            file_size=size,
            error_kind=kind,
            detail=detail,
        )

    @property
    def ok(self) -> bool:
        return self.status == OutcomeStatus.REVIEWED
