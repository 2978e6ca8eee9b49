"""Markdown review report."""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from reviewer.constants import (
    MAX_FILE_SIZE,
    SCORE_THRESHOLD_GOOD,
    SCORE_THRESHOLD_WARN,
    OutcomeStatus,
    SkipReason,
    StrictnessLevel,
    normalize_level,
)
from reviewer.pipeline.schemas import Outcome, Review

_SKIP_LABELS: dict[SkipReason, str] = {
    SkipReason.TOO_LARGE: "File too large",
}


@dataclass(frozen=True)
class ReportStats:
    """Aggregate numbers shown in the report header."""

    final_score: float
    total_files: int
    reviewed_files: int
    skipped_files: int
    failed_files: int
    total_importance: float


def calculate_stats(outcomes: list[Outcome]) -> ReportStats:
    """Importance-weighted mean score over reviewed files."""
    weighted = 0.0
    importance = 0.0
    reviewed = skipped = failed = 0
    for o in outcomes:
        if o.status == OutcomeStatus.SKIPPED:
            skipped += 1
        elif o.status == OutcomeStatus.FAILED:
            failed += 1
        elif o.review is not None:
            reviewed += 1
            weighted += o.review.score * o.review.importance
            importance += o.review.importance
    return ReportStats(
        final_score=weighted / importance if importance > 0 else 0.0,
        total_files=len(outcomes),
        reviewed_files=reviewed,
        skipped_files=skipped,
        failed_files=failed,
        total_importance=importance,
    )


def score_emoji(score: int) -> str:
    if score >= SCORE_THRESHOLD_GOOD:
        return "🟢"
    if score >= SCORE_THRESHOLD_WARN:
        return "🟡"
    return "🔴"


def relative_link(file_path: Path, output_dir: Path) -> str:
    """Link to *file_path* from a document stored in *output_dir*."""
    try:
        rel = os.path.relpath(file_path.resolve(), output_dir.resolve())
    except ValueError:
        # Different drives on Windows
        rel = os.path.join("..", str(file_path))
    return Path(rel).as_posix()


def sort_for_report(outcomes: list[Outcome]) -> list[Outcome]:
    """Reviewed files by importance (descending), failures last."""

    def key(o: Outcome) -> tuple[int, float, str]:
        if o.review is None:
            return (1, 0.0, str(o.file_path))
        return (0, -o.review.importance, str(o.file_path))

    return sorted(outcomes, key=key)


def export_markdown(
    outcomes: list[Outcome],
    title: str,
    level: int,
    duration_s: float,
    output_dir: Path,
    generated_at: datetime | None = None,
    max_file_size: int = MAX_FILE_SIZE,
) -> str:
    """Render the full review report as one Markdown document."""
    stats = calculate_stats(outcomes)
    strictness = StrictnessLevel(normalize_level(level))
    when = generated_at or datetime.now()
    parts: list[str] = []

    parts.append(f"# Code Review Report: {title}\n")
    parts.append("## 📊 Project Overview\n")
    parts.append(
        f"### 🏆 Overall score: **{stats.final_score:.1f} / 100**\n"
    )
    parts.append("| Metric | Value |")
    parts.append("|:---|:---|")
    parts.append(
        f"| Review level | {int(strictness)}/6 ({strictness.label}) |"
    )
    parts.append(f"| Generated | {when:%Y-%m-%d %H:%M:%S} |")
    parts.append(f"| Duration | {duration_s:.3f}s |")
    parts.append(
        f"| Files | {stats.total_files} (reviewed: "
        f"{stats.reviewed_files}, skipped: {stats.skipped_files}, "
        f"failed: {stats.failed_files}) |\n"
    )
    parts.append("---\n")

    skipped = [o for o in outcomes if o.status == OutcomeStatus.SKIPPED]
    if skipped:
        parts.append(_skipped_section(skipped, output_dir, max_file_size))

    for o in sort_for_report(outcomes):
        if o.status == OutcomeStatus.SKIPPED:
            continue
        if o.status == OutcomeStatus.FAILED:
            parts.append(f"## ⚠️ {o.file_path}\n")
            parts.append(f"**Analysis failed:** {o.detail}\n\n---\n")
            continue
        if o.review is not None:
            parts.append(_file_section(o, o.review, output_dir))

    return "\n".join(parts)


def _skipped_section(
    skipped: list[Outcome], output_dir: Path, max_file_size: int
) -> str:
    lines = [
        f"## ⏭️ Skipped files ({len(skipped)})\n",
        f"> These files exceed the size limit "
        f"({max_file_size // 1024} KB) and should be reviewed by hand.\n",
        "| File | Size | Reason |",
        "|:---|:---|:---|",
    ]
    for o in sorted(skipped, key=lambda x: str(x.file_path)):
        size_kb = (o.file_size or 0) / 1024
        reason = _SKIP_LABELS[o.skip_reason] if o.skip_reason else ""
        lines.append(
            f"| [{o.file_path}]({relative_link(o.file_path, output_dir)}) "
            f"| {size_kb:.1f} KB | {reason} |"
        )
    lines.append("\n---\n")
    return "\n".join(lines)


def _file_section(o: Outcome, review: Review, output_dir: Path) -> str:
    lines = [
        f"## {score_emoji(review.score)} "
        f"[{o.file_path}]({relative_link(o.file_path, output_dir)}) "
        f"(score: {review.score} | importance: {review.importance:.1f})\n",
        f"**Summary:** {review.summary}\n",
    ]
    if review.strengths:
        lines.append("### ✅ Strengths")
        lines.extend(f"- {s}" for s in review.strengths)
        lines.append("")
    if review.issues:
        lines.append("### 🐛 Issues")
        lines.extend(f"- {i}" for i in review.issues)
        lines.append("")
    if review.suggestion:
        lines.append("### 💡 Suggestion")
        lines.append(f"{review.suggestion}\n")
    lines.append("---\n")
    return "\n".join(lines)
