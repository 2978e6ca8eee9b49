"""JSON export — structured envelope."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any

from reviewer.constants import StrictnessLevel, normalize_level
from reviewer.export.markdown import calculate_stats, sort_for_report
from reviewer.pipeline.schemas import Outcome


def export_json(
    outcomes: list[Outcome],
    title: str,
    level: int,
    duration_s: float,
) -> str:
    """Export outcomes and summary statistics as JSON."""
    stats = calculate_stats(outcomes)
    strictness = StrictnessLevel(normalize_level(level))
    payload: dict[str, Any] = {
        "title": title,
        "generated_at": datetime.now(UTC).isoformat(),
        "level": int(strictness),
        "level_name": strictness.label,
        "duration_seconds": round(duration_s, 3),
        "final_score": round(stats.final_score, 1),
        "total_files": stats.total_files,
        "reviewed_files": stats.reviewed_files,
        "skipped_files": stats.skipped_files,
        "failed_files": stats.failed_files,
        "files": [_outcome_to_dict(o) for o in sort_for_report(outcomes)],
    }
    return json.dumps(payload, indent=2, ensure_ascii=False)


def _outcome_to_dict(outcome: Outcome) -> dict[str, Any]:
    """Convert an Outcome to a JSON-serializable dict."""
    data: dict[str, Any] = {
        "file_path": outcome.file_path.as_posix(),
        "file_size": outcome.file_size,
        "status": outcome.status.value,
    }
    if outcome.review is not None:
        data["review"] = outcome.review.model_dump()
    if outcome.skip_reason is not None:
        data["skip_reason"] = outcome.skip_reason.value
    if outcome.error_kind is not None:
        data["error_kind"] = outcome.error_kind.value
    if outcome.detail:
        data["detail"] = outcome.detail
    return data
