"""Report export — Markdown and JSON documents written to disk."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

from reviewer.constants import (
    MAX_FILE_SIZE,
    REPORT_TIMESTAMP_FORMAT,
    ExportFormat,
)
from reviewer.export.json_export import export_json
from reviewer.export.markdown import export_markdown
from reviewer.pipeline.schemas import Outcome

__all__ = [
    "export_json",
    "export_markdown",
    "sanitize_report_name",
    "write_report",
]

logger = logging.getLogger(__name__)

_SUFFIXES: dict[ExportFormat, str] = {
    ExportFormat.MARKDOWN: ".md",
    ExportFormat.JSON: ".json",
}


def sanitize_report_name(
    name: str,
    fmt: ExportFormat = ExportFormat.MARKDOWN,
    now: datetime | None = None,
) -> str:
    """Reduce *name* to a safe file name inside the report directory.

    Path components and any ``..`` sequence are removed; an empty
    result falls back to a timestamped default.
    """
    suffix = _SUFFIXES[fmt]
    stamp = (now or datetime.now()).strftime(REPORT_TIMESTAMP_FORMAT)
    default = f"review_report_{stamp}{suffix}"
    name = name.replace("\\", "/").rsplit("/", 1)[-1]
    # Loop so "...." style inputs can't reassemble a ".."
    while ".." in name:
        name = name.replace("..", "")
    name = name.strip()
    if not name or name.lower() == suffix:
        return default
    if not name.lower().endswith(suffix):
        name += suffix
    return name


def write_report(
    outcomes: list[Outcome],
    output_dir: Path,
    name: str,
    level: int,
    duration_s: float,
    fmt: ExportFormat = ExportFormat.MARKDOWN,
    max_file_size: int = MAX_FILE_SIZE,
) -> Path:
    """Render and write the report; returns the written path."""
    output_dir.mkdir(parents=True, exist_ok=True)
    file_name = sanitize_report_name(name, fmt)
    report_path = output_dir / file_name
    title = file_name.rsplit(".", 1)[0]

    if fmt == ExportFormat.JSON:
        content = export_json(outcomes, title, level, duration_s)
    else:
        content = export_markdown(
            outcomes,
            title,
            level,
            duration_s,
            output_dir,
            max_file_size=max_file_size,
        )
    report_path.write_text(content, encoding="utf-8")
    logger.info(
        "event=report_written path=%s files=%d", report_path, len(outcomes)
    )
    return report_path
