"""Tests for report statistics, naming and Markdown/JSON rendering."""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

import pytest

from reviewer.constants import ErrorKind, ExportFormat, SkipReason
from reviewer.export import sanitize_report_name, write_report
from reviewer.export.json_export import export_json
from reviewer.export.markdown import (
    calculate_stats,
    export_markdown,
    relative_link,
    score_emoji,
    sort_for_report,
)
from reviewer.pipeline.schemas import Outcome, Review


@pytest.fixture
def outcomes(tmp_path: Path) -> list[Outcome]:
    src = tmp_path / "project"
    return [
        Outcome.reviewed(
            src / "core.py",
            120,
            Review(
                score=90,
                importance=1.0,
                summary="Entry point",
                strengths=["small"],
                issues=[],
                suggestion="",
            ),
        ),
        Outcome.reviewed(
            src / "util.py",
            80,
            Review(
                score=60,
                importance=0.5,
                summary="Helpers",
                strengths=[],
                issues=["unused import"],
                suggestion="Remove dead code",
            ),
        ),
        Outcome.skipped(
            src / "huge.py",
            40 * 1024,
            SkipReason.TOO_LARGE,
            "File too large (40.0 KB > 32 KB), skipped",
        ),
        Outcome.failed(
            src / "broken.py",
            10,
            ErrorKind.ANALYSIS_ERROR,
            "[transient] ConnectionError: backend down",
        ),
    ]


class TestStats:
    def test_weighted_score(self, outcomes: list[Outcome]) -> None:
        stats = calculate_stats(outcomes)
        # (90*1.0 + 60*0.5) / 1.5
        assert stats.final_score == pytest.approx(80.0)
        assert stats.total_files == 4
        assert stats.reviewed_files == 2
        assert stats.skipped_files == 1
        assert stats.failed_files == 1

    def test_no_reviews_scores_zero(self) -> None:
        assert calculate_stats([]).final_score == 0.0

    @pytest.mark.parametrize(
        ("score", "emoji"),
        [(100, "🟢"), (80, "🟢"), (79, "🟡"), (60, "🟡"), (59, "🔴")],
    )
    def test_score_emoji_thresholds(self, score: int, emoji: str) -> None:
        assert score_emoji(score) == emoji

    def test_sort_puts_important_first_and_failures_last(
        self, outcomes: list[Outcome]
    ) -> None:
        names = [o.file_path.name for o in sort_for_report(outcomes)]
        assert names[:2] == ["core.py", "util.py"]
        assert set(names[2:]) == {"huge.py", "broken.py"}


class TestSanitizeReportName:
    def test_appends_suffix(self) -> None:
        assert sanitize_report_name("myproj") == "myproj.md"
        assert sanitize_report_name("myproj", ExportFormat.JSON) == "myproj.json"

    def test_keeps_existing_suffix(self) -> None:
        assert sanitize_report_name("report.md") == "report.md"

    def test_strips_directories(self) -> None:
        assert sanitize_report_name("../../etc/passwd") == "passwd.md"
        assert sanitize_report_name("a\\b\\c") == "c.md"

    def test_removes_dot_dot_sequences(self) -> None:
        assert ".." not in sanitize_report_name("....x")

    def test_empty_falls_back_to_timestamp(self) -> None:
        now = datetime(2024, 5, 6, 7, 8, 9)
        assert (
            sanitize_report_name("", now=now)
            == "review_report_20240506-070809.md"
        )
        assert (
            sanitize_report_name("..", now=now)
            == "review_report_20240506-070809.md"
        )


class TestMarkdown:
    def test_report_sections(
        self, outcomes: list[Outcome], tmp_path: Path
    ) -> None:
        md = export_markdown(
            outcomes,
            "project",
            4,
            12.5,
            tmp_path / "reports",
            generated_at=datetime(2024, 1, 2, 3, 4, 5),
        )
        assert md.startswith("# Code Review Report: project")
        assert "**80.0 / 100**" in md
        assert "4/6 (Strict)" in md
        assert "2024-01-02 03:04:05" in md
        assert "## ⏭️ Skipped files (1)" in md
        assert "40.0 KB" in md
        assert "**Analysis failed:** [transient] ConnectionError" in md
        assert "### 🐛 Issues\n- unused import" in md
        assert "### 💡 Suggestion\nRemove dead code" in md

    def test_reviewed_files_ordered_by_importance(
        self, outcomes: list[Outcome], tmp_path: Path
    ) -> None:
        md = export_markdown(outcomes, "p", 3, 1.0, tmp_path)
        assert md.index("core.py") < md.index("util.py") < md.index(
            "## ⚠️"
        )

    def test_links_are_relative_to_report_dir(self, tmp_path: Path) -> None:
        target = tmp_path / "project" / "src" / "a.py"
        link = relative_link(target, tmp_path / "reports")
        assert link == "../project/src/a.py"


class TestJson:
    def test_envelope(self, outcomes: list[Outcome]) -> None:
        data = json.loads(export_json(outcomes, "project", 2, 3.0))
        assert data["title"] == "project"
        assert data["level"] == 2
        assert data["level_name"] == "Basic"
        assert data["final_score"] == 80.0
        assert len(data["files"]) == 4
        by_status = {f["status"] for f in data["files"]}
        assert by_status == {"reviewed", "skipped", "failed"}

    def test_outcome_fields(self, outcomes: list[Outcome]) -> None:
        files = json.loads(export_json(outcomes, "p", 3, 0.0))["files"]
        skipped = next(f for f in files if f["status"] == "skipped")
        assert skipped["skip_reason"] == "file_too_large"
        assert "review" not in skipped
        failed = next(f for f in files if f["status"] == "failed")
        assert failed["error_kind"] == "analysis_error"


class TestWriteReport:
    def test_writes_markdown(
        self, outcomes: list[Outcome], tmp_path: Path
    ) -> None:
        out = tmp_path / "reports"
        path = write_report(outcomes, out, "my/../proj", 3, 1.0)
        assert path.parent == out
        assert path.name == "proj.md"
        assert path.read_text(encoding="utf-8").startswith(
            "# Code Review Report: proj"
        )

    def test_writes_json(
        self, outcomes: list[Outcome], tmp_path: Path
    ) -> None:
        path = write_report(
            outcomes, tmp_path, "proj", 3, 1.0, ExportFormat.JSON
        )
        assert path.suffix == ".json"
        assert json.loads(path.read_text(encoding="utf-8"))["title"] == "proj"

    def test_empty_run_still_writes(self, tmp_path: Path) -> None:
        path = write_report([], tmp_path, "empty", 3, 0.0)
        assert "0 (reviewed: 0" in path.read_text(encoding="utf-8")
