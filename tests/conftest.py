"""Shared test fixtures — temporary source trees and a fake reviewer."""

import os

# Force a demo API key for all tests; no real LLM calls.
# Set unconditionally at import time so a real key in the shell
# environment never reaches a Settings() created by a test.
os.environ["OPENAI_API_KEY"] = "for-demo-purposes-only"

from collections.abc import Callable
from pathlib import Path

import pytest

from reviewer.analysis.fakes import FakeAnalysisService

type TreeBuilder = Callable[[dict[str, str | bytes]], Path]


def write_tree(root: Path, files: dict[str, str | bytes]) -> Path:
    """Create *files* (relative path → content) under *root*."""
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def make_tree(tmp_path: Path) -> TreeBuilder:
    """Build a source tree under a fresh ``project`` directory."""
    root = tmp_path / "project"
    root.mkdir()

    def _build(files: dict[str, str | bytes]) -> Path:
        return write_tree(root, files)

    return _build


@pytest.fixture
def fake_service() -> FakeAnalysisService:
    return FakeAnalysisService()
