"""Environment-based configuration and the immutable per-run config."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from pathlib import Path
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic_settings import BaseSettings, NoDecode

from reviewer.constants import (
    CANCEL_GRACE_SECONDS,
    DEFAULT_BASE_URL,
    DEFAULT_CONCURRENCY,
    DEFAULT_EXCLUDE_DIRS,
    DEFAULT_INCLUDE_EXTS,
    DEFAULT_LEVEL,
    DEFAULT_MODEL,
    MAX_FILE_SIZE,
    USER_CONFIG_FILENAME,
    normalize_level,
)

logger = logging.getLogger(__name__)

USER_CONFIG_PATH = Path.home() / USER_CONFIG_FILENAME


def _split_csv(v: Any) -> Any:
    if isinstance(v, str):
        return [s.strip() for s in v.split(",") if s.strip()]
    return v


def normalize_extensions(exts: Iterable[str]) -> frozenset[str]:
    """Lower-case extensions and make sure each starts with a dot."""
    out: set[str] = set()
    for ext in exts:
        ext = ext.strip().lower()
        if not ext:
            continue
        out.add(ext if ext.startswith(".") else "." + ext)
    return frozenset(out)


class Settings(BaseSettings):
    """Reads from environment variables, ./.env and ~/.code-review.env."""

    # LLM Provider
    openai_api_key: str = ""
    llm_base_url: str = DEFAULT_BASE_URL

    # Model chain (first = primary, rest = fallbacks tried in order)
    litellm_model_chain: Annotated[list[str], NoDecode] = [DEFAULT_MODEL]
    llm_timeout_seconds: int = 60

    # Review
    concurrency: int = DEFAULT_CONCURRENCY
    level: int = DEFAULT_LEVEL
    include_exts: Annotated[list[str], NoDecode] = list(
        DEFAULT_INCLUDE_EXTS
    )
    skip_directories: Annotated[list[str], NoDecode] = sorted(
        DEFAULT_EXCLUDE_DIRS
    )
    max_file_size_bytes: int = MAX_FILE_SIZE
    review_timeout_seconds: float = 0  # 0 = no deadline
    cancel_grace_seconds: float = CANCEL_GRACE_SECONDS

    # Output
    report_dir: Path = Path("reports")

    # Logging
    log_level: str = "WARNING"

    @field_validator(
        "litellm_model_chain",
        "include_exts",
        "skip_directories",
        mode="before",
    )
    @classmethod
    def _parse_csv(cls, v: Any) -> Any:
        """Accept comma-separated string or JSON array."""
        return _split_csv(v)

    @field_validator("litellm_model_chain")
    @classmethod
    def _validate_chain(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError(
                "litellm_model_chain must contain at least one model"
            )
        seen: set[str] = set()
        dupes: list[str] = []
        for m in v:
            if m in seen:
                dupes.append(m)
            seen.add(m)
        if dupes:
            logger.warning(
                "Duplicate models in LITELLM_MODEL_CHAIN: %s",
                ", ".join(dupes),
            )
        return v

    def pipeline_config(
        self,
        root: Path | str,
        *,
        level: int | None = None,
        include_exts: Iterable[str] | None = None,
        concurrency: int | None = None,
    ) -> PipelineConfig:
        """Freeze these settings (plus per-run overrides) for one run."""
        return PipelineConfig(
            root_path=Path(root),
            extension_whitelist=normalize_extensions(
                self.include_exts if include_exts is None else include_exts
            ),
            concurrency=(
                self.concurrency if concurrency is None else concurrency
            ),
            strictness_level=self.level if level is None else level,
            max_file_size=self.max_file_size_bytes,
            exclude_dirs=frozenset(self.skip_directories),
            cancel_grace_seconds=self.cancel_grace_seconds,
        )

    model_config = {
        "env_file": (str(USER_CONFIG_PATH), ".env"),
        "env_file_encoding": "utf-8",
        "env_prefix": "",
        "extra": "ignore",
    }


class PipelineConfig(BaseModel):
    """Immutable configuration handed to every pipeline component.

    Out-of-range values are replaced rather than rejected:
    ``concurrency <= 0`` becomes the default worker count and a
    strictness level outside 1..6 becomes the default level.
    """

    model_config = ConfigDict(frozen=True)

    root_path: Path
    extension_whitelist: frozenset[str] = frozenset()
    concurrency: int = DEFAULT_CONCURRENCY
    strictness_level: int = DEFAULT_LEVEL
    max_file_size: int = MAX_FILE_SIZE
    exclude_dirs: frozenset[str] = DEFAULT_EXCLUDE_DIRS
    cancel_grace_seconds: float = CANCEL_GRACE_SECONDS

    @field_validator("extension_whitelist", mode="before")
    @classmethod
    def _normalize_exts(cls, v: Any) -> Any:
        v = _split_csv(v)
        if isinstance(v, Iterable):
            return normalize_extensions(v)
        return v

    @field_validator("concurrency")
    @classmethod
    def _default_concurrency(cls, v: int) -> int:
        return v if v > 0 else DEFAULT_CONCURRENCY

    @field_validator("strictness_level")
    @classmethod
    def _clamp_level(cls, v: int) -> int:
        level = normalize_level(v)
        if level != v:
            logger.warning(
                "event=invalid_level level=%d default=%d", v, level
            )
        return level


def save_user_config(
    base_url: str,
    api_key: str,
    path: Path | None = None,
) -> Path:
    """Write first-run credentials to the user config file (mode 0600)."""
    target = path or USER_CONFIG_PATH
    lines = [
        "# codereviewer user configuration",
        "# Generated on first run; edit freely.",
        "",
        f"LLM_BASE_URL={base_url}",
        f"OPENAI_API_KEY={api_key}",
        f"LITELLM_MODEL_CHAIN={DEFAULT_MODEL}",
        f"CONCURRENCY={DEFAULT_CONCURRENCY}",
        f"LEVEL={DEFAULT_LEVEL}",
        f"INCLUDE_EXTS={','.join(DEFAULT_INCLUDE_EXTS)}",
        "",
    ]
    target.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(target, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write("\n".join(lines))
    return target
