"""Shared constants — single source of truth for cross-module values.

StrEnum members are str-compatible, so report and JSON output work
unchanged when they are written out directly.
"""

from __future__ import annotations

from enum import IntEnum, StrEnum

# ── String Enums ─────────────────────────────────────────


class OutcomeStatus(StrEnum):
    """Terminal status tag of a per-file outcome."""

    REVIEWED = "reviewed"
    SKIPPED = "skipped"
    FAILED = "failed"


class SkipReason(StrEnum):
    """Why a file was recorded without being reviewed."""

    TOO_LARGE = "file_too_large"


class ErrorKind(StrEnum):
    """Per-file failure categories. Never fatal to the run."""

    READ_ERROR = "read_error"
    ANALYSIS_ERROR = "analysis_error"


class PoolState(StrEnum):
    """Lifecycle of a worker pool run."""

    RUNNING = "running"
    DRAINING = "draining"
    CLOSED = "closed"


class ExportFormat(StrEnum):
    """Supported report formats."""

    MARKDOWN = "markdown"
    JSON = "json"


# ── Strictness ───────────────────────────────────────────


class StrictnessLevel(IntEnum):
    """Review strictness, 1 = lenient through 6 = exacting."""

    LENIENT = 1
    BASIC = 2
    STANDARD = 3
    STRICT = 4
    PROFESSIONAL = 5
    EXACTING = 6

    @property
    def label(self) -> str:
        """Short display name used in reports."""
        match self:
            case StrictnessLevel.LENIENT:
                return "Lenient"
            case StrictnessLevel.BASIC:
                return "Basic"
            case StrictnessLevel.STANDARD:
                return "Standard"
            case StrictnessLevel.STRICT:
                return "Strict"
            case StrictnessLevel.PROFESSIONAL:
                return "Professional"
            case StrictnessLevel.EXACTING:
                return "Exacting"

    @property
    def description(self) -> str:
        """Reviewer guidance injected into the system prompt."""
        match self:
            case StrictnessLevel.LENIENT:
                return (
                    "Lenient mode: only report serious logic errors and "
                    "security vulnerabilities. Ignore style and best "
                    "practices. Score generously; deduct only for "
                    "serious problems."
                )
            case StrictnessLevel.BASIC:
                return (
                    "Basic mode: report obvious bugs and likely risks. "
                    "Expect a reasonable code structure. Deduct "
                    "moderately for obvious problems."
                )
            case StrictnessLevel.STANDARD:
                return (
                    "Standard mode: review by ordinary code review "
                    "standards. Cover bugs, risks, readability and "
                    "basic best practices. Score on a normal scale."
                )
            case StrictnessLevel.STRICT:
                return (
                    "Strict mode: hold the code to a high bar. Beyond "
                    "bugs and risks, cover performance, maintainability "
                    "and conventions. Point out small problems too."
                )
            case StrictnessLevel.PROFESSIONAL:
                return (
                    "Professional mode: review as production code. "
                    "Cover every potential problem including edge "
                    "cases, error handling and logging. Score very "
                    "strictly."
                )
            case StrictnessLevel.EXACTING:
                return (
                    "Exacting mode: review against the standards of top "
                    "open-source projects. Flag every imperfection in "
                    "naming, comments and architecture. A score above "
                    "90 means near-perfect code."
                )


MIN_LEVEL = int(StrictnessLevel.LENIENT)
MAX_LEVEL = int(StrictnessLevel.EXACTING)
DEFAULT_LEVEL = int(StrictnessLevel.STANDARD)

# ── Pipeline Limits ──────────────────────────────────────

MAX_FILE_SIZE = 32 * 1024
DEFAULT_CONCURRENCY = 5
BINARY_DETECTION_BUFFER = 512
QUEUE_POLL_INTERVAL = 0.05
CANCEL_GRACE_SECONDS = 5.0

# Directory and file names pruned by exact base-name equality
DEFAULT_EXCLUDE_DIRS: frozenset[str] = frozenset({
    ".git",
    "node_modules",
    "dist",
    "vendor",
    ".idea",
    ".vscode",
    ".DS_Store",
    "__pycache__",
    ".cache",
    "build",
})

DEFAULT_INCLUDE_EXTS: tuple[str, ...] = (
    ".go", ".py", ".java", ".php", ".js", ".ts", ".vue", ".jsx",
    ".tsx", ".rs", ".rb", ".swift", ".kt", ".c", ".cpp", ".h",
    ".hpp", ".cs", ".lua", ".pl", ".sh", ".sql",
)

# ── Circuit Breaker Configuration ────────────────────────

CB_LLM_FAILURE_THRESHOLD = 5
CB_LLM_RECOVERY_TIMEOUT = 30

# ── Retry Strategy ───────────────────────────────────────

RETRY_MAX_ATTEMPTS = 3
RETRY_INITIAL_WAIT = 2
RETRY_MAX_WAIT = 30

# ── LLM Request ──────────────────────────────────────────

LLM_TEMPERATURE = 0.2
LLM_MAX_OUTPUT_TOKENS = 4096
DEFAULT_BASE_URL = "https://api.deepseek.com/v1"
DEFAULT_MODEL = "openai/deepseek-chat"

# ── Report ───────────────────────────────────────────────

SCORE_THRESHOLD_GOOD = 80
SCORE_THRESHOLD_WARN = 60
REPORT_TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"

# ── Misc ─────────────────────────────────────────────────

ERROR_TRUNCATION_CHARS = 200
USER_CONFIG_FILENAME = ".code-review.env"

# ── Token Estimation ────────────────────────────────────

CHARS_PER_TOKEN_ESTIMATE = 4


def estimate_tokens(text: str) -> int:
    """Rough token estimate using chars-per-token ratio."""
    return len(text) // CHARS_PER_TOKEN_ESTIMATE


def normalize_level(level: int) -> int:
    """Return *level* when it is a valid strictness, else the default."""
    if level < MIN_LEVEL or level > MAX_LEVEL:
        return DEFAULT_LEVEL
    return level
