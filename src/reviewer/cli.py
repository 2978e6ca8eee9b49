"""CLI entry point — ``reviewer run``."""

from __future__ import annotations

# Phase 1: singleton logging, before any transitive litellm import
from reviewer.logging_config import setup_logging

setup_logging()

import argparse  # noqa: E402
import getpass  # noqa: E402
import signal  # noqa: E402
import sys  # noqa: E402
import threading  # noqa: E402
from collections.abc import Sequence  # noqa: E402
from dataclasses import dataclass  # noqa: E402
from pathlib import Path  # noqa: E402
from types import FrameType  # noqa: E402

from reviewer import __version__  # noqa: E402
from reviewer.analysis import service as review_service  # noqa: E402
from reviewer.analysis.protocols import AnalysisService  # noqa: E402
from reviewer.config import Settings, save_user_config  # noqa: E402
from reviewer.constants import (  # noqa: E402
    DEFAULT_BASE_URL,
    MAX_LEVEL,
    MIN_LEVEL,
    ExportFormat,
    OutcomeStatus,
    normalize_level,
)
from reviewer.logging_config import (  # noqa: E402
    cleanup_third_party_handlers,
    set_level,
)
from reviewer.pipeline import (  # noqa: E402
    Discoverer,
    Outcome,
    WorkerPool,
    collect_outcomes,
    summarize,
)
from reviewer.resilience.errors import (  # noqa: E402
    ConfigurationError,
    ReviewerError,
)

# Phase 2: clear litellm's duplicate handlers after all imports
cleanup_third_party_handlers()

EXIT_INTERRUPTED = 130

_STATUS_MARKS = {
    OutcomeStatus.REVIEWED: "✓",
    OutcomeStatus.SKIPPED: "-",
    OutcomeStatus.FAILED: "✗",
}


@dataclass(frozen=True)
class ReviewTask:
    """One directory to review and the report it produces."""

    path: str
    report_name: str
    level: int


def main(argv: Sequence[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"reviewer {__version__}")
        return

    if args.command == "run":
        _run_review(args)
    else:
        parser.print_help()


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="reviewer",
        description=(
            "LLM code reviewer — scans a directory, reviews each "
            "source file and writes a Markdown report."
        ),
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version and exit",
    )

    sub = parser.add_subparsers(dest="command")

    run = sub.add_parser(
        "run",
        help="Review one or more directories",
        description=(
            "Batch mode: reviewer run ./path1 5 report1 ./path2 3 report2"
        ),
    )
    run.add_argument(
        "targets",
        nargs="*",
        help="path [level] [report-name] ... (default: .)",
    )
    run.add_argument(
        "--include",
        default=None,
        help="Comma-separated extensions to review (default: from settings)",
    )
    run.add_argument(
        "--concurrency",
        "-c",
        type=int,
        default=None,
        help="Number of concurrent workers (default: from settings)",
    )
    run.add_argument(
        "--level",
        "-l",
        type=int,
        default=None,
        help=f"Review strictness {MIN_LEVEL}-{MAX_LEVEL} (default: from settings)",
    )
    run.add_argument(
        "--report-name",
        "--rn",
        dest="report_name",
        default=None,
        help="Report file name (default: directory name)",
    )
    run.add_argument(
        "--output-dir",
        "-o",
        default=None,
        help="Report directory (default: reports)",
    )
    run.add_argument(
        "--format",
        "-f",
        choices=[f.value for f in ExportFormat],
        default=ExportFormat.MARKDOWN.value,
        help="Report format (default: markdown)",
    )
    run.add_argument(
        "--model",
        default=None,
        help="litellm model id, overrides the configured chain",
    )
    run.add_argument(
        "--base-url",
        default=None,
        help="API base URL",
    )
    run.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Cancel a review run after this many seconds",
    )
    run.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output",
    )

    return parser


# ── Task parsing ─────────────────────────────────────────


def resolve_directory_name(path: str) -> str:
    """Display name for a directory path ('.' resolves to its real name)."""
    name = Path(path).resolve().name
    return name or "project"


def _is_valid_level(value: int) -> bool:
    return MIN_LEVEL <= value <= MAX_LEVEL


def parse_tasks(
    targets: Sequence[str],
    default_level: int,
    report_name: str | None = None,
) -> list[ReviewTask]:
    """Turn positional arguments into review tasks.

    ``path [level] [name] path [level] [name] ...``: after a path,
    an integer in range is its level and anything else is its report
    name, until the next argument that is an existing directory.
    """
    level = normalize_level(default_level)
    if len(targets) <= 1:
        path = targets[0] if targets else "."
        return [
            ReviewTask(
                path=path,
                report_name=report_name or resolve_directory_name(path),
                level=level,
            )
        ]

    tasks: list[ReviewTask] = []
    i = 0
    while i < len(targets):
        path = targets[i]
        task_level = level
        name = ""
        i += 1
        while i < len(targets) and not Path(targets[i]).is_dir():
            arg = targets[i]
            if arg.isdigit() and _is_valid_level(int(arg)):
                task_level = int(arg)
            else:
                name = arg
            i += 1
        tasks.append(
            ReviewTask(
                path=path,
                report_name=name or resolve_directory_name(path),
                level=task_level,
            )
        )
    return tasks


# ── Cancellation ─────────────────────────────────────────


class _CancelScope:
    """Routes SIGINT/SIGTERM to the current run's cancellation event."""

    def __init__(self) -> None:
        self.interrupted = threading.Event()
        self._current: threading.Event | None = None

    def new_token(self) -> threading.Event:
        token = threading.Event()
        if self.interrupted.is_set():
            token.set()
        self._current = token
        return token

    def interrupt(self, signum: int, frame: FrameType | None) -> None:
        self.interrupted.set()
        if self._current is not None:
            self._current.set()


# ── Commands ─────────────────────────────────────────────


def _apply_overrides(
    settings: Settings, args: argparse.Namespace
) -> Settings:
    update: dict[str, object] = {}
    if args.model:
        update["litellm_model_chain"] = [args.model]
    if args.base_url:
        update["llm_base_url"] = args.base_url
    if args.output_dir:
        update["report_dir"] = Path(args.output_dir)
    if args.timeout is not None:
        update["review_timeout_seconds"] = args.timeout
    return settings.model_copy(update=update) if update else settings


def _first_run_setup(settings: Settings) -> Settings:
    """Prompt for API settings and persist them to the user config."""
    if not sys.stdin.isatty():
        raise ConfigurationError(
            "No API key configured (set OPENAI_API_KEY)"
        )
    print("🔧 First run: API settings are required")
    print("━" * 36)
    base_url = (
        input(f"📡 API Base URL [{DEFAULT_BASE_URL}]: ").strip()
        or DEFAULT_BASE_URL
    )
    api_key = getpass.getpass("🔑 API Key (required): ").strip()
    if not api_key:
        raise ConfigurationError("API key cannot be empty")
    path = save_user_config(base_url, api_key)
    print("━" * 36)
    print(f"✅ Configuration saved to {path}\n")
    return settings.model_copy(
        update={"openai_api_key": api_key, "llm_base_url": base_url}
    )


def _run_review(args: argparse.Namespace) -> None:
    """Execute the run command."""
    settings = _apply_overrides(Settings(), args)
    set_level("INFO" if args.verbose else settings.log_level)

    try:
        if not settings.openai_api_key:
            settings = _first_run_setup(settings)
        service = review_service.LLMReviewService(settings)
    except ConfigurationError as exc:
        print(f"❌ Configuration error: {exc}", file=sys.stderr)
        sys.exit(1)

    level = args.level if args.level is not None else settings.level
    tasks = parse_tasks(args.targets, level, args.report_name)

    scope = _CancelScope()
    previous = {
        sig: signal.signal(sig, scope.interrupt)
        for sig in (signal.SIGINT, signal.SIGTERM)
    }
    try:
        for i, task in enumerate(tasks, 1):
            if scope.interrupted.is_set():
                break
            if len(tasks) > 1:
                print(
                    f"\n🚀 Batch task ({i}/{len(tasks)}): "
                    f"{task.report_name} (level {task.level})"
                )
            try:
                run_review_task(
                    task,
                    settings,
                    service,
                    scope.new_token(),
                    include=args.include,
                    concurrency=args.concurrency,
                    fmt=ExportFormat(args.format),
                    verbose=args.verbose,
                )
            except (ReviewerError, OSError) as exc:
                print(f"\n❌ Task failed [{task.path}]: {exc}", file=sys.stderr)
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)

    if scope.interrupted.is_set():
        print("🛑 Review interrupted by user")
        sys.exit(EXIT_INTERRUPTED)


def run_review_task(
    task: ReviewTask,
    settings: Settings,
    service: AnalysisService,
    cancel: threading.Event,
    *,
    include: str | None = None,
    concurrency: int | None = None,
    fmt: ExportFormat = ExportFormat.MARKDOWN,
    verbose: bool = False,
) -> Path | None:
    """Review one directory and write its report.

    Returns the report path, or None when nothing was eligible.
    Raises InvalidRootError if the directory is unusable.
    """
    config = settings.pipeline_config(
        task.path,
        level=task.level,
        include_exts=include.split(",") if include else None,
        concurrency=concurrency,
    )
    files = Discoverer.from_config(config).scan()
    if not files:
        print(f"🎉 No files to review in {task.path}")
        return None

    pool = WorkerPool.from_config(service, config)
    run = pool.start(files, cancel_event=cancel)

    timer: threading.Timer | None = None
    if settings.review_timeout_seconds > 0:
        timer = threading.Timer(settings.review_timeout_seconds, run.cancel)
        timer.daemon = True
        timer.start()

    total = len(files)
    done = 0

    def on_outcome(outcome: Outcome) -> None:
        nonlocal done
        done += 1
        mark = _STATUS_MARKS[outcome.status]
        line = f"  [{done}/{total}] {mark} {outcome.file_path}"
        if verbose and outcome.detail:
            line += f" ({outcome.detail})"
        print(line)

    print(f"🔍 Reviewing {total} files in {task.path} (level {pool.level})")
    try:
        outcomes = collect_outcomes(run, on_outcome)
    finally:
        if timer is not None:
            timer.cancel()

    if run.cancelled:
        print(f"⚠️ Run cancelled after {len(outcomes)}/{total} files")

    from reviewer.export import write_report

    report_path = write_report(
        outcomes,
        settings.report_dir,
        task.report_name,
        pool.level,
        run.duration,
        fmt,
        max_file_size=config.max_file_size,
    )
    summary = summarize(outcomes)
    print(
        f"\n✅ Done in {run.duration:.1f}s — {summary.reviewed} reviewed, "
        f"{summary.skipped} skipped, {summary.failed} failed, "
        f"{summary.issues} issues"
    )
    print(f"📄 Report: {report_path}")
    return report_path


if __name__ == "__main__":
    main()
