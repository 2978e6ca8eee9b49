"""Walk a directory tree and select the files eligible for review."""

from __future__ import annotations

import logging
import stat
from collections.abc import Iterable
from pathlib import Path

import pathspec

from reviewer.config import PipelineConfig, normalize_extensions
from reviewer.constants import BINARY_DETECTION_BUFFER, DEFAULT_EXCLUDE_DIRS
from reviewer.resilience.errors import InvalidRootError

logger = logging.getLogger(__name__)

IGNORE_FILENAME = ".gitignore"


def is_binary(path: Path) -> bool:
    """Return True if the file appears to be binary (NUL in the first 512 bytes).

    A file that cannot be opened is not treated as binary. It stays a
    candidate so the producer reports it as a read error.
    """
    try:
        with open(path, "rb") as f:
            chunk = f.read(BINARY_DETECTION_BUFFER)
        return b"\x00" in chunk
    except OSError:
        return False


def load_ignore_spec(root: Path) -> pathspec.PathSpec | None:
    """Load root-level .gitignore patterns using pathspec.

    A missing, unreadable or malformed file yields None, which turns
    ignore filtering off rather than failing the scan.
    """
    ignore_file = root / IGNORE_FILENAME
    if not ignore_file.is_file():
        return None
    try:
        with open(ignore_file, encoding="utf-8") as f:
            return pathspec.GitIgnoreSpec.from_lines(f)
    except (OSError, ValueError) as exc:
        logger.debug(
            "event=ignore_file_unusable path=%s error=%s",
            ignore_file,
            exc,
        )
        return None


class Discoverer:
    """Select candidate files under a root directory.

    Filters applied to every visited entry, in order:

    * symbolic links are skipped (files and directories alike);
    * entries whose base name is in ``exclude_dirs`` are pruned;
    * entries matched by the root ``.gitignore`` are pruned;
    * directories are descended, files continue;
    * with a non-empty whitelist, the lower-cased suffix must match;
    * binary files (NUL byte in the first 512 bytes) are dropped.

    Per-entry I/O errors skip the entry. Only root validation, done
    at construction, raises.
    """

    def __init__(
        self,
        root: Path | str,
        include_exts: Iterable[str] = (),
        exclude_dirs: Iterable[str] = DEFAULT_EXCLUDE_DIRS,
    ) -> None:
        self._root = Path(root)
        try:
            mode = self._root.stat().st_mode
        except FileNotFoundError as exc:
            raise InvalidRootError(self._root, "does not exist") from exc
        except OSError as exc:
            raise InvalidRootError(self._root, str(exc)) from exc
        if not stat.S_ISDIR(mode):
            raise InvalidRootError(self._root, "not a directory")

        self._include_exts = normalize_extensions(include_exts)
        self._exclude_dirs = frozenset(exclude_dirs)
        self._ignore_spec = load_ignore_spec(self._root)

    @classmethod
    def from_config(cls, config: PipelineConfig) -> Discoverer:
        return cls(
            config.root_path,
            include_exts=config.extension_whitelist,
            exclude_dirs=config.exclude_dirs,
        )

    @property
    def root(self) -> Path:
        return self._root

    def scan(self) -> list[Path]:
        """Return eligible files in deterministic (sorted walk) order."""
        files: list[Path] = []
        self._walk(self._root, files)
        logger.info(
            "event=scan_complete root=%s files=%d", self._root, len(files)
        )
        return files

    def _walk(self, current: Path, files: list[Path]) -> None:
        try:
            entries = sorted(current.iterdir())
        except OSError as exc:
            logger.debug(
                "event=scan_dir_unreadable path=%s error=%s", current, exc
            )
            return

        for entry in entries:
            try:
                self._visit(entry, files)
            except OSError as exc:
                logger.debug(
                    "event=scan_entry_skipped path=%s error=%s", entry, exc
                )

    def _visit(self, entry: Path, files: list[Path]) -> None:
        if entry.is_symlink():
            return
        if entry.name in self._exclude_dirs:
            return

        is_dir = entry.is_dir()
        if self._ignored(entry, is_dir):
            return
        if is_dir:
            self._walk(entry, files)
            return
        if not entry.is_file():
            return

        if (
            self._include_exts
            and entry.suffix.lower() not in self._include_exts
        ):
            return
        if is_binary(entry):
            return
        files.append(entry)

    def _ignored(self, entry: Path, is_dir: bool) -> bool:
        if self._ignore_spec is None:
            return False
        rel = entry.relative_to(self._root).as_posix()
        if is_dir:
            rel += "/"
        return self._ignore_spec.match_file(rel)


def discover_files(config: PipelineConfig) -> list[Path]:
    """Validate the root in *config* and return its candidate files."""
    return Discoverer.from_config(config).scan()
