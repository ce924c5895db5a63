"""File discovery with include/exclude rules and a size ceiling."""

from __future__ import annotations

import re
from pathlib import Path

import structlog

from code_assistant.config import IndexingConfig
from code_assistant.types import IndexedFile

_logger = structlog.get_logger()


def glob_to_regex(pattern: str) -> re.Pattern[str]:
    """Compile an exclude glob.

    `*` matches any run of characters and `?` a single character. The match
    is anchored against the whole relative path or any suffix after a `/`.
    """
    body = re.escape(pattern).replace(r"\*", ".*").replace(r"\?", ".")
    return re.compile(rf"^{body}$|/{body}$")


class FileScanner:
    """Walks include folders under a root and yields admitted files."""

    def __init__(
        self,
        root: str | Path,
        config: IndexingConfig,
        *,
        skip_paths: list[str] | None = None,
    ) -> None:
        self.root = Path(root)
        self.config = config
        self._skip_paths = [p.strip("/") for p in skip_paths or [] if p.strip("/.")]
        self._exclude_folders = {f.strip("/") for f in config.exclude_folders if f.strip("/")}
        self._exclude_patterns = [glob_to_regex(p) for p in config.exclude_patterns]
        self._file_types = set(config.include_file_types)
        self._max_bytes = config.max_file_bytes

    def scan(self) -> list[IndexedFile]:
        files: list[IndexedFile] = []
        seen: set[Path] = set()
        for folder in self.config.include_folders:
            folder_path = self.root / folder
            if not folder_path.is_dir():
                _logger.warning("include_folder_missing", folder=folder)
                continue
            self._walk(folder_path, files, seen)
        return files

    def is_excluded(self, relative_path: str) -> bool:
        normalized = relative_path.replace("\\", "/")
        if any(normalized == p or normalized.startswith(p + "/") for p in self._skip_paths):
            return True
        if any(f"/{folder}/" in f"/{normalized}/" for folder in self._exclude_folders):
            return True
        return any(regex.search(normalized) for regex in self._exclude_patterns)

    def _walk(self, directory: Path, files: list[IndexedFile], seen: set[Path]) -> None:
        try:
            entries = sorted(directory.iterdir(), key=lambda p: p.name)
        except OSError as exc:
            _logger.warning("folder_unreadable", folder=str(directory), error=str(exc))
            return

        for entry in entries:
            relative = self._relative(entry)
            if self.is_excluded(relative):
                continue
            if entry.is_dir():
                self._walk(entry, files, seen)
            elif entry.is_file():
                resolved = entry.resolve()
                if resolved in seen:
                    continue
                seen.add(resolved)
                indexed = self._read(entry, relative)
                if indexed is not None:
                    files.append(indexed)

    def _read(self, path: Path, relative: str) -> IndexedFile | None:
        extension = path.suffix
        if extension not in self._file_types:
            _logger.debug("file_skipped_type", path=relative, extension=extension)
            return None

        stat = path.stat()
        if stat.st_size > self._max_bytes:
            _logger.warning(
                "file_skipped_oversized",
                path=relative,
                size=stat.st_size,
                limit=self._max_bytes,
            )
            return None

        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            _logger.warning("file_unreadable", path=relative, error=str(exc))
            return None

        return IndexedFile(
            path=relative,
            content=content,
            extension=extension,
            size=stat.st_size,
            modified=stat.st_mtime,
        )

    def _relative(self, path: Path) -> str:
        try:
            return path.relative_to(self.root).as_posix()
        except ValueError:
            return path.as_posix()
