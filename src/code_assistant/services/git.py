"""Read-only git metadata via the `git` command line."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass, field
from pathlib import Path

import structlog

_logger = structlog.get_logger()
_COMMIT_FORMAT = "%H%n%an%n%ai%n%s%n---END---"


@dataclass(slots=True)
class CommitInfo:
    hash: str
    author: str
    date: str
    message: str
    files: list[str] = field(default_factory=list)


@dataclass(slots=True)
class ProjectStats:
    branch: str
    total_commits: int
    latest_commits: list[CommitInfo]
    file_count: int


class GitHelper:
    """Wraps git commands; failures yield neutral values instead of raising."""

    def __init__(self, repo_path: str | Path = ".") -> None:
        self.repo_path = Path(repo_path)

    def current_branch(self) -> str:
        output = self._run("rev-parse", "--abbrev-ref", "HEAD")
        return output.strip() if output else "unknown"

    def status(self) -> str:
        return self._run("status", "--porcelain") or ""

    def last_commits(self, count: int = 5) -> list[CommitInfo]:
        output = self._run("log", f"-{count}", f"--format={_COMMIT_FORMAT}")
        return _parse_commits(output or "")

    def project_stats(self) -> ProjectStats:
        total = self._run("rev-list", "--count", "HEAD")
        files = self._run("ls-files")
        return ProjectStats(
            branch=self.current_branch(),
            total_commits=int(total.strip()) if total and total.strip().isdigit() else 0,
            latest_commits=self.last_commits(5),
            file_count=len(files.splitlines()) if files else 0,
        )

    def _run(self, *args: str) -> str | None:
        try:
            completed = subprocess.run(
                ["git", *args],
                cwd=self.repo_path,
                capture_output=True,
                text=True,
                check=True,
                timeout=10,
            )
        except (OSError, subprocess.SubprocessError) as exc:
            _logger.debug("git_command_failed", args=list(args), error=str(exc))
            return None
        return completed.stdout


def _parse_commits(output: str) -> list[CommitInfo]:
    commits: list[CommitInfo] = []
    for block in output.split("---END---"):
        lines = block.strip().splitlines()
        if len(lines) >= 4:
            commits.append(
                CommitInfo(hash=lines[0], author=lines[1], date=lines[2], message=lines[3])
            )
    return commits
