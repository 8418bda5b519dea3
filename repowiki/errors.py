"""Error taxonomy shared by repowiki components."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence


class RepoWikiError(RuntimeError):
    """Base class for every error repowiki raises on purpose."""


class RepoWikiEnvironmentError(RepoWikiError):
    """The surrounding environment cannot support a run."""


class NotARepositoryError(RepoWikiEnvironmentError):
    """Raised when the working directory is not inside a git repository."""


class EngineNotFoundError(RepoWikiEnvironmentError):
    """Raised when the generation engine binary cannot be located."""


class LockBusyError(RepoWikiError):
    """Another live repowiki process holds the repository lock."""

    def __init__(self, path: Path) -> None:
        super().__init__(f"another repowiki process is running (lock: {path})")
        self.path = path


class GitCommandError(RepoWikiError):
    """A git invocation exited unsuccessfully."""

    def __init__(self, args: Sequence[str], stderr: str = "") -> None:
        detail = stderr.strip()
        message = f"{' '.join(args)} failed"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.args_list = list(args)
        self.stderr = stderr


class EngineError(RepoWikiError):
    """The generation engine could not complete the request."""


class ConfigError(RepoWikiError):
    """Raised when the configuration file is missing or cannot be parsed."""


class NotEnabledError(ConfigError):
    """repowiki is configured but switched off for this repository."""


__all__ = [
    "ConfigError",
    "EngineError",
    "EngineNotFoundError",
    "GitCommandError",
    "LockBusyError",
    "NotARepositoryError",
    "NotEnabledError",
    "RepoWikiEnvironmentError",
    "RepoWikiError",
]
