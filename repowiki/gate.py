"""Cheap checks run by the post-commit hook before any real work."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from .config import RepoWikiConfig, load_config
from .errors import ConfigError, GitCommandError
from .git.client import GitClient
from .lockfile import ProcessLock
from .logging import get_logger
from .sentinel import Sentinel

ALLOWED = "allowed"
SENTINEL = "sentinel"
LOCKED = "locked"
DISABLED = "disabled"
GIT_ERROR = "git-error"
SELF_COMMIT = "self-commit"


@dataclass(frozen=True)
class GateDecision:
    allowed: bool
    reason: str
    commit: Optional[str] = None
    config: Optional[RepoWikiConfig] = None


class LoopPreventionGate:
    """Decides whether a commit event should start a background update.

    Checks short-circuit in order: sentinel file, lock file, enabled config,
    then the commit message prefix. Every rejection is silent because the
    caller is a non-interactive git hook.
    """

    def __init__(
        self,
        git: GitClient | None = None,
        *,
        sentinel_factory: Callable[[Path], Sentinel] = Sentinel,
        lock_factory: Callable[[Path], ProcessLock] = ProcessLock,
        config_loader: Callable[[Path], RepoWikiConfig] = load_config,
    ) -> None:
        self.git = git or GitClient()
        self._sentinel_factory = sentinel_factory
        self._lock_factory = lock_factory
        self._config_loader = config_loader
        self.logger = get_logger("gate")

    def evaluate(self, root: Path) -> GateDecision:
        # repowiki is in the middle of committing its own wiki changes.
        if self._sentinel_factory(root).is_present():
            return self._reject(SENTINEL)

        # Any lock, stale or not; the holder's catch-up loop picks this commit up.
        if self._lock_factory(root).is_locked():
            return self._reject(LOCKED)

        try:
            config = self._config_loader(root)
        except ConfigError:
            return self._reject(DISABLED)
        if not config.enabled:
            return self._reject(DISABLED)

        try:
            commit = self.git.head_commit(root)
            message = self.git.commit_message(root, commit)
        except (GitCommandError, OSError):
            return self._reject(GIT_ERROR)

        if config.commit_prefix and message.strip().startswith(config.commit_prefix):
            return self._reject(SELF_COMMIT, commit)

        return GateDecision(allowed=True, reason=ALLOWED, commit=commit, config=config)

    def _reject(self, reason: str, commit: Optional[str] = None) -> GateDecision:
        self.logger.debug("Hook skipped: %s", reason)
        return GateDecision(allowed=False, reason=reason, commit=commit)


__all__ = [
    "ALLOWED",
    "DISABLED",
    "GIT_ERROR",
    "GateDecision",
    "LOCKED",
    "LoopPreventionGate",
    "SELF_COMMIT",
    "SENTINEL",
]
