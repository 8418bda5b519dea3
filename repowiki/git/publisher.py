"""Commits generated wiki files back into the repository."""

from __future__ import annotations

from pathlib import Path
from typing import Callable

from ..config import RepoWikiConfig, config_path
from ..logging import get_logger
from ..sentinel import Sentinel
from .client import GitClient


class WikiPublisher:
    """Stages the wiki tree and commits it with the configured prefix."""

    def __init__(
        self,
        git: GitClient | None = None,
        sentinel_factory: Callable[[Path], Sentinel] = Sentinel,
    ) -> None:
        self.git = git or GitClient()
        self._sentinel_factory = sentinel_factory
        self.logger = get_logger("publisher")

    def commit(self, root: Path, config: RepoWikiConfig, description: str) -> bool:
        """Commit wiki changes; return False when there was nothing to commit."""
        wiki_dir = Path(root) / config.wiki_path
        if not self.git.has_changes(root, wiki_dir):
            self.logger.debug("No wiki changes under %s; nothing to commit", wiki_dir)
            return False

        # The sentinel must cover the commit so the post-commit hook it fires stays quiet.
        with self._sentinel_factory(root):
            paths: list[Path] = [wiki_dir]
            settings = config_path(root)
            if settings.exists():
                paths.append(settings)
            self.git.stage(root, paths)
            message = f"{config.commit_prefix} {description}".strip()
            self.git.commit(root, message)
        self.logger.info("Committed wiki changes: %s", message)
        return True


__all__ = ["WikiPublisher"]
