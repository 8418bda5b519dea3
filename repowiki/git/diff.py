"""Change detection between the recorded baseline and a target commit."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from ..config import TOOL_DIR_NAME, RepoWikiConfig
from .client import GitClient

SINGLE_COMMIT = "single"
SINCE_BASELINE = "since"


@dataclass(frozen=True)
class ChangeSet:
    """Files touched in the commit range that a cycle has to document."""

    base: Optional[str]
    target: str
    mode: str
    files: Sequence[str]

    def __bool__(self) -> bool:
        return bool(self.files)

    def __len__(self) -> int:
        return len(self.files)


class ChangeDetector:
    """Chooses a commit range and lists the relevant files inside it."""

    def __init__(self, git: GitClient | None = None) -> None:
        self.git = git or GitClient()

    def detect(self, root: Path, config: RepoWikiConfig, target: str) -> ChangeSet:
        baseline = config.last_commit_hash
        if baseline and baseline != target:
            # Covers every commit since the baseline, including ones whose hooks were suppressed.
            files = self.git.changed_files_since(root, baseline)
            mode = SINCE_BASELINE
        else:
            files = self.git.changed_files_in_commit(root, target)
            mode = SINGLE_COMMIT
            baseline = None
        return ChangeSet(
            base=baseline,
            target=target,
            mode=mode,
            files=filter_excluded(files, excluded_prefixes(config)),
        )


def excluded_prefixes(config: RepoWikiConfig) -> List[str]:
    """Configured exclusions plus the wiki and state directories, which always apply."""
    prefixes = list(config.excluded_paths)
    for own in (config.wiki_path.rstrip("/") + "/", TOOL_DIR_NAME + "/"):
        if own not in prefixes:
            prefixes.append(own)
    return prefixes


def filter_excluded(paths: Iterable[str], excluded: Sequence[str]) -> List[str]:
    """Drop every path that starts with one of the ``excluded`` prefixes.

    Matching is a plain string prefix: ``"docs"`` also drops ``"docsite/x"``.
    """
    prefixes = tuple(prefix for prefix in excluded if prefix)
    if not prefixes:
        return list(paths)
    return [path for path in paths if not path.startswith(prefixes)]


__all__ = [
    "ChangeDetector",
    "ChangeSet",
    "SINCE_BASELINE",
    "SINGLE_COMMIT",
    "excluded_prefixes",
    "filter_excluded",
]
