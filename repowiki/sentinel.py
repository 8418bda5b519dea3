"""Marker file signalling that repowiki is authoring a commit."""

from __future__ import annotations

import os
from pathlib import Path

from .config import tool_dir

SENTINEL_NAME = ".committing"


def sentinel_path(root: Path) -> Path:
    return tool_dir(root) / SENTINEL_NAME


class Sentinel:
    """Scoped marker: present only while a wiki commit is being made.

    The post-commit hook that fires for repowiki's own commit sees the file
    and exits before doing anything else.
    """

    def __init__(self, root: Path) -> None:
        self.path = sentinel_path(root)

    def is_present(self) -> bool:
        return self.path.exists()

    def __enter__(self) -> "Sentinel":
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(str(os.getpid()), encoding="utf-8")
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.path.unlink(missing_ok=True)


__all__ = ["SENTINEL_NAME", "Sentinel", "sentinel_path"]
