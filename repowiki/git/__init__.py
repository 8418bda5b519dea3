"""Git collaborators: command client, change detection, publishing and hooks."""

from .client import GitClient
from .diff import ChangeDetector, ChangeSet, filter_excluded
from .hooks import HookManager
from .publisher import WikiPublisher

__all__ = [
    "ChangeDetector",
    "ChangeSet",
    "GitClient",
    "HookManager",
    "WikiPublisher",
    "filter_excluded",
]
