"""Full-regeneration versus incremental-update decision."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Sequence

from .config import RepoWikiConfig
from .git.diff import ChangeSet
from .wiki.layout import WikiLayout
from .wiki.sections import affected_sections


class Strategy(str, enum.Enum):
    FULL = "full"
    INCREMENTAL = "incremental"


@dataclass
class UpdatePlan:
    """What a cycle will ask the generation engine to do."""

    strategy: Strategy
    files: Sequence[str]
    affected_sections: List[str] = field(default_factory=list)


def select_strategy(
    files: Sequence[str], config: RepoWikiConfig, *, wiki_exists: bool
) -> Strategy:
    if not wiki_exists or len(files) > config.full_generate_threshold:
        return Strategy.FULL
    return Strategy.INCREMENTAL


def plan_update(root: Path, config: RepoWikiConfig, change_set: ChangeSet) -> UpdatePlan:
    layout = WikiLayout.for_config(root, config)
    strategy = select_strategy(change_set.files, config, wiki_exists=layout.exists())
    if strategy is Strategy.FULL:
        return UpdatePlan(strategy=strategy, files=list(change_set.files))
    return UpdatePlan(
        strategy=strategy,
        files=list(change_set.files),
        affected_sections=affected_sections(layout, change_set.files),
    )


__all__ = ["Strategy", "UpdatePlan", "plan_update", "select_strategy"]
