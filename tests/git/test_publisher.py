"""Tests for committing wiki changes."""

from __future__ import annotations

from pathlib import Path

import pytest

from repowiki.config import RepoWikiConfig
from repowiki.git.publisher import WikiPublisher
from repowiki.sentinel import sentinel_path
from tests._fixtures.fake_git import FakeGit


def test_commit_holds_sentinel_and_uses_prefix(configured_repo: Path) -> None:
    git = FakeGit(configured_repo)

    committed = WikiPublisher(git).commit(configured_repo, RepoWikiConfig(), "update wiki")

    assert committed
    assert git.commits == ["[repowiki] update wiki"]
    assert git.sentinel_seen_during_commit == [True]
    assert not sentinel_path(configured_repo).exists()
    assert git.staged[0][0] == str(configured_repo / ".qoder" / "repowiki")
    assert git.staged[0][1].endswith("config.yml")


def test_config_file_is_skipped_when_absent(repo_root: Path) -> None:
    git = FakeGit(repo_root)

    WikiPublisher(git).commit(repo_root, RepoWikiConfig(), "update wiki")

    assert git.staged == [[str(repo_root / ".qoder" / "repowiki")]]


def test_clean_wiki_is_not_committed(repo_root: Path) -> None:
    git = FakeGit(repo_root)
    git.dirty = False

    assert WikiPublisher(git).commit(repo_root, RepoWikiConfig(), "update wiki") is False
    assert git.commits == []
    assert git.staged == []


def test_sentinel_is_removed_when_commit_fails(repo_root: Path) -> None:
    class FailingGit(FakeGit):
        def commit(self, root: Path, message: str) -> None:
            raise RuntimeError("hook rejected commit")

    git = FailingGit(repo_root)

    with pytest.raises(RuntimeError, match="hook rejected"):
        WikiPublisher(git).commit(repo_root, RepoWikiConfig(), "update wiki")

    assert not sentinel_path(repo_root).exists()
