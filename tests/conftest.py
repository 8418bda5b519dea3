from __future__ import annotations

from pathlib import Path

import pytest

from repowiki.config import RepoWikiConfig, save_config
from tests._fixtures.fake_git import FakeGit


@pytest.fixture
def repo_root(tmp_path: Path) -> Path:
    """Provide an empty repository directory with a .git folder."""
    root = tmp_path / "repo"
    (root / ".git" / "hooks").mkdir(parents=True)
    return root


@pytest.fixture
def fake_git(repo_root: Path) -> FakeGit:
    return FakeGit(repo_root)


@pytest.fixture
def configured_repo(repo_root: Path) -> Path:
    """Repository with a default, enabled configuration on disk."""
    save_config(repo_root, RepoWikiConfig())
    return repo_root
