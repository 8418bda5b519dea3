"""End-to-end update cycle tests against a fake git and a recording engine."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, List, Optional, Tuple

import pytest

from repowiki.config import RepoWikiConfig, config_path, load_config, save_config
from repowiki.errors import EngineError, LockBusyError, NotEnabledError
from repowiki.gate import SELF_COMMIT
from repowiki.git.hooks import BEGIN_MARKER
from repowiki.lockfile import ProcessLock, lock_path
from repowiki.orchestrator import NO_CHANGES, Orchestrator
from repowiki.sentinel import sentinel_path
from tests._fixtures.fake_git import FakeGit


class RecordingEngine:
    """Collects prompts; ``side_effect`` runs inside each call."""

    def __init__(self, side_effect: Optional[Callable[[int], None]] = None) -> None:
        self.prompts: List[str] = []
        self._side_effect = side_effect

    def factory(self, config: RepoWikiConfig) -> "RecordingEngine":
        return self

    def run(self, prompt: str, cwd: Path) -> str:
        self.prompts.append(prompt)
        if self._side_effect is not None:
            self._side_effect(len(self.prompts))
        return ""


class RecordingLauncher:
    def __init__(self, result: bool = True) -> None:
        self.calls: List[Tuple[Path, str]] = []
        self.result = result

    def __call__(self, root: Path, commit: str) -> bool:
        self.calls.append((root, commit))
        return self.result


def _orchestrator(git: FakeGit, engine: RecordingEngine, **kwargs) -> Orchestrator:
    return Orchestrator(git, engine_factory=engine.factory, **kwargs)


def _write_wiki_page(root: Path, name: str = "System Overview.md") -> None:
    page = root / ".qoder" / "repowiki" / "en" / "content" / name
    page.parent.mkdir(parents=True, exist_ok=True)
    page.write_text("# Overview\n", encoding="utf-8")


def test_only_excluded_paths_changed_skips_engine(configured_repo: Path) -> None:
    git = FakeGit(
        configured_repo,
        commit_files={"c1": [".qoder/repowiki/en/content/a.md", ".repowiki/config.yml"]},
    )
    engine = RecordingEngine()

    outcome = _orchestrator(git, engine).run_update(configured_repo)

    assert [cycle.status for cycle in outcome.cycles] == [NO_CHANGES]
    assert not outcome.changed
    assert engine.prompts == []
    assert outcome.baseline is None
    assert load_config(configured_repo).last_commit_hash is None
    assert not lock_path(configured_repo).exists()


def test_first_run_without_wiki_generates_and_commits(configured_repo: Path) -> None:
    git = FakeGit(configured_repo, commit_files={"c1": ["src/app.py"]})
    engine = RecordingEngine()

    outcome = _orchestrator(git, engine).run_update(configured_repo)

    assert len(engine.prompts) == 1
    assert "Generate a comprehensive repository wiki" in engine.prompts[0]
    assert outcome.cycles[0].status == "full"
    assert outcome.cycles[0].committed
    assert outcome.baseline == "c1"
    assert load_config(configured_repo).last_commit_hash == "c1"
    assert git.commits == ["[repowiki] full wiki generation (c1)"]
    assert git.sentinel_seen_during_commit == [True]
    assert git.staged == [
        [str(configured_repo / ".qoder/repowiki"), str(config_path(configured_repo))]
    ]
    assert not sentinel_path(configured_repo).exists()
    assert not lock_path(configured_repo).exists()


def test_existing_wiki_gets_incremental_prompt_with_hints(configured_repo: Path) -> None:
    _write_wiki_page(configured_repo)
    git = FakeGit(configured_repo, commit_files={"c1": ["src/auth/login.py"]})
    engine = RecordingEngine()

    outcome = _orchestrator(git, engine).run_update(configured_repo)

    cycle = outcome.cycles[0]
    assert cycle.status == "incremental"
    assert cycle.plan is not None
    assert cycle.plan.affected_sections == ["Authentication and Security"]
    assert "  - src/auth/login.py" in engine.prompts[0]
    assert "  - Authentication and Security" in engine.prompts[0]
    assert git.commits == ["[repowiki] update wiki for 1 changed files (c1)"]


def test_changes_since_baseline_are_used_when_baseline_is_older(configured_repo: Path) -> None:
    _write_wiki_page(configured_repo)
    config = load_config(configured_repo)
    config.last_commit_hash = "c0"
    save_config(configured_repo, config)
    git = FakeGit(
        configured_repo,
        head="c3",
        since_files={("c0", "c3"): ["src/a.py", "src/b.py"]},
    )
    engine = RecordingEngine()

    outcome = _orchestrator(git, engine).run_update(configured_repo)

    assert outcome.cycles[0].change_set is not None
    assert outcome.cycles[0].change_set.base == "c0"
    assert list(outcome.cycles[0].plan.files) == ["src/a.py", "src/b.py"]
    assert outcome.baseline == "c3"


def test_engine_failure_releases_lock_and_keeps_baseline(configured_repo: Path) -> None:
    git = FakeGit(configured_repo, commit_files={"c1": ["src/app.py"]})

    def explode(_: int) -> None:
        raise EngineError("engine crashed")

    engine = RecordingEngine(side_effect=explode)

    with pytest.raises(EngineError, match="engine crashed"):
        _orchestrator(git, engine).run_update(configured_repo)

    assert not lock_path(configured_repo).exists()
    assert load_config(configured_repo).last_commit_hash is None
    assert git.commits == []


def test_commit_landing_during_generation_is_absorbed(configured_repo: Path) -> None:
    git = FakeGit(
        configured_repo,
        commit_files={"c1": ["src/app.py"]},
        since_files={("c1", "c2"): ["src/late.py"]},
    )

    def developer_commits(run: int) -> None:
        if run == 1:
            git.head = "c2"

    engine = RecordingEngine(side_effect=developer_commits)

    outcome = _orchestrator(git, engine).run_update(configured_repo)

    assert [cycle.target for cycle in outcome.cycles] == ["c1", "c2"]
    assert list(outcome.cycles[1].plan.files) == ["src/late.py"]
    assert not outcome.catch_up_exhausted
    assert outcome.baseline == "c2"


def test_catch_up_is_bounded_under_constant_commits(configured_repo: Path) -> None:
    config = load_config(configured_repo)
    config.auto_commit = False
    save_config(configured_repo, config)
    git = FakeGit(
        configured_repo,
        commit_files={"c1": ["src/app.py"]},
        default_since=["src/app.py"],
    )

    def advance_head(run: int) -> None:
        git.head = f"c{run + 1}"

    engine = RecordingEngine(side_effect=advance_head)

    outcome = _orchestrator(git, engine).run_update(configured_repo)

    assert len(outcome.cycles) == 6
    assert len(engine.prompts) == 6
    assert outcome.catch_up_exhausted
    assert outcome.baseline == "c6"
    assert git.commits == []
    assert not lock_path(configured_repo).exists()


def test_own_wiki_commit_does_not_trigger_another_cycle(configured_repo: Path) -> None:
    git = FakeGit(
        configured_repo,
        commit_files={"c1": ["src/app.py"]},
        since_files={("c1", "w1"): [".qoder/repowiki/en/content/a.md", ".repowiki/config.yml"]},
    )
    git.head_after_commit = "w1"
    engine = RecordingEngine()

    outcome = _orchestrator(git, engine).run_update(configured_repo)

    assert len(outcome.cycles) == 1
    assert len(engine.prompts) == 1
    assert not outcome.catch_up_exhausted


def test_held_lock_rejects_update(configured_repo: Path) -> None:
    git = FakeGit(configured_repo, commit_files={"c1": ["src/app.py"]})
    engine = RecordingEngine()
    holder = ProcessLock(configured_repo)
    holder.acquire()
    try:
        with pytest.raises(LockBusyError):
            _orchestrator(git, engine).run_update(configured_repo)
        assert lock_path(configured_repo).exists()
    finally:
        holder.release()
    assert engine.prompts == []


def test_disabled_repository_refuses_direct_update(configured_repo: Path) -> None:
    save_config(configured_repo, RepoWikiConfig(enabled=False))
    git = FakeGit(configured_repo, commit_files={"c1": ["src/app.py"]})

    with pytest.raises(NotEnabledError):
        _orchestrator(git, RecordingEngine()).run_update(configured_repo)


def test_explicit_commit_overrides_head(configured_repo: Path) -> None:
    git = FakeGit(configured_repo, head="c9", commit_files={"c5": ["src/app.py"]})
    engine = RecordingEngine()

    outcome = _orchestrator(git, engine).run_update(configured_repo, commit="c5")

    assert outcome.cycles[0].target == "c5"


def test_generate_always_runs_full_prompt(configured_repo: Path) -> None:
    _write_wiki_page(configured_repo)
    git = FakeGit(configured_repo, head="abc")
    engine = RecordingEngine()

    result = _orchestrator(git, engine).run_generate(configured_repo)

    assert result.status == "full"
    assert "Generate a comprehensive repository wiki" in engine.prompts[0]
    assert load_config(configured_repo).last_commit_hash == "abc"
    assert git.commits == ["[repowiki] full wiki generation (abc)"]


def test_hook_launches_worker_for_regular_commit(configured_repo: Path) -> None:
    git = FakeGit(configured_repo)
    launcher = RecordingLauncher()

    outcome = _orchestrator(git, RecordingEngine(), launcher=launcher).run_hook(configured_repo)

    assert outcome is not None
    assert outcome.decision.allowed
    assert outcome.launched
    assert launcher.calls == [(configured_repo, "c1")]


def test_hook_ignores_own_commit(configured_repo: Path) -> None:
    git = FakeGit(configured_repo, messages={"c1": "[repowiki] update wiki for 2 changed files"})
    launcher = RecordingLauncher()

    outcome = _orchestrator(git, RecordingEngine(), launcher=launcher).run_hook(configured_repo)

    assert outcome is not None
    assert outcome.decision.reason == SELF_COMMIT
    assert launcher.calls == []


def test_enable_writes_config_and_installs_hook(repo_root: Path) -> None:
    git = FakeGit(repo_root)
    orchestrator = _orchestrator(git, RecordingEngine())

    orchestrator.enable(repo_root)

    assert load_config(repo_root).enabled
    hook = repo_root / ".git" / "hooks" / "post-commit"
    assert BEGIN_MARKER in hook.read_text(encoding="utf-8")


def test_disable_keeps_wiki_and_removes_hook(configured_repo: Path) -> None:
    git = FakeGit(configured_repo)
    orchestrator = _orchestrator(git, RecordingEngine())
    orchestrator.enable(configured_repo)
    _write_wiki_page(configured_repo)

    orchestrator.disable(configured_repo)

    assert not load_config(configured_repo).enabled
    assert not (configured_repo / ".git" / "hooks" / "post-commit").exists()
    assert (configured_repo / ".qoder" / "repowiki" / "en" / "content").is_dir()


def test_status_reports_unconfigured_repository(repo_root: Path) -> None:
    report = _orchestrator(FakeGit(repo_root), RecordingEngine()).status(repo_root)

    assert not report.configured
    assert not report.hook_installed
    assert report.lock is None


def test_status_reports_configured_repository(configured_repo: Path) -> None:
    _write_wiki_page(configured_repo)
    config = load_config(configured_repo)
    config.last_commit_hash = "c1"
    save_config(configured_repo, config)
    holder = ProcessLock(configured_repo)
    holder.acquire()
    try:
        report = _orchestrator(FakeGit(configured_repo), RecordingEngine()).status(configured_repo)
    finally:
        holder.release()

    assert report.configured
    assert report.enabled
    assert report.page_count == 1
    assert report.wiki_path == ".qoder/repowiki/en/content"
    assert report.last_commit_hash == "c1"
    assert report.lock is not None


def test_custom_exclusions_do_not_let_wiki_commits_loop(configured_repo: Path) -> None:
    _write_wiki_page(configured_repo)
    config = load_config(configured_repo)
    config.excluded_paths = ["vendor/"]
    save_config(configured_repo, config)
    git = FakeGit(
        configured_repo,
        commit_files={"c1": ["src/app.py"]},
        default_since=[".qoder/repowiki/en/content/a.md", ".repowiki/config.yml"],
    )
    git.head_after_commit = "w1"
    engine = RecordingEngine()

    outcome = _orchestrator(git, engine).run_update(configured_repo)

    assert len(engine.prompts) == 1
    assert git.commits == ["[repowiki] update wiki for 1 changed files (c1)"]
    assert not outcome.catch_up_exhausted


def test_disable_during_generation_is_not_overwritten(configured_repo: Path) -> None:
    git = FakeGit(
        configured_repo,
        commit_files={"c1": ["src/app.py"]},
        default_since=["src/late.py"],
    )

    def user_disables_and_commits(run: int) -> None:
        current = load_config(configured_repo)
        current.enabled = False
        save_config(configured_repo, current)
        git.head = f"c{run + 1}"

    engine = RecordingEngine(side_effect=user_disables_and_commits)

    outcome = _orchestrator(git, engine).run_update(configured_repo)

    reloaded = load_config(configured_repo)
    assert reloaded.enabled is False
    assert reloaded.last_commit_hash == "c1"
    assert len(engine.prompts) == 1
    assert not outcome.catch_up_exhausted


def test_baseline_written_by_another_worker_is_picked_up(configured_repo: Path) -> None:
    _write_wiki_page(configured_repo)
    git = FakeGit(
        configured_repo,
        head="c3",
        since_files={("c2", "c3"): ["src/b.py"]},
    )
    engine = RecordingEngine()

    class SlowLock(ProcessLock):
        def acquire(self) -> None:
            # Another worker finished c2 while this one waited for the lock.
            current = load_config(configured_repo)
            current.last_commit_hash = "c2"
            save_config(configured_repo, current)
            super().acquire()

    outcome = _orchestrator(git, engine, lock_factory=SlowLock).run_update(configured_repo)

    assert outcome.cycles[0].change_set is not None
    assert outcome.cycles[0].change_set.base == "c2"
    assert list(outcome.cycles[0].plan.files) == ["src/b.py"]
