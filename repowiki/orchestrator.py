"""Pipeline orchestration for hook, update, generate and housekeeping flows."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from .config import RepoWikiConfig, load_config, save_config, update_last_run
from .engine.runner import EngineRunner, find_engine
from .errors import ConfigError, EngineNotFoundError, NotARepositoryError, NotEnabledError
from .gate import GateDecision, LoopPreventionGate
from .git.client import GitClient
from .git.diff import ChangeDetector, ChangeSet
from .git.hooks import HookManager
from .git.publisher import WikiPublisher
from .launcher import launch_background
from .lockfile import LockRecord, ProcessLock
from .logging import get_logger
from .prompting.builder import PromptBuilder
from .strategy import Strategy, UpdatePlan, plan_update
from .wiki.layout import WikiLayout

MAX_CATCH_UP_ITERATIONS = 5

NO_CHANGES = "no-changes"


@dataclass
class CycleResult:
    """Result of one attempt to bring the wiki in sync with ``target``."""

    target: str
    status: str
    change_set: Optional[ChangeSet] = None
    plan: Optional[UpdatePlan] = None
    committed: bool = False

    @property
    def ran_engine(self) -> bool:
        return self.status != NO_CHANGES


@dataclass
class UpdateOutcome:
    """All cycles executed while holding the lock for one update run."""

    cycles: List[CycleResult] = field(default_factory=list)
    baseline: Optional[str] = None
    catch_up_exhausted: bool = False

    @property
    def changed(self) -> bool:
        return any(cycle.ran_engine for cycle in self.cycles)


@dataclass
class HookOutcome:
    decision: GateDecision
    launched: bool = False


@dataclass
class StatusReport:
    """Snapshot rendered by ``repowiki status``."""

    root: Path
    configured: bool
    enabled: bool = False
    hook_installed: bool = False
    engine_path: Optional[Path] = None
    wiki_path: Optional[str] = None
    page_count: int = 0
    model: Optional[str] = None
    auto_commit: Optional[bool] = None
    max_turns: Optional[int] = None
    last_run: Optional[str] = None
    last_commit_hash: Optional[str] = None
    lock: Optional[LockRecord] = None


class Orchestrator:
    """Coordinates when and how the generation engine runs for a repository."""

    def __init__(
        self,
        git: GitClient | None = None,
        *,
        detector: ChangeDetector | None = None,
        publisher: WikiPublisher | None = None,
        hooks: HookManager | None = None,
        prompt_builder: PromptBuilder | None = None,
        gate: LoopPreventionGate | None = None,
        engine_factory: Callable[[RepoWikiConfig], EngineRunner] = EngineRunner,
        lock_factory: Callable[[Path], ProcessLock] = ProcessLock,
        launcher: Callable[[Path, str], bool] = launch_background,
        config_loader: Callable[[Path], RepoWikiConfig] = load_config,
        max_catch_up: int = MAX_CATCH_UP_ITERATIONS,
    ) -> None:
        self.git = git or GitClient()
        self.detector = detector or ChangeDetector(self.git)
        self.publisher = publisher or WikiPublisher(self.git)
        self.hooks = hooks or HookManager(self.git)
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.gate = gate or LoopPreventionGate(
            self.git, lock_factory=lock_factory, config_loader=config_loader
        )
        self._engine_factory = engine_factory
        self._lock_factory = lock_factory
        self._launcher = launcher
        self._config_loader = config_loader
        self.max_catch_up = max_catch_up
        self.logger = get_logger("orchestrator")

    def resolve_root(self, path: str | Path | None = None) -> Path:
        start = Path(path).expanduser() if path else None
        return self.git.find_root(start)

    # ------------------------------------------------------------------
    # Hook entry point

    def run_hook(self, path: str | Path | None = None) -> Optional[HookOutcome]:
        """Gate a post-commit event and detach a worker when it passes."""
        try:
            root = self.resolve_root(path)
        except NotARepositoryError:
            self.logger.debug("Hook invoked outside a git repository", exc_info=True)
            return None
        decision = self.gate.evaluate(root)
        if not decision.allowed or decision.commit is None:
            return HookOutcome(decision=decision)
        launched = self._launcher(root, decision.commit)
        return HookOutcome(decision=decision, launched=launched)

    # ------------------------------------------------------------------
    # Update / generate

    def run_update(
        self, path: str | Path | None = None, *, commit: str | None = None
    ) -> UpdateOutcome:
        """Run one update cycle plus bounded catch-up under the repository lock."""
        root = self.resolve_root(path)
        self._load_enabled_config(root)
        target = commit or self.git.head_commit(root)
        self.logger.info("Starting update run for %s (target=%s)", root, _short(target))

        outcome = UpdateOutcome()
        with self._lock_factory(root):
            # Another worker may have moved the baseline while we waited.
            config = self._load_enabled_config(root)
            outcome.cycles.append(self.run_cycle(root, config, target))
            outcome.catch_up_exhausted = self._catch_up(root, outcome.cycles)
            outcome.baseline = self._config_loader(root).last_commit_hash
        return outcome

    def run_cycle(
        self,
        root: Path,
        config: RepoWikiConfig,
        target: str,
        change_set: ChangeSet | None = None,
    ) -> CycleResult:
        """Bring the wiki in sync with ``target``; the caller holds the lock."""
        if change_set is None:
            change_set = self.detector.detect(root, config, target)
        if not change_set:
            self.logger.info("No relevant file changes for %s", _short(target))
            return CycleResult(target=target, status=NO_CHANGES, change_set=change_set)

        plan = plan_update(root, config, change_set)
        if plan.strategy is Strategy.FULL:
            self.logger.info("Running full wiki generation (%d files changed)", len(plan.files))
            prompt = self.prompt_builder.full_generate(config)
            description = f"full wiki generation ({_short(target)})"
        else:
            self.logger.info("Updating wiki for %d changed files", len(plan.files))
            if plan.affected_sections:
                self.logger.debug("Affected sections: %s", ", ".join(plan.affected_sections))
            prompt = self.prompt_builder.incremental(config, plan.files, plan.affected_sections)
            description = f"update wiki for {len(plan.files)} changed files ({_short(target)})"

        self._engine_factory(config).run(prompt, root)
        update_last_run(root, config, target)
        committed = self._publish(root, config, description)
        return CycleResult(
            target=target,
            status=plan.strategy.value,
            change_set=change_set,
            plan=plan,
            committed=committed,
        )

    def run_generate(self, path: str | Path | None = None) -> CycleResult:
        """Force a full regeneration against HEAD."""
        root = self.resolve_root(path)
        # Fail before locking when the repository is not configured.
        self._config_loader(root)
        with self._lock_factory(root):
            config = self._config_loader(root)
            target = self.git.head_commit(root)
            self.logger.info("Starting full wiki generation for %s", root)
            self._engine_factory(config).run(self.prompt_builder.full_generate(config), root)
            update_last_run(root, config, target)
            committed = self._publish(root, config, f"full wiki generation ({_short(target)})")
        return CycleResult(target=target, status=Strategy.FULL.value, committed=committed)

    def _catch_up(self, root: Path, cycles: List[CycleResult]) -> bool:
        """Absorb commits that landed while earlier cycles ran.

        The config is re-read before every iteration, so a ``disable`` issued
        mid-run stops the loop. Returns True when the iteration bound was hit
        with work still pending; the next commit's hook picks that up.
        """
        for _ in range(self.max_catch_up):
            config = self._config_loader(root)
            if not config.enabled:
                self.logger.info("repowiki was disabled during the update; stopping catch-up")
                return False
            head = self.git.head_commit(root)
            if head in (config.last_commit_hash, cycles[-1].target):
                return False
            pending = self.detector.detect(root, config, head)
            if not pending:
                return False
            self.logger.info("Catching up with %s (%d files)", _short(head), len(pending))
            cycles.append(self.run_cycle(root, config, head, change_set=pending))

        config = self._config_loader(root)
        head = self.git.head_commit(root)
        if not config.enabled or head in (config.last_commit_hash, cycles[-1].target):
            return False
        self.logger.info(
            "Catch-up limit of %d reached; remaining commits wait for the next hook",
            self.max_catch_up,
        )
        return True

    def _load_enabled_config(self, root: Path) -> RepoWikiConfig:
        config = self._config_loader(root)
        if not config.enabled:
            raise NotEnabledError("repowiki is disabled for this repository. Run 'repowiki enable'.")
        return config

    def _publish(self, root: Path, config: RepoWikiConfig, description: str) -> bool:
        if not config.auto_commit:
            return False
        return self.publisher.commit(root, config, description)

    # ------------------------------------------------------------------
    # Housekeeping

    def enable(self, path: str | Path | None = None) -> Path:
        root = self.resolve_root(path)
        config = load_config(root, required=False)
        config.enabled = True
        save_config(root, config)
        self.hooks.install(root)
        self.logger.info("repowiki enabled in %s", root)
        return root

    def disable(self, path: str | Path | None = None) -> Path:
        root = self.resolve_root(path)
        self.hooks.uninstall(root)
        config = load_config(root, required=False)
        if config.enabled:
            config.enabled = False
            save_config(root, config)
        self.logger.info("repowiki disabled in %s", root)
        return root

    def status(self, path: str | Path | None = None) -> StatusReport:
        root = self.resolve_root(path)
        lock = self._lock_factory(root)
        report = StatusReport(
            root=root,
            configured=False,
            hook_installed=self.hooks.is_installed(root),
            lock=lock.read_record() if lock.is_locked() else None,
        )
        try:
            config = self._config_loader(root)
        except ConfigError:
            self.logger.debug("Config unavailable for status", exc_info=True)
            return report

        layout = WikiLayout.for_config(root, config)
        try:
            engine_path: Optional[Path] = find_engine(config)
        except EngineNotFoundError:
            engine_path = None

        report.configured = True
        report.enabled = config.enabled
        report.engine_path = engine_path
        report.wiki_path = layout.relative_content_dir
        report.page_count = layout.page_count()
        report.model = config.model
        report.auto_commit = config.auto_commit
        report.max_turns = config.max_turns
        report.last_run = config.last_run
        report.last_commit_hash = config.last_commit_hash
        return report


def _short(commit: Optional[str]) -> str:
    return commit[:8] if commit else "-"


__all__ = [
    "CycleResult",
    "HookOutcome",
    "MAX_CATCH_UP_ITERATIONS",
    "Orchestrator",
    "StatusReport",
    "UpdateOutcome",
]
