"""Thin wrapper around the git command line."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Callable, Iterable, List, Sequence

from ..errors import GitCommandError, NotARepositoryError


class GitClient:
    """Runs the handful of git commands repowiki relies on.

    Every method takes the repository root explicitly so a single client can
    serve several repositories (the service mode does this).
    """

    def __init__(self, runner: Callable[..., str] | None = None) -> None:
        self._runner = runner or self._default_runner

    def find_root(self, start: Path | str | None = None) -> Path:
        cwd = Path(start) if start is not None else Path.cwd()
        try:
            output = self._run(["git", "rev-parse", "--show-toplevel"], cwd=cwd)
        except (GitCommandError, OSError) as exc:
            raise NotARepositoryError(f"{cwd} is not a git repository") from exc
        root = output.strip()
        if not root:
            raise NotARepositoryError(f"{cwd} is not a git repository")
        return Path(root)

    def head_commit(self, root: Path) -> str:
        return self._run(["git", "rev-parse", "HEAD"], cwd=root).strip()

    def commit_message(self, root: Path, commit: str) -> str:
        return self._run(["git", "log", "-1", "--pretty=%B", commit], cwd=root).strip()

    def changed_files_in_commit(self, root: Path, commit: str) -> List[str]:
        output = self._run(
            ["git", "diff-tree", "--root", "--no-commit-id", "--name-only", "-r", commit],
            cwd=root,
        )
        return _split_lines(output)

    def changed_files_since(self, root: Path, commit: str) -> List[str]:
        output = self._run(["git", "diff", "--name-only", commit, "HEAD"], cwd=root)
        return _split_lines(output)

    def has_changes(self, root: Path, path: Path | str) -> bool:
        output = self._run(["git", "status", "--porcelain", "--", str(path)], cwd=root)
        return bool(output.strip())

    def stage(self, root: Path, paths: Sequence[Path | str]) -> None:
        if not paths:
            return
        self._run(["git", "add", "--", *[str(path) for path in paths]], cwd=root)

    def commit(self, root: Path, message: str) -> None:
        self._run(["git", "commit", "-m", message], cwd=root)

    def hooks_dir(self, root: Path) -> Path:
        output = self._run(["git", "rev-parse", "--git-path", "hooks"], cwd=root).strip()
        hooks = Path(output)
        if not hooks.is_absolute():
            hooks = Path(root) / hooks
        return hooks

    # ------------------------------------------------------------------
    # Internals

    def _run(
        self,
        args: Iterable[str],
        *,
        cwd: Path,
        env: dict[str, str] | None = None,
    ) -> str:
        return self._runner(list(args), cwd=cwd, env=env)

    @staticmethod
    def _default_runner(
        args: Sequence[str],
        *,
        cwd: Path,
        env: dict[str, str] | None = None,
    ) -> str:
        try:
            completed = subprocess.run(
                list(args),
                cwd=str(cwd),
                env=env,
                check=True,
                text=True,
                capture_output=True,
            )
        except subprocess.CalledProcessError as exc:
            raise GitCommandError(args, exc.stderr or "") from exc
        return completed.stdout


def _split_lines(output: str) -> List[str]:
    return [line.strip() for line in output.splitlines() if line.strip()]


__all__ = ["GitClient"]
