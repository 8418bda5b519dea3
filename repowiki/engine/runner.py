"""Adapter around the external wiki generation engine (qodercli)."""

from __future__ import annotations

import shutil
import subprocess
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from ..config import DEFAULT_ENGINE, RepoWikiConfig
from ..errors import EngineError, EngineNotFoundError
from ..logging import get_logger

KNOWN_LOCATIONS: dict[str, tuple[str, ...]] = {
    "darwin": (
        "/Applications/Qoder.app/Contents/Resources/app/resources/bin/aarch64_darwin/qodercli",
        "/Applications/Qoder.app/Contents/Resources/app/resources/bin/x86_64_darwin/qodercli",
    ),
    "linux": (
        "/usr/bin/qodercli",
        "/usr/local/bin/qodercli",
    ),
}


def find_engine(
    config: RepoWikiConfig,
    *,
    which: Callable[[str], Optional[str]] = shutil.which,
    platform: str = sys.platform,
    exists: Callable[[Path], bool] = Path.exists,
) -> Path:
    """Locate the engine binary: configured path, then PATH, then known installs."""
    configured = config.engine_path
    if configured and configured != DEFAULT_ENGINE:
        candidate = Path(configured).expanduser()
        if exists(candidate):
            return candidate

    found = which(DEFAULT_ENGINE)
    if found:
        return Path(found)

    key = "darwin" if platform == "darwin" else "linux" if platform.startswith("linux") else platform
    for location in KNOWN_LOCATIONS.get(key, ()):
        candidate = Path(location)
        if exists(candidate):
            return candidate

    raise EngineNotFoundError(
        f"{DEFAULT_ENGINE} not found; install Qoder or set engine_path in .repowiki/config.yml"
    )


@dataclass
class EngineRequest:
    """Represents one blocking call to the generation engine."""

    executable: str
    prompt: str
    cwd: Path
    max_turns: int
    allowed_tools: Sequence[str]
    model: Optional[str] = None
    extra_args: List[str] = field(default_factory=list)

    def command(self) -> List[str]:
        args = [
            self.executable,
            "-p",
            self.prompt,
            "-q",
            "-w",
            str(self.cwd),
            "--max-turns",
            str(self.max_turns),
            "--dangerously-skip-permissions",
            "--allowed-tools",
            ",".join(self.allowed_tools),
        ]
        if self.model and self.model != "auto":
            args.extend(["--model", self.model])
        args.extend(self.extra_args)
        return args


class EngineRunner:
    """Runs instruction prompts through the generation engine and returns its output."""

    def __init__(
        self,
        config: RepoWikiConfig,
        *,
        runner: Callable[[EngineRequest], str] | None = None,
        locator: Callable[[RepoWikiConfig], Path] = find_engine,
    ) -> None:
        self.config = config
        self._runner = runner or self._subprocess_runner
        self._locator = locator
        self.logger = get_logger("engine")

    def run(self, prompt: str, cwd: Path) -> str:
        executable = self._locator(self.config)
        request = EngineRequest(
            executable=str(executable),
            prompt=prompt,
            cwd=Path(cwd),
            max_turns=self.config.max_turns,
            allowed_tools=list(self.config.allowed_tools),
            model=self.config.model,
        )
        self.logger.debug(
            "Invoking %s (max_turns=%d, model=%s)", executable, request.max_turns, request.model
        )
        return self._runner(request)

    @staticmethod
    def _subprocess_runner(request: EngineRequest) -> str:
        try:
            completed = subprocess.run(
                request.command(),
                cwd=str(request.cwd),
                check=True,
                capture_output=True,
                text=True,
            )
        except FileNotFoundError as exc:
            raise EngineNotFoundError(f"Unable to execute '{request.executable}'") from exc
        except subprocess.CalledProcessError as exc:
            raise EngineError(
                f"{Path(request.executable).name} failed with exit code {exc.returncode}: "
                f"{(exc.stderr or '').strip()}"
            ) from exc
        return completed.stdout


__all__ = ["EngineRequest", "EngineRunner", "KNOWN_LOCATIONS", "find_engine"]
