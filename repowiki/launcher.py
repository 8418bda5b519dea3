"""Fire-and-forget launch of the hook-triggered update worker."""

from __future__ import annotations

import subprocess
import sys
from pathlib import Path
from typing import Callable, List, Optional

from .config import hook_log_path
from .logging import get_logger

logger = get_logger("launcher")


def worker_command(executable: str, commit_hash: str) -> List[str]:
    return [executable, "-m", "repowiki", "update", "--from-hook", "--commit", commit_hash]


def launch_background(
    root: Path,
    commit_hash: str,
    *,
    popen: Callable[..., object] = subprocess.Popen,
    executable: Optional[str] = None,
) -> bool:
    """Start the update worker detached from the hook and return immediately.

    Returns False when the worker could not be spawned; the triggering
    commit is then folded into the next run.
    """
    interpreter = executable if executable is not None else sys.executable
    if not interpreter:
        logger.debug("Cannot locate the Python interpreter; skipping background update")
        return False

    log_path = hook_log_path(root)
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        with open(log_path, "ab") as log_file:
            popen(
                worker_command(interpreter, commit_hash),
                cwd=str(root),
                stdin=subprocess.DEVNULL,
                stdout=log_file,
                stderr=log_file,
                start_new_session=True,
                close_fds=True,
            )
    except OSError as exc:
        logger.debug("Failed to launch background update: %s", exc)
        return False
    # The child keeps its own copy of the log descriptor; never wait on it.
    logger.debug("Background update launched for %s", commit_hash)
    return True


__all__ = ["launch_background", "worker_command"]
