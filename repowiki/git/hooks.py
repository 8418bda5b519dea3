"""Installation of the managed post-commit hook block."""

from __future__ import annotations

import os
import stat
from pathlib import Path

from .client import GitClient

HOOK_NAME = "post-commit"
BEGIN_MARKER = "# repowiki:begin"
END_MARKER = "# repowiki:end"
SHEBANG = "#!/bin/sh"

HOOK_BODY = (
    "if command -v repowiki >/dev/null 2>&1; then\n"
    "    repowiki hooks post-commit >/dev/null 2>&1 || true\n"
    "fi"
)


class HookManager:
    """Adds and removes repowiki's block inside ``.git/hooks/post-commit``.

    Other content in an existing hook is left untouched.
    """

    def __init__(self, git: GitClient | None = None) -> None:
        self.git = git or GitClient()

    def hook_path(self, root: Path) -> Path:
        return self.git.hooks_dir(root) / HOOK_NAME

    def is_installed(self, root: Path) -> bool:
        path = self.hook_path(root)
        if not path.exists():
            return False
        return BEGIN_MARKER in path.read_text(encoding="utf-8")

    def install(self, root: Path) -> Path:
        path = self.hook_path(root)
        path.parent.mkdir(parents=True, exist_ok=True)
        block = f"{BEGIN_MARKER}\n{HOOK_BODY}\n{END_MARKER}\n"
        if path.exists():
            current = path.read_text(encoding="utf-8")
            if BEGIN_MARKER in current:
                updated = _replace_block(current, block)
            else:
                separator = "" if current.endswith("\n") or not current else "\n"
                updated = f"{current}{separator}\n{block}"
        else:
            updated = f"{SHEBANG}\n\n{block}"
        path.write_text(updated, encoding="utf-8")
        mode = path.stat().st_mode
        path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return path

    def uninstall(self, root: Path) -> bool:
        path = self.hook_path(root)
        if not path.exists():
            return False
        current = path.read_text(encoding="utf-8")
        if BEGIN_MARKER not in current:
            return False
        remaining = _replace_block(current, "").rstrip() + "\n"
        if remaining.strip() in {"", SHEBANG}:
            os.remove(path)
        else:
            path.write_text(remaining, encoding="utf-8")
        return True


def _replace_block(text: str, replacement: str) -> str:
    pre, rest = text.split(BEGIN_MARKER, 1)
    if END_MARKER in rest:
        _, post = rest.split(END_MARKER, 1)
        post = post[1:] if post.startswith("\n") else post
    else:
        post = ""
    return f"{pre}{replacement}{post}"


__all__ = ["BEGIN_MARKER", "END_MARKER", "HOOK_NAME", "HookManager"]
