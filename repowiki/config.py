"""Configuration loading for repowiki (.repowiki/config.yml)."""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, field, fields
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .errors import ConfigError

TOOL_DIR_NAME = ".repowiki"
CONFIG_FILE_NAME = "config.yml"
LOG_DIR_NAME = "logs"
HOOK_LOG_NAME = "hook.log"

DEFAULT_ENGINE = "qodercli"
DEFAULT_WIKI_PATH = ".qoder/repowiki"
DEFAULT_ALLOWED_TOOLS: tuple[str, ...] = ("Read", "Write", "Edit", "Glob", "Grep", "Bash")

ENV_ENGINE_PATH = "REPOWIKI_ENGINE_PATH"


def _default_excluded_paths() -> List[str]:
    return [f"{DEFAULT_WIKI_PATH}/", f"{TOOL_DIR_NAME}/"]


@dataclass
class RepoWikiConfig:
    """Per-repository settings stored in .repowiki/config.yml."""

    enabled: bool = True
    engine_path: str = DEFAULT_ENGINE
    model: str = "auto"
    max_turns: int = 50
    language: str = "en"
    wiki_path: str = DEFAULT_WIKI_PATH
    commit_prefix: str = "[repowiki]"
    auto_commit: bool = True
    excluded_paths: List[str] = field(default_factory=_default_excluded_paths)
    full_generate_threshold: int = 20
    allowed_tools: List[str] = field(default_factory=lambda: list(DEFAULT_ALLOWED_TOOLS))
    last_run: Optional[str] = None
    last_commit_hash: Optional[str] = None


def tool_dir(root: Path) -> Path:
    """Return the hidden per-repository state directory."""
    return Path(root) / TOOL_DIR_NAME


def config_path(root: Path) -> Path:
    return tool_dir(root) / CONFIG_FILE_NAME


def log_dir(root: Path) -> Path:
    return tool_dir(root) / LOG_DIR_NAME


def hook_log_path(root: Path) -> Path:
    return log_dir(root) / HOOK_LOG_NAME


def load_config(root: Path, *, required: bool = True) -> RepoWikiConfig:
    """Load configuration for the repository rooted at ``root``.

    A missing file raises :class:`ConfigError` when ``required`` is set and
    yields defaults otherwise.
    """
    path = config_path(root)
    if not path.exists():
        if required:
            raise ConfigError(
                f"repowiki is not configured in {root}. Run 'repowiki enable' first."
            )
        return RepoWikiConfig()

    data = _read_config(path)
    if not isinstance(data, dict):
        raise ConfigError(f"{path.name} must contain a mapping at the root")

    defaults = RepoWikiConfig()
    config = RepoWikiConfig(
        enabled=_coalesce(_as_bool(data.get("enabled")), defaults.enabled),
        engine_path=_as_str(data.get("engine_path")) or defaults.engine_path,
        model=_as_str(data.get("model")) or defaults.model,
        max_turns=_coalesce(_as_int(data.get("max_turns")), defaults.max_turns),
        language=_as_str(data.get("language")) or defaults.language,
        wiki_path=(_as_str(data.get("wiki_path")) or defaults.wiki_path).rstrip("/"),
        commit_prefix=_as_str(data.get("commit_prefix")) or defaults.commit_prefix,
        auto_commit=_coalesce(_as_bool(data.get("auto_commit")), defaults.auto_commit),
        full_generate_threshold=_coalesce(
            _as_int(data.get("full_generate_threshold")), defaults.full_generate_threshold
        ),
        last_run=_as_str(data.get("last_run")),
        last_commit_hash=_as_str(data.get("last_commit_hash")),
    )
    if "excluded_paths" in data:
        config.excluded_paths = _as_str_list(data.get("excluded_paths"))
    if "allowed_tools" in data:
        config.allowed_tools = _as_str_list(data.get("allowed_tools")) or list(DEFAULT_ALLOWED_TOOLS)

    env_engine = os.getenv(ENV_ENGINE_PATH)
    if env_engine:
        config.engine_path = env_engine
    return config


def save_config(root: Path, config: RepoWikiConfig) -> Path:
    """Persist ``config`` atomically and return the file path."""
    payload = {item.name: getattr(config, item.name) for item in fields(config)}
    return _write_mapping(config_path(root), payload)


def update_last_run(root: Path, config: RepoWikiConfig, commit_hash: str) -> RepoWikiConfig:
    """Record ``commit_hash`` as the new baseline and persist it.

    Only ``last_commit_hash`` and ``last_run`` are rewritten on disk; other
    keys keep whatever the file holds at write time.
    """
    config.last_commit_hash = commit_hash
    config.last_run = datetime.now(UTC).replace(microsecond=0).isoformat().replace("+00:00", "Z")
    path = config_path(root)
    data = _read_config(path) if path.exists() else None
    if not isinstance(data, dict):
        save_config(root, config)
        return config
    data["last_commit_hash"] = config.last_commit_hash
    data["last_run"] = config.last_run
    _write_mapping(path, data)
    return config


def _write_mapping(path: Path, payload: Dict[str, Any]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    text = yaml.safe_dump(payload, sort_keys=False, default_flow_style=False)

    fd, tmp_name = tempfile.mkstemp(prefix=".config-", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    return path


def _read_config(path: Path) -> Any:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to read {path}: {exc}") from exc
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded if loaded is not None else {}


def _coalesce(value: Any, default: Any) -> Any:
    return default if value is None else value


def _as_str(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return None
    return str(value) if isinstance(value, (str, int, float)) else None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []


__all__ = [
    "ConfigError",
    "RepoWikiConfig",
    "config_path",
    "hook_log_path",
    "load_config",
    "log_dir",
    "save_config",
    "tool_dir",
    "update_last_run",
]
