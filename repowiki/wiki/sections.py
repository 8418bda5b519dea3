"""Advisory mapping from changed files to wiki sections worth revisiting."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Dict, List, Sequence, Set

from .layout import WikiLayout


@dataclass(frozen=True)
class SectionRule:
    """Associates path fragments with a named wiki section."""

    section: str
    fragments: Sequence[str] = ()
    suffixes: Sequence[str] = ()

    def matches(self, path: str) -> bool:
        lowered = path.replace("\\", "/").lower()
        if any(fragment in lowered for fragment in self.fragments):
            return True
        return any(lowered.endswith(suffix) for suffix in self.suffixes)


_ARCHITECTURE_RULES: Sequence[SectionRule] = (
    SectionRule("Backend Architecture", fragments=("backend/", "server/", "src/api/")),
    SectionRule("Frontend Architecture", fragments=("frontend/", "src/components/", "src/app/")),
)

_SECTION_RULES: Sequence[SectionRule] = (
    SectionRule("API Reference", fragments=("api/", "routes/", "endpoints/")),
    SectionRule("Configuration Management", fragments=("config", ".env", "settings")),
    SectionRule("System Overview", suffixes=("readme.md", "package.json", "pyproject.toml")),
    SectionRule("Authentication and Security", fragments=("auth", "security")),
    SectionRule("Backend Architecture", fragments=("database/", "models/", "migrations/")),
)


def affected_sections(layout: WikiLayout, changed_files: Sequence[str]) -> List[str]:
    """Return wiki pages and sections likely touched by ``changed_files``.

    The result is a hint for the generation engine, which may still edit
    other pages.
    """
    affected: Set[str] = set()

    reverse_index = build_reverse_index(layout)
    for path in changed_files:
        affected.update(reverse_index.get(path, ()))

    for path in changed_files:
        affected.update(heuristic_sections(path))

    return sorted(affected)


def heuristic_sections(path: str) -> List[str]:
    sections: List[str] = []
    # Backend and frontend are mutually exclusive; first match wins.
    for rule in _ARCHITECTURE_RULES:
        if rule.matches(path):
            sections.append(rule.section)
            break
    for rule in _SECTION_RULES:
        if rule.matches(path) and rule.section not in sections:
            sections.append(rule.section)
    return sections


def build_reverse_index(layout: WikiLayout) -> Dict[str, List[str]]:
    """Map source paths recorded in the metadata file to pages that cite them."""
    source_files = _documented_sources(layout)
    index: Dict[str, List[str]] = {}
    if not source_files:
        return index

    for page in layout.pages():
        try:
            content = page.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            continue
        page_name = page.relative_to(layout.content_dir).as_posix()
        for source in source_files:
            if source in content:
                index.setdefault(source, []).append(page_name)
    return index


def _documented_sources(layout: WikiLayout) -> Set[str]:
    try:
        payload = json.loads(layout.metadata_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return set()
    if not isinstance(payload, dict):
        return set()
    snippets = payload.get("code_snippets")
    if not isinstance(snippets, list):
        return set()
    sources: Set[str] = set()
    for snippet in snippets:
        if not isinstance(snippet, dict):
            continue
        path = snippet.get("path")
        if isinstance(path, str) and path:
            sources.add(path)
    return sources


__all__ = ["SectionRule", "affected_sections", "build_reverse_index", "heuristic_sections"]
