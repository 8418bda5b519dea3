"""Renders the natural-language instructions handed to the generation engine."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

from jinja2 import Environment, FileSystemLoader

from ..config import RepoWikiConfig
from ..wiki.layout import METADATA_FILE_NAME, WikiLayout

WIKI_STRUCTURE: tuple[str, ...] = (
    "System Overview.md - project purpose, high-level architecture",
    "Technology Stack.md - languages, frameworks, key dependencies",
    "Getting Started.md - setup, installation, running",
    "Backend Architecture/ - server structure, API design, database, etc.",
    "Frontend Architecture/ - UI components, state management, etc.",
    "Core Features/ - each major feature documented individually",
    "API Reference/ - endpoints, request/response formats",
    "Configuration Management.md - environment variables, config files",
)


class PromptBuilder:
    """Builds full-generation and incremental-update prompts from templates."""

    FULL_TEMPLATE = "full_generate.j2"
    INCREMENTAL_TEMPLATE = "incremental.j2"

    def __init__(self, templates_dir: Path | None = None) -> None:
        directories = []
        if templates_dir:
            directories.append(str(templates_dir))
        directories.append(str(Path(__file__).with_name("templates")))
        self._env = Environment(
            loader=FileSystemLoader(directories),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=False,
        )

    def full_generate(self, config: RepoWikiConfig) -> str:
        template = self._env.get_template(self.FULL_TEMPLATE)
        return template.render(structure=WIKI_STRUCTURE, **self._layout_context(config)).strip()

    def incremental(
        self,
        config: RepoWikiConfig,
        changed_files: Sequence[str],
        affected_sections: Sequence[str] = (),
    ) -> str:
        template = self._env.get_template(self.INCREMENTAL_TEMPLATE)
        return template.render(
            changed_files=list(changed_files),
            affected_sections=list(affected_sections),
            **self._layout_context(config),
        ).strip()

    @staticmethod
    def _layout_context(config: RepoWikiConfig) -> dict[str, str]:
        layout = WikiLayout.for_config(Path("."), config)
        return {
            "wiki_path": config.wiki_path,
            "content_dir": layout.relative_content_dir,
            "metadata_path": layout.relative_metadata_path,
            "metadata_name": METADATA_FILE_NAME,
        }


__all__ = ["PromptBuilder", "WIKI_STRUCTURE"]
