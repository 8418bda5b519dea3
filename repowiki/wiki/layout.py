"""Paths of the generated wiki inside a repository."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

from ..config import RepoWikiConfig

METADATA_FILE_NAME = "repowiki-metadata.json"


@dataclass(frozen=True)
class WikiLayout:
    """Resolves the content and metadata locations for one repository."""

    root: Path
    wiki_path: str
    language: str

    @classmethod
    def for_config(cls, root: Path, config: RepoWikiConfig) -> "WikiLayout":
        return cls(root=Path(root), wiki_path=config.wiki_path, language=config.language)

    @property
    def wiki_dir(self) -> Path:
        return self.root / self.wiki_path

    @property
    def content_dir(self) -> Path:
        return self.wiki_dir / self.language / "content"

    @property
    def metadata_path(self) -> Path:
        return self.wiki_dir / self.language / "meta" / METADATA_FILE_NAME

    @property
    def relative_content_dir(self) -> str:
        return f"{self.wiki_path}/{self.language}/content"

    @property
    def relative_metadata_path(self) -> str:
        return f"{self.wiki_path}/{self.language}/meta/{METADATA_FILE_NAME}"

    def pages(self) -> Iterator[Path]:
        if not self.content_dir.is_dir():
            return iter(())
        return (path for path in sorted(self.content_dir.rglob("*.md")) if path.is_file())

    def exists(self) -> bool:
        return any(True for _ in self.pages())

    def page_count(self) -> int:
        return sum(1 for _ in self.pages())


__all__ = ["METADATA_FILE_NAME", "WikiLayout"]
