"""Knowledge about the generated wiki tree."""

from .layout import WikiLayout
from .sections import affected_sections

__all__ = ["WikiLayout", "affected_sections"]
