"""Instruction payloads for the generation engine."""

from .builder import PromptBuilder

__all__ = ["PromptBuilder"]
