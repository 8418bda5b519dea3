"""Generation engine adapters."""

from .runner import EngineRequest, EngineRunner, find_engine

__all__ = ["EngineRequest", "EngineRunner", "find_engine"]
