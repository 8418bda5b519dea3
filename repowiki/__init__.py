"""Commit-triggered wiki maintenance."""

__version__ = "0.3.0"
