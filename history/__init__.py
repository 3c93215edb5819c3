"""Incident history persistence."""

from history.store import HistoryStore

__all__ = ["HistoryStore"]
