"""Persistent decision log."""

from filterwave.decisions.store import DecisionLog

__all__ = ["DecisionLog"]
