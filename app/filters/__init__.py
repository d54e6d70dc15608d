"""Declarative query filters (fastapi-filter)."""

from .task import TaskFilter

__all__ = ["TaskFilter"]
