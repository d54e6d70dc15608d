"""Core business logic."""
from app.core.burndown import BurndownPoint, BurndownResult, compute_burndown
from app.core.cache import CachedResponse, ResponseCache

__all__ = [
    "BurndownPoint",
    "BurndownResult",
    "CachedResponse",
    "ResponseCache",
    "compute_burndown",
]
