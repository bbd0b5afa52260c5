"""Text-generation backends and the registry that selects between them."""

from .base import Backend, collect_suggestions
from .errors import (
    BackendError,
    BackendFailure,
    BackendNotConfiguredError,
    BackendNotFoundError,
    BackendTimeout,
)
from .registry import BackendRegistry

__all__ = [
    "Backend",
    "collect_suggestions",
    "BackendError",
    "BackendFailure",
    "BackendTimeout",
    "BackendNotConfiguredError",
    "BackendNotFoundError",
    "BackendRegistry",
]
