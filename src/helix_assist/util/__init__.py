"""Shared helpers: logging, error text, debouncing, progress, text utilities."""

from .error import describe_error, format_error, format_unknown_error
from .log import Log

__all__ = ["Log", "describe_error", "format_error", "format_unknown_error"]
