"""Batch completion harness over ``<CURSOR>``-marked source files."""

from .errors import HarnessError
from .language import detect_language
from .parser import CURSOR_MARKER, CompletionCase, load_test_cases, parse_test_file
from .runner import CaseResult, Runner

__all__ = [
    "CURSOR_MARKER",
    "CaseResult",
    "CompletionCase",
    "HarnessError",
    "Runner",
    "detect_language",
    "load_test_cases",
    "parse_test_file",
]
