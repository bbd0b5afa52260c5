from __future__ import annotations

from helix_assist.backend.errors import BackendFailure, BackendTimeout
from helix_assist.util.error import describe_error, format_error, format_unknown_error


def test_backend_errors_are_known() -> None:
    assert format_error(BackendTimeout("openai", 500)) == "openai: request timed out after 500ms"
    assert format_error(BackendFailure("anthropic", "boom")) == str(BackendFailure("anthropic", "boom"))
    assert format_error(TimeoutError()) == "request timed out"
    assert format_error(ValueError("x")) is None


def test_describe_error_falls_back_to_type_name() -> None:
    assert describe_error(RuntimeError("broken")) == "broken"
    assert describe_error(RuntimeError()) == "RuntimeError"
    assert describe_error("plain") == "plain"


def test_format_unknown_error_handles_non_exceptions() -> None:
    assert format_unknown_error({"a": 1}) == '{\n  "a": 1\n}'
    assert format_unknown_error(ValueError("bad")) == "ValueError: bad"
