from __future__ import annotations

from types import SimpleNamespace

import pytest

from helix_assist.backend.errors import BackendFailure, BackendTimeout
from helix_assist.backend.openai import OpenAIBackend

APITimeoutError = type("APITimeoutError", (Exception,), {"__module__": "openai._exceptions"})


class _StatusError(Exception):
    status_code = 429
    message = "Rate limit reached"


class _Completions:
    def __init__(self, replies):
        self.replies = list(replies)
        self.calls: list[dict] = []

    async def create(self, **params):
        self.calls.append(params)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return SimpleNamespace(choices=[
            SimpleNamespace(message=SimpleNamespace(content=text)) for text in reply
        ])


def _backend(*replies):
    completions = _Completions(replies)
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    backend = OpenAIBackend("sk-test", "gpt-4.1-mini", chat_model="gpt-5", timeout_ms=1234, client=client)
    return backend, completions


@pytest.mark.anyio
async def test_completion_sends_system_and_user_prompts() -> None:
    backend, completions = _backend(["return a + b;"])

    result = await backend.completion("def add(a, b):\n    ", "", "file:///add.py", "python", 1)

    assert result == ["return a + b;"]
    [call] = completions.calls
    assert call["model"] == "gpt-4.1-mini"
    system, user = call["messages"]
    assert system["role"] == "system"
    assert "python code completion assistant" in system["content"]
    assert user["content"].startswith("File: file:///add.py\n\nCode before cursor:\ndef add(a, b):\n    ")
    assert "<CURSOR>" in user["content"]


@pytest.mark.anyio
async def test_completion_requests_count_times_and_dedupes() -> None:
    backend, completions = _backend(["x"], ["x"], ["y"])

    assert await backend.completion("", "", "a.py", "python", 3) == ["x", "y"]
    assert len(completions.calls) == 3


@pytest.mark.anyio
async def test_sdk_timeout_becomes_backend_timeout() -> None:
    backend, _ = _backend(APITimeoutError("timed out"))

    with pytest.raises(BackendTimeout) as exc:
        await backend.completion("", "", "a.py", "python", 1)

    assert exc.value.timeout_ms == 1234
    assert exc.value.backend == "openai"


@pytest.mark.anyio
async def test_status_error_carries_code_and_body() -> None:
    backend, _ = _backend(_StatusError("rate"))

    with pytest.raises(BackendFailure) as exc:
        await backend.chat("Improve this code.", "x = 1", "file:///a.py", "python")

    assert str(exc.value) == "API error (status 429): Rate limit reached"


@pytest.mark.anyio
async def test_chat_extracts_fenced_block_with_chat_model() -> None:
    reply = "Sure:\n```python\n// FILEPATH: /src/a.py\nx = 2\n```"
    backend, completions = _backend([reply])

    result = await backend.chat("Improve this code.", "x = 1", "file:///src/a.py", "python")

    assert result == "x = 2\n"
    [call] = completions.calls
    assert call["model"] == "gpt-5"
    assert "// FILEPATH: /src/a.py" in call["messages"][1]["content"]


@pytest.mark.anyio
async def test_chat_without_fence_returns_raw_reply() -> None:
    backend, _ = _backend(["x = 3"])

    assert await backend.chat("Improve", "x = 1", "a.py", "python") == "x = 3"


@pytest.mark.anyio
async def test_chat_without_choices_fails() -> None:
    backend, _ = _backend([])

    with pytest.raises(BackendFailure, match="no completion found"):
        await backend.chat("Improve", "x = 1", "a.py", "python")
