from __future__ import annotations

from types import SimpleNamespace

import pytest

from helix_assist.backend.anthropic import CHAT_MAX_TOKENS, COMPLETION_MAX_TOKENS, AnthropicBackend
from helix_assist.backend.errors import BackendFailure

APIConnectionError = type("APIConnectionError", (Exception,), {"__module__": "anthropic._exceptions"})


class _Messages:
    def __init__(self, replies):
        self.replies = list(replies)
        self.calls: list[dict] = []

    async def create(self, **params):
        self.calls.append(params)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, SimpleNamespace):
            return reply
        return SimpleNamespace(content=[SimpleNamespace(type="text", text=text) for text in reply])


def _backend(*replies):
    messages = _Messages(replies)
    backend = AnthropicBackend(
        "sk-ant-test",
        "claude-haiku-4-5",
        chat_model="claude-sonnet-4-5",
        client=SimpleNamespace(messages=messages),
    )
    return backend, messages


@pytest.mark.anyio
async def test_completion_caches_system_prompt() -> None:
    backend, messages = _backend(["return 1;"])

    assert await backend.completion("int f() {", "}", "f.c", "c", 1) == ["return 1;"]

    [call] = messages.calls
    assert call["model"] == "claude-haiku-4-5"
    assert call["max_tokens"] == COMPLETION_MAX_TOKENS
    assert call["temperature"] == 0.0
    [system] = call["system"]
    assert system["cache_control"] == {"type": "ephemeral"}
    assert "c code completion assistant" in system["text"]


@pytest.mark.anyio
async def test_multiple_suggestions_sample_with_temperature() -> None:
    backend, messages = _backend(["a"], ["b"])

    assert await backend.completion("", "", "f.c", "c", 2) == ["a", "b"]
    assert [call["temperature"] for call in messages.calls] == [0.4, 0.4]


@pytest.mark.anyio
async def test_partial_failure_keeps_first_suggestion() -> None:
    backend, _ = _backend(["a"], APIConnectionError("reset by peer"))

    assert await backend.completion("", "", "f.c", "c", 2) == ["a"]


@pytest.mark.anyio
async def test_connection_error_is_wrapped() -> None:
    backend, _ = _backend(APIConnectionError("reset by peer"))

    with pytest.raises(BackendFailure, match="request failed: reset by peer"):
        await backend.completion("", "", "f.c", "c", 1)


@pytest.mark.anyio
async def test_chat_uses_chat_model_and_plain_prompt() -> None:
    backend, messages = _backend(["int f() { return 2; }"])

    result = await backend.chat("Improve this code.", "int f() { return 1; }", "file:///src/f.c", "c")

    assert result == "int f() { return 2; }"
    [call] = messages.calls
    assert call["model"] == "claude-sonnet-4-5"
    assert call["max_tokens"] == CHAT_MAX_TOKENS
    assert call["temperature"] == 0.1
    assert call["messages"][0]["content"].startswith("File: /src/f.c\nLanguage: c\n")


@pytest.mark.anyio
async def test_chat_ignores_non_text_blocks() -> None:
    backend, _ = _backend(SimpleNamespace(content=[SimpleNamespace(type="tool_use", id="t1")]))

    with pytest.raises(BackendFailure, match="no completion found"):
        await backend.chat("Improve", "x", "f.c", "c")
