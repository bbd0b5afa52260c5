"""Shared test helpers."""

from __future__ import annotations

import asyncio
import io
import json
from types import SimpleNamespace
from typing import Any

from helix_assist.backend.base import collect_suggestions
from helix_assist.backend.registry import BackendRegistry
from helix_assist.core.config import Config
from helix_assist.lsp.documents import Document
from helix_assist.lsp.framing import FrameReader, FrameWriter
from helix_assist.lsp.service import LanguageServer
from helix_assist.lsp.types import Message, ServerCapabilities


class Harness(SimpleNamespace):
    server: LanguageServer
    output: io.BytesIO
    exits: list[int]

    def sent(self) -> list[dict[str, Any]]:
        """Every message written so far, decoded."""
        reader = FrameReader(io.BytesIO(self.output.getvalue()))
        messages = []
        while (body := reader.read_frame()) is not None:
            messages.append(json.loads(body))
        return messages

    def responses(self, request_id: Any) -> list[dict[str, Any]]:
        return [m for m in self.sent() if m.get("id") == request_id and "method" not in m]

    def notifications(self, method: str) -> list[dict[str, Any]]:
        return [m for m in self.sent() if m.get("method") == method]


def make_server(capabilities: ServerCapabilities | None = None) -> Harness:
    output = io.BytesIO()
    exits: list[int] = []
    server = LanguageServer(
        capabilities or ServerCapabilities(),
        FrameReader(io.BytesIO()),
        FrameWriter(output),
        exit=exits.append,
    )
    return Harness(server=server, output=output, exits=exits)


def open_document(server: LanguageServer, uri: str, text: str, version: int = 1, language_id: str = "typescript") -> None:
    server.documents.set(Document(uri=uri, text=text, version=version, language_id=language_id))


def request(method: str, params: Any, request_id: int = 1) -> Message:
    return Message(id=request_id, method=method, params=params)


def notification(method: str, params: Any) -> Message:
    return Message(method=method, params=params)


async def dispatch(server: LanguageServer, message: Message) -> None:
    """Dispatch ``message`` and wait for its handlers to finish."""
    tasks = server.dispatcher.emit(server, message)
    if tasks:
        await asyncio.gather(*tasks)


def quiet_config(**overrides: Any) -> Config:
    """Config with no debounce delay and no progress animation."""
    values: dict[str, Any] = {
        "openai_key": "sk-test",
        "debounce": 0,
        "enable_progress_spinner": False,
        "diagnostic_timeout": 0,
        "log_file": "",
    }
    values.update(overrides)
    return Config(**values)


class FakeBackend:
    """Records calls and replays canned answers, one per attempt, like a real backend."""

    def __init__(
        self,
        suggestions: list[str] | None = None,
        chat_result: str = "",
        error: Exception | None = None,
        delay: float = 0.0,
    ):
        self.suggestions = suggestions or []
        self.chat_result = chat_result
        self.error = error
        self.delay = delay
        self.timeouts: list[int | None] = []
        self.completion_calls: list[tuple[str, str, str, str, int]] = []
        self.chat_calls: list[tuple[str, str, str, str]] = []

    async def completion(
        self,
        content_before: str,
        content_after: str,
        file_path: str,
        language_id: str,
        count: int,
        timeout_ms: int | None = None,
    ) -> list[str]:
        self.completion_calls.append((content_before, content_after, file_path, language_id, count))
        self.timeouts.append(timeout_ms)

        async def fetch() -> list[str]:
            if self.delay:
                await asyncio.sleep(self.delay)
            if self.error is not None:
                raise self.error
            return list(self.suggestions)

        return await collect_suggestions("fake", count, fetch, timeout_ms)

    async def chat(self, instruction: str, selected_content: str, file_path: str, language_id: str) -> str:
        self.chat_calls.append((instruction, selected_content, file_path, language_id))
        if self.error is not None:
            raise self.error
        return self.chat_result


def registry_with(backend: Any, name: str = "fake") -> BackendRegistry:
    registry = BackendRegistry()
    registry.register(name, backend)
    registry.select(name)
    return registry
