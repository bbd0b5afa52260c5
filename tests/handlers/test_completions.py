from __future__ import annotations

import asyncio

import pytest

from helix_assist.backend.base import collect_suggestions
from helix_assist.backend.errors import BackendFailure
from helix_assist.handlers.completions import CompletionHandler
from helix_assist.lsp import types
from helix_assist.lsp.types import CompletionParams
from tests.helpers import FakeBackend, dispatch, make_server, open_document, quiet_config, registry_with, request

URI = "file:///src/add.ts"
TEXT = "function add(a, b) {\n  \n}"


def _params(line: int = 1, character: int = 2) -> dict:
    return {"textDocument": {"uri": URI}, "position": {"line": line, "character": character}}


def _setup(backend: FakeBackend, text: str = TEXT, **config):
    harness = make_server()
    open_document(harness.server, URI, text)
    handler = CompletionHandler(quiet_config(**config), registry_with(backend))
    handler.register(harness.server)
    return harness, handler


def _result(harness, request_id: int) -> dict:
    [response] = harness.responses(request_id)
    return response["result"]


@pytest.mark.anyio
async def test_completion_returns_synthesized_items() -> None:
    backend = FakeBackend(["return a + b;"])
    harness, _ = _setup(backend, num_suggestions=2)

    await dispatch(harness.server, request(types.EVENT_COMPLETION, _params()))

    result = _result(harness, 1)
    assert result["isIncomplete"] is False
    [item] = result["items"]
    assert item["label"] == "return a + b;"
    assert item["insertText"] == "return a + b;"
    assert item["preselect"] is True
    assert backend.completion_calls == [("function add(a, b) {\n  ", "}", URI, "typescript", 2)]


@pytest.mark.anyio
async def test_spinner_disabled_shows_fetching_message() -> None:
    harness, _ = _setup(FakeBackend(["x"]))

    await dispatch(harness.server, request(types.EVENT_COMPLETION, _params()))

    [shown] = harness.notifications(types.EVENT_SHOW_MESSAGE)
    assert shown["params"] == {"type": 3, "message": "Fetching completion..."}


@pytest.mark.anyio
async def test_member_access_is_skipped() -> None:
    backend = FakeBackend(["length"])
    harness, _ = _setup(backend, text="items.")

    await dispatch(harness.server, request(types.EVENT_COMPLETION, _params(0, 6)))

    assert _result(harness, 1) == {"isIncomplete": False, "items": []}
    assert backend.completion_calls == []


@pytest.mark.anyio
async def test_unknown_document_answers_empty() -> None:
    backend = FakeBackend(["x"])
    harness, _ = _setup(backend)

    params = {"textDocument": {"uri": "file:///missing.ts"}, "position": {"line": 0, "character": 0}}
    await dispatch(harness.server, request(types.EVENT_COMPLETION, params))

    assert _result(harness, 1)["items"] == []
    assert backend.completion_calls == []


@pytest.mark.anyio
async def test_stale_request_skips_backend() -> None:
    backend = FakeBackend(["return a + b;"])
    harness, handler = _setup(backend)
    harness.server.documents.update_text(URI, 4, TEXT + "\n")

    await handler.complete(harness.server, 7, CompletionParams.model_validate(_params()), 3)

    assert _result(harness, 7)["items"] == []
    assert backend.completion_calls == []


@pytest.mark.anyio
async def test_superseded_request_answers_empty() -> None:
    backend = FakeBackend(["return a + b;"])
    harness, _ = _setup(backend, debounce=20)

    first = harness.server.dispatcher.emit(harness.server, request(types.EVENT_COMPLETION, _params(), 1))
    second = harness.server.dispatcher.emit(harness.server, request(types.EVENT_COMPLETION, _params(), 2))
    await asyncio.gather(*first, *second)

    assert _result(harness, 1)["items"] == []
    assert len(_result(harness, 2)["items"]) == 1
    assert len(backend.completion_calls) == 1


@pytest.mark.anyio
async def test_backend_error_publishes_diagnostic() -> None:
    backend = FakeBackend(error=BackendFailure("fake", "quota exceeded"))
    harness, _ = _setup(backend)

    await dispatch(harness.server, request(types.EVENT_COMPLETION, _params()))

    assert _result(harness, 1)["items"] == []
    [published] = harness.notifications(types.EVENT_PUBLISH_DIAGNOSTICS)
    [diagnostic] = published["params"]["diagnostics"]
    assert diagnostic["message"] == "quota exceeded"
    assert diagnostic["severity"] == 1
    assert diagnostic["range"] == {"start": {"line": 1, "character": 0}, "end": {"line": 2, "character": 0}}


@pytest.mark.anyio
async def test_completion_timeout_publishes_diagnostic() -> None:
    harness, _ = _setup(FakeBackend(["late"], delay=1), completion_timeout=20)

    await dispatch(harness.server, request(types.EVENT_COMPLETION, _params()))

    assert _result(harness, 1)["items"] == []
    [published] = harness.notifications(types.EVENT_PUBLISH_DIAGNOSTICS)
    assert published["params"]["diagnostics"][0]["message"] == "fake: request timed out after 20ms"


@pytest.mark.anyio
async def test_suggestions_before_timeout_are_kept() -> None:
    class SecondCallHangs(FakeBackend):
        async def completion(self, content_before, content_after, file_path, language_id, count, timeout_ms=None):  # type: ignore[override]
            answers = iter([(0, ["return a + b;"]), (5, ["too late"])])

            async def fetch() -> list[str]:
                delay, answer = next(answers)
                await asyncio.sleep(delay)
                return answer

            return await collect_suggestions("fake", count, fetch, timeout_ms)

    harness, _ = _setup(SecondCallHangs(), num_suggestions=2, completion_timeout=100)

    await dispatch(harness.server, request(types.EVENT_COMPLETION, _params()))

    assert [item["insertText"] for item in _result(harness, 1)["items"]] == ["return a + b;"]
    assert harness.notifications(types.EVENT_PUBLISH_DIAGNOSTICS) == []


@pytest.mark.anyio
async def test_completion_timeout_is_passed_to_backend() -> None:
    backend = FakeBackend(["x"])
    harness, _ = _setup(backend, completion_timeout=1234)

    await dispatch(harness.server, request(types.EVENT_COMPLETION, _params()))

    assert backend.timeouts == [1234]
