from __future__ import annotations

import asyncio

import pytest

from helix_assist.lsp import types
from helix_assist.lsp.types import Range
from helix_assist.util.progress import SPINNER_FRAMES, ProgressSignal, format_elapsed
from tests.helpers import make_server, open_document


def test_format_elapsed_uses_one_decimal() -> None:
    assert format_elapsed(1.23) == "1.2s"
    assert format_elapsed(0) == "0.0s"


@pytest.mark.anyio
async def test_diagnostic_mode_ticks_then_clears_on_stop() -> None:
    harness = make_server()
    open_document(harness.server, "file:///a.ts", "text")
    signal = ProgressSignal(harness.server, range=Range.of(2, 0, 3, 0), interval_ms=5)

    signal.start()
    await asyncio.sleep(0.05)
    signal.stop()

    published = harness.notifications(types.EVENT_PUBLISH_DIAGNOSTICS)
    ticks = [p for p in published if p["params"]["diagnostics"]]
    assert len(ticks) >= 2
    first = ticks[0]["params"]["diagnostics"][0]
    assert first["severity"] == 3
    assert first["range"]["start"]["line"] == 2
    assert first["message"].startswith(SPINNER_FRAMES[0] + " (")
    assert first["message"].endswith("s)")
    assert published[-1]["params"]["diagnostics"] == []


@pytest.mark.anyio
async def test_nothing_is_emitted_after_stop_returns() -> None:
    harness = make_server()
    open_document(harness.server, "file:///a.ts", "text")
    signal = ProgressSignal(harness.server, interval_ms=1)

    signal.start()
    await asyncio.sleep(0.02)
    signal.stop()
    count = len(harness.sent())

    await asyncio.sleep(0.03)
    assert len(harness.sent()) == count
    assert signal.running is False


@pytest.mark.anyio
async def test_stop_is_idempotent_and_safe_without_start() -> None:
    harness = make_server()
    signal = ProgressSignal(harness.server)

    signal.stop()
    signal.start()
    signal.stop()
    signal.stop()

    assert signal.running is False


@pytest.mark.anyio
async def test_disabled_signal_emits_nothing() -> None:
    harness = make_server()
    open_document(harness.server, "file:///a.ts", "text")

    with ProgressSignal(harness.server, enabled=False, interval_ms=1):
        await asyncio.sleep(0.02)

    assert harness.sent() == []


@pytest.mark.anyio
async def test_progress_mode_uses_work_done_progress() -> None:
    harness = make_server()

    with ProgressSignal(harness.server, mode="progress", interval_ms=5, title="Fetching"):
        await asyncio.sleep(0.03)

    sent = harness.sent()
    [create] = [m for m in sent if m.get("method") == types.EVENT_PROGRESS_CREATE]
    token = create["params"]["token"]
    kinds = [m["params"]["value"]["kind"] for m in sent if m.get("method") == types.EVENT_PROGRESS]
    assert kinds[0] == "begin"
    assert "report" in kinds
    assert kinds[-1] == "end"
    assert all(m["params"]["token"] == token for m in sent if m.get("method") == types.EVENT_PROGRESS)


@pytest.mark.anyio
async def test_progress_mode_reuses_client_token() -> None:
    harness = make_server()

    with ProgressSignal(harness.server, mode="progress", token="client-token", interval_ms=50):
        pass

    sent = harness.sent()
    assert not [m for m in sent if m.get("method") == types.EVENT_PROGRESS_CREATE]
    assert [m["params"]["token"] for m in sent] == ["client-token", "client-token"]
