"""Elapsed-time feedback while a backend request is outstanding."""

import asyncio
import time
import uuid
from typing import TYPE_CHECKING, Any, Literal, Optional

from ..lsp.types import Diagnostic, DiagnosticSeverity, Range
from .log import Log

if TYPE_CHECKING:
    from ..lsp.service import LanguageServer

log = Log.create({"service": "progress"})

SPINNER_FRAMES = ["⠋", "⠙", "⠹", "⠸", "⠼", "⠴", "⠦", "⠧", "⠇", "⠏"]

ProgressMode = Literal["diagnostic", "progress"]


def format_elapsed(seconds: float) -> str:
    return f"{seconds:.1f}s"


class ProgressSignal:
    """Animated status shown while a request is in flight.

    In ``diagnostic`` mode every tick publishes an information diagnostic at
    ``range``; in ``progress`` mode it reports through ``$/progress``. The
    ticker is a single task; :meth:`stop` cancels it before returning, so no
    update is emitted afterwards.
    """

    def __init__(
        self,
        server: "LanguageServer",
        *,
        range: Optional[Range] = None,
        enabled: bool = True,
        interval_ms: int = 200,
        mode: ProgressMode = "diagnostic",
        timeout_ms: int = 0,
        token: Any = None,
        title: str = "helix-assist",
    ):
        self._server = server
        self._range = range or Range.of(0, 0, 0, 0)
        self._enabled = enabled
        self._interval = max(interval_ms, 1) / 1000
        self._mode = mode
        self._timeout_ms = timeout_ms
        self._token = token
        self._title = title
        self._task: Optional[asyncio.Task[None]] = None
        self._start_time = 0.0

    @property
    def running(self) -> bool:
        return self._task is not None

    def start(self) -> None:
        if not self._enabled or self._task is not None:
            return

        self._start_time = time.monotonic()
        if self._mode == "progress":
            if self._token is None:
                self._token = f"helix-assist/{uuid.uuid4()}"
                self._server.create_progress(self._token)
            self._server.progress_begin(self._token, self._title)

        self._task = asyncio.get_running_loop().create_task(self._animate())
        log.debug("progress started", {"mode": self._mode})

    def stop(self) -> None:
        """Stop ticking and clear the status. Safe to call repeatedly."""
        task, self._task = self._task, None
        if task is None:
            return

        task.cancel()
        log.debug("progress stopped", {"mode": self._mode, "elapsed": format_elapsed(time.monotonic() - self._start_time)})
        if self._mode == "progress":
            self._server.progress_end(self._token)
        else:
            self._server.reset_diagnostics()

    def __enter__(self) -> "ProgressSignal":
        self.start()
        return self

    def __exit__(self, *args) -> None:
        self.stop()

    def message(self, frame_index: int) -> str:
        elapsed = time.monotonic() - self._start_time
        frame = SPINNER_FRAMES[frame_index % len(SPINNER_FRAMES)]
        return f"{frame} ({format_elapsed(elapsed)})"

    async def _animate(self) -> None:
        frame_index = 0
        while True:
            await asyncio.sleep(self._interval)
            # Emission is synchronous, so a cancel() issued between ticks always wins.
            self._emit(self.message(frame_index))
            frame_index += 1

    def _emit(self, message: str) -> None:
        if self._mode == "progress":
            self._server.progress_report(self._token, message)
            return

        self._server.publish_diagnostics([
            Diagnostic(
                message=message,
                severity=DiagnosticSeverity.INFORMATION,
                range=self._range,
            ),
        ], self._timeout_ms)
