"""Language server runtime: message dispatch and outbound protocol helpers.

Frames are read on a worker thread and handed to the asyncio event loop,
where every handler registered for the message's method runs as its own task.
The reader never waits for handlers, so slow requests overlap freely.
"""

import asyncio
import itertools
import os
import threading
from contextvars import Context, copy_context
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from pydantic import BaseModel, ValidationError
from pylsp_jsonrpc.exceptions import (
    JsonRpcException,
    JsonRpcInvalidParams,
    JsonRpcMethodNotFound,
)

from .. import __version__
from ..util.debounce import Debouncer
from ..util.error import format_unknown_error
from ..util.log import Log
from . import types
from .documents import Document, DocumentStore
from .framing import FrameReader, FrameWriter
from .types import (
    Diagnostic,
    DidChangeParams,
    DidCloseParams,
    DidOpenParams,
    InitializeResult,
    Message,
    MessageType,
    ProgressParams,
    PublishDiagnosticsParams,
    ServerCapabilities,
    ServerInfo,
    ShowMessageParams,
    WorkDoneProgressBegin,
    WorkDoneProgressEnd,
    WorkDoneProgressReport,
)

log = Log.create({"service": "lsp.service"})

DIAGNOSTIC_SOURCE = "helix-assist"

Handler = Callable[["LanguageServer", Message], Awaitable[None]]


@dataclass(frozen=True)
class HandlerFault:
    """Outcome of a handler invocation that raised."""
    method: str
    handler: str
    error: BaseException


class Dispatcher:
    """Routes messages to the handlers registered for their method.

    Each handler runs on its own task under a supervisor that converts any
    exception into a :class:`HandlerFault`, so one failing handler never
    affects its siblings or the read loop.
    """

    def __init__(self) -> None:
        self._handlers: Dict[str, List[Handler]] = {}
        self._lock = threading.Lock()
        self._tasks: Set[asyncio.Task[Optional[HandlerFault]]] = set()

    def register(self, method: str, handler: Handler) -> None:
        with self._lock:
            self._handlers.setdefault(method, []).append(handler)

    def handlers(self, method: str) -> List[Handler]:
        with self._lock:
            return list(self._handlers.get(method, ()))

    def emit(self, server: "LanguageServer", message: Message) -> List[asyncio.Task[Optional[HandlerFault]]]:
        """Start every handler for ``message.method`` without awaiting them."""
        tasks = []
        for handler in self.handlers(message.method or ""):
            task = asyncio.get_running_loop().create_task(self._supervise(handler, server, message))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            tasks.append(task)
        return tasks

    async def _supervise(
        self,
        handler: Handler,
        server: "LanguageServer",
        message: Message,
    ) -> Optional[HandlerFault]:
        try:
            await handler(server, message)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            name = getattr(handler, "__qualname__", repr(handler))
            log.error("handler fault", {
                "method": message.method,
                "handler": name,
                "error": format_unknown_error(e),
            })
            return HandlerFault(method=message.method or "", handler=name, error=e)
        return None

    def in_flight(self) -> List[asyncio.Task[Optional[HandlerFault]]]:
        return list(self._tasks)


class LanguageServer:
    """Stdio language server: document sync, dispatch and outbound messages."""

    def __init__(
        self,
        capabilities: ServerCapabilities,
        reader: FrameReader,
        writer: FrameWriter,
        documents: Optional[DocumentStore] = None,
        exit: Optional[Callable[[int], None]] = None,
    ):
        """Initialize the server.

        Args:
            capabilities: Capabilities advertised in the initialize response
            reader: Source of inbound frames
            writer: Sink for outbound frames
            documents: Document store, a fresh one by default
            exit: Process terminator invoked on the exit notification
        """
        self.capabilities = capabilities
        self.documents = documents or DocumentStore()
        self.dispatcher = Dispatcher()
        self.debouncer = Debouncer()
        self._reader = reader
        self._writer = writer
        self._exit = exit or os._exit
        self._request_ids = itertools.count(1)
        self._shutdown_requested = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._loop_context: Context | None = None
        self._register_default_handlers()

    # -- registration and dispatch --

    def on(self, method: str, handler: Handler) -> None:
        self.dispatcher.register(method, handler)

    def handle(self, message: Message) -> None:
        """Dispatch one decoded message. Must run on the event loop."""
        kind = message.kind
        if kind == "response":
            log.debug("ignoring client response", {"id": message.id, "error": message.error})
            return
        if kind == "invalid":
            log.warn("ignoring message without id or method")
            return

        if message.method not in (types.EVENT_DID_OPEN, types.EVENT_DID_CHANGE):
            log.debug("received", {"method": message.method, "id": message.id})

        tasks = self.dispatcher.emit(self, message)
        if tasks:
            return

        if kind == "request":
            log.warn("method not found", {"method": message.method})
            self.respond_error(message.id, JsonRpcMethodNotFound.of(message.method))
        else:
            log.debug("unhandled notification", {"method": message.method})

    async def serve(self) -> None:
        """Run the read loop until the input stream ends.

        Stream I/O errors propagate and end the session. In-flight handlers
        are awaited before returning.
        """
        self._loop = asyncio.get_running_loop()
        self._loop_context = copy_context()
        log.info("listening")

        try:
            await self._loop.run_in_executor(None, self._reader.listen, self._consume_from_reader_thread)
        finally:
            await self.drain()
            self.debouncer.cancel_all()

    async def drain(self) -> None:
        """Wait until no handler task is running."""
        while True:
            tasks = self.dispatcher.in_flight()
            if not tasks:
                return
            await asyncio.gather(*tasks, return_exceptions=True)

    def _consume_from_reader_thread(self, message: Message) -> None:
        if not self._loop or self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self.handle, message, context=self._loop_context)

    # -- outbound --

    def send(self, message: Dict[str, Any]) -> None:
        message["jsonrpc"] = "2.0"
        try:
            body = self._writer.write(message)
        except (OSError, ValueError) as e:
            log.error("failed to write frame", {"error": e})
            return
        log.debug("sent", {"size": len(body), "method": message.get("method"), "id": message.get("id")})

    def respond(self, request_id: Any, result: Any) -> None:
        if isinstance(result, BaseModel):
            result = types.dump(result)
        elif isinstance(result, list):
            result = [types.dump(item) if isinstance(item, BaseModel) else item for item in result]
        self.send({"id": request_id, "result": result})

    def respond_error(self, request_id: Any, error: JsonRpcException) -> None:
        self.send({"id": request_id, "error": error.to_dict()})

    def notify(self, method: str, params: BaseModel | Dict[str, Any]) -> None:
        if isinstance(params, BaseModel):
            params = types.dump(params)
        self.send({"method": method, "params": params})

    def request(self, method: str, params: BaseModel | Dict[str, Any]) -> int:
        """Send a server-to-client request without waiting for its response.

        Returns:
            The request id that was used
        """
        if isinstance(params, BaseModel):
            params = types.dump(params)
        request_id = next(self._request_ids)
        self.send({"id": request_id, "method": method, "params": params})
        return request_id

    def show_message(self, type: MessageType, message: str) -> None:
        self.notify(types.EVENT_SHOW_MESSAGE, ShowMessageParams(type=type, message=message))

    def publish_diagnostics(self, diagnostics: List[Diagnostic], timeout_ms: int = 0) -> None:
        """Publish diagnostics for the current document.

        Args:
            diagnostics: Diagnostics to show; their source is overwritten
            timeout_ms: When positive, clear them again after this delay. A
                later publish postpones the clear.
        """
        uri = self.documents.current_uri
        if not uri:
            return

        diagnostics = [d.model_copy(update={"source": DIAGNOSTIC_SOURCE}) for d in diagnostics]
        log.debug("sending diagnostics", {"uri": uri, "count": len(diagnostics)})
        self.notify(types.EVENT_PUBLISH_DIAGNOSTICS, PublishDiagnosticsParams(uri=uri, diagnostics=diagnostics))

        key = f"diagnostics:{uri}"
        if timeout_ms > 0:
            async def clear() -> None:
                self._clear_diagnostics(uri)

            self.debouncer.schedule(key, clear, timeout_ms / 1000)
        else:
            self.debouncer.cancel(key)

    def reset_diagnostics(self) -> None:
        uri = self.documents.current_uri
        if not uri:
            return
        self.debouncer.cancel(f"diagnostics:{uri}")
        self._clear_diagnostics(uri)

    def _clear_diagnostics(self, uri: str) -> None:
        self.notify(types.EVENT_PUBLISH_DIAGNOSTICS, PublishDiagnosticsParams(uri=uri, diagnostics=[]))

    def create_progress(self, token: Any) -> None:
        self.request(types.EVENT_PROGRESS_CREATE, {"token": token})

    def progress_begin(self, token: Any, title: str) -> None:
        self.notify(types.EVENT_PROGRESS, ProgressParams(token=token, value=WorkDoneProgressBegin(title=title)))

    def progress_report(self, token: Any, message: str) -> None:
        self.notify(types.EVENT_PROGRESS, ProgressParams(token=token, value=WorkDoneProgressReport(message=message)))

    def progress_end(self, token: Any) -> None:
        self.notify(types.EVENT_PROGRESS, ProgressParams(token=token, value=WorkDoneProgressEnd()))

    # -- built-in handlers --

    def _register_default_handlers(self) -> None:
        self.on(types.EVENT_INITIALIZE, _on_initialize)
        self.on(types.EVENT_INITIALIZED, _on_initialized)
        self.on(types.EVENT_DID_OPEN, _on_did_open)
        self.on(types.EVENT_DID_CHANGE, _on_did_change)
        self.on(types.EVENT_DID_CLOSE, _on_did_close)
        self.on(types.EVENT_SHUTDOWN, _on_shutdown)
        self.on(types.EVENT_EXIT, _on_exit)


def parse_params(server: LanguageServer, message: Message, model: type[types.LSPModel]) -> Any:
    """Validate ``message.params``; answer InvalidParams and return None on failure."""
    try:
        return model.model_validate(message.params or {})
    except ValidationError as e:
        log.error("invalid params", {"method": message.method, "error": str(e)})
        if message.id is not None:
            server.respond_error(message.id, JsonRpcInvalidParams(message=f"Invalid params for {message.method}"))
        return None


async def _on_initialize(server: LanguageServer, message: Message) -> None:
    server.respond(message.id, InitializeResult(
        capabilities=server.capabilities,
        server_info=ServerInfo(name="helix-assist", version=__version__),
    ))


async def _on_initialized(server: LanguageServer, message: Message) -> None:
    log.info("client initialized")


async def _on_did_open(server: LanguageServer, message: Message) -> None:
    params = parse_params(server, message, DidOpenParams)
    if params is None:
        return
    item = params.text_document
    server.documents.set(Document(
        uri=item.uri,
        text=item.text,
        version=item.version,
        language_id=item.language_id,
    ))
    log.info("received didOpen", {"uri": item.uri, "language": item.language_id})


async def _on_did_change(server: LanguageServer, message: Message) -> None:
    params = parse_params(server, message, DidChangeParams)
    if params is None:
        return
    if params.content_changes:
        server.documents.update_text(
            params.text_document.uri,
            params.text_document.version,
            params.content_changes[0].text,
        )
    log.debug("received didChange", {"uri": params.text_document.uri, "version": params.text_document.version})


async def _on_did_close(server: LanguageServer, message: Message) -> None:
    params = parse_params(server, message, DidCloseParams)
    if params is None:
        return
    server.documents.delete(params.text_document.uri)
    log.info("received didClose", {"uri": params.text_document.uri})


async def _on_shutdown(server: LanguageServer, message: Message) -> None:
    log.info("received shutdown request")
    server._shutdown_requested = True
    server.debouncer.cancel_all()
    if message.id is not None:
        server.respond(message.id, None)


async def _on_exit(server: LanguageServer, message: Message) -> None:
    code = 0 if server._shutdown_requested else 1
    log.info("received exit notification", {"code": code})
    Log.close()
    server._exit(code)
