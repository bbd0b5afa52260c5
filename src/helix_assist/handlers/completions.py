"""textDocument/completion: debounced, version-checked backend completions."""

import asyncio
from typing import Any, List, Optional

from ..backend.registry import BackendRegistry
from ..core.config import Config
from ..lsp import types
from ..lsp.service import LanguageServer, parse_params
from ..lsp.types import (
    CompletionItem,
    CompletionList,
    CompletionParams,
    Diagnostic,
    DiagnosticSeverity,
    Message,
    MessageType,
    Range,
)
from ..util.content import CursorContext
from ..util.error import describe_error, format_unknown_error
from ..util.log import Log
from ..util.progress import ProgressSignal
from .edits import build_completion_item

log = Log.create({"service": "handler.completion"})

DEBOUNCE_KEY = "completion"


class CompletionHandler:
    """Answers completion requests with suggestions from the selected backend.

    Requests are debounced under a single key: while the user keeps typing only
    the newest request reaches the backend and every superseded one is answered
    with an empty list. Right before calling the backend the document version
    is compared with the one seen on arrival; if the document moved on, the
    request is answered empty without a backend call.
    """

    def __init__(self, config: Config, registry: BackendRegistry):
        self.config = config
        self.registry = registry

    def register(self, server: LanguageServer) -> None:
        server.on(types.EVENT_COMPLETION, self.handle)

    async def handle(self, server: LanguageServer, message: Message) -> None:
        params: Optional[CompletionParams] = parse_params(server, message, CompletionParams)
        if params is None:
            return

        document = server.documents.get(params.text_document.uri)
        if document is None:
            _respond(server, message.id, [])
            return

        version = document.version
        context = CursorContext.at(document.text, params.position.line, params.position.character)

        # Member access is left to the editor's own language server.
        if context.last_character == ".":
            _respond(server, message.id, [])
            return

        done: asyncio.Future[None] = asyncio.get_running_loop().create_future()

        def settle() -> None:
            if not done.done():
                done.set_result(None)

        async def fire() -> None:
            try:
                await self.complete(server, message.id, params, version)
            finally:
                settle()

        def superseded() -> None:
            log.debug("completion superseded", {"id": message.id})
            _respond(server, message.id, [])
            settle()

        server.debouncer.schedule(DEBOUNCE_KEY, fire, self.config.debounce / 1000, on_cancel=superseded)
        await done

    async def complete(
        self,
        server: LanguageServer,
        request_id: Any,
        params: CompletionParams,
        version: int,
    ) -> None:
        """Fetch suggestions and answer ``request_id``; always responds."""
        items: List[CompletionItem] = []
        try:
            items = await self._fetch(server, params, version)
        except Exception as e:
            log.error("completion fault", {"error": format_unknown_error(e)})
        finally:
            _respond(server, request_id, items)

    async def _fetch(self, server: LanguageServer, params: CompletionParams, version: int) -> List[CompletionItem]:
        uri = params.text_document.uri
        position = params.position

        document = server.documents.get(uri)
        if document is None or document.version > version:
            log.info("skipping stale completion", {"uri": uri, "version": version})
            return []

        context = CursorContext.at(document.text, position.line, position.character)
        line_range = Range.of(position.line, 0, position.line + 1, 0)
        log.info("calling completion", {"language": document.language_id, "backend": self.registry.current})

        signal = ProgressSignal(
            server,
            range=line_range,
            enabled=self.config.enable_progress_spinner,
            interval_ms=self.config.progress_update_interval,
            mode=self.config.progress_mode,
            timeout_ms=self.config.diagnostic_timeout,
            token=params.work_done_token,
            title="Fetching completion",
        )
        if not self.config.enable_progress_spinner:
            server.show_message(MessageType.INFO, "Fetching completion...")

        try:
            with signal:
                suggestions = await self.registry.completion(
                    context.content_before,
                    context.after_for_prompt(),
                    uri,
                    document.language_id,
                    self.config.num_suggestions,
                    timeout_ms=self.config.completion_timeout,
                )
        except Exception as e:
            message = describe_error(e)
            log.error("completion error", {"uri": uri, "error": message})
            server.publish_diagnostics([
                Diagnostic(message=message, severity=DiagnosticSeverity.ERROR, range=line_range),
            ], self.config.diagnostic_timeout)
            return []

        log.info("completion hints", {"count": len(suggestions)})
        return [build_completion_item(text, context, position) for text in suggestions]


def _respond(server: LanguageServer, request_id: Any, items: List[CompletionItem]) -> None:
    server.respond(request_id, CompletionList(is_incomplete=False, items=items))
