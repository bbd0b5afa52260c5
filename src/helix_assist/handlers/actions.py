"""Code actions that rewrite a selection through the backend's chat capability."""

import asyncio
from dataclasses import dataclass
from typing import Dict, List, Optional

from pydantic import ValidationError
from pylsp_jsonrpc.exceptions import JsonRpcInvalidParams, JsonRpcMethodNotFound

from ..backend.registry import BackendRegistry
from ..core.config import Config
from ..lsp import types
from ..lsp.service import LanguageServer, parse_params
from ..lsp.types import (
    ApplyWorkspaceEditParams,
    CodeAction,
    CodeActionParams,
    Command,
    CommandArgument,
    Diagnostic,
    DiagnosticSeverity,
    ExecuteCommandParams,
    Message,
    Range,
    TextEdit,
    WorkspaceEdit,
)
from ..util.content import content_padding, pad_content
from ..util.error import describe_error
from ..util.log import Log
from ..util.progress import ProgressSignal

log = Log.create({"service": "handler.actions"})


@dataclass(frozen=True)
class ActionCommand:
    key: str
    label: str
    query: str


COMMANDS: tuple[ActionCommand, ...] = (
    ActionCommand("resolveDiagnostics", "Resolve diagnostics", "Resolve the diagnostics for this code."),
    ActionCommand("generateDocs", "Generate documentation", "Add documentation to this code."),
    ActionCommand("improveCode", "Improve code", "Improve this code."),
    ActionCommand("refactorFromComment", "Refactor code from a comment", "Refactor this code based on the comment."),
    ActionCommand("writeTest", "Write a unit test", "Write a unit test for this code. Do not include any imports."),
)

_COMMANDS_BY_KEY: Dict[str, ActionCommand] = {command.key: command for command in COMMANDS}


def command_keys() -> List[str]:
    return [command.key for command in COMMANDS]


def code_actions(params: CodeActionParams) -> List[CodeAction]:
    """One quickfix per command, carrying the range and diagnostic messages."""
    messages = [diagnostic.message for diagnostic in params.context.diagnostics]
    actions = []
    for command in COMMANDS:
        argument = CommandArgument(range=params.range, query=command.query, diagnostics=messages)
        actions.append(CodeAction(
            title=command.label,
            kind="quickfix",
            diagnostics=[],
            command=Command(
                title=command.label,
                command=command.key,
                arguments=[types.dump(argument)],
            ),
        ))
    return actions


def build_instruction(query: str, diagnostics: List[str]) -> str:
    if not diagnostics:
        return query
    return query + "\n\nDiagnostics: " + "\n- ".join(diagnostics)


class ActionHandler:
    """Serves textDocument/codeAction and workspace/executeCommand."""

    def __init__(self, config: Config, registry: BackendRegistry):
        self.config = config
        self.registry = registry

    def register(self, server: LanguageServer) -> None:
        server.on(types.EVENT_CODE_ACTION, self.code_action)
        server.on(types.EVENT_EXECUTE_COMMAND, self.execute_command)

    async def code_action(self, server: LanguageServer, message: Message) -> None:
        params: Optional[CodeActionParams] = parse_params(server, message, CodeActionParams)
        if params is None:
            return
        server.documents.set_current_uri(params.text_document.uri)
        server.respond(message.id, code_actions(params))

    async def execute_command(self, server: LanguageServer, message: Message) -> None:
        params: Optional[ExecuteCommandParams] = parse_params(server, message, ExecuteCommandParams)
        if params is None:
            return

        command = _COMMANDS_BY_KEY.get(params.command)
        if command is None:
            log.warn("unknown command", {"command": params.command})
            server.respond_error(message.id, JsonRpcMethodNotFound(message=f"Unknown command: {params.command}"))
            return

        if not params.arguments:
            server.respond_error(message.id, JsonRpcInvalidParams(message=f"{command.key} requires an argument"))
            return
        try:
            argument = CommandArgument.model_validate(params.arguments[0])
        except ValidationError as e:
            log.error("invalid command argument", {"command": command.key, "error": str(e)})
            server.respond_error(message.id, JsonRpcInvalidParams(message=f"Invalid argument for {command.key}"))
            return

        try:
            await self._run(server, command, argument)
        finally:
            server.respond(message.id, None)

    async def _run(self, server: LanguageServer, command: ActionCommand, argument: CommandArgument) -> None:
        uri = server.documents.current_uri
        if not uri:
            log.warn("no current document", {"command": command.key})
            return
        document = server.documents.get(uri)
        if document is None:
            log.warn("document not found", {"uri": uri})
            return

        content = server.documents.get_text_in_range(uri, argument.range)
        padding = content_padding(content)
        instruction = build_instruction(argument.query or command.query, argument.diagnostics)
        log.info("executing command", {"command": command.key, "uri": uri, "backend": self.registry.current})

        signal = ProgressSignal(
            server,
            range=argument.range,
            enabled=self.config.enable_progress_spinner,
            interval_ms=self.config.progress_update_interval,
            mode=self.config.progress_mode,
            timeout_ms=self.config.action_timeout,
            title=command.label,
        )
        if not self.config.enable_progress_spinner:
            _publish(server, f"Executing {command.key}...", argument.range, DiagnosticSeverity.INFORMATION,
                     self.config.action_timeout)

        try:
            with signal:
                result = await asyncio.wait_for(
                    self.registry.chat(instruction, content, uri, document.language_id),
                    timeout=self.config.action_timeout / 1000,
                )
        except Exception as e:
            message = describe_error(e)
            log.error("chat failed", {"command": command.key, "error": message})
            _publish(server, message, argument.range, DiagnosticSeverity.ERROR, self.config.diagnostic_timeout)
            return

        if not result or not result.strip():
            log.warn("chat returned nothing", {"command": command.key})
            _publish(server, "No completion found", argument.range, DiagnosticSeverity.ERROR,
                     self.config.diagnostic_timeout)
            return

        new_text = pad_content(result.strip(), padding) + "\n"
        log.debug("received chat result", {"command": command.key, "length": len(new_text)})

        server.request(types.EVENT_APPLY_EDIT, ApplyWorkspaceEditParams(
            label=command.key,
            edit=WorkspaceEdit(changes={uri: [TextEdit(range=argument.range, new_text=new_text)]}),
        ))
        server.reset_diagnostics()


def _publish(
    server: LanguageServer,
    message: str,
    range: Range,
    severity: DiagnosticSeverity,
    timeout_ms: int,
) -> None:
    server.publish_diagnostics([Diagnostic(message=message, range=range, severity=severity)], timeout_ms)

