"""LSP message and payload types.

Payload models use snake_case attributes with camelCase aliases on the wire.
Serialize with :func:`dump` so aliases are applied and unset optionals dropped.
"""

from enum import IntEnum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

EVENT_INITIALIZE = "initialize"
EVENT_INITIALIZED = "initialized"
EVENT_SHUTDOWN = "shutdown"
EVENT_EXIT = "exit"
EVENT_DID_OPEN = "textDocument/didOpen"
EVENT_DID_CHANGE = "textDocument/didChange"
EVENT_DID_CLOSE = "textDocument/didClose"
EVENT_COMPLETION = "textDocument/completion"
EVENT_CODE_ACTION = "textDocument/codeAction"
EVENT_EXECUTE_COMMAND = "workspace/executeCommand"
EVENT_APPLY_EDIT = "workspace/applyEdit"
EVENT_PUBLISH_DIAGNOSTICS = "textDocument/publishDiagnostics"
EVENT_PROGRESS = "$/progress"
EVENT_PROGRESS_CREATE = "window/workDoneProgress/create"
EVENT_SHOW_MESSAGE = "window/showMessage"

RequestId = Union[int, str]


class MessageType(IntEnum):
    ERROR = 1
    WARNING = 2
    INFO = 3
    LOG = 4


class DiagnosticSeverity(IntEnum):
    ERROR = 1
    WARNING = 2
    INFORMATION = 3
    HINT = 4


class TextDocumentSyncKind(IntEnum):
    NONE = 0
    FULL = 1
    INCREMENTAL = 2


class LSPModel(BaseModel):
    """Base for payload models: camelCase on the wire, unknown fields ignored."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


def dump(model: BaseModel) -> Dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


class Message(BaseModel):
    """A decoded JSON-RPC message.

    A request carries both ``id`` and ``method``, a notification only
    ``method``, and a response only ``id``.
    """
    jsonrpc: str = "2.0"
    id: Optional[RequestId] = None
    method: Optional[str] = None
    params: Any = None
    result: Any = None
    error: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(extra="ignore")

    @property
    def kind(self) -> Literal["request", "notification", "response", "invalid"]:
        if self.method is not None:
            return "request" if self.id is not None else "notification"
        if self.id is not None:
            return "response"
        return "invalid"


class Position(LSPModel):
    line: int
    character: int


class Range(LSPModel):
    start: Position
    end: Position

    @classmethod
    def of(cls, start_line: int, start_char: int, end_line: int, end_char: int) -> "Range":
        return cls(
            start=Position(line=start_line, character=start_char),
            end=Position(line=end_line, character=end_char),
        )


class Diagnostic(LSPModel):
    message: str
    range: Range
    source: Optional[str] = None
    severity: Optional[DiagnosticSeverity] = None


class TextDocumentIdentifier(LSPModel):
    uri: str


class VersionedTextDocumentIdentifier(TextDocumentIdentifier):
    version: int = 0


class TextDocumentItem(LSPModel):
    uri: str
    language_id: str = ""
    version: int = 0
    text: str = ""


class DidOpenParams(LSPModel):
    text_document: TextDocumentItem


class ContentChange(LSPModel):
    text: str


class DidChangeParams(LSPModel):
    text_document: VersionedTextDocumentIdentifier
    content_changes: List[ContentChange] = Field(default_factory=list)


class DidCloseParams(LSPModel):
    text_document: TextDocumentIdentifier


class CompletionParams(LSPModel):
    text_document: TextDocumentIdentifier
    position: Position
    work_done_token: Optional[RequestId] = None


class TextEdit(LSPModel):
    range: Range
    new_text: str


class CompletionItem(LSPModel):
    label: str
    kind: Optional[int] = None
    detail: Optional[str] = None
    insert_text: Optional[str] = None
    insert_text_format: Optional[int] = None
    sort_text: Optional[str] = None
    preselect: Optional[bool] = None
    additional_text_edits: Optional[List[TextEdit]] = None


class CompletionList(LSPModel):
    is_incomplete: bool = False
    items: List[CompletionItem] = Field(default_factory=list)


class CodeActionContext(LSPModel):
    diagnostics: List[Diagnostic] = Field(default_factory=list)


class CodeActionParams(LSPModel):
    text_document: TextDocumentIdentifier
    range: Range
    context: CodeActionContext = Field(default_factory=CodeActionContext)


class Command(LSPModel):
    title: str
    command: str
    arguments: Optional[List[Any]] = None


class CodeAction(LSPModel):
    title: str
    kind: Optional[str] = None
    diagnostics: Optional[List[Any]] = None
    command: Optional[Command] = None


class ExecuteCommandParams(LSPModel):
    command: str
    arguments: List[Any] = Field(default_factory=list)
    work_done_token: Optional[RequestId] = None


class CommandArgument(LSPModel):
    range: Range
    query: str = ""
    diagnostics: List[str] = Field(default_factory=list)


class WorkspaceEdit(LSPModel):
    changes: Dict[str, List[TextEdit]]


class ApplyWorkspaceEditParams(LSPModel):
    label: str
    edit: WorkspaceEdit


class PublishDiagnosticsParams(LSPModel):
    uri: str
    diagnostics: List[Diagnostic]


class ShowMessageParams(LSPModel):
    type: MessageType
    message: str


class WorkDoneProgressBegin(LSPModel):
    kind: Literal["begin"] = "begin"
    title: str
    message: Optional[str] = None
    cancellable: Optional[bool] = None


class WorkDoneProgressReport(LSPModel):
    kind: Literal["report"] = "report"
    message: Optional[str] = None


class WorkDoneProgressEnd(LSPModel):
    kind: Literal["end"] = "end"
    message: Optional[str] = None


class ProgressParams(LSPModel):
    token: RequestId
    value: Union[WorkDoneProgressBegin, WorkDoneProgressReport, WorkDoneProgressEnd]


class CompletionOptions(LSPModel):
    trigger_characters: Optional[List[str]] = None


class ExecuteCommandOptions(LSPModel):
    commands: List[str]


class ServerCapabilities(LSPModel):
    text_document_sync: TextDocumentSyncKind = TextDocumentSyncKind.FULL
    completion_provider: Optional[CompletionOptions] = None
    code_action_provider: Optional[bool] = None
    execute_command_provider: Optional[ExecuteCommandOptions] = None


class ServerInfo(LSPModel):
    name: str
    version: Optional[str] = None


class InitializeResult(LSPModel):
    capabilities: ServerCapabilities
    server_info: Optional[ServerInfo] = None
