"""Language Server Protocol transport and runtime.

Example:
    from helix_assist.lsp import FrameReader, FrameWriter, LanguageServer

    server = LanguageServer(capabilities, FrameReader(stdin), FrameWriter(stdout))
    await server.serve()
"""

from .documents import Document, DocumentStore
from .framing import DecodeError, FrameReader, FrameWriter
from .service import Dispatcher, HandlerFault, LanguageServer, parse_params

__all__ = [
    "Document",
    "DocumentStore",
    "DecodeError",
    "FrameReader",
    "FrameWriter",
    "Dispatcher",
    "HandlerFault",
    "LanguageServer",
    "parse_params",
]
