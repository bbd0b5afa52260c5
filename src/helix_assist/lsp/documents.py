"""In-memory store of the documents the editor has open."""

import threading
from dataclasses import dataclass, replace
from typing import Dict, List, Optional

from .types import Range


@dataclass(frozen=True)
class Document:
    """Latest known state of an open document.

    Attributes:
        uri: Document URI
        text: Full text from the most recent accepted update
        version: Client supplied version
        language_id: Editor language identifier
    """
    uri: str
    text: str = ""
    version: int = 0
    language_id: str = ""


class DocumentStore:
    """Thread-safe documents keyed by URI, plus the current URI pointer.

    Documents are immutable snapshots; updates swap the stored snapshot, so a
    reader never observes a half-applied change. One plain lock guards the
    table and the pointer, so reads are serialized with each other as well as
    with writes; each read only copies a reference out.
    """

    def __init__(self) -> None:
        self._documents: Dict[str, Document] = {}
        self._current_uri: str = ""
        self._lock = threading.Lock()

    def set(self, document: Document) -> None:
        """Install or replace a document and mark it current."""
        with self._lock:
            self._documents[document.uri] = document
            self._current_uri = document.uri

    def get(self, uri: str) -> Optional[Document]:
        with self._lock:
            return self._documents.get(uri)

    def get_current(self) -> Optional[Document]:
        with self._lock:
            if not self._current_uri:
                return None
            return self._documents.get(self._current_uri)

    @property
    def current_uri(self) -> str:
        with self._lock:
            return self._current_uri

    def set_current_uri(self, uri: str) -> None:
        with self._lock:
            self._current_uri = uri

    def update_text(self, uri: str, version: int, text: str) -> bool:
        """Replace the text and version of a known document.

        The URI becomes current even when the document is unknown.

        Returns:
            True if the document existed and was updated
        """
        with self._lock:
            self._current_uri = uri
            document = self._documents.get(uri)
            if document is None:
                return False
            self._documents[uri] = replace(document, text=text, version=version)
            return True

    def delete(self, uri: str) -> bool:
        with self._lock:
            return self._documents.pop(uri, None) is not None

    def uris(self) -> List[str]:
        with self._lock:
            return list(self._documents)

    def get_text_in_range(self, uri: str, range: Range) -> str:
        """Return the full lines covered by ``range``, joined with newlines.

        The end line is clamped to the last line of the document. Unknown
        documents, empty documents and ranges starting past the end yield ``""``.
        """
        with self._lock:
            document = self._documents.get(uri)

        if document is None or not document.text:
            return ""

        lines = document.text.split("\n")
        start = range.start.line
        if start >= len(lines):
            return ""

        end = min(range.end.line, len(lines) - 1)
        return "\n".join(lines[start:end + 1])
