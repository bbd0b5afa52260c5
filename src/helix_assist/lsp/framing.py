"""Content-Length framed JSON-RPC over byte streams.

Each frame is ``Content-Length: <n>\\r\\n\\r\\n`` followed by exactly ``n``
bytes of UTF-8 JSON. Other header lines are tolerated and ignored.
"""

import json
import threading
from typing import Any, BinaryIO, Callable, Dict, Optional

from pydantic import ValidationError

from ..util.log import Log
from .types import Message

log = Log.create({"service": "lsp.framing"})

CONTENT_LENGTH = b"content-length:"


class DecodeError(ValueError):
    """A frame body could not be decoded into a message."""


def encode_body(message: Dict[str, Any]) -> bytes:
    return json.dumps(message, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


def encode_frame(body: bytes) -> bytes:
    return b"Content-Length: " + str(len(body)).encode("ascii") + b"\r\n\r\n" + body


def decode_body(body: bytes) -> Message:
    """Parse a frame body.

    Raises:
        DecodeError: If the body is not a JSON object shaped like a message
    """
    try:
        data = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DecodeError(f"invalid JSON body: {e}") from e
    if not isinstance(data, dict):
        raise DecodeError(f"expected a JSON object, got {type(data).__name__}")
    try:
        return Message.model_validate(data)
    except ValidationError as e:
        raise DecodeError(f"invalid message: {e.error_count()} errors") from e


class FrameReader:
    """Reads framed messages from a binary stream, one at a time."""

    def __init__(self, rfile: BinaryIO):
        self._rfile = rfile

    def read_frame(self) -> Optional[bytes]:
        """Read the next non-empty frame body.

        Header blocks without a usable Content-Length, or announcing a zero
        length body, are skipped.

        Returns:
            The raw body, or None once the stream is exhausted
        """
        while True:
            content_length: Optional[int] = None

            while True:
                line = self._rfile.readline()
                if not line:
                    return None
                stripped = line.strip()
                if not stripped:
                    break
                if stripped.lower().startswith(CONTENT_LENGTH):
                    value = stripped[len(CONTENT_LENGTH):].strip()
                    try:
                        content_length = int(value)
                    except ValueError:
                        log.warn("invalid Content-Length header", {"value": value.decode("ascii", "replace")})
                        content_length = None

            if not content_length or content_length < 0:
                continue

            body = self._read_exact(content_length)
            if body is None:
                return None
            return body

    def _read_exact(self, size: int) -> Optional[bytes]:
        chunks = []
        remaining = size
        while remaining > 0:
            chunk = self._rfile.read(remaining)
            if not chunk:
                log.warn("stream ended inside a frame body", {"expected": size, "missing": remaining})
                return None
            chunks.append(chunk)
            remaining -= len(chunk)
        return b"".join(chunks)

    def read_message(self) -> Optional[Message]:
        """Read and decode the next message, skipping undecodable frames."""
        while True:
            body = self.read_frame()
            if body is None:
                return None
            try:
                return decode_body(body)
            except DecodeError as e:
                log.error("dropping malformed frame", {"error": str(e), "size": len(body)})

    def listen(self, consumer: Callable[[Message], None]) -> None:
        """Feed every decoded message to ``consumer`` until end of stream.

        I/O errors from the underlying stream propagate to the caller.
        """
        while True:
            message = self.read_message()
            if message is None:
                log.info("input stream closed")
                return
            consumer(message)

    def close(self) -> None:
        self._rfile.close()


class FrameWriter:
    """Writes framed messages; each frame is emitted under one lock."""

    def __init__(self, wfile: BinaryIO):
        self._wfile = wfile
        self._lock = threading.Lock()

    def write_frame(self, body: bytes) -> None:
        frame = encode_frame(body)
        with self._lock:
            if self._wfile.closed:
                return
            self._wfile.write(frame)
            self._wfile.flush()

    def write(self, message: Dict[str, Any]) -> bytes:
        """Serialize ``message`` and write it as one frame.

        Returns:
            The body that was written
        """
        body = encode_body(message)
        self.write_frame(body)
        return body

    def close(self) -> None:
        with self._lock:
            if not self._wfile.closed:
                self._wfile.close()
