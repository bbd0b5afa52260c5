"""Exception to text conversion.

Log records get the full traceback; diagnostics shown in the editor get a
single line.
"""

import json
import traceback
from typing import Any


def format_error(error: Any) -> str | None:
    """Message for errors raised by helix-assist itself, else None."""
    from ..backend.errors import BackendError, BackendTimeout

    if isinstance(error, BackendTimeout):
        return f"{error.backend}: request timed out after {error.timeout_ms}ms"
    if isinstance(error, BackendError):
        return str(error)
    if isinstance(error, TimeoutError):
        return "request timed out"
    return None


def format_unknown_error(error: Any) -> str:
    """Render anything raised or passed around as an error, for logs.

    Exceptions with a traceback are printed in full. Dicts and lists are
    dumped as indented JSON when possible.
    """
    if isinstance(error, BaseException):
        if error.__traceback__ is None:
            return f"{type(error).__name__}: {error}"
        return "".join(traceback.format_exception(error))

    if isinstance(error, (dict, list)):
        try:
            return json.dumps(error, indent=2)
        except (TypeError, ValueError):
            return "Unexpected error (unserializable)"

    return str(error)


def describe_error(error: Any) -> str:
    """One line for a diagnostic: the known message, else the exception text."""
    known = format_error(error)
    if known is not None:
        return known
    text = str(error)
    if not text and isinstance(error, BaseException):
        return type(error).__name__
    return text
