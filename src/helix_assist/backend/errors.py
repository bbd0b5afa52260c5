"""Backend and registry errors, plus SDK-agnostic error classification.

SDK exceptions are classified by fully-qualified type name so handlers never
need to import SDK packages directly.
"""

# Fully-qualified type names of transport-level SDK errors.
_CONNECTION_TYPES: frozenset[str] = frozenset({
    "openai.APIConnectionError",
    "anthropic.APIConnectionError",
})

_TIMEOUT_TYPES: frozenset[str] = frozenset({
    "openai.APITimeoutError",
    "anthropic.APITimeoutError",
})


class BackendError(Exception):
    """Base class for failures of a text-generation backend."""

    def __init__(self, backend: str, message: str):
        self.backend = backend
        super().__init__(message)


class BackendFailure(BackendError):
    """The backend call failed or returned nothing usable."""


class BackendTimeout(BackendError):
    """The backend did not answer within the configured timeout."""

    def __init__(self, backend: str, timeout_ms: int):
        self.timeout_ms = timeout_ms
        super().__init__(backend, f"request timed out after {timeout_ms}ms")


class BackendNotFoundError(LookupError):
    """Raised when selecting a backend name that was never registered."""

    def __init__(self, name: str, available: list[str] | None = None):
        self.name = name
        self.available = available or []
        msg = f"backend not found: {name}"
        if self.available:
            msg += f" (registered: {', '.join(self.available)})"
        super().__init__(msg)


class BackendNotConfiguredError(RuntimeError):
    """Raised when delegating to the registry before a backend is selected."""

    def __init__(self) -> None:
        super().__init__("no backend configured")


def _fqn(error: BaseException) -> str:
    cls = type(error)
    module = getattr(cls, "__module__", "") or ""
    # SDKs define errors in private modules; report them under the package name.
    top = module.split(".")[0]
    return f"{top}.{cls.__qualname__}"


def _status(error: BaseException) -> int | None:
    code = getattr(error, "status_code", None)
    if isinstance(code, int):
        return code
    response = getattr(error, "response", None)
    if response is None:
        return None
    code = getattr(response, "status_code", None)
    if isinstance(code, int):
        return code
    try:
        return int(code)
    except (TypeError, ValueError):
        return None


def is_timeout(error: BaseException) -> bool:
    return isinstance(error, TimeoutError) or _fqn(error) in _TIMEOUT_TYPES


def wrap_sdk_error(backend: str, error: Exception, timeout_ms: int) -> BackendError:
    """Convert an SDK exception into a :class:`BackendError`."""
    if isinstance(error, BackendError):
        return error
    if is_timeout(error):
        return BackendTimeout(backend, timeout_ms)
    if _fqn(error) in _CONNECTION_TYPES:
        return BackendFailure(backend, f"request failed: {error}")
    code = _status(error)
    if code is not None:
        body = getattr(error, "message", None) or str(error)
        return BackendFailure(backend, f"API error (status {code}): {body}")
    return BackendFailure(backend, str(error) or type(error).__name__)
