"""helix-assist - language server bridging editors to text-generation backends.

Answers completion and code-action requests from an LSP client with
suggestions produced by OpenAI or Anthropic models.
"""

__version__ = "0.1.0"

# Lazy imports to avoid circular dependencies
def __getattr__(name: str):
    """Lazy import package components."""
    if name in ("LanguageServer", "DocumentStore"):
        from . import lsp
        return getattr(lsp, name)
    if name in ("BackendRegistry", "Backend"):
        from . import backend
        return getattr(backend, name)
    if name in ("Config", "load_config"):
        from .core import config
        return getattr(config, name)
    if name == "Log":
        from .util.log import Log
        return Log
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "__version__",
    "LanguageServer",
    "DocumentStore",
    "BackendRegistry",
    "Backend",
    "Config",
    "load_config",
    "Log",
]
