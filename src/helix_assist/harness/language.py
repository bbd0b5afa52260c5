"""Editor language identifiers by file extension."""

from pathlib import Path
from typing import Dict

from .errors import HarnessError

EXTENSION_TO_LANGUAGE: Dict[str, str] = {
    ".js": "javascript",
    ".jsx": "javascriptreact",
    ".ts": "typescript",
    ".tsx": "typescriptreact",
    ".py": "python",
    ".go": "go",
    ".rs": "rust",
    ".java": "java",
    ".kt": "kotlin",
    ".swift": "swift",
    ".c": "c",
    ".h": "c",
    ".cpp": "cpp",
    ".cc": "cpp",
    ".cxx": "cpp",
    ".hpp": "cpp",
    ".rb": "ruby",
    ".php": "php",
    ".cs": "csharp",
    ".sh": "shellscript",
    ".bash": "shellscript",
    ".lua": "lua",
    ".vim": "vim",
    ".sql": "sql",
    ".html": "html",
    ".css": "css",
    ".json": "json",
    ".xml": "xml",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".md": "markdown",
}


def detect_language(path: str) -> str:
    """Map ``path``'s extension (case-insensitive) to a language identifier.

    Raises:
        HarnessError: If the file has no extension or an unknown one
    """
    ext = Path(path).suffix.lower()
    if not ext:
        raise HarnessError(f"file has no extension: {path}")

    language = EXTENSION_TO_LANGUAGE.get(ext)
    if language is None:
        raise HarnessError(f"unsupported file extension: {ext}")
    return language
