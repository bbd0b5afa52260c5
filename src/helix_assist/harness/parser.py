"""Load completion cases from files marked with ``<CURSOR>``."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from ..util.log import Log
from .errors import HarnessError
from .language import detect_language

log = Log.create({"service": "harness.parser"})

CURSOR_MARKER = "<CURSOR>"


@dataclass(frozen=True)
class CompletionCase:
    """One completion request taken from a marked source file.

    Attributes:
        file_path: Path of the source file
        language_id: Language detected from the extension
        content_before: Text before the marker
        content_after: Text after the marker
        original_text: Full file including the marker
        cursor_line: Zero-based line of the marker
        cursor_column: Zero-based column of the marker
    """
    file_path: str
    language_id: str
    content_before: str
    content_after: str
    original_text: str
    cursor_line: int
    cursor_column: int


def parse_test_file(path: str) -> CompletionCase:
    """Split a marked file at its first ``<CURSOR>``.

    Raises:
        HarnessError: If the file cannot be read, has no marker, or has an
            unsupported extension
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise HarnessError(f"failed to read file: {e}") from e

    index = text.find(CURSOR_MARKER)
    if index == -1:
        raise HarnessError(f"file does not contain {CURSOR_MARKER} marker")

    before = text[:index]
    return CompletionCase(
        file_path=path,
        language_id=detect_language(path),
        content_before=before,
        content_after=text[index + len(CURSOR_MARKER):],
        original_text=text,
        cursor_line=before.count("\n"),
        cursor_column=index - before.rfind("\n") - 1,
    )


def load_test_cases(path: str, language_filter: Optional[str] = None) -> List[CompletionCase]:
    """Collect every parseable case under ``path`` (a file or a directory).

    Files that fail to parse are skipped. Cases are returned in path order.

    Raises:
        HarnessError: If nothing matched
    """
    root = Path(path)
    if root.is_file():
        files = [root]
    elif root.is_dir():
        files = sorted(
            Path(directory) / name
            for directory, _, names in os.walk(root)
            for name in names
        )
    else:
        raise HarnessError(f"no such file or directory: {path}")

    cases = []
    for file in files:
        try:
            case = parse_test_file(str(file))
        except HarnessError as e:
            log.debug("skipping file", {"path": str(file), "reason": str(e)})
            continue
        if language_filter and case.language_id != language_filter:
            continue
        cases.append(case)

    if not cases:
        raise HarnessError(f"no test cases found in: {path}")
    return cases
