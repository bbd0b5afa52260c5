"""Cursor-relative views of document text and indentation helpers."""

from dataclasses import dataclass
from typing import Iterable, List


@dataclass(frozen=True)
class CursorContext:
    """Document text split around a cursor position.

    Attributes:
        content_before: Every line up to the cursor, the cursor line cut at the column
        content_after: Lines following the cursor line
        last_character: Final character of ``content_before`` (empty if none)
        last_line: The cursor line up to the cursor
        content_immediately_after: Remainder of the cursor line after the cursor
    """
    content_before: str = ""
    content_after: str = ""
    last_character: str = ""
    last_line: str = ""
    content_immediately_after: str = ""

    @classmethod
    def at(cls, text: str, line: int, column: int) -> "CursorContext":
        lines = text.split("\n")
        line = min(max(line, 0), len(lines) - 1)

        before_lines = lines[: line + 1]
        if 0 <= column < len(before_lines[line]):
            before_lines[line] = before_lines[line][:column]

        content_before = "\n".join(before_lines)
        content_after = "\n".join(lines[line + 1:])

        immediately_after = ""
        if 0 <= column < len(lines[line]):
            immediately_after = lines[line][column:]

        return cls(
            content_before=content_before,
            content_after=content_after,
            last_character=content_before[-1:] if content_before else "",
            last_line=before_lines[-1],
            content_immediately_after=immediately_after,
        )

    def after_for_prompt(self) -> str:
        """Text following the cursor as sent to a backend."""
        after = self.content_immediately_after
        if self.content_after:
            return f"{after}\n{self.content_after}" if after else self.content_after
        return after


def content_padding(text: str) -> int:
    """Smallest leading indentation among the non-blank lines of ``text``."""
    paddings = [
        len(line) - len(line.lstrip(" \t"))
        for line in text.split("\n")
        if line.strip()
    ]
    return min(paddings) if paddings else 0


def pad_content(text: str, padding: int) -> str:
    """Indent every non-blank line of ``text`` by ``padding`` spaces."""
    if padding <= 0:
        return text

    prefix = " " * padding
    return "\n".join(
        prefix + line if line.strip() else line
        for line in text.split("\n")
    )


def unique_strings(items: Iterable[str]) -> List[str]:
    """Drop duplicates, keeping first-seen order."""
    return list(dict.fromkeys(items))
