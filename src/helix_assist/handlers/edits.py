"""Turn raw backend text into an editor-ready completion item.

The backend sees the text on both sides of the cursor but routinely echoes
part of it. Synthesis strips the echoed prefix of the cursor line and deletes
trailing characters that the insertion already supplies, so accepting a
suggestion never duplicates code.
"""

from dataclasses import dataclass, field
from typing import List

from ..lsp.types import CompletionItem, Position, Range, TextEdit
from ..util.content import CursorContext

LABEL_LIMIT = 20
CLOSERS = frozenset(")}]>")

# CompletionItemKind.Text and InsertTextFormat.PlainText
KIND_TEXT = 1
FORMAT_PLAIN_TEXT = 1


@dataclass
class SynthesizedEdit:
    """Insertion text plus the deletions that must accompany it.

    Attributes:
        label: Short display text
        text: Text inserted at the cursor
        end: Position just after the inserted text
        deletions: Zero-length replacements removing duplicated trailing text
    """
    label: str
    text: str
    end: Position
    deletions: List[TextEdit] = field(default_factory=list)


def find_overlap_suffix(text: str, suffix: str) -> int:
    """Length of the longest tail of ``text`` that starts ``suffix``.

    Trailing spaces and tabs of ``text`` are ignored.
    """
    if not suffix:
        return 0

    text = text.rstrip(" \t")
    for size in range(min(len(text), len(suffix)), 0, -1):
        if text[-size:] == suffix[:size]:
            return size
    return 0


def _is_isolated_closer(after: str) -> bool:
    if not after or after[0] not in CLOSERS:
        return False
    rest = after[1:]
    return not rest or not rest.lstrip(" \t") or rest[0] in "\r\n"


def _deletion(position: Position, length: int) -> TextEdit:
    return TextEdit(
        range=Range.of(position.line, position.character, position.line, position.character + length),
        new_text="",
    )


def synthesize(raw: str, context: CursorContext, position: Position) -> SynthesizedEdit:
    text = raw.strip()

    typed = context.last_line.strip()
    if text.startswith(typed):
        text = text[len(typed):].strip()

    lines = text.split("\n")
    end_line = position.line + len(lines) - 1
    end_character = len(lines[-1])
    if end_line == position.line:
        end_character += position.character
    end = Position(line=end_line, character=end_character)

    label = lines[0]
    if len(label) <= LABEL_LIMIT and len(text) > LABEL_LIMIT:
        label = text[:LABEL_LIMIT].strip()

    after = context.content_immediately_after
    deletions: List[TextEdit] = []
    overlap = find_overlap_suffix(text, after)
    if overlap > 0:
        deletions.append(_deletion(end, overlap))
    elif _is_isolated_closer(after):
        deletions.append(_deletion(end, 1))

    return SynthesizedEdit(label=label, text=text, end=end, deletions=deletions)


def build_completion_item(raw: str, context: CursorContext, position: Position) -> CompletionItem:
    edit = synthesize(raw, context, position)
    return CompletionItem(
        label=edit.label,
        kind=KIND_TEXT,
        detail=edit.text,
        insert_text=edit.text,
        insert_text_format=FORMAT_PLAIN_TEXT,
        sort_text="00000",
        preselect=True,
        additional_text_edits=edit.deletions,
    )
