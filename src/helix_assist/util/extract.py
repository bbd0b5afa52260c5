"""Fenced code block extraction for chat-style backend replies."""

import re


def extract_code_block(file_path: str, text: str, language: str) -> str:
    """Return the body of the first ```<language> fenced block in ``text``.

    A leading ``// FILEPATH: <path>`` marker line for ``file_path`` is removed.
    Returns an empty string when no block is found.
    """
    pattern = re.compile("```" + re.escape(language) + r"([\s\S]*?)```")
    match = pattern.search(text)
    if match is None:
        return ""

    block = match.group(0)
    clean_path = file_path.removeprefix("file://")
    block = block.replace(f"// FILEPATH: {clean_path}\n", "", 1)

    lines = block.split("\n")
    if len(lines) < 2:
        return ""

    return "\n".join(lines[1:-1]) + "\n"
