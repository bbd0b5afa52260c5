"""Rich rendering of harness results."""

from typing import List

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .runner import CaseResult


def render_result(result: CaseResult, backend: str) -> Panel:
    case = result.case
    header = Text()
    header.append(f"Language: {case.language_id}\n")
    header.append(f"Provider: {backend}\n")
    if result.ok:
        header.append(f"Duration: {result.duration_ms}ms")
    else:
        header.append(f"Error: {result.error}", style="red")

    parts = [header]
    if result.ok and result.suggestions:
        code = Text()
        code.append(case.content_before)
        code.append(result.suggestions[0], style="green")
        code.append(" ← [COMPLETION]", style="bright_black")
        code.append(case.content_after)
        parts.extend([Text(""), code, Text("")])

        count = len(result.suggestions)
        listing = Text(f"Suggestions ({count}):\n" if count > 1 else "Suggestion (1):\n")
        for index, suggestion in enumerate(result.suggestions, start=1):
            first, *rest = suggestion.split("\n")
            listing.append(f"  {index}. {first}\n")
            for line in rest:
                listing.append(f"     {line}\n")
        parts.append(listing)
    elif result.ok:
        parts.append(Text("No suggestions returned", style="bright_black"))

    border = "yellow" if result.ok else "red"
    return Panel(Group(*parts), title=f"Test: {case.file_path}", title_align="left", border_style=border)


def render_summary(results: List[CaseResult]) -> Table:
    completed = [result for result in results if result.ok]
    failed = len(results) - len(completed)

    table = Table(title="Summary", show_header=False, title_style="bold yellow")
    table.add_column("metric")
    table.add_column("value", justify="right")
    table.add_row("Total tests", str(len(results)))
    table.add_row("Completed", Text(str(len(completed)), style="green"))
    table.add_row("Errors", Text(str(failed), style="red" if failed else ""))
    if completed:
        average = sum(result.duration_ms for result in completed) // len(completed)
        table.add_row("Average duration", f"{average}ms")
    return table


def print_report(console: Console, results: List[CaseResult], backend: str) -> None:
    for result in results:
        console.print(render_result(result, backend))
    console.print(render_summary(results))
