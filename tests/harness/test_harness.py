from __future__ import annotations

from pathlib import Path

import pytest
from rich.console import Console

from helix_assist.backend.errors import BackendFailure
from helix_assist.harness import HarnessError, Runner, detect_language, load_test_cases, parse_test_file
from helix_assist.harness.display import print_report
from tests.helpers import FakeBackend, registry_with


def _marked(directory: Path, name: str, text: str) -> Path:
    path = directory / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def test_parse_test_file_splits_at_marker(tmp_path: Path) -> None:
    path = _marked(tmp_path, "add.ts", "function add(a, b) {\n  <CURSOR>\n}\n")

    case = parse_test_file(str(path))

    assert case.language_id == "typescript"
    assert case.content_before == "function add(a, b) {\n  "
    assert case.content_after == "\n}\n"
    assert (case.cursor_line, case.cursor_column) == (1, 2)
    assert "<CURSOR>" in case.original_text


def test_parse_test_file_requires_marker(tmp_path: Path) -> None:
    path = _marked(tmp_path, "plain.py", "x = 1\n")

    with pytest.raises(HarnessError, match="<CURSOR>"):
        parse_test_file(str(path))


@pytest.mark.parametrize(
    ("path", "language"),
    [("a.PY", "python"), ("b.tsx", "typescriptreact"), ("c.hpp", "cpp"), ("d.yml", "yaml")],
)
def test_detect_language(path: str, language: str) -> None:
    assert detect_language(path) == language


def test_detect_language_rejects_unknown_extensions() -> None:
    with pytest.raises(HarnessError, match="no extension"):
        detect_language("Makefile")
    with pytest.raises(HarnessError, match="unsupported file extension: .zig"):
        detect_language("main.zig")


def test_load_test_cases_walks_directory_in_order(tmp_path: Path) -> None:
    _marked(tmp_path, "b/two.py", "y = <CURSOR>")
    _marked(tmp_path, "a/one.go", "func <CURSOR>")
    _marked(tmp_path, "a/notes.txt", "<CURSOR>")
    _marked(tmp_path, "c/unmarked.py", "z = 1")

    cases = load_test_cases(str(tmp_path))

    assert [Path(case.file_path).name for case in cases] == ["one.go", "two.py"]


def test_load_test_cases_filters_by_language(tmp_path: Path) -> None:
    _marked(tmp_path, "one.go", "func <CURSOR>")
    _marked(tmp_path, "two.py", "y = <CURSOR>")

    [case] = load_test_cases(str(tmp_path), "python")

    assert case.language_id == "python"


def test_load_test_cases_without_matches_fails(tmp_path: Path) -> None:
    _marked(tmp_path, "two.py", "y = <CURSOR>")

    with pytest.raises(HarnessError, match="no test cases found"):
        load_test_cases(str(tmp_path), "rust")
    with pytest.raises(HarnessError, match="no such file or directory"):
        load_test_cases(str(tmp_path / "missing"))


@pytest.mark.anyio
async def test_runner_records_suggestions_and_errors(tmp_path: Path) -> None:
    good = parse_test_file(str(_marked(tmp_path, "good.py", "x = <CURSOR>")))
    backend = FakeBackend(["42"])
    runner = Runner(registry_with(backend), num_suggestions=2)

    [result] = await runner.run_batch([good])

    assert result.ok
    assert result.suggestions == ["42"]
    assert backend.completion_calls == [("x = ", "", good.file_path, "python", 2)]

    backend.error = BackendFailure("fake", "invalid api key")
    failed = await runner.run_test(good)

    assert not failed.ok
    assert failed.error == "invalid api key"


@pytest.mark.anyio
async def test_runner_times_out(tmp_path: Path) -> None:
    case = parse_test_file(str(_marked(tmp_path, "slow.py", "x = <CURSOR>")))

    result = await Runner(registry_with(FakeBackend(["late"], delay=1)), timeout_ms=10).run_test(case)

    assert result.error == "fake: request timed out after 10ms"


@pytest.mark.anyio
async def test_report_lists_results_and_summary(tmp_path: Path) -> None:
    case = parse_test_file(str(_marked(tmp_path, "good.py", "x = <CURSOR>")))
    runner = Runner(registry_with(FakeBackend(["42", "43"])), num_suggestions=2)
    results = [await runner.run_test(case)]

    console = Console(record=True, width=120, no_color=True)
    print_report(console, results, "fake")
    output = console.export_text()

    assert "Test: " in output
    assert "Provider: fake" in output
    assert "Suggestions (2):" in output
    assert "1. 42" in output
    assert "Total tests" in output
