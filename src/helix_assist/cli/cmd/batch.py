"""Batch command - run the completion harness over marked files."""

import asyncio
from typing import List

from rich.console import Console

from ...backend.registry import BackendRegistry
from ...harness import CaseResult, Runner, load_test_cases
from ...harness.display import print_report
from ...util.log import Log

log = Log.create({"service": "cli.batch"})


def batch_command(
    registry: BackendRegistry,
    path: str,
    language: str | None,
    num_suggestions: int,
    timeout_ms: int,
    console: Console,
) -> List[CaseResult]:
    """Run every case under ``path`` and print the report.

    Raises:
        HarnessError: If no case could be loaded
    """
    cases = load_test_cases(path, language)
    log.info("running tests", {"count": len(cases), "backend": registry.current})

    runner = Runner(registry, num_suggestions=num_suggestions, timeout_ms=timeout_ms)
    with console.status(f"Running {len(cases)} test(s)..."):
        results = asyncio.run(runner.run_batch(cases))

    print_report(console, results, registry.current)
    return results
