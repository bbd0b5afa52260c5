"""Run completion cases against the selected backend."""

import time
from dataclasses import dataclass, field
from typing import List, Optional

from ..backend.registry import BackendRegistry
from ..util.error import describe_error
from ..util.log import Log
from .parser import CompletionCase

log = Log.create({"service": "harness.runner"})


@dataclass
class CaseResult:
    """Outcome of one completion case."""
    case: CompletionCase
    suggestions: List[str] = field(default_factory=list)
    duration: float = 0.0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def duration_ms(self) -> int:
        return int(self.duration * 1000)


class Runner:
    """Sends each case to ``registry`` as a single completion request."""

    def __init__(self, registry: BackendRegistry, num_suggestions: int = 1, timeout_ms: int = 15000):
        self.registry = registry
        self.num_suggestions = num_suggestions
        self.timeout_ms = timeout_ms

    async def run_test(self, case: CompletionCase) -> CaseResult:
        result = CaseResult(case=case)
        start = time.monotonic()
        try:
            result.suggestions = await self.registry.completion(
                case.content_before,
                case.content_after,
                case.file_path,
                case.language_id,
                self.num_suggestions,
                timeout_ms=self.timeout_ms,
            )
        except Exception as e:
            result.error = describe_error(e)
            log.error("case failed", {"path": case.file_path, "error": result.error})
        result.duration = time.monotonic() - start
        return result

    async def run_batch(self, cases: List[CompletionCase]) -> List[CaseResult]:
        """Run cases one after another, in order."""
        return [await self.run_test(case) for case in cases]
