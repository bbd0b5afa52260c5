"""Capability interface shared by all text-generation backends."""

import asyncio
from typing import Awaitable, Callable, List, Optional, Protocol, runtime_checkable

from ..util.content import unique_strings
from ..util.log import Log
from .errors import BackendError, BackendTimeout

log = Log.create({"service": "backend"})


@runtime_checkable
class Backend(Protocol):
    """A text-generation backend.

    ``completion`` produces up to ``count`` raw insertions for the cursor
    between ``content_before`` and ``content_after``. Suggestions that
    arrived before ``timeout_ms`` ran out are kept. ``chat`` rewrites a
    selection according to an instruction and returns the replacement text.
    Both raise :class:`~helix_assist.backend.errors.BackendError` on failure.
    """

    async def completion(
        self,
        content_before: str,
        content_after: str,
        file_path: str,
        language_id: str,
        count: int,
        timeout_ms: Optional[int] = None,
    ) -> List[str]: ...

    async def chat(
        self,
        instruction: str,
        selected_content: str,
        file_path: str,
        language_id: str,
    ) -> str: ...


async def collect_suggestions(
    name: str,
    count: int,
    fetch: Callable[[], Awaitable[List[str]]],
    timeout_ms: Optional[int] = None,
) -> List[str]:
    """Call ``fetch`` up to ``count`` times and gather distinct suggestions.

    All calls share one deadline, ``timeout_ms`` from now; running out of time
    counts as a failed call. If a call fails after at least one suggestion was
    collected, the suggestions gathered so far are returned instead of the
    error.

    Raises:
        BackendTimeout: If the deadline passed before any suggestion arrived
        BackendError: If the first call failed
    """
    deadline = None
    if timeout_ms is not None:
        deadline = asyncio.get_running_loop().time() + timeout_ms / 1000

    results: List[str] = []
    for attempt in range(max(count, 1)):
        try:
            async with asyncio.timeout_at(deadline):
                batch = await fetch()
        except TimeoutError as e:
            failure: BackendError = BackendTimeout(name, timeout_ms or 0)
            if not results:
                raise failure from e
        except BackendError as e:
            if not results:
                raise
            failure = e
        else:
            results.extend(text for text in batch if text)
            continue

        log.warn("keeping partial suggestions", {
            "backend": name,
            "attempt": attempt,
            "kept": len(results),
            "error": str(failure),
        })
        break
    return unique_strings(results)
