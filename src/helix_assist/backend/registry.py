"""Named backends behind one capability interface."""

import threading
from typing import Dict, List, Optional

from ..util.log import Log
from .base import Backend
from .errors import BackendNotConfiguredError, BackendNotFoundError

log = Log.create({"service": "backend.registry"})


class BackendRegistry:
    """Holds the registered backends and the name of the selected one.

    One plain lock guards the table and the selected name. Lookups are
    serialized with each other as well as with registration and selection;
    delegated calls run without holding it.
    """

    def __init__(self) -> None:
        self._backends: Dict[str, Backend] = {}
        self._current: str = ""
        self._lock = threading.Lock()

    def register(self, name: str, backend: Backend) -> None:
        with self._lock:
            self._backends[name] = backend
        log.info("registered backend", {"name": name})

    def select(self, name: str) -> None:
        """Make ``name`` the backend used by :meth:`completion` and :meth:`chat`.

        Raises:
            BackendNotFoundError: If no backend was registered under ``name``
        """
        with self._lock:
            if name not in self._backends:
                raise BackendNotFoundError(name, sorted(self._backends))
            self._current = name
        log.info("selected backend", {"name": name})

    @property
    def current(self) -> str:
        with self._lock:
            return self._current

    def names(self) -> List[str]:
        with self._lock:
            return sorted(self._backends)

    def get(self, name: Optional[str] = None) -> Backend:
        with self._lock:
            name = name or self._current
            if not name:
                raise BackendNotConfiguredError()
            backend = self._backends.get(name)
            if backend is None:
                raise BackendNotFoundError(name, sorted(self._backends))
            return backend

    async def completion(
        self,
        content_before: str,
        content_after: str,
        file_path: str,
        language_id: str,
        count: int,
        timeout_ms: Optional[int] = None,
    ) -> List[str]:
        backend = self.get()
        return await backend.completion(
            content_before, content_after, file_path, language_id, count, timeout_ms=timeout_ms,
        )

    async def chat(
        self,
        instruction: str,
        selected_content: str,
        file_path: str,
        language_id: str,
    ) -> str:
        backend = self.get()
        return await backend.chat(instruction, selected_content, file_path, language_id)
