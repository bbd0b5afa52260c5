from collections.abc import Iterator

import pytest

from helix_assist.util.log import Log, LogFormat, LogLevel


@pytest.fixture(autouse=True)
def _log_teardown() -> Iterator[None]:
    yield
    Log.configure(level=LogLevel.INFO, format=LogFormat.KV, console=False, file_path=None)


@pytest.fixture(autouse=True)
def _isolated_config_dir(monkeypatch: pytest.MonkeyPatch, tmp_path_factory: pytest.TempPathFactory) -> None:
    monkeypatch.setenv("HELIX_ASSIST_CONFIG_DIR", str(tmp_path_factory.mktemp("config")))


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"
