"""Per-user directories for helix-assist, resolved with platformdirs.

Nothing is created on import; the log sink creates its directory when the
file is opened.
"""

import os
from pathlib import Path

from platformdirs import user_config_dir, user_data_dir

APP_NAME = "helix-assist"

# Points config lookups at another directory (tests, alternate setups).
CONFIG_DIR_ENV = "HELIX_ASSIST_CONFIG_DIR"


class GlobalPath:
    """Where helix-assist keeps its config and logs."""

    @classmethod
    def data(cls) -> str:
        return user_data_dir(APP_NAME)

    @classmethod
    def config(cls) -> str:
        """Directory searched for ``helix-assist.json`` / ``helix-assist.jsonc``."""
        return os.environ.get(CONFIG_DIR_ENV) or user_config_dir(APP_NAME)

    @classmethod
    def log_file(cls) -> str:
        """Default log file, ``<data>/log/helix-assist.log``."""
        return str(Path(cls.data(), "log", f"{APP_NAME}.log"))
