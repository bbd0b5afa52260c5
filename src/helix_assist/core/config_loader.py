"""Config file reading: JSONC via commentjson, ``{env:VAR}`` references, layering."""

import os
import re
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import commentjson

from ..util.log import Log

log = Log.create({"service": "config.files"})

ENV_REFERENCE = re.compile(r"\{env:([^}]+)\}")


def merge_layers(*layers: Mapping[str, Any]) -> Dict[str, Any]:
    """Combine layers left to right.

    Nested objects are merged key by key; any other value in a later layer
    replaces the earlier one.
    """
    merged: Dict[str, Any] = {}
    for layer in layers:
        for key, value in layer.items():
            current = merged.get(key)
            if isinstance(current, dict) and isinstance(value, Mapping):
                merged[key] = merge_layers(current, value)
            else:
                merged[key] = value
    return merged


def expand_env_references(text: str, environ: Optional[Mapping[str, str]] = None) -> str:
    """Replace every ``{env:VAR}`` with the variable's value (empty when unset)."""
    env = os.environ if environ is None else environ
    return ENV_REFERENCE.sub(lambda match: env.get(match.group(1), ""), text)


def read_config_file(filepath: str) -> Dict[str, Any]:
    """Parse a JSON/JSONC config file.

    Missing, unreadable and malformed files, and files whose top level is not
    an object, all read as ``{}``; the problem is logged.
    """
    path = Path(filepath).expanduser()
    if not path.is_file():
        return {}

    try:
        data = commentjson.loads(expand_env_references(path.read_text(encoding="utf-8")))
    except (OSError, UnicodeDecodeError, ValueError, commentjson.JSONLibraryException) as e:
        log.error("unreadable config file", {"path": str(path), "error": str(e)})
        return {}

    if not isinstance(data, dict):
        log.error("config file must contain an object", {"path": str(path), "type": type(data).__name__})
        return {}
    return data
