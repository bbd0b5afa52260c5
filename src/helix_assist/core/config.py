"""Configuration management.

Settings are layered with increasing precedence:

1. Built-in defaults
2. ``helix-assist.json`` / ``helix-assist.jsonc`` in the user config directory
   (or an explicit file)
3. Environment variables
4. Command-line flags
"""

import os
from pathlib import Path
from typing import Annotated, Any, Dict, List, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from .config_loader import merge_layers, read_config_file
from .global_paths import GlobalPath
from ..util.log import Log

log = Log.create({"service": "config"})

HANDLERS = ("openai", "anthropic")

CONFIG_FILENAMES = ("helix-assist.json", "helix-assist.jsonc")

TRIGGER_SEPARATOR = "||"

# Field name -> environment variable.
ENV_VARS: Dict[str, str] = {
    "handler": "HANDLER",
    "openai_key": "OPENAI_API_KEY",
    "openai_model": "OPENAI_MODEL",
    "openai_model_for_chat": "OPENAI_MODEL_FOR_CHAT",
    "openai_endpoint": "OPENAI_ENDPOINT",
    "anthropic_key": "ANTHROPIC_API_KEY",
    "anthropic_model": "ANTHROPIC_MODEL",
    "anthropic_model_for_chat": "ANTHROPIC_MODEL_FOR_CHAT",
    "anthropic_endpoint": "ANTHROPIC_ENDPOINT",
    "debounce": "DEBOUNCE",
    "trigger_characters": "TRIGGER_CHARACTERS",
    "num_suggestions": "NUM_SUGGESTIONS",
    "log_file": "LOG_FILE",
    "log_level": "LOG_LEVEL",
    "fetch_timeout": "FETCH_TIMEOUT",
    "action_timeout": "ACTION_TIMEOUT",
    "completion_timeout": "COMPLETION_TIMEOUT",
    "enable_progress_spinner": "ENABLE_PROGRESS_SPINNER",
    "progress_update_interval": "PROGRESS_UPDATE_INTERVAL",
    "progress_mode": "PROGRESS_MODE",
    "diagnostic_timeout": "DIAGNOSTIC_TIMEOUT",
}


class ConfigError(Exception):
    """Configuration error."""

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        if path:
            message = f"Config error in {path}: {message}"
        super().__init__(message)


def split_trigger_characters(value: str) -> List[str]:
    return value.split(TRIGGER_SEPARATOR)


class Config(BaseModel):
    """Resolved server settings. Durations are in milliseconds."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    handler: str = "openai"
    openai_key: Optional[str] = None
    openai_model: str = "gpt-4.1-mini"
    openai_model_for_chat: str = "gpt-5"
    openai_endpoint: str = "https://api.openai.com/v1"
    anthropic_key: Optional[str] = None
    anthropic_model: str = "claude-haiku-4-5"
    anthropic_model_for_chat: str = "claude-sonnet-4-5"
    anthropic_endpoint: str = "https://api.anthropic.com"
    debounce: int = Field(default=200, ge=0)
    trigger_characters: List[str] = Field(default_factory=lambda: ["{", "(", " "])
    num_suggestions: int = Field(default=1, ge=1)
    log_file: str = Field(default_factory=GlobalPath.log_file)
    log_level: str = "info"
    fetch_timeout: int = Field(default=15000, gt=0)
    action_timeout: int = Field(default=15000, gt=0)
    completion_timeout: int = Field(default=15000, gt=0)
    enable_progress_spinner: bool = True
    progress_update_interval: int = Field(default=200, gt=0)
    progress_mode: Literal["diagnostic", "progress"] = "diagnostic"
    diagnostic_timeout: int = Field(default=3000, ge=0)

    @field_validator("trigger_characters", mode="before")
    @classmethod
    def _split_triggers(cls, value: Any) -> Any:
        if isinstance(value, str):
            return split_trigger_characters(value)
        return value

    def key_for(self, handler: str) -> Optional[str]:
        return self.openai_key if handler == "openai" else self.anthropic_key if handler == "anthropic" else None

    def check(self) -> None:
        """Ensure the selected handler exists and has an API key.

        Raises:
            ConfigError: If the configuration cannot start a server
        """
        if self.handler not in HANDLERS:
            raise ConfigError(f"handler must be one of {', '.join(repr(h) for h in HANDLERS)}, got {self.handler!r}")
        if not self.key_for(self.handler):
            label = "OpenAI" if self.handler == "openai" else "Anthropic"
            raise ConfigError(f"{label} API key is required when using {self.handler} handler")


def _field_name(key: str) -> Optional[str]:
    if key in Config.model_fields:
        return key
    for name, info in Config.model_fields.items():
        if info.alias == key:
            return name
    return None


def _normalize_keys(data: Mapping[str, Any], source: str) -> Dict[str, Any]:
    result: Dict[str, Any] = {}
    for key, value in data.items():
        name = _field_name(key)
        if name is None:
            log.warn("ignoring unknown config key", {"key": key, "source": source})
            continue
        result[name] = value
    return result


def _file_layer(config_path: Optional[str]) -> Dict[str, Any]:
    if config_path:
        path = Path(config_path).expanduser()
        if not path.exists():
            raise ConfigError("file not found", str(path))
        return _normalize_keys(read_config_file(str(path)), str(path))

    result: Dict[str, Any] = {}
    for filename in CONFIG_FILENAMES:
        filepath = os.path.join(GlobalPath.config(), filename)
        data = read_config_file(filepath)
        if data:
            result = merge_layers(result, _normalize_keys(data, filepath))
            log.info("loaded config file", {"path": filepath})
    return result


def _env_layer(environ: Mapping[str, str]) -> Dict[str, Any]:
    """Read overrides from the environment.

    Values that do not parse as the field's type are ignored so the lower
    layer stays in effect.
    """
    result: Dict[str, Any] = {}
    for name, variable in ENV_VARS.items():
        raw = environ.get(variable)
        if not raw:
            continue
        value: Any = split_trigger_characters(raw) if name == "trigger_characters" else raw
        info = Config.model_fields[name]
        annotation = Annotated[info.annotation, *info.metadata] if info.metadata else info.annotation
        try:
            result[name] = TypeAdapter(annotation).validate_python(value)
        except ValidationError:
            log.warn("ignoring invalid environment value", {"variable": variable, "value": raw})
    return result


def load_config(
    overrides: Optional[Mapping[str, Any]] = None,
    config_path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Config:
    """Resolve the configuration from every layer.

    Args:
        overrides: Command-line values; ``None`` entries are skipped
        config_path: Explicit config file instead of the per-user ones
        environ: Environment mapping, ``os.environ`` by default

    Raises:
        ConfigError: If a layer supplies a value of the wrong type
    """
    cli = {key: value for key, value in (overrides or {}).items() if value is not None}
    merged = merge_layers(
        _file_layer(config_path),
        _env_layer(os.environ if environ is None else environ),
        _normalize_keys(cli, "command line"),
    )

    try:
        return Config.model_validate(merged)
    except ValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigError(errors, config_path) from e
