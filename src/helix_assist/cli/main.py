"""CLI entry point for helix-assist.

Running `helix-assist` without a subcommand starts the language server on
stdio. Server flags go before any subcommand and override the config file and
environment.
"""

from typing import Any, Dict, NoReturn, Optional

import typer
from rich.console import Console
from rich.markup import escape

from .. import __version__
from ..backend.errors import BackendError, BackendNotConfiguredError, BackendNotFoundError
from ..core.config import Config, ConfigError, HANDLERS, load_config
from ..harness.errors import HarnessError
from ..util.log import Log, LogLevel

app = typer.Typer(
    name="helix-assist",
    help="helix-assist - AI completions and code actions over LSP",
    no_args_is_help=False,  # the server is the default when no args
    add_completion=False,
    invoke_without_command=True,
)

console = Console()
# Stdout carries protocol frames while serving.
err_console = Console(stderr=True)


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        console.print(f"helix-assist {__version__}")
        raise typer.Exit()


def _fail(label: str, error: Exception) -> NoReturn:
    err_console.print(f"[red]{label}:[/red] {escape(str(error))}", highlight=False, soft_wrap=True)
    raise typer.Exit(1)


def _resolve(ctx: typer.Context, **updates: Any) -> Config:
    state: Dict[str, Any] = ctx.obj or {}
    overrides = {**state.get("overrides", {}), **updates}
    try:
        return load_config(overrides, config_path=state.get("config_path"))
    except ConfigError as e:
        _fail("Configuration error", e)


def _start(config: Config, debug_query: Optional[str] = None) -> None:
    from .cmd.serve import build_registry, configure_logging, debug_query_command, serve_command

    try:
        config.check()
    except ConfigError as e:
        _fail("Configuration error", e)

    configure_logging(config)
    try:
        registry = build_registry(config)
    except (BackendNotFoundError, BackendNotConfiguredError) as e:
        _fail("Provider error", e)

    if debug_query:
        try:
            debug_query_command(config, registry, debug_query, console)
        except (BackendError, TimeoutError) as e:
            _fail("Error", e)
        return

    serve_command(config, registry)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Config file to use instead of the per-user helix-assist.json(c)",
    ),
    debug_query: Optional[str] = typer.Option(
        None,
        "--debug-query",
        help="Request one completion for this text, print it and exit",
    ),
    handler: Optional[str] = typer.Option(None, "--handler", help="Backend: openai or anthropic"),
    openai_key: Optional[str] = typer.Option(None, "--openai-key", help="OpenAI API key"),
    openai_model: Optional[str] = typer.Option(None, "--openai-model", help="OpenAI completion model"),
    openai_model_for_chat: Optional[str] = typer.Option(
        None, "--openai-model-for-chat", help="OpenAI model for code actions",
    ),
    openai_endpoint: Optional[str] = typer.Option(None, "--openai-endpoint", help="OpenAI API endpoint"),
    anthropic_key: Optional[str] = typer.Option(None, "--anthropic-key", help="Anthropic API key"),
    anthropic_model: Optional[str] = typer.Option(None, "--anthropic-model", help="Anthropic completion model"),
    anthropic_model_for_chat: Optional[str] = typer.Option(
        None, "--anthropic-model-for-chat", help="Anthropic model for code actions",
    ),
    anthropic_endpoint: Optional[str] = typer.Option(None, "--anthropic-endpoint", help="Anthropic API endpoint"),
    debounce: Optional[int] = typer.Option(None, "--debounce", help="Debounce delay (ms)"),
    trigger_characters: Optional[str] = typer.Option(
        None, "--trigger-chars", help="Completion trigger characters, separated by ||",
    ),
    num_suggestions: Optional[int] = typer.Option(None, "--num-suggestions", help="Number of suggestions"),
    log_file: Optional[str] = typer.Option(None, "--log-file", help="Log file path"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="debug, info, warn or error"),
    fetch_timeout: Optional[int] = typer.Option(None, "--fetch-timeout", help="HTTP timeout (ms)"),
    action_timeout: Optional[int] = typer.Option(None, "--action-timeout", help="Code action timeout (ms)"),
    completion_timeout: Optional[int] = typer.Option(None, "--completion-timeout", help="Completion timeout (ms)"),
    enable_progress_spinner: Optional[bool] = typer.Option(
        None,
        "--enable-progress-spinner/--disable-progress-spinner",
        help="Animate progress while a request is pending",
    ),
    progress_update_interval: Optional[int] = typer.Option(
        None, "--progress-update-interval", help="Progress update interval (ms)",
    ),
    progress_mode: Optional[str] = typer.Option(None, "--progress-mode", help="diagnostic or progress"),
    diagnostic_timeout: Optional[int] = typer.Option(
        None, "--diagnostic-timeout", help="Delay before error diagnostics are cleared (ms)",
    ),
):
    """helix-assist - AI completions and code actions over LSP.

    Running without a subcommand starts the language server on stdio.
    """
    ctx.obj = {
        "config_path": config_path,
        "overrides": {
            "handler": handler,
            "openai_key": openai_key,
            "openai_model": openai_model,
            "openai_model_for_chat": openai_model_for_chat,
            "openai_endpoint": openai_endpoint,
            "anthropic_key": anthropic_key,
            "anthropic_model": anthropic_model,
            "anthropic_model_for_chat": anthropic_model_for_chat,
            "anthropic_endpoint": anthropic_endpoint,
            "debounce": debounce,
            "trigger_characters": trigger_characters,
            "num_suggestions": num_suggestions,
            "log_file": log_file,
            "log_level": log_level,
            "fetch_timeout": fetch_timeout,
            "action_timeout": action_timeout,
            "completion_timeout": completion_timeout,
            "enable_progress_spinner": enable_progress_spinner,
            "progress_update_interval": progress_update_interval,
            "progress_mode": progress_mode,
            "diagnostic_timeout": diagnostic_timeout,
        },
    }

    if ctx.invoked_subcommand is not None:
        return

    _start(_resolve(ctx), debug_query)


@app.command()
def serve(ctx: typer.Context):
    """Run the language server on stdio."""
    _start(_resolve(ctx))


@app.command("test")
def run_tests(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Marked file or directory of marked files"),
    language: Optional[str] = typer.Option(None, "--language", "-l", help="Only run cases of this language"),
    provider: Optional[str] = typer.Option(None, "--provider", "-p", help="Backend to test (openai or anthropic)"),
    num_suggestions: Optional[int] = typer.Option(None, "--num-suggestions", "-n", help="Completions per case"),
    timeout: Optional[int] = typer.Option(None, "--timeout", help="Completion timeout per case (ms)"),
    verbose: bool = typer.Option(False, "--verbose", help="Log to stderr"),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colored output"),
):
    """Run completions for every <CURSOR>-marked file under PATH."""
    from .cmd.batch import batch_command
    from .cmd.serve import build_registry

    if provider is not None and provider not in HANDLERS:
        _fail("Error", ValueError(f"provider must be one of {', '.join(HANDLERS)}"))

    config = _resolve(ctx, handler=provider, num_suggestions=num_suggestions, completion_timeout=timeout)
    try:
        config.check()
    except ConfigError as e:
        _fail("Configuration error", e)

    Log.configure(level=LogLevel.DEBUG if verbose else LogLevel.WARN, console=verbose, file_path=None)

    try:
        registry = build_registry(config, only=config.handler)
    except (BackendNotFoundError, BackendNotConfiguredError) as e:
        _fail("Provider error", e)

    report_console = Console(no_color=True, highlight=False) if no_color else console
    try:
        results = batch_command(
            registry,
            path,
            language,
            config.num_suggestions,
            config.completion_timeout,
            report_console,
        )
    except HarnessError as e:
        _fail("Error loading test cases", e)

    if any(not result.ok for result in results):
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
