"""Serve command - run the language server over stdio."""

import asyncio
import sys
from typing import BinaryIO, Callable, List, Optional

from rich.console import Console

from ...backend.anthropic import AnthropicBackend
from ...backend.openai import OpenAIBackend
from ...backend.registry import BackendRegistry
from ...core.config import Config
from ...handlers.actions import ActionHandler, command_keys
from ...handlers.completions import CompletionHandler
from ...lsp.framing import FrameReader, FrameWriter
from ...lsp.service import LanguageServer
from ...lsp.types import (
    CompletionOptions,
    ExecuteCommandOptions,
    ServerCapabilities,
    TextDocumentSyncKind,
)
from ...util.log import Log, LogLevel

log = Log.create({"service": "cli.serve"})


def configure_logging(config: Config) -> None:
    """Send log output to the configured file; stdout carries protocol frames."""
    try:
        level = LogLevel.parse(config.log_level)
    except ValueError:
        level = LogLevel.INFO
    Log.configure(level=level, console=False, file_path=config.log_file)


def build_registry(config: Config, only: Optional[str] = None) -> BackendRegistry:
    """Register every backend that has an API key, then select the handler.

    Args:
        config: Resolved configuration
        only: Register just this backend

    Raises:
        BackendNotFoundError: If the configured handler was not registered
    """
    registry = BackendRegistry()

    if config.openai_key and only in (None, "openai"):
        registry.register("openai", OpenAIBackend(
            api_key=config.openai_key,
            model=config.openai_model,
            chat_model=config.openai_model_for_chat,
            base_url=config.openai_endpoint,
            timeout_ms=config.fetch_timeout,
        ))
        log.info("registered OpenAI backend", {"model": config.openai_model})

    if config.anthropic_key and only in (None, "anthropic"):
        registry.register("anthropic", AnthropicBackend(
            api_key=config.anthropic_key,
            model=config.anthropic_model,
            chat_model=config.anthropic_model_for_chat,
            base_url=config.anthropic_endpoint,
            timeout_ms=config.fetch_timeout,
        ))
        log.info("registered Anthropic backend", {"model": config.anthropic_model})

    registry.select(only or config.handler)
    return registry


def build_capabilities(config: Config) -> ServerCapabilities:
    return ServerCapabilities(
        text_document_sync=TextDocumentSyncKind.FULL,
        completion_provider=CompletionOptions(trigger_characters=config.trigger_characters),
        code_action_provider=True,
        execute_command_provider=ExecuteCommandOptions(commands=command_keys()),
    )


def build_server(
    config: Config,
    registry: BackendRegistry,
    rfile: BinaryIO,
    wfile: BinaryIO,
    exit: Optional[Callable[[int], None]] = None,
) -> LanguageServer:
    server = LanguageServer(
        build_capabilities(config),
        FrameReader(rfile),
        FrameWriter(wfile),
        exit=exit,
    )
    CompletionHandler(config, registry).register(server)
    ActionHandler(config, registry).register(server)
    return server


def serve_command(config: Config, registry: BackendRegistry) -> None:
    log.info("starting helix-assist", {
        "handler": config.handler,
        "trigger_characters": config.trigger_characters,
    })
    server = build_server(config, registry, sys.stdin.buffer, sys.stdout.buffer)
    asyncio.run(server.serve())
    log.info("input stream closed")


async def debug_query(registry: BackendRegistry, query: str, num_suggestions: int, timeout_ms: int) -> List[str]:
    return await registry.completion(query, "", "debug.js", "javascript", num_suggestions, timeout_ms=timeout_ms)


def debug_query_command(config: Config, registry: BackendRegistry, query: str, console: Console) -> None:
    """Print the suggestions for one completion of ``query``."""
    log.info("debug query", {"query": query})
    console.print(f"Query: {query}")
    console.print(f"Provider: {config.handler}")
    console.print(f"Num suggestions: {config.num_suggestions}")
    console.rule()
    console.print("Sending request...")

    results = asyncio.run(debug_query(registry, query, config.num_suggestions, config.completion_timeout))

    console.print(f"\nReceived {len(results)} completion(s):\n")
    for index, result in enumerate(results, start=1):
        console.print(f"--- Suggestion {index} ---", markup=False)
        console.print(result, markup=False, highlight=False)
        console.print()
