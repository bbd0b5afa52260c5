"""Request handlers layered on the language server runtime."""

from .actions import COMMANDS, ActionHandler, command_keys
from .completions import CompletionHandler

__all__ = ["COMMANDS", "ActionHandler", "CompletionHandler", "command_keys"]
