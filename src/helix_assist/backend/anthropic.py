"""Anthropic backend built on the official async SDK."""

from typing import Any, Dict, List, Optional

from anthropic import AsyncAnthropic

from ..util.log import Log
from . import prompts
from .base import collect_suggestions
from .errors import BackendFailure, wrap_sdk_error

log = Log.create({"service": "backend.anthropic"})

NAME = "anthropic"

COMPLETION_MAX_TOKENS = 256
CHAT_MAX_TOKENS = 8192
CHAT_TEMPERATURE = 0.1


def _text_blocks(message: Any) -> List[str]:
    texts = []
    for block in getattr(message, "content", None) or []:
        if getattr(block, "type", None) == "text":
            texts.append(getattr(block, "text", "") or "")
    return texts


class AnthropicBackend:
    """Completion and chat through the Messages API.

    The completion system prompt is marked for ephemeral prompt caching, since
    it only varies with the language.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        chat_model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_ms: int = 15000,
        client: Any = None,
    ):
        self.model = model
        self.chat_model = chat_model or model
        self.timeout_ms = timeout_ms
        self.client = client or AsyncAnthropic(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout_ms / 1000,
            max_retries=0,
        )

    async def _create(self, params: Dict[str, Any]) -> Any:
        try:
            return await self.client.messages.create(**params)
        except Exception as e:
            raise wrap_sdk_error(NAME, e, self.timeout_ms) from e

    async def completion(
        self,
        content_before: str,
        content_after: str,
        file_path: str,
        language_id: str,
        count: int,
        timeout_ms: Optional[int] = None,
    ) -> List[str]:
        params: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": COMPLETION_MAX_TOKENS,
            "system": [{
                "type": "text",
                "text": prompts.completion_system_prompt(language_id),
                "cache_control": {"type": "ephemeral"},
            }],
            "messages": [{
                "role": "user",
                "content": prompts.completion_user_prompt(file_path, content_before, content_after),
            }],
            # Sampling only matters when several distinct suggestions are wanted.
            "temperature": 0.4 if count > 1 else 0.0,
        }

        async def fetch() -> List[str]:
            return [text for text in _text_blocks(await self._create(params)) if text]

        with log.time("completion", {"model": self.model, "count": count}):
            return await collect_suggestions(NAME, count, fetch, timeout_ms)

    async def chat(
        self,
        instruction: str,
        selected_content: str,
        file_path: str,
        language_id: str,
    ) -> str:
        clean_path = prompts.strip_file_scheme(file_path)
        params: Dict[str, Any] = {
            "model": self.chat_model,
            "max_tokens": CHAT_MAX_TOKENS,
            "system": [{"type": "text", "text": prompts.chat_system_prompt(language_id)}],
            "messages": [{
                "role": "user",
                "content": prompts.chat_user_prompt(language_id, clean_path, selected_content, instruction),
            }],
            "temperature": CHAT_TEMPERATURE,
        }

        with log.time("chat", {"model": self.chat_model}):
            message = await self._create(params)

        texts = _text_blocks(message)
        if not texts:
            raise BackendFailure(NAME, "no completion found")
        log.debug("chat reply", {"length": len(texts[0])})
        return texts[0]
