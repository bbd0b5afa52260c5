"""OpenAI backend built on the official async SDK."""

from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI

from ..util.extract import extract_code_block
from ..util.log import Log
from . import prompts
from .base import collect_suggestions
from .errors import BackendFailure, wrap_sdk_error

log = Log.create({"service": "backend.openai"})

NAME = "openai"


class OpenAIBackend:
    """Completion and chat through the Chat Completions API."""

    def __init__(
        self,
        api_key: str,
        model: str,
        chat_model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_ms: int = 15000,
        client: Any = None,
    ):
        """Initialize the backend.

        Args:
            api_key: OpenAI API key
            model: Model used for inline completions
            chat_model: Model used for code actions, ``model`` by default
            base_url: Optional custom base URL
            timeout_ms: HTTP timeout for each SDK call
            client: Preconfigured client, mainly for tests
        """
        self.model = model
        self.chat_model = chat_model or model
        self.timeout_ms = timeout_ms
        self.client = client or AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout_ms / 1000,
            max_retries=0,
        )

    async def _create(self, model: str, system: str, user: str) -> List[str]:
        params: Dict[str, Any] = {
            "model": model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
        }
        try:
            response = await self.client.chat.completions.create(**params)
        except Exception as e:
            raise wrap_sdk_error(NAME, e, self.timeout_ms) from e

        texts = []
        for choice in getattr(response, "choices", None) or []:
            message = getattr(choice, "message", None)
            content = getattr(message, "content", None)
            if content:
                texts.append(content)
        return texts

    async def completion(
        self,
        content_before: str,
        content_after: str,
        file_path: str,
        language_id: str,
        count: int,
        timeout_ms: Optional[int] = None,
    ) -> List[str]:
        system = prompts.completion_system_prompt(language_id)
        user = prompts.completion_user_prompt(file_path, content_before, content_after)

        with log.time("completion", {"model": self.model, "count": count}):
            return await collect_suggestions(
                NAME, count, lambda: self._create(self.model, system, user), timeout_ms,
            )

    async def chat(
        self,
        instruction: str,
        selected_content: str,
        file_path: str,
        language_id: str,
    ) -> str:
        clean_path = prompts.strip_file_scheme(file_path)
        system = prompts.fenced_chat_system_prompt(language_id)
        user = prompts.fenced_chat_user_prompt(language_id, clean_path, selected_content, instruction)

        with log.time("chat", {"model": self.chat_model}):
            texts = await self._create(self.chat_model, system, user)

        if not texts:
            raise BackendFailure(NAME, "no completion found")

        # Replies that skip the fence are taken as bare code.
        return extract_code_block(file_path, texts[0], language_id) or texts[0]
