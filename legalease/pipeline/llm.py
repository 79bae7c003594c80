"""
Text-generation endpoint used by document analysis and chat.

The pipeline only depends on the `TextGenerator` protocol. `DspyTextGenerator`
is the production implementation and talks to any LiteLLM-supported provider
through `dspy.LM`.
"""

import functools
import logging
from typing import Protocol, TypedDict

import anyio
import dspy

from legalease.core.config import Settings
from legalease.core.errors import LLMServiceError

logger = logging.getLogger(__name__)


class ChatTurn(TypedDict):
    role: str  # "system" | "user" | "assistant"
    content: str


class TextGenerator(Protocol):
    async def generate(self, messages: list[ChatTurn], *, temperature: float, max_tokens: int) -> str: ...


def flatten_messages(messages: list[ChatTurn]) -> str:
    """
    Collapse a role-tagged conversation into one prompt string, preserving order.

    For providers that only accept a single prompt.
    """
    blocks = []
    for message in messages:
        role = message["role"]
        if role == "system":
            blocks.append(message["content"])
        else:
            blocks.append(f"{role.capitalize()}: {message['content']}")
    blocks.append("Assistant:")
    return "\n\n".join(blocks)


class DspyTextGenerator:
    """TextGenerator backed by a `dspy.LM` client."""

    def __init__(
        self,
        model: str | None = None,
        api_key: str | None = None,
        api_base: str | None = None,
        supports_roles: bool | None = None,
        lm: dspy.LM | None = None,
    ):
        if lm is None or supports_roles is None:
            settings = Settings()
            model = model or settings.LLM_MODEL
            api_key = api_key or settings.LLM_API_KEY
            api_base = api_base or settings.LLM_API_BASE
            if supports_roles is None:
                supports_roles = settings.LLM_SUPPORTS_ROLES

        if lm is None:
            lm_kwargs = {}
            if api_key:
                lm_kwargs["api_key"] = api_key
            if api_base:
                lm_kwargs["api_base"] = api_base
            # Chat replies must never be served from the response cache.
            lm = dspy.LM(model, cache=False, **lm_kwargs)

        self.lm = lm
        self.supports_roles = supports_roles

    async def generate(self, messages: list[ChatTurn], *, temperature: float, max_tokens: int) -> str:
        """
        Run one completion request.

        Raises:
            LLMServiceError: If the request fails or the reply is empty
        """
        if not self.supports_roles:
            messages = [{"role": "user", "content": flatten_messages(messages)}]

        call = functools.partial(self.lm, messages=messages, temperature=temperature, max_tokens=max_tokens)
        try:
            outputs = await anyio.to_thread.run_sync(call)
        except Exception as e:
            logger.error(f"Text generation request failed: {e}")
            raise LLMServiceError(f"Text generation request failed: {e}") from e

        if not outputs:
            raise LLMServiceError("Text generation returned no completions")

        first = outputs[0]
        # Newer dspy versions return dicts when the provider adds extra fields
        if isinstance(first, dict):
            first = first.get("text") or ""
        if not isinstance(first, str) or not first.strip():
            raise LLMServiceError("Text generation returned an empty completion")

        return first
