"""Gateway to the external text-classification model.

Builds the classification request, calls an OpenAI-compatible chat completion
endpoint through ``AsyncOpenAI`` and returns the reply trimmed and lower-cased.
The reply is not interpreted here; turning it into a verdict is the retry
policy's job.
"""

from __future__ import annotations

import asyncio
from typing import Sequence

from openai import AsyncOpenAI, OpenAIError

from supportguard.ai.prompts import build_chat_messages
from supportguard.datatypes.errors import ProviderError
from supportguard.util.logger import get_logger

logger = get_logger("classifier_gateway")


class ClassifierGateway:
    """
    Stateless wrapper around one chat completion call per classification.

    Args:
        client: Configured ``AsyncOpenAI`` client (or a compatible stand-in).
        model_name: Model to request.
        system_prompt: Policy document sent as the system turn.
        timeout: Seconds allowed per call before it counts as a failure.
    """

    def __init__(
        self,
        client: AsyncOpenAI,
        model_name: str,
        system_prompt: str,
        timeout: float = 20.0,
    ) -> None:
        self._client = client
        self._model_name = model_name
        self._system_prompt = system_prompt
        self._timeout = timeout
        logger.info("[CLASSIFIER] Initialized with model=%s, timeout=%.1fs", model_name, timeout)

    @property
    def model_name(self) -> str:
        return self._model_name

    async def classify(self, messages: Sequence[str], display_name: str | None = None) -> str:
        """Ask the model to judge ``messages`` (oldest first) and return its raw answer.

        Returns:
            The reply text, stripped and lower-cased.

        Raises:
            ProviderError: the call failed, timed out, or returned no text.
        """
        logger.debug("[CLASSIFIER] Prompting model to analyze %d message(s)", len(messages))
        request = build_chat_messages(self._system_prompt, messages, display_name)

        try:
            completion = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=self._model_name,
                    messages=request,
                ),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as exc:
            raise ProviderError(f"classification call timed out after {self._timeout:.1f}s") from exc
        except OpenAIError as exc:
            raise ProviderError(f"classification call failed: {exc}") from exc

        # Some compatible proxies send choices=None instead of an empty list
        choices = getattr(completion, "choices", None)
        if not choices:
            raise ProviderError("classification response had no choices")

        try:
            content = choices[0].message.content
        except (AttributeError, IndexError, TypeError) as exc:
            raise ProviderError("classification response was malformed") from exc

        if not isinstance(content, str):
            raise ProviderError("classification response had no text content")

        return content.strip().lower()

    async def close(self) -> None:
        """Release the underlying HTTP client."""
        await self._client.close()
