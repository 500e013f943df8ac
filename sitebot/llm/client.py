"""OpenAI chat completion client."""

import logging
from collections.abc import AsyncGenerator

from openai import AsyncOpenAI, OpenAIError

from sitebot.config.settings import get_settings
from sitebot.utils.errors import UpstreamServiceError

logger = logging.getLogger(__name__)


class LLMError(UpstreamServiceError):
    service = "openai"


class OpenAIChatClient:
    def __init__(self, client: AsyncOpenAI | None = None):
        self._client = client or AsyncOpenAI(api_key=get_settings().OPENAI_API_KEY)

    async def generate(self, messages: list[dict], model: str, temperature: float = 0.7, max_tokens: int = 500) -> dict:
        """Return {"content": str, "finish_reason": str, "input_tokens": int, "output_tokens": int}."""
        try:
            response = await self._client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except OpenAIError as e:
            raise LLMError(f"Chat completion failed: {e}") from e
        choice = response.choices[0]
        return {
            "content": choice.message.content or "",
            "finish_reason": choice.finish_reason,
            "input_tokens": response.usage.prompt_tokens if response.usage else 0,
            "output_tokens": response.usage.completion_tokens if response.usage else 0,
        }

    async def ping(self) -> None:
        """Cheap authenticated call used by the health check."""
        try:
            await self._client.models.list()
        except OpenAIError as e:
            raise LLMError(f"OpenAI is unreachable: {e}") from e

    async def generate_stream(
        self, messages: list[dict], model: str, temperature: float = 0.7, max_tokens: int = 500
    ) -> AsyncGenerator[dict, None]:
        """Yield {"type": "delta"|"finish", "content"?: str, "finish_reason"?: str, "usage"?: dict}."""
        try:
            stream = await self._client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
                stream=True,
                stream_options={"include_usage": True},
            )
            finish_reason = "stop"
            async for chunk in stream:
                if chunk.usage:
                    # Final chunk carries usage and no choices
                    yield {
                        "type": "finish",
                        "finish_reason": finish_reason,
                        "usage": {
                            "input_tokens": chunk.usage.prompt_tokens,
                            "output_tokens": chunk.usage.completion_tokens,
                        },
                    }
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta
                if delta.content:
                    yield {"type": "delta", "content": delta.content}
                if chunk.choices[0].finish_reason:
                    finish_reason = chunk.choices[0].finish_reason
        except OpenAIError as e:
            raise LLMError(f"Chat completion stream failed: {e}") from e


_client: OpenAIChatClient | None = None


def get_llm_client() -> OpenAIChatClient:
    global _client
    if _client is None:
        _client = OpenAIChatClient()
    return _client
