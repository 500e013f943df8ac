"""OpenAI embeddings with batching, rate-limit backoff and usage accounting."""

import asyncio
import logging
from dataclasses import dataclass

from openai import AsyncOpenAI, OpenAIError, RateLimitError

from sitebot.llm.token_counter import truncate_to_tokens
from sitebot.utils.cost_tracker import estimate_embedding_cost
from sitebot.utils.errors import UpstreamServiceError

logger = logging.getLogger(__name__)

MAX_BATCH_SIZE = 100
# text-embedding-3 models accept 8191 tokens per input
MAX_INPUT_TOKENS = 8000


class EmbeddingError(UpstreamServiceError):
    service = "openai"


@dataclass
class EmbeddingUsage:
    total_tokens: int = 0
    total_cost: float = 0.0


class EmbeddingService:
    def __init__(
        self,
        api_key: str | None = None,
        model: str = "text-embedding-3-small",
        max_retries: int = 3,
        retry_delay: float = 1.0,
        client: AsyncOpenAI | None = None,
    ):
        self._client = client or AsyncOpenAI(api_key=api_key)
        self.model = model
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._usage = EmbeddingUsage()

    def _record_usage(self, response) -> None:
        if response.usage:
            tokens = response.usage.total_tokens
            self._usage.total_tokens += tokens
            self._usage.total_cost += estimate_embedding_cost(tokens, self.model)

    async def _create(self, inputs: str | list[str]):
        """Call the API, backing off exponentially on rate limits only."""
        for attempt in range(self.max_retries):
            try:
                response = await self._client.embeddings.create(model=self.model, input=inputs)
            except RateLimitError as e:
                if attempt == self.max_retries - 1:
                    raise EmbeddingError(f"Failed to generate embedding after {self.max_retries} attempts: {e}") from e
                delay = self.retry_delay * (2 ** attempt)
                logger.warning("Embedding rate limited, retrying in %.1fs", delay)
                await asyncio.sleep(delay)
            except OpenAIError as e:
                raise EmbeddingError(f"Failed to generate embedding: {e}") from e
            else:
                self._record_usage(response)
                return response
        raise EmbeddingError("Failed to generate embedding")

    async def generate_embedding(self, text: str) -> list[float]:
        if not text or not text.strip():
            return []
        response = await self._create(truncate_to_tokens(text, MAX_INPUT_TOKENS))
        return response.data[0].embedding

    async def generate_batch_embeddings(self, texts: list[str]) -> list[list[float]]:
        """Embed non-empty texts in batches of 100; output order follows the filtered input."""
        filtered = [truncate_to_tokens(t, MAX_INPUT_TOKENS) for t in texts if t and t.strip()]
        results: list[list[float]] = []
        for start in range(0, len(filtered), MAX_BATCH_SIZE):
            batch = filtered[start:start + MAX_BATCH_SIZE]
            response = await self._create(batch)
            results.extend(item.embedding for item in sorted(response.data, key=lambda d: d.index))
        return results

    def get_usage(self) -> EmbeddingUsage:
        return EmbeddingUsage(self._usage.total_tokens, self._usage.total_cost)

    def reset_usage(self) -> None:
        self._usage = EmbeddingUsage()


_service: EmbeddingService | None = None


def get_embedding_service() -> EmbeddingService:
    global _service
    if _service is None:
        from sitebot.config.settings import get_settings

        settings = get_settings()
        _service = EmbeddingService(api_key=settings.OPENAI_API_KEY, model=settings.EMBEDDING_MODEL)
    return _service
