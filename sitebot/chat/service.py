"""Retrieval-augmented chat: search the bot's namespace, prompt the model, keep the transcript."""

import logging
import time
import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable

from sitebot.bots.service import bot_settings
from sitebot.chat.streaming import format_connected, format_content, format_done, format_error, format_searching, format_streaming
from sitebot.config.settings import get_settings
from sitebot.conversations import repository as conversations
from sitebot.db.models import ROLE_ASSISTANT, ROLE_USER
from sitebot.ingestion.embeddings import EmbeddingService, get_embedding_service
from sitebot.ingestion.vector_store import PineconeVectorStore, VectorMatch, get_vector_store
from sitebot.llm.client import OpenAIChatClient, get_llm_client
from sitebot.llm.context import MAX_HISTORY_MESSAGES, build_context
from sitebot.llm.prompts import build_context_prompt, build_system_prompt
from sitebot.utils.cost_tracker import log_cost

logger = logging.getLogger(__name__)


def new_session_id() -> str:
    return f"session_{uuid.uuid4().hex}"


def source_from_match(match: VectorMatch) -> dict:
    return {
        "text": match.text,
        "url": match.metadata.get("url"),
        "title": match.metadata.get("title"),
        "score": round(match.score, 4),
    }


class ChatService:
    def __init__(self, embeddings: EmbeddingService, vector_store: PineconeVectorStore, llm: OpenAIChatClient):
        self.embeddings = embeddings
        self.vector_store = vector_store
        self.llm = llm

    async def retrieve(self, bot_id: str, query: str, top_k: int = 5) -> list[VectorMatch]:
        """Most similar chunks in the bot's namespace. Matches without text are dropped."""
        vector = await self.embeddings.generate_embedding(query)
        if not vector:
            return []
        matches = await self.vector_store.query(bot_id, vector, top_k=top_k)
        return [m for m in matches if m.text]

    def build_messages(self, bot: dict, context: list[str], history: list[dict], query: str) -> list[dict]:
        settings = bot_settings(bot)
        system_prompt = build_system_prompt(bot.get("name"), settings.system_prompt)
        return build_context([system_prompt, build_context_prompt(context)], history, query)

    def _generation_params(self, bot: dict) -> dict:
        app_settings = get_settings()
        settings = bot_settings(bot)
        return {
            "model": settings.model or app_settings.CHAT_MODEL,
            "temperature": settings.temperature,
            "max_tokens": settings.max_tokens,
        }

    async def _prepare(self, bot: dict, query: str, session_id: str, metadata: dict | None):
        conv = conversations.get_or_create(bot["id"], session_id, metadata)
        history = conversations.get_messages(conv["id"], limit=MAX_HISTORY_MESSAGES)
        matches = await self.retrieve(bot["id"], query, top_k=bot_settings(bot).top_k)
        messages = self.build_messages(bot, [m.text for m in matches], history, query)
        conversations.add_message(conv, ROLE_USER, query)
        return conv, messages, [source_from_match(m) for m in matches]

    def _save_reply(
        self, conv: dict, content: str, model: str, sources: list[dict], latency_ms: int, usage: dict, error: bool = False
    ) -> dict:
        input_tokens = usage.get("input_tokens", 0)
        output_tokens = usage.get("output_tokens", 0)
        log_cost(input_tokens, output_tokens, model)
        metadata = {
            "model": model,
            "sources": sources,
            "latency_ms": latency_ms,
            "input_tokens": input_tokens,
            "output_tokens": output_tokens,
        }
        if error:
            metadata["error"] = True
        return conversations.add_message(conv, ROLE_ASSISTANT, content, metadata)

    async def answer(self, bot: dict, query: str, session_id: str | None = None, metadata: dict | None = None) -> dict:
        session_id = session_id or new_session_id()
        conv, messages, sources = await self._prepare(bot, query, session_id, metadata)
        params = self._generation_params(bot)

        start = time.time()
        result = await self.llm.generate(messages, **params)
        latency_ms = int((time.time() - start) * 1000)

        self._save_reply(conv, result["content"], params["model"], sources, latency_ms, result)
        return {
            "message": result["content"],
            "sources": sources,
            "conversation_id": conv["id"],
            "session_id": session_id,
        }

    async def stream(
        self,
        bot: dict,
        query: str,
        session_id: str | None = None,
        metadata: dict | None = None,
        is_disconnected: Callable[[], Awaitable[bool]] | None = None,
    ) -> AsyncGenerator[str, None]:
        """Yield SSE events: connected, searching, streaming, content..., done (or error)."""
        session_id = session_id or new_session_id()
        yield format_connected(session_id)

        full_content = ""
        usage: dict = {}
        params = self._generation_params(bot)
        try:
            yield format_searching()
            conv, messages, sources = await self._prepare(bot, query, session_id, metadata)
            yield format_streaming(sources)

            start = time.time()
            async for chunk in self.llm.generate_stream(messages, **params):
                if is_disconnected is not None and await is_disconnected():
                    logger.info("Client disconnected during chat stream for bot %s", bot["id"])
                    break
                if chunk["type"] == "delta":
                    full_content += chunk["content"]
                    yield format_content(chunk["content"])
                elif chunk["type"] == "finish":
                    usage = chunk.get("usage", {})
        except Exception:
            logger.exception("Error during chat stream for bot %s", bot["id"])
            if full_content:
                # Partial reply is stored, flagged as an error
                latency_ms = int((time.time() - start) * 1000)
                self._save_reply(conv, full_content, params["model"], sources, latency_ms, usage, error=True)
            yield format_error("Failed to process message")
            return

        latency_ms = int((time.time() - start) * 1000)
        if full_content:
            self._save_reply(conv, full_content, params["model"], sources, latency_ms, usage)
        yield format_done(conv["id"], full_content, sources, usage)


_service: ChatService | None = None


def get_chat_service() -> ChatService:
    global _service
    if _service is None:
        _service = ChatService(get_embedding_service(), get_vector_store(), get_llm_client())
    return _service
