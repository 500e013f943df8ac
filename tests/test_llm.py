"""Tests for prompt assembly, cost estimation and the OpenAI chat client."""

import json
from types import SimpleNamespace

import httpx
import openai
import pytest

from sitebot.chat.streaming import format_content, format_done, format_error
from sitebot.llm.client import LLMError, OpenAIChatClient
from sitebot.llm.context import MAX_HISTORY_MESSAGES, build_context
from sitebot.llm.prompts import build_context_prompt, build_system_prompt
from sitebot.llm.token_counter import count_tokens, truncate_to_tokens
from sitebot.utils.cost_tracker import estimate_cost, estimate_embedding_cost


def _history(n):
    return [{"role": "user" if i % 2 == 0 else "assistant", "content": f"turn {i}"} for i in range(n)]


def test_system_prompt():
    assert "Acme Helper" in build_system_prompt("Acme Helper")
    assert build_system_prompt("Acme Helper", "Be brief.") == "Be brief."
    assert "this website" in build_system_prompt(None)


def test_context_prompt():
    prompt = build_context_prompt(["First chunk.", "", "Second chunk."])
    assert "First chunk.\n\nSecond chunk." in prompt
    assert "No relevant context found." in build_context_prompt([])


def test_build_context_order():
    messages = build_context(["system", "context"], _history(2), "question")
    assert [m["role"] for m in messages] == ["system", "system", "user", "assistant", "user"]
    assert messages[-1]["content"] == "question"


def test_build_context_caps_history():
    messages = build_context(["system"], _history(25), "question")
    history = messages[1:-1]
    assert len(history) == MAX_HISTORY_MESSAGES
    assert history[-1]["content"] == "turn 24"


def test_build_context_token_budget():
    long_turns = [{"role": "user", "content": "word " * 400} for _ in range(5)]
    messages = build_context(["system"], long_turns, "question", max_tokens=1000)
    # Only the most recent turns that fit are kept
    assert 0 < len(messages) - 2 < 5


def test_token_helpers():
    assert count_tokens("hello world") == 2
    assert truncate_to_tokens("hello world", 1) == "hello"
    assert truncate_to_tokens("hello", 10) == "hello"


def test_estimate_cost():
    assert estimate_cost(1000, 1000, "gpt-4o-mini") == pytest.approx(0.00075)
    assert estimate_cost(1000, 0, "unknown-model") == pytest.approx(0.0005)
    assert estimate_embedding_cost(1000, "text-embedding-3-small") == pytest.approx(0.00002)


def test_sse_formatting():
    assert format_content("Hi") == 'event: content\ndata: {"type": "content", "content": "Hi"}\n\n'
    done = json.loads(format_done("c1", "Hi", []).split("data: ")[1])
    assert done == {"type": "done", "conversation_id": "c1", "response": "Hi", "sources": [], "usage": {}}
    error = json.loads(format_error("Failed").split("data: ")[1])
    assert error["error"] == {"type": "stream_error", "message": "Failed"}


# --- OpenAI client ---

def _chunk(content=None, finish_reason=None, usage=None, choices=True):
    choice = SimpleNamespace(delta=SimpleNamespace(content=content), finish_reason=finish_reason)
    return SimpleNamespace(choices=[choice] if choices else [], usage=usage)


class FakeCompletions:
    def __init__(self, error=None):
        self.error = error
        self.kwargs = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        if self.error:
            raise self.error
        if kwargs.get("stream"):
            return self._stream()
        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content="Hello!"), finish_reason="stop")],
            usage=SimpleNamespace(prompt_tokens=12, completion_tokens=3),
        )

    async def _stream(self):
        yield _chunk("Hel")
        yield _chunk("lo")
        yield _chunk(finish_reason="length")
        yield _chunk(usage=SimpleNamespace(prompt_tokens=12, completion_tokens=2), choices=False)


def _client(completions):
    return OpenAIChatClient(client=SimpleNamespace(chat=SimpleNamespace(completions=completions)))


async def test_generate():
    completions = FakeCompletions()
    result = await _client(completions).generate([{"role": "user", "content": "Hi"}], "gpt-4o-mini", 0.3, 100)
    assert result == {"content": "Hello!", "finish_reason": "stop", "input_tokens": 12, "output_tokens": 3}
    assert completions.kwargs["temperature"] == 0.3
    assert completions.kwargs["max_tokens"] == 100


async def test_generate_stream():
    completions = FakeCompletions()
    chunks = [c async for c in _client(completions).generate_stream([], "gpt-4o-mini")]
    assert chunks == [
        {"type": "delta", "content": "Hel"},
        {"type": "delta", "content": "lo"},
        {"type": "finish", "finish_reason": "length", "usage": {"input_tokens": 12, "output_tokens": 2}},
    ]
    assert completions.kwargs["stream_options"] == {"include_usage": True}


async def test_generate_wraps_openai_errors():
    error = openai.APIConnectionError(request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions"))
    with pytest.raises(LLMError):
        await _client(FakeCompletions(error=error)).generate([], "gpt-4o-mini")


async def test_ping_wraps_openai_errors():
    async def fail():
        raise openai.APIConnectionError(request=httpx.Request("GET", "https://api.openai.com/v1/models"))

    client = OpenAIChatClient(client=SimpleNamespace(models=SimpleNamespace(list=fail)))
    with pytest.raises(LLMError):
        await client.ping()
