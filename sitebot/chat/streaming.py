"""SSE event formatting for chat streams.

Every event carries its name both as the SSE ``event:`` field and as ``type``
in the JSON payload, so ``EventSource`` listeners and plain ``fetch`` readers
can both dispatch on it.
"""

import json


def _sse(event: str, data: dict) -> str:
    return f"event: {event}\ndata: {json.dumps({'type': event, **data}, default=str)}\n\n"


def format_connected(session_id: str) -> str:
    return _sse("connected", {"session_id": session_id})


def format_searching() -> str:
    return _sse("searching", {})


def format_streaming(sources: list[dict]) -> str:
    return _sse("streaming", {"sources": sources})


def format_content(text: str) -> str:
    return _sse("content", {"content": text})


def format_done(conversation_id: str, response: str, sources: list[dict], usage: dict | None = None) -> str:
    return _sse("done", {"conversation_id": conversation_id, "response": response, "sources": sources, "usage": usage or {}})


def format_error(message: str, error_type: str = "stream_error") -> str:
    return _sse("error", {"error": {"type": error_type, "message": message}})
