"""Sliding window over conversation history for chat completions."""

from sitebot.llm.token_counter import count_tokens

# Most recent turns considered at all
MAX_HISTORY_MESSAGES = 10

# Token budget for system + context + history (the reply has its own budget)
DEFAULT_MAX_TOKENS = 6000


def build_context(
    system_messages: list[str],
    history: list[dict],
    query: str,
    max_tokens: int = DEFAULT_MAX_TOKENS,
) -> list[dict]:
    """Assemble system prompts, as many recent turns as fit, and the user query.

    System prompts and the query are always included; history is taken from the
    most recent end, capped at MAX_HISTORY_MESSAGES and the remaining budget.
    """
    system = [{"role": "system", "content": content} for content in system_messages if content]
    fixed = sum(count_tokens(m["content"]) + 4 for m in system) + count_tokens(query) + 4
    budget = max_tokens - fixed

    recent: list[dict] = []
    used = 0
    for msg in reversed(history[-MAX_HISTORY_MESSAGES:]):
        entry = {"role": msg["role"], "content": msg["content"]}
        msg_tokens = count_tokens(entry["content"]) + 4
        if used + msg_tokens > budget:
            break
        recent.insert(0, entry)
        used += msg_tokens

    return system + recent + [{"role": "user", "content": query}]
