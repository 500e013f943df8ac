"""System prompt templates for bots."""

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful AI assistant for {bot_name}. Answer questions based on the provided context. "
    "If you cannot find relevant information in the context, say so politely."
)

NO_CONTEXT = "No relevant context found."

CONTEXT_TEMPLATE = (
    "Context:\n{context}\n\n"
    "Please provide a helpful and accurate response based on the context above."
)


def build_system_prompt(bot_name: str, custom_prompt: str | None = None) -> str:
    if custom_prompt:
        return custom_prompt
    return DEFAULT_SYSTEM_PROMPT.format(bot_name=bot_name or "this website")


def build_context_prompt(chunks: list[str]) -> str:
    context = "\n\n".join(c for c in chunks if c)
    return CONTEXT_TEMPLATE.format(context=context or NO_CONTEXT)
