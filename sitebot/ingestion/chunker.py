"""Text chunking for embedding.

Two strategies:

- ``chunk_content``: fixed-size character windows with overlap, breaking at the
  last sentence end or newline when that keeps the window over half full.
- ``chunk_text``: packs whole sentences into chunks of roughly ``max_tokens``
  (4 characters per token), carrying trailing words over as overlap.
"""

import hashlib
import re
from dataclasses import dataclass, field

CHARS_PER_TOKEN = 4
_SENTENCE = re.compile(r"[^.!?]+(?:[.!?]+|$)")
_WHITESPACE = re.compile(r"\s+")


@dataclass
class Chunk:
    text: str
    index: int
    metadata: dict = field(default_factory=dict)


def chunk_content(content: str, max_chunk_size: int = 1000, overlap: int = 100) -> list[Chunk]:
    if max_chunk_size <= 0:
        raise ValueError("max_chunk_size must be positive")
    if not 0 <= overlap < max_chunk_size:
        raise ValueError(f"Overlap ({overlap}) must be in [0, {max_chunk_size})")

    chunks: list[Chunk] = []
    start = 0
    length = len(content)

    while start < length:
        end = min(start + max_chunk_size, length)

        if end < length:
            # Break character may sit exactly at `end`; it is kept in this chunk
            break_point = max(content.rfind(".", 0, end + 1), content.rfind("\n", 0, end + 1))
            if break_point > start + max_chunk_size / 2:
                end = break_point + 1

        chunks.append(Chunk(text=content[start:end], index=len(chunks)))
        if end >= length:
            break

        next_start = end - overlap
        start = next_start if next_start > start else end

    return chunks


def _split_sentences(text: str, max_chars: int) -> list[str]:
    sentences = _SENTENCE.findall(text) or [text]
    pieces = []
    for sentence in sentences:
        # Sentences longer than a chunk are cut into windows
        while len(sentence) > max_chars:
            pieces.append(sentence[:max_chars])
            sentence = sentence[max_chars:]
        if sentence.strip():
            pieces.append(sentence)
    return pieces


def chunk_text(
    text: str,
    max_tokens: int = 512,
    overlap_tokens: int = 0,
    metadata: dict | None = None,
) -> list[Chunk]:
    if not text or not text.strip():
        return []

    max_chars = max_tokens * CHARS_PER_TOKEN
    metadata = metadata or {}
    chunks: list[Chunk] = []
    current = ""

    for sentence in _split_sentences(text, max_chars):
        if len(current + sentence) <= max_chars:
            current += sentence
            continue

        if current.strip():
            chunks.append(Chunk(text=current.strip(), index=len(chunks), metadata=dict(metadata)))

        if overlap_tokens > 0 and current:
            carried = " ".join(current.split()[-overlap_tokens:])
            current = f"{carried} {sentence.lstrip()}"
        else:
            current = sentence

    if current.strip():
        chunks.append(Chunk(text=current.strip(), index=len(chunks), metadata=dict(metadata)))

    return chunks


def clean_content(content: str) -> str:
    return _WHITESPACE.sub(" ", content).strip()


def content_hash(content: str) -> str:
    """Short stable digest used in vector ids."""
    return hashlib.sha256(content.encode()).hexdigest()[:16]
