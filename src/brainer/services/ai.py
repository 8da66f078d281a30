"""
AI Service

OpenAI integration for embeddings, summaries and topic extraction.
Supports mock mode for local development without API costs.

Design:
    - OPENAI_API_KEY is read on every call; 'mock' selects a deterministic
      offline mode (same text -> same vector / summary), a missing key is
      an AIServiceError that the API layer maps to 503.
    - One request per call: no retry, no batching.
    - Every SDK failure is re-raised as AIServiceError with the upstream
      message preserved so callers can classify rate limits and quota.
"""

from __future__ import annotations

import hashlib
import json
import logging
import math
import os
import random
import re
from collections import Counter
from dataclasses import dataclass, field

from openai import AsyncOpenAI

from brainer.core.config import settings
from brainer.core.exceptions import AIServiceError, ContentTooShortError
from brainer.models import EMBEDDING_DIMENSION

logger = logging.getLogger(__name__)

MIN_EMBEDDING_CHARS = 10
MIN_SUMMARY_CHARS = 50
MIN_TOPICS_CHARS = 20
MAX_EMBEDDING_INPUT_CHARS = 8000  # OpenAI embedding input limit
MAX_TOPICS_INPUT_CHARS = 2000

SUMMARY_MAX_TOKENS = 150
TOPICS_MAX_TOKENS = 300
TEMPERATURE = 0.3

SUMMARY_PROMPT = """You are an AI assistant that creates concise, helpful summaries.
Your task is to:
1. Create a brief, clear summary of the main content
2. Extract 3-5 key points as bullet points
3. Focus on the most important information
4. Keep the summary professional yet accessible

Respond with JSON format:
{
  "summary": "Brief summary text",
  "keyPoints": ["Key point 1", "Key point 2", "Key point 3"]
}"""

TOPICS_PROMPT = """You are an AI that extracts topics, concepts, and suggests tags from text content.

Your task:
1. Identify main topics/themes (3-8 topics)
2. Extract key concepts (5-12 concepts)
3. Suggest relevant tags (3-6 tags)

Rules:
- Topics: broad themes (e.g. "Project Management", "Machine Learning")
- Concepts: specific ideas/terms (e.g. "deadline", "neural networks")
- Tags: searchable keywords (e.g. "work", "ai", "meeting")
- Return JSON format

Example output:
{
  "topics": ["Project Management", "Team Communication"],
  "concepts": ["deadline", "sprint planning", "user stories"],
  "tags": ["work", "planning", "team"]
}"""

_STOPWORDS = frozenset(
    "about after again also because been before being between both could does "
    "doing during each from further have having here into itself just more most "
    "other over same should some such than that their them then there these they "
    "this those through under until very were what when where which while will "
    "with would your yours".split()
)


@dataclass
class EmbeddingResult:
    embedding: list[float]
    model: str
    tokens_used: int


@dataclass
class SummaryResult:
    summary: str
    key_points: list[str] = field(default_factory=list)
    tokens_used: int = 0


@dataclass
class TopicsResult:
    topics: list[str] = field(default_factory=list)
    concepts: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    tokens_used: int = 0

    def as_blob(self) -> dict[str, list[str]]:
        """Shape stored in ``notes.extracted_topics``."""
        return {
            "topics": self.topics,
            "concepts": self.concepts,
            "suggested_tags": self.tags,
        }


# ---------------------------------------------------------------------------
# Client helpers
# ---------------------------------------------------------------------------


def _api_key() -> str:
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        raise AIServiceError("OPENAI_API_KEY is not configured")
    return api_key


def is_mock_mode() -> bool:
    """True when OPENAI_API_KEY is the literal 'mock'."""
    return (os.getenv("OPENAI_API_KEY") or "").lower() == "mock"


def clean_text_for_embedding(text: str) -> str:
    """Collapse whitespace, drop unusual punctuation, cap at the input limit."""
    cleaned = re.sub(r"\s+", " ", text)
    cleaned = re.sub(r"[^\w\s.,!?-]", "", cleaned)
    return cleaned.strip()[:MAX_EMBEDDING_INPUT_CHARS]


def _parse_json(raw: str | None) -> dict:
    if not raw:
        raise AIServiceError("No response from OpenAI")
    return json.loads(raw)


# ---------------------------------------------------------------------------
# Embeddings
# ---------------------------------------------------------------------------


async def generate_embedding(text: str) -> EmbeddingResult:
    """
    Generate a vector embedding for the given text.

    Uses settings.OPENAI_EMBEDDING_MODEL (text-embedding-3-small, 1536 dims).

    Args:
        text: Input text to embed (at least 10 non-blank characters).

    Returns:
        EmbeddingResult with the vector, model name and billed tokens.

    Raises:
        ContentTooShortError: Trimmed text shorter than 10 characters.
        AIServiceError: Missing key or any OpenAI failure.
    """
    if not text or len(text.strip()) < MIN_EMBEDDING_CHARS:
        raise ContentTooShortError(
            "Text is too short to generate embedding (minimum 10 characters)"
        )

    model = settings.OPENAI_EMBEDDING_MODEL
    clean = clean_text_for_embedding(text)

    if is_mock_mode():
        return EmbeddingResult(
            embedding=_mock_embedding(clean),
            model=model,
            tokens_used=len(clean.split()),
        )

    client = AsyncOpenAI(api_key=_api_key())
    try:
        response = await client.embeddings.create(
            input=clean, model=model, encoding_format="float"
        )
    except Exception as e:
        logger.error("Embedding generation failed: %s", e)
        raise AIServiceError(f"Embedding generation failed: {e}") from e

    tokens = response.usage.total_tokens if response.usage else 0
    return EmbeddingResult(
        embedding=list(response.data[0].embedding),
        model=model,
        tokens_used=tokens or 0,
    )


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """Cosine similarity of two equal-length vectors (0.0 for a zero vector)."""
    if len(a) != len(b):
        raise ValueError("Vectors must have the same dimension")
    dot = sum(x * y for x, y in zip(a, b))
    magnitude = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    if magnitude == 0:
        return 0.0
    return dot / magnitude


def _mock_embedding(text: str) -> list[float]:
    # Seeded from the text hash: identical text yields an identical unit vector
    seed = int.from_bytes(hashlib.sha256(text.encode("utf-8")).digest()[:8], "big")
    rng = random.Random(seed)
    vector = [rng.gauss(0.0, 1.0) for _ in range(EMBEDDING_DIMENSION)]
    norm = math.sqrt(sum(v * v for v in vector)) or 1.0
    return [v / norm for v in vector]


# ---------------------------------------------------------------------------
# Summaries
# ---------------------------------------------------------------------------


async def generate_summary(text: str, max_tokens: int = SUMMARY_MAX_TOKENS) -> SummaryResult:
    """
    Summarise ``text`` into a short paragraph plus key points.

    Raises:
        ContentTooShortError: Trimmed text shorter than 50 characters.
        AIServiceError: Missing key, empty completion or OpenAI failure.
    """
    if not text or len(text.strip()) < MIN_SUMMARY_CHARS:
        raise ContentTooShortError(
            "Content is too short to summarize (minimum 50 characters)"
        )

    if is_mock_mode():
        return _mock_summary(text)

    client = AsyncOpenAI(api_key=_api_key())
    try:
        completion = await client.chat.completions.create(
            model=settings.OPENAI_CHAT_MODEL,
            messages=[
                {"role": "system", "content": SUMMARY_PROMPT},
                {"role": "user", "content": f"Please summarize this content:\n\n{text}"},
            ],
            max_tokens=max_tokens,
            temperature=TEMPERATURE,
            response_format={"type": "json_object"},
        )
        parsed = _parse_json(completion.choices[0].message.content if completion.choices else None)
    except AIServiceError:
        raise
    except Exception as e:
        logger.error("Summary generation failed: %s", e)
        raise AIServiceError(f"Summary generation failed: {e}") from e

    tokens = completion.usage.total_tokens if completion.usage else 0
    return SummaryResult(
        summary=str(parsed.get("summary") or ""),
        key_points=list(parsed.get("keyPoints") or []),
        tokens_used=tokens or 0,
    )


def _sentences(text: str) -> list[str]:
    flat = re.sub(r"\s+", " ", text).strip()
    return [s.strip() for s in re.split(r"(?<=[.!?])\s+", flat) if s.strip()]


def _mock_summary(text: str) -> SummaryResult:
    sentences = _sentences(text)
    return SummaryResult(
        summary=sentences[0] if sentences else text.strip(),
        key_points=sentences[:3],
        tokens_used=len(text.split()),
    )


# ---------------------------------------------------------------------------
# Topics
# ---------------------------------------------------------------------------


async def extract_topics_and_concepts(text: str) -> TopicsResult:
    """
    Extract topics, concepts and suggested tags from note content.

    Only the first 2000 characters are sent.

    Raises:
        ContentTooShortError: Trimmed text shorter than 20 characters.
        AIServiceError: Missing key, empty completion or OpenAI failure.
    """
    if not text or len(text.strip()) < MIN_TOPICS_CHARS:
        raise ContentTooShortError(
            "Content is too short for topic extraction (minimum 20 characters)"
        )

    excerpt = text[:MAX_TOPICS_INPUT_CHARS]
    if is_mock_mode():
        return _mock_topics(excerpt)

    client = AsyncOpenAI(api_key=_api_key())
    try:
        completion = await client.chat.completions.create(
            model=settings.OPENAI_CHAT_MODEL,
            messages=[
                {"role": "system", "content": TOPICS_PROMPT},
                {
                    "role": "user",
                    "content": f"Extract topics, concepts, and tags from this content:\n\n{excerpt}",
                },
            ],
            max_tokens=TOPICS_MAX_TOKENS,
            temperature=TEMPERATURE,
            response_format={"type": "json_object"},
        )
        parsed = _parse_json(completion.choices[0].message.content if completion.choices else None)
    except AIServiceError:
        raise
    except Exception as e:
        logger.error("Topic extraction failed: %s", e)
        raise AIServiceError(f"Topic extraction failed: {e}") from e

    tokens = completion.usage.total_tokens if completion.usage else 0
    return TopicsResult(
        topics=list(parsed.get("topics") or []),
        concepts=list(parsed.get("concepts") or []),
        tags=list(parsed.get("tags") or []),
        tokens_used=tokens or 0,
    )


def _mock_topics(text: str) -> TopicsResult:
    words = [w for w in re.findall(r"[a-zA-Z]{4,}", text.lower()) if w not in _STOPWORDS]
    ranked = [word for word, _ in Counter(words).most_common(8)]
    return TopicsResult(
        topics=[w.title() for w in ranked[:3]],
        concepts=ranked[:8],
        tags=ranked[:4],
        tokens_used=len(text.split()),
    )
