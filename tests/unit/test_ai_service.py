"""
AI Service Unit Tests

Tests for embeddings, summaries and topic extraction with a mocked OpenAI
client, plus the deterministic mock mode. No external API calls - runs
without network or API keys.
"""

import json
import math
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from brainer.core.exceptions import AIServiceError, ContentTooShortError
from brainer.services import ai

LONG_TEXT = (
    "The design review covered the storage layer. We agreed to move uploads "
    "to object storage. Costs will be reviewed again next quarter."
)


def _completion(payload: dict | None, total_tokens: int = 42) -> SimpleNamespace:
    content = json.dumps(payload) if payload is not None else None
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(total_tokens=total_tokens),
    )


# ---------------------------------------------------------------------------
# Embeddings
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_generate_embedding_calls_openai():
    """
    Verify generate_embedding calls OpenAI correctly when an API key is present.

    Validates:
        - Correct model selection (text-embedding-3-small)
        - Input is cleaned before sending
        - Vector and token usage are parsed from the response
    """
    mock_vector = [0.1] * 1536
    mock_response = SimpleNamespace(
        data=[SimpleNamespace(embedding=mock_vector)],
        usage=SimpleNamespace(total_tokens=7),
    )

    with patch("brainer.services.ai.AsyncOpenAI") as MockClient:
        mock_instance = MockClient.return_value
        mock_instance.embeddings.create = AsyncMock(return_value=mock_response)

        with patch.dict("os.environ", {"OPENAI_API_KEY": "sk-test"}):
            result = await ai.generate_embedding("Hello   World\n\nagain™")

    assert len(result.embedding) == 1536
    assert result.embedding[0] == 0.1
    assert result.model == "text-embedding-3-small"
    assert result.tokens_used == 7
    _, kwargs = mock_instance.embeddings.create.call_args
    assert kwargs["model"] == "text-embedding-3-small"
    assert kwargs["input"] == "Hello World again"
    assert kwargs["encoding_format"] == "float"


@pytest.mark.asyncio
async def test_generate_embedding_rejects_short_text():
    with pytest.raises(ContentTooShortError):
        await ai.generate_embedding("   short   ")


@pytest.mark.asyncio
async def test_generate_embedding_missing_key():
    with patch.dict("os.environ", {"OPENAI_API_KEY": ""}):
        with pytest.raises(AIServiceError, match="OPENAI_API_KEY"):
            await ai.generate_embedding("long enough text for an embedding")


@pytest.mark.asyncio
async def test_generate_embedding_wraps_sdk_errors():
    with patch("brainer.services.ai.AsyncOpenAI") as MockClient:
        MockClient.return_value.embeddings.create = AsyncMock(
            side_effect=RuntimeError("Rate limit exceeded")
        )
        with patch.dict("os.environ", {"OPENAI_API_KEY": "sk-test"}):
            with pytest.raises(AIServiceError) as exc_info:
                await ai.generate_embedding("long enough text for an embedding")

    assert str(exc_info.value) == "Embedding generation failed: Rate limit exceeded"


@pytest.mark.asyncio
async def test_mock_embedding_is_deterministic_unit_vector():
    with patch.dict("os.environ", {"OPENAI_API_KEY": "mock"}):
        first = await ai.generate_embedding("deterministic mock embedding")
        second = await ai.generate_embedding("deterministic mock embedding")
        other = await ai.generate_embedding("a completely different sentence")

    assert first.embedding == second.embedding
    assert first.embedding != other.embedding
    assert len(first.embedding) == 1536
    assert math.isclose(sum(v * v for v in first.embedding), 1.0, rel_tol=1e-9)


def test_clean_text_for_embedding_truncates():
    assert len(ai.clean_text_for_embedding("a" * 9000)) == ai.MAX_EMBEDDING_INPUT_CHARS


class TestCosineSimilarity:
    def test_identical(self):
        assert ai.cosine_similarity([1.0, 2.0], [1.0, 2.0]) == pytest.approx(1.0)

    def test_orthogonal(self):
        assert ai.cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)

    def test_zero_vector(self):
        assert ai.cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0

    def test_dimension_mismatch(self):
        with pytest.raises(ValueError):
            ai.cosine_similarity([1.0], [1.0, 2.0])


# ---------------------------------------------------------------------------
# Summaries
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_generate_summary_parses_json():
    payload = {"summary": "Storage review.", "keyPoints": ["Move uploads", "Review costs"]}

    with patch("brainer.services.ai.AsyncOpenAI") as MockClient:
        create = AsyncMock(return_value=_completion(payload, total_tokens=88))
        MockClient.return_value.chat.completions.create = create
        with patch.dict("os.environ", {"OPENAI_API_KEY": "sk-test"}):
            result = await ai.generate_summary(LONG_TEXT)

    assert result.summary == "Storage review."
    assert result.key_points == ["Move uploads", "Review costs"]
    assert result.tokens_used == 88
    _, kwargs = create.call_args
    assert kwargs["max_tokens"] == 150
    assert kwargs["temperature"] == 0.3
    assert kwargs["response_format"] == {"type": "json_object"}


@pytest.mark.asyncio
async def test_generate_summary_missing_key_points():
    with patch("brainer.services.ai.AsyncOpenAI") as MockClient:
        MockClient.return_value.chat.completions.create = AsyncMock(
            return_value=_completion({"summary": "Only a summary."})
        )
        with patch.dict("os.environ", {"OPENAI_API_KEY": "sk-test"}):
            result = await ai.generate_summary(LONG_TEXT)

    assert result.key_points == []


@pytest.mark.asyncio
async def test_generate_summary_empty_response():
    with patch("brainer.services.ai.AsyncOpenAI") as MockClient:
        MockClient.return_value.chat.completions.create = AsyncMock(
            return_value=_completion(None)
        )
        with patch.dict("os.environ", {"OPENAI_API_KEY": "sk-test"}):
            with pytest.raises(AIServiceError, match="No response from OpenAI"):
                await ai.generate_summary(LONG_TEXT)


@pytest.mark.asyncio
async def test_generate_summary_rejects_short_content():
    with pytest.raises(ContentTooShortError):
        await ai.generate_summary("Too short to summarize.")


@pytest.mark.asyncio
async def test_mock_summary_uses_leading_sentences():
    with patch.dict("os.environ", {"OPENAI_API_KEY": "mock"}):
        result = await ai.generate_summary(LONG_TEXT)

    assert result.summary == "The design review covered the storage layer."
    assert len(result.key_points) == 3


# ---------------------------------------------------------------------------
# Topics
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_extract_topics_truncates_input():
    payload = {"topics": ["Storage"], "concepts": ["uploads"], "tags": ["infra"]}
    long_text = "storage " * 1000

    with patch("brainer.services.ai.AsyncOpenAI") as MockClient:
        create = AsyncMock(return_value=_completion(payload, total_tokens=30))
        MockClient.return_value.chat.completions.create = create
        with patch.dict("os.environ", {"OPENAI_API_KEY": "sk-test"}):
            result = await ai.extract_topics_and_concepts(long_text)

    assert result.as_blob() == {
        "topics": ["Storage"],
        "concepts": ["uploads"],
        "suggested_tags": ["infra"],
    }
    assert result.tokens_used == 30
    _, kwargs = create.call_args
    user_message = kwargs["messages"][1]["content"]
    assert user_message.endswith(long_text[:2000])
    assert kwargs["max_tokens"] == 300


@pytest.mark.asyncio
async def test_extract_topics_wraps_sdk_errors():
    with patch("brainer.services.ai.AsyncOpenAI") as MockClient:
        MockClient.return_value.chat.completions.create = AsyncMock(
            side_effect=RuntimeError("You exceeded your current quota")
        )
        with patch.dict("os.environ", {"OPENAI_API_KEY": "sk-test"}):
            with pytest.raises(AIServiceError, match="Topic extraction failed: .*quota"):
                await ai.extract_topics_and_concepts(LONG_TEXT)


@pytest.mark.asyncio
async def test_extract_topics_rejects_short_content():
    with pytest.raises(ContentTooShortError):
        await ai.extract_topics_and_concepts("tiny note")
