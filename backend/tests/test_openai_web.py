"""
Tests for connectors/openai_web.py - AI-grounded acquisition

Exercises the JSON carving of free-text answers, payload defaults,
grounding-source extraction and the failure policy of the strategy.
"""
import asyncio

import openai
import pytest

from app.core.config import get_settings
from app.core.exceptions import AcquisitionFailure, MalformedUpstreamResponse
from app.services.connectors.openai_web import (
    DEFAULT_SOURCE_TITLE,
    SAMPLE_SIZE,
    OpenAIWebSearchStrategy,
    extract_grounding_sources,
    extract_json_payload,
    parse_acquisition_payload,
)

from tests.fixtures.reputation_fixtures import (
    FENCED_EMPTY_ITEMS,
    NO_BRACES_ANSWER,
    NON_FINITE_COUNTS_ANSWER,
    FakeResponsesClient,
    acme_payload,
    json_response,
    make_response,
)


# ---------------------------------------------------------------------------
# JSON carving
# ---------------------------------------------------------------------------

class TestExtractJsonPayload:
    def test_fenced_json_inside_prose(self):
        assert extract_json_payload(FENCED_EMPTY_ITEMS) == {"items": []}

    def test_no_braces_is_malformed(self):
        with pytest.raises(MalformedUpstreamResponse):
            extract_json_payload(NO_BRACES_ANSWER)

    def test_empty_is_malformed(self):
        with pytest.raises(MalformedUpstreamResponse):
            extract_json_payload("")

    def test_non_finite_constants_become_null(self):
        assert extract_json_payload('{"count": Infinity, "other": NaN}') == {"count": None, "other": None}

    def test_broken_json_is_malformed(self):
        with pytest.raises(MalformedUpstreamResponse):
            extract_json_payload('{"items": [}')


class TestParseAcquisitionPayload:
    def test_missing_fields_default(self):
        result = parse_acquisition_payload({})
        assert result.items == []
        assert result.categories == []
        assert result.overall_sentiment == "NEUTRAL"
        assert result.analysis is None

    def test_invalid_sentiment_defaults_to_neutral(self):
        assert parse_acquisition_payload({"overallSentiment": "MIXED"}).overall_sentiment == "NEUTRAL"

    def test_items_parsed_and_types_uppercased(self):
        result = parse_acquisition_payload({
            "items": [
                {"text": "Chegou rápido", "source": "Trustpilot", "type": "praise"},
                {"text": "", "type": "COMPLAINT"},
                "not an object",
            ],
            "overallSentiment": "positive",
        })
        assert len(result.items) == 1
        assert result.items[0].type == "PRAISE"
        assert result.overall_sentiment == "POSITIVE"

    def test_overflowing_count_coerced_to_zero(self):
        result = parse_acquisition_payload({
            "complaints": [{"category": "Entrega", "count": float("inf"), "summary": "Atrasos"}],
        })
        assert result.categories[0].count == 0

    def test_unusable_fields_are_malformed(self):
        class Unprintable:
            def __str__(self):
                raise ValueError("cannot render")

        with pytest.raises(MalformedUpstreamResponse):
            parse_acquisition_payload({"overallSentiment": Unprintable()})

    def test_grouped_shape_becomes_categories(self):
        result = parse_acquisition_payload({
            "complaints": [{"category": "Entrega", "count": "4", "summary": "Atrasos"}],
            "praises": [{"category": "Preço", "count": 2, "summary": "Barato"}],
        })
        assert [(c.category, c.count, c.type) for c in result.categories] == [
            ("Entrega", 4, "COMPLAINT"),
            ("Preço", 2, "PRAISE"),
        ]


class TestExtractGroundingSources:
    def test_dedupes_by_uri_keeping_first_title(self):
        response = make_response("{}", citations=[
            {"url": "https://a.example/1", "title": "First"},
            {"url": "https://a.example/1", "title": "Second"},
            {"url": "https://b.example/2"},
        ])
        sources = extract_grounding_sources(response)
        assert [(s.uri, s.title) for s in sources] == [
            ("https://a.example/1", "First"),
            ("https://b.example/2", DEFAULT_SOURCE_TITLE),
        ]

    def test_no_message_items(self):
        assert extract_grounding_sources(make_response("")) == []


# ---------------------------------------------------------------------------
# Strategy
# ---------------------------------------------------------------------------

class TestOpenAIWebSearchStrategy:
    def test_acquire_parses_answer_and_sources(self):
        client = FakeResponsesClient(json_response(
            acme_payload(),
            citations=[{"url": "https://www.reclameaqui.com.br/acme", "title": "Acme"}],
        ))
        strategy = OpenAIWebSearchStrategy(client=client, model="test-model")

        result = asyncio.run(strategy.acquire("Acme", "last_7_days"))

        assert len(result.items) == 12
        assert result.overall_sentiment == "NEGATIVE"
        assert [s.uri for s in result.sources] == ["https://www.reclameaqui.com.br/acme"]

        [call] = client.calls
        assert call["model"] == "test-model"
        assert call["tools"] == [{"type": "web_search"}]
        assert '"Acme"' in call["input"]
        assert "the last week" in call["input"]

    def test_non_finite_counts_still_yield_categories(self):
        strategy = OpenAIWebSearchStrategy(client=FakeResponsesClient(make_response(NON_FINITE_COUNTS_ANSWER)))
        result = asyncio.run(strategy.acquire("Acme"))
        assert [(c.category, c.count) for c in result.categories] == [("Entrega", 0), ("Preço", 0)]

    def test_malformed_answer_degrades_to_empty_result(self):
        strategy = OpenAIWebSearchStrategy(client=FakeResponsesClient(make_response(NO_BRACES_ANSWER)))
        result = asyncio.run(strategy.acquire("Acme"))
        assert result.items == []
        assert result.overall_sentiment == "NEUTRAL"

    def test_client_error_raises_acquisition_failure(self):
        client = FakeResponsesClient(error=openai.OpenAIError("invalid api key"))
        strategy = OpenAIWebSearchStrategy(client=client)
        with pytest.raises(AcquisitionFailure) as exc:
            asyncio.run(strategy.acquire("Acme"))
        assert exc.value.strategy == "openai_web"

    def test_missing_api_key_raises_acquisition_failure(self, monkeypatch):
        monkeypatch.setattr(get_settings(), "OPENAI_API_KEY", None)
        strategy = OpenAIWebSearchStrategy()
        with pytest.raises(AcquisitionFailure):
            asyncio.run(strategy.acquire("Acme"))

    def test_fetch_sample_cleans_and_caps_reviews(self):
        reviews = [
            {"source": "Google", "author": f"User {i}", "content": f"Review {i}", "sentiment": "positive"}
            for i in range(12)
        ]
        reviews.append({"content": "", "sentiment": "NEGATIVE"})
        strategy = OpenAIWebSearchStrategy(client=FakeResponsesClient(json_response({"reviews": reviews})))

        sample = asyncio.run(strategy.fetch_sample("Acme"))

        assert len(sample) == SAMPLE_SIZE
        assert sample[0] == {"source": "Google", "author": "User 0", "content": "Review 0", "sentiment": "POSITIVE"}

    def test_fetch_sample_defaults_missing_fields(self):
        payload = {"reviews": [{"content": "Bom", "sentiment": "weird"}]}
        strategy = OpenAIWebSearchStrategy(client=FakeResponsesClient(json_response(payload)))
        assert asyncio.run(strategy.fetch_sample("Acme")) == [
            {"source": "Web", "author": "Anonymous", "content": "Bom", "sentiment": "NEUTRAL"}
        ]

    def test_fetch_sample_malformed_is_empty(self):
        strategy = OpenAIWebSearchStrategy(client=FakeResponsesClient(make_response(NO_BRACES_ANSWER)))
        assert asyncio.run(strategy.fetch_sample("Acme")) == []
