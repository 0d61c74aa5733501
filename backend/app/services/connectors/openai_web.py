# backend/app/services/connectors/openai_web.py

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

import openai
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from .base import (
    AcquisitionResult,
    AcquisitionStrategy,
    DEFAULT_PERIOD,
    FeedbackCategory,
    FeedbackItem,
    GroundingSource,
    dedupe_sources,
    period_label,
)
from ..llm import get_web_search_client, limit_llm_concurrency
from ...core.config import get_settings
from ...core.exceptions import AcquisitionFailure, MalformedUpstreamResponse

logger = logging.getLogger(__name__)
settings = get_settings()

VALID_SENTIMENTS = {"POSITIVE", "NEGATIVE", "NEUTRAL"}
DEFAULT_SOURCE_TITLE = "Web source"
SAMPLE_SIZE = 10


def extract_json_payload(raw: str | None) -> Dict[str, Any]:
    """
    Carve the JSON object out of a free-text model response.

    Models wrap JSON in prose or ```json fences despite instructions, so we
    parse only the span from the first "{" to the last "}".
    """
    if not raw:
        raise MalformedUpstreamResponse("Empty response from acquisition channel")

    start = raw.find("{")
    end = raw.rfind("}")
    if start == -1 or end == -1 or end < start:
        raise MalformedUpstreamResponse("No JSON object found in response")

    try:
        # NaN and Infinity are not JSON; treat them as missing values
        data = json.loads(raw[start : end + 1], parse_constant=lambda _: None)
    except json.JSONDecodeError as e:
        raise MalformedUpstreamResponse(f"Invalid JSON in response: {e}") from e

    if not isinstance(data, dict):
        raise MalformedUpstreamResponse("Response JSON is not an object")
    return data


def _clean_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _coerce_count(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return 0


def _parse_items(raw_items: Any) -> List[FeedbackItem]:
    if not isinstance(raw_items, list):
        return []

    items: List[FeedbackItem] = []
    for raw in raw_items:
        if not isinstance(raw, dict):
            continue
        text = _clean_str(raw.get("text"))
        if not text:
            continue
        item_type = _clean_str(raw.get("type"))
        items.append(
            FeedbackItem(
                text=text,
                source=_clean_str(raw.get("source")),
                type=item_type.upper() if item_type else None,
                date=_clean_str(raw.get("date")),
                url=_clean_str(raw.get("url")),
                author=_clean_str(raw.get("author")),
            )
        )
    return items


def _parse_categories(raw_categories: Any, default_type: Optional[str]) -> List[FeedbackCategory]:
    if not isinstance(raw_categories, list):
        return []

    categories: List[FeedbackCategory] = []
    for raw in raw_categories:
        if not isinstance(raw, dict):
            continue
        name = _clean_str(raw.get("category"))
        summary = _clean_str(raw.get("summary"))
        if not name or not summary:
            continue
        dates = raw.get("dates")
        raw_type = _clean_str(raw.get("type"))
        categories.append(
            FeedbackCategory(
                category=name,
                count=_coerce_count(raw.get("count")),
                summary=summary,
                type=raw_type.upper() if raw_type else default_type,
                dates=[str(d) for d in dates] if isinstance(dates, list) else [],
            )
        )
    return categories


def parse_acquisition_payload(data: Dict[str, Any]) -> AcquisitionResult:
    """
    Map a parsed JSON payload onto AcquisitionResult with field-level defaults.

    Accepts the item-level shape ({"items": [...]}) and the grouped shape
    ({"complaints": [...], "praises": [...]}) older prompts produced.
    Anything that still fails to map raises MalformedUpstreamResponse.
    """
    try:
        return _build_result(data)
    except (TypeError, ValueError, OverflowError, AttributeError) as e:
        raise MalformedUpstreamResponse(f"Unusable fields in response: {e}") from e


def _build_result(data: Dict[str, Any]) -> AcquisitionResult:
    items = _parse_items(data.get("items"))
    categories = (
        _parse_categories(data.get("complaints"), "COMPLAINT")
        + _parse_categories(data.get("praises"), "PRAISE")
        + _parse_categories(data.get("categories"), None)
    )

    sentiment = str(data.get("overallSentiment") or "NEUTRAL").strip().upper()
    if sentiment not in VALID_SENTIMENTS:
        sentiment = "NEUTRAL"

    return AcquisitionResult(
        items=items,
        categories=categories,
        overall_sentiment=sentiment,
        analysis=_clean_str(data.get("analysisText")),
        suggestion=_clean_str(data.get("suggestionText")),
    )


def _attr(source: Any, key: str) -> Any:
    if source is None:
        return None
    if isinstance(source, dict):
        return source.get(key)
    return getattr(source, key, None)


def extract_grounding_sources(response: Any) -> List[GroundingSource]:
    """
    Collect url_citation annotations from a Responses API result.
    """
    sources: List[GroundingSource] = []
    for item in _attr(response, "output") or []:
        if _attr(item, "type") != "message":
            continue
        for block in _attr(item, "content") or []:
            for ann in _attr(block, "annotations") or []:
                if _attr(ann, "type") != "url_citation":
                    continue
                uri = _clean_str(_attr(ann, "url"))
                if not uri:
                    continue
                title = _clean_str(_attr(ann, "title")) or DEFAULT_SOURCE_TITLE
                sources.append(GroundingSource(uri=uri, title=title))
    return dedupe_sources(sources)


def _response_text(response: Any) -> str:
    # Prefer the convenient helper if available
    raw_text = _attr(response, "output_text")
    if raw_text:
        return str(raw_text)

    # Fallback to the text blocks of message items
    parts: List[str] = []
    for item in _attr(response, "output") or []:
        if _attr(item, "type") != "message":
            continue
        for block in _attr(item, "content") or []:
            text = _attr(block, "text")
            if text:
                parts.append(str(text))
    return "\n".join(parts)


class OpenAIWebSearchStrategy(AcquisitionStrategy):
    """
    AI-grounded acquisition via OpenAI's `web_search` tool (Responses API).

    The model is asked to behave as a quote extractor, not a summariser, and
    to answer with a single JSON object:

        {
          "items": [{"text": ..., "source": ..., "type": "COMPLAINT" | "PRAISE", "date": ...}],
          "overallSentiment": "POSITIVE" | "NEGATIVE" | "NEUTRAL",
          "analysisText": "...",
          "suggestionText": "..."
        }

    Failure policy:
    - Unparseable answers degrade to an empty NEUTRAL result (logged).
    - Missing credentials or any OpenAI client error raise AcquisitionFailure.
    """

    name = "openai_web"

    def __init__(self, client: Any | None = None, model: str | None = None) -> None:
        self._client = client
        self._model: str = model or settings.OPENAI_WEB_MODEL or "gpt-5"

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_client(self) -> Any:
        if self._client is not None:
            return self._client
        try:
            return get_web_search_client()
        except RuntimeError as e:
            raise AcquisitionFailure(self.name, str(e)) from e

    def _build_reputation_prompt(self, company_name: str, period: str) -> str:
        return (
            "ATTENTION: you are NOT a journalist and NOT a summariser. You are a QUOTE EXTRACTOR.\n\n"
            "TASK:\n"
            f'Use the web_search tool to find PERSONAL, first-person opinions of real customers about the company "{company_name}" '
            f"published during {period}.\n\n"
            "TARGET SOURCES: Reclame Aqui, Consumidor.gov, X (Twitter), Google Maps reviews, Trustpilot, Reddit.\n\n"
            "EXCLUDE:\n"
            "- News articles and tech press coverage (e.g. 'Company announces...', 'Shares rise...').\n"
            "- Financial reports and articles written by editors.\n\n"
            "INCLUDE:\n"
            "- Only texts where the customer describes their own experience "
            "(e.g. 'I bought it and it never arrived', 'The app crashed again').\n"
            "- Between 10 and 30 REAL and DISTINCT items. Copy the quote verbatim; do not paraphrase.\n\n"
            "Return your answer as a single JSON object with this exact shape:\n"
            "{\n"
            '  "items": [\n'
            "    {\n"
            '      "text": "Verbatim customer quote",\n'
            '      "source": "Where it was published (e.g. Reclame Aqui)",\n'
            '      "url": "https://..." | null,\n'
            '      "type": "COMPLAINT" | "PRAISE",\n'
            '      "date": "YYYY-MM-DD" | null\n'
            "    }\n"
            "  ],\n"
            '  "overallSentiment": "POSITIVE" | "NEGATIVE" | "NEUTRAL",\n'
            '  "analysisText": "Technical summary of the problems customers report (about 100 words).",\n'
            '  "suggestionText": "Corrective action suggested to the company (about 80 words)."\n'
            "}\n\n"
            "The response must be valid JSON. Do not include comments, markdown, or prose outside the JSON.\n"
        )

    def _build_sample_prompt(self, company_name: str) -> str:
        return (
            "Act as a reputation search engine.\n"
            f'Use the web_search tool to find exactly {SAMPLE_SIZE} recent, relevant reviews or complaints '
            f'about the company "{company_name}".\n\n'
            "Return a single JSON object with this exact shape:\n"
            "{\n"
            '  "reviews": [\n'
            '    {"source": "Source", "author": "Name", "content": "Text", '
            '"sentiment": "POSITIVE" | "NEGATIVE" | "NEUTRAL"}\n'
            "  ]\n"
            "}\n\n"
            "The response must be valid JSON with no extra commentary.\n"
        )

    @retry(
        wait=wait_exponential(multiplier=1, min=1, max=10),
        stop=stop_after_attempt(3),
        retry=retry_if_exception_type(openai.APIConnectionError),
        reraise=True,
    )
    def _create_response(self, client: Any, prompt: str) -> Any:
        return client.responses.create(
            model=self._model,
            tools=[{"type": "web_search"}],
            tool_choice="auto",
            input=prompt,
        )

    async def _run_web_search(self, prompt: str) -> Any:
        client = self._get_client()

        def _call_openai_sync() -> Any:
            with limit_llm_concurrency():
                return self._create_response(client, prompt)

        try:
            return await asyncio.to_thread(_call_openai_sync)
        except openai.OpenAIError as e:
            logger.exception(
                "OpenAI web_search call failed: %s",
                e,
                extra={"strategy": self.name, "step": "web_search"},
            )
            raise AcquisitionFailure(self.name, str(e)) from e

    # ------------------------------------------------------------------
    # Core acquisition
    # ------------------------------------------------------------------

    async def acquire(self, company_name: str, period: str = DEFAULT_PERIOD) -> AcquisitionResult:
        prompt = self._build_reputation_prompt(company_name, period_label(period))
        response = await self._run_web_search(prompt)

        raw_text = _response_text(response)
        try:
            result = parse_acquisition_payload(extract_json_payload(raw_text))
        except MalformedUpstreamResponse as e:
            logger.warning(
                "Discarding unparseable web search answer for '%s': %s",
                company_name,
                e,
                extra={"strategy": self.name, "step": "parse"},
            )
            return AcquisitionResult.empty()

        result.sources = extract_grounding_sources(response)

        logger.info(
            "Web search returned %d items and %d categories for '%s'",
            len(result.items),
            len(result.categories),
            company_name,
            extra={"strategy": self.name, "step": "acquire"},
        )
        return result

    async def fetch_sample(self, company_name: str) -> List[Dict[str, str]]:
        """
        Up to SAMPLE_SIZE quick reviews for the public sample endpoint.
        """
        response = await self._run_web_search(self._build_sample_prompt(company_name))
        try:
            data = extract_json_payload(_response_text(response))
        except MalformedUpstreamResponse:
            logger.warning(
                "Discarding unparseable sample answer for '%s'",
                company_name,
                extra={"strategy": self.name, "step": "sample"},
            )
            return []

        reviews = data.get("reviews")
        if not isinstance(reviews, list):
            return []

        clean: List[Dict[str, str]] = []
        for r in reviews:
            if not isinstance(r, dict):
                continue
            content = _clean_str(r.get("content"))
            if not content:
                continue
            sentiment = str(r.get("sentiment") or "NEUTRAL").strip().upper()
            clean.append({
                "source": _clean_str(r.get("source")) or "Web",
                "author": _clean_str(r.get("author")) or "Anonymous",
                "content": content,
                "sentiment": sentiment if sentiment in VALID_SENTIMENTS else "NEUTRAL",
            })
        return clean[:SAMPLE_SIZE]
