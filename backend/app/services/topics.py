from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace
from typing import Any, List, Optional

import openai

from .connectors.openai_web import extract_json_payload
from .llm import get_llm_client, limit_llm_concurrency
from .normalizer import DataPointDraft
from ..core.config import get_settings
from ..core.exceptions import MalformedUpstreamResponse
from ..models.data_point import Sentiment

logger = logging.getLogger(__name__)
settings = get_settings()

MAX_TOPICS = 3
MAX_TOPIC_LEN = 40


@dataclass
class TextAnalysis:
    sentiment: Optional[Sentiment] = None
    topics: List[str] = field(default_factory=list)


def _clean_topics(topics: Any) -> List[str]:
    if not isinstance(topics, list):
        return []

    clean: List[str] = []
    for t in topics:
        if not isinstance(t, str):
            continue
        t = t.strip().lower()
        if t and len(t) <= MAX_TOPIC_LEN:
            clean.append(t)
    return clean[:MAX_TOPICS]


def parse_analysis(raw: str | None) -> TextAnalysis:
    """
    Extract sentiment and up to MAX_TOPICS short topic strings from a model
    answer. An unknown sentiment label is dropped, not guessed.
    Raises MalformedUpstreamResponse when no JSON object is present.
    """
    data = extract_json_payload(raw)
    label = str(data.get("sentiment") or "").strip().upper()
    sentiment = Sentiment(label) if label in Sentiment.__members__ else None
    return TextAnalysis(sentiment=sentiment, topics=_clean_topics(data.get("topics")))


def parse_topics(raw: str | None) -> List[str]:
    return parse_analysis(raw).topics


class TopicTagger:
    """
    Optional pass that labels drafts with 1-3 topic keywords via the chat LLM.

    Drafts that arrived without a recognised type (search snippets, for
    instance) also take the model's sentiment; typed drafts keep theirs.
    Drafts are processed one by one, and a failed call leaves that draft
    unchanged apart from empty topics.
    """

    def __init__(self, client: Any | None = None, model: str | None = None) -> None:
        self._client = client
        self._model = model or settings.LLM_MODEL

    def _build_prompt(self, text: str) -> str:
        return (
            "Analyse the following customer feedback.\n"
            "Reply ONLY with a valid JSON object, no markdown and no other text:\n"
            '{"sentiment": "POSITIVE" | "NEGATIVE" | "NEUTRAL", '
            '"topics": ["1 to 3 short topic keywords in the language of the feedback, e.g. \\"delivery\\", \\"support\\""]}\n\n'
            f'Feedback: "{text}"'
        )

    def _complete(self, client: Any, text: str) -> str:
        with limit_llm_concurrency():
            resp = client.chat.completions.create(
                model=self._model,
                messages=[{"role": "user", "content": self._build_prompt(text)}],
                temperature=0.0,
                max_tokens=100,
            )
        if not resp.choices:
            raise MalformedUpstreamResponse("Empty choices in completion")
        return resp.choices[0].message.content or ""

    def _needs_call(self, draft: DataPointDraft) -> bool:
        return not draft.topics or not draft.typed

    async def tag(self, drafts: List[DataPointDraft]) -> List[DataPointDraft]:
        if not any(self._needs_call(d) for d in drafts):
            return drafts

        try:
            client = self._client or get_llm_client()
        except RuntimeError as e:
            logger.warning("Topic tagging skipped: %s", e, extra={"step": "topics"})
            return drafts

        tagged: List[DataPointDraft] = []
        for draft in drafts:
            if not self._needs_call(draft):
                tagged.append(draft)
                continue
            try:
                raw = await asyncio.to_thread(self._complete, client, draft.content)
                analysis = parse_analysis(raw)
            except (openai.OpenAIError, MalformedUpstreamResponse) as e:
                logger.warning("Topic tagging failed for one item: %s", e, extra={"step": "topics"})
                analysis = TextAnalysis()

            topics = draft.topics or analysis.topics
            if not draft.typed and analysis.sentiment is not None:
                tagged.append(replace(draft, topics=topics, sentiment=analysis.sentiment, typed=True))
            else:
                tagged.append(replace(draft, topics=topics))
        return tagged
