"""
Tests for analytics.py - dashboard aggregates

Rows are inserted directly with explicit timestamps so window boundaries and
feed ordering are deterministic.
"""
from datetime import datetime, timedelta

import pytest

from app.models.company import Company
from app.models.data_point import DataPoint, Sentiment
from app.services import analytics


def _add(db, company, content, sentiment=Sentiment.NEUTRAL, *, age=timedelta(hours=1), topics=None, source="Reclame Aqui"):
    dp = DataPoint(
        company_id=company.id,
        source=source,
        original_url="https://example.org",
        author="Anonymous",
        title=content[:50],
        content=content,
        sentiment=sentiment,
        topics=topics or [],
        created_at=datetime.utcnow() - age,
    )
    db.add(dp)
    db.commit()
    return dp


@pytest.fixture
def other_company(db):
    other = Company(name="Globex", owner_user_id="user-2")
    db.add(other)
    db.commit()
    return other


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------

class TestGetStats:
    def test_empty_window_is_all_zero(self, db, company):
        stats = analytics.get_stats(db, company.id, 30)
        assert (stats.total, stats.positive, stats.negative, stats.neutral) == (0, 0, 0, 0)
        assert stats.period == "30 days"

    def test_total_equals_sum_of_sentiments(self, db, company):
        for i in range(3):
            _add(db, company, f"bad {i}", Sentiment.NEGATIVE)
        for i in range(2):
            _add(db, company, f"good {i}", Sentiment.POSITIVE)
        _add(db, company, "meh", Sentiment.NEUTRAL)

        stats = analytics.get_stats(db, company.id, 30)
        assert (stats.negative, stats.positive, stats.neutral) == (3, 2, 1)
        assert stats.total == stats.positive + stats.negative + stats.neutral

    def test_window_excludes_old_rows(self, db, company):
        _add(db, company, "recent", Sentiment.POSITIVE, age=timedelta(days=2))
        _add(db, company, "old", Sentiment.NEGATIVE, age=timedelta(days=40))

        assert analytics.get_stats(db, company.id, 30).total == 1
        assert analytics.get_stats(db, company.id, 7).total == 1
        assert analytics.get_stats(db, company.id, 1).total == 0
        assert analytics.get_stats(db, company.id, 60).total == 2

    def test_scoped_to_company(self, db, company, other_company):
        _add(db, company, "mine", Sentiment.POSITIVE)
        _add(db, other_company, "theirs", Sentiment.NEGATIVE)
        stats = analytics.get_stats(db, company.id, 30)
        assert (stats.total, stats.positive, stats.negative) == (1, 1, 0)


# ---------------------------------------------------------------------------
# Topics
# ---------------------------------------------------------------------------

class TestGetTopTopics:
    def test_duplicates_inside_one_row_count_twice(self, db, company):
        _add(db, company, "x", topics=["a", "a"])
        result = analytics.get_top_topics(db, company.id, 30)
        assert result.topics == {"a": 2}
        assert result.total_mentions == 2

    def test_ordered_by_frequency(self, db, company):
        _add(db, company, "one", topics=["entrega", "preço"])
        _add(db, company, "two", topics=["entrega"])
        _add(db, company, "three", topics=["entrega", "suporte"])
        _add(db, company, "old", topics=["suporte", "suporte"], age=timedelta(days=90))

        result = analytics.get_top_topics(db, company.id, 30)
        assert list(result.topics.items())[0] == ("entrega", 3)
        assert result.topics["preço"] == 1
        assert result.topics["suporte"] == 1
        assert result.total_mentions == sum(result.topics.values()) == 5

    def test_no_topics(self, db, company):
        _add(db, company, "plain")
        result = analytics.get_top_topics(db, company.id, 30)
        assert result.topics == {}
        assert result.total_mentions == 0


# ---------------------------------------------------------------------------
# Feed
# ---------------------------------------------------------------------------

class TestGetFeed:
    def test_duplicate_content_shown_once(self, db, company):
        for _ in range(3):
            _add(db, company, "App travou de novo", Sentiment.NEGATIVE)
        _add(db, company, "Entrega rápida", Sentiment.POSITIVE)

        feed = analytics.get_feed(db, company.id, page=1, limit=10)

        assert feed.total == 2
        assert sorted(dp.content for dp in feed.data) == ["App travou de novo", "Entrega rápida"]
        assert feed.last_page == 1

    def test_most_recent_duplicate_wins(self, db, company):
        _add(db, company, "Mesmo texto", Sentiment.NEGATIVE, age=timedelta(days=3), source="old-source")
        _add(db, company, "Mesmo texto", Sentiment.NEGATIVE, age=timedelta(hours=2), source="new-source")

        [row] = analytics.get_feed(db, company.id).data
        assert row.source == "new-source"

    def test_newest_first_and_stable_pagination(self, db, company):
        for i in range(25):
            _add(db, company, f"content {i:02d}", age=timedelta(minutes=i + 1))

        pages = [analytics.get_feed(db, company.id, page=p, limit=10) for p in (1, 2, 3)]

        assert [len(p.data) for p in pages] == [10, 10, 5]
        assert all(p.total == 25 and p.last_page == 3 for p in pages)
        contents = [dp.content for p in pages for dp in p.data]
        assert contents == [f"content {i:02d}" for i in range(25)]

    def test_page_past_the_end_is_empty(self, db, company):
        _add(db, company, "only one")
        feed = analytics.get_feed(db, company.id, page=5, limit=10)
        assert feed.data == []
        assert feed.total == 1

    def test_sentiment_filter_applies_before_dedup(self, db, company):
        _add(db, company, "ambíguo", Sentiment.POSITIVE, age=timedelta(hours=3))
        _add(db, company, "ambíguo", Sentiment.NEGATIVE, age=timedelta(hours=1))
        _add(db, company, "ruim", Sentiment.NEGATIVE)

        positive = analytics.get_feed(db, company.id, sentiment=Sentiment.POSITIVE)
        assert [(dp.content, dp.sentiment) for dp in positive.data] == [("ambíguo", Sentiment.POSITIVE)]
        assert positive.total == 1

        negative = analytics.get_feed(db, company.id, sentiment=Sentiment.NEGATIVE)
        assert negative.total == 2

    def test_empty_feed(self, db, company):
        feed = analytics.get_feed(db, company.id)
        assert (feed.data, feed.total, feed.last_page) == ([], 0, 0)

    def test_optional_period(self, db, company):
        _add(db, company, "ancient", age=timedelta(days=400))
        assert analytics.get_feed(db, company.id).total == 1
        assert analytics.get_feed(db, company.id, period_days=30).total == 0

    def test_invalid_paging_rejected(self, db, company):
        with pytest.raises(ValueError):
            analytics.get_feed(db, company.id, page=0)
        with pytest.raises(ValueError):
            analytics.get_feed(db, company.id, limit=0)
        with pytest.raises(ValueError):
            analytics.get_feed(db, company.id, limit=analytics.MAX_FEED_LIMIT + 1)
