"""Tests for deduplication of enriched article sections."""

from __future__ import annotations

from text_news.core.normalize import dedup_by, normalize_article
from text_news.core.types import EnrichedArticle


def _entity(name: str, what: str = "thing") -> dict:
    return {
        "name": name,
        "whatIsThisEntity": what,
        "whyIsThisEntityRelevantToTheArticle": "mentioned",
    }


def _article(**overrides) -> EnrichedArticle:
    payload = {
        "dateOfPublication": "2024-05-01",
        "timeOfPublication": "10:00:00",
        "title": "Example",
        "category": "World",
        "summaryOfNewsArticle": "Summary",
        "keyTakeAways": [],
        "namedEntities": [],
        "importantDates": [],
        "importantTimeframes": [],
        "tags": [],
    }
    payload.update(overrides)
    return EnrichedArticle.model_validate(payload)


def test_dedup_by_keeps_first_occurrence():
    assert dedup_by(["a", "b", "a", "c", "b"], lambda s: s) == ["a", "b", "c"]


def test_normalize_drops_repeated_entities_by_name():
    article = _article(namedEntities=[_entity("A", "first"), _entity("A", "second"), _entity("B")])

    normalize_article(article)

    assert [e.name for e in article.named_entities] == ["A", "B"]
    assert article.named_entities[0].what_is_this_entity == "first"


def test_normalize_dates_and_timeframes_by_description():
    article = _article(
        importantDates=[
            {"dateMentionedInArticle": "May 1", "descriptionOfWhyDateIsRelevant": "vote"},
            {"dateMentionedInArticle": "1 May", "descriptionOfWhyDateIsRelevant": "vote"},
            {"dateMentionedInArticle": "May 2", "descriptionOfWhyDateIsRelevant": "count"},
        ],
        importantTimeframes=[
            {
                "approximateTimeFrameStart": "2020",
                "approximateTimeFrameEnd": "2024",
                "descriptionOfWhyTimeFrameIsRelevant": "term",
            },
            {
                "approximateTimeFrameStart": "2021",
                "approximateTimeFrameEnd": "2024",
                "descriptionOfWhyTimeFrameIsRelevant": "term",
            },
        ],
    )

    normalize_article(article)

    assert [d.date_mentioned for d in article.important_dates] == ["May 1", "May 2"]
    assert len(article.important_timeframes) == 1
    assert article.important_timeframes[0].start == "2020"


def test_normalize_takeaways_exact_match_only():
    article = _article(keyTakeAways=["x", "x", "y", "X"])

    result = normalize_article(article)

    assert result is article
    assert article.key_takeaways == ["x", "y", "X"]


def test_normalize_is_noop_on_unique_sections():
    article = _article(keyTakeAways=["one"], namedEntities=[_entity("A")], tags=["t", "t"])

    normalize_article(article)

    assert article.key_takeaways == ["one"]
    assert len(article.named_entities) == 1
    # Tags are left as the provider returned them.
    assert article.tags == ["t", "t"]


def test_normalize_puts_title_and_category_on_one_line():
    article = _article(title="  Storm\nhits\r\n coast ", category="World\nNews")

    normalize_article(article)

    assert article.title == "Storm hits coast"
    assert article.category == "World News"
