"""
Core data types for the Text News pipeline.

This module defines the data structures that flow between stages:
- RawArticle: Page text produced by a source adapter
- EnrichedArticle: Structured analysis returned by the enrichment provider
- FrontPage: All enriched articles of one (date, time of day) edition

EnrichedArticle and its parts are pydantic models so that provider output
is validated against the analysis schema on the way in. They keep the
camelCase field names of the wire format as aliases.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


@dataclass
class RawArticle:
    """Extracted article page, ready for enrichment.

    Attributes:
        source: Normalized article URL
        content: Header lines (published-at, title) followed by the body text
    """

    source: str
    content: str


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class NamedEntity(_WireModel):
    name: str
    what_is_this_entity: str = Field(alias="whatIsThisEntity")
    why_is_this_entity_relevant: str = Field(alias="whyIsThisEntityRelevantToTheArticle")


class ImportantDate(_WireModel):
    date_mentioned: str = Field(alias="dateMentionedInArticle")
    description: str = Field(alias="descriptionOfWhyDateIsRelevant")


class ImportantTimeframe(_WireModel):
    start: str = Field(alias="approximateTimeFrameStart")
    end: str = Field(alias="approximateTimeFrameEnd")
    description: str = Field(alias="descriptionOfWhyTimeFrameIsRelevant")


class EnrichedArticle(_WireModel):
    """Structured analysis of one article.

    `source` and `content` are filled in by the pipeline after validation;
    the provider is not trusted to echo them back.
    """

    source: str | None = None
    date_of_publication: str = Field(alias="dateOfPublication")
    time_of_publication: str = Field(alias="timeOfPublication")
    title: str
    category: str
    summary: str = Field(alias="summaryOfNewsArticle")
    key_takeaways: list[str] = Field(alias="keyTakeAways")
    named_entities: list[NamedEntity] = Field(alias="namedEntities")
    important_dates: list[ImportantDate] = Field(alias="importantDates")
    important_timeframes: list[ImportantTimeframe] = Field(alias="importantTimeframes")
    tags: list[str]
    content: str | None = None

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


@dataclass
class FrontPage:
    """One edition: every enriched article of a (local_date, time_of_day) bucket.

    Attributes:
        local_date: Edition date, YYYY-MM-DD
        time_of_day: "morning", "afternoon" or "evening"
        local_time: Wall-clock time the edition was produced, HH:MM:SS
        articles: Enriched articles in arrival order
    """

    local_date: str
    time_of_day: str
    local_time: str
    articles: list[EnrichedArticle] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "local_date": self.local_date,
            "time_of_day": self.time_of_day,
            "local_time": self.local_time,
            "articles": [article.to_wire() for article in self.articles],
        }
