"""Tests for index discovery and article extraction through SourceAdapter."""

from __future__ import annotations

import asyncio
import logging

import httpx
import pytest

from text_news.config import FetchConfig
from text_news.core.errors import PageFetchError
from text_news.fetch.client import build_client
from text_news.sources import adapter as adapter_module
from text_news.sources import extraction
from text_news.sources.adapter import SourceAdapter
from text_news.sources.discovery import parse_html
from text_news.sources.extraction import extract_published_at, is_placeholder
from text_news.sources.publishers import IndexStrategy, PublisherConfig, get_publisher
from text_news.sources.urls import accepts

PADDING = "<p>" + "filler " * 400 + "</p>"

LISTING = f"""
<html><body>
  <a class="headline" href="/story/a">A</a>
  <a class="headline" href="/story/b?utm_source=home">B</a>
  <a class="headline" href="/story/a#comments">A again</a>
  <a class="headline" href="/video/c">Video</a>
  <a class="headline" href="https://elsewhere.example/story/z">Elsewhere</a>
  {PADDING}
</body></html>
"""

RSS = """<?xml version="1.0"?>
<rss version="2.0"><channel><title>Feed</title>
  <item><title>F</title><link>https://news.example/story/from-feed</link></item>
</channel></rss>"""


def _config(**overrides) -> PublisherConfig:
    base = dict(
        name="example",
        hosts=("news.example",),
        path_pattern=r"^/story/",
        listing_urls=("https://news.example/",),
        index_strategies=(IndexStrategy("selectors", selector="a.headline[href]"),),
        target=10,
        max_candidates=10,
    )
    base.update(overrides)
    return PublisherConfig(**base)


def _run(cfg: PublisherConfig, handler, call):
    async def _go():
        async with build_client(FetchConfig(), transport=httpx.MockTransport(handler)) as client:
            adapter = SourceAdapter(cfg, client, FetchConfig())
            return await call(adapter)

    return asyncio.run(_go())


def _pages(pages: dict[str, httpx.Response]):
    def handler(request: httpx.Request) -> httpx.Response:
        return pages.get(str(request.url), httpx.Response(404, text="missing"))

    return handler


def test_index_normalizes_and_deduplicates():
    handler = _pages({"https://news.example/": httpx.Response(200, text=LISTING)})

    urls = _run(_config(), handler, lambda a: a.index())

    assert urls == {"https://news.example/story/a", "https://news.example/story/b"}


def test_index_stops_at_target_and_caps_at_max_candidates():
    handler = _pages({"https://news.example/": httpx.Response(200, text=LISTING)})

    urls = _run(_config(target=1, max_candidates=1), handler, lambda a: a.index())

    assert urls == {"https://news.example/story/a"}


def test_index_falls_through_to_later_strategies():
    listing = f'<html><body><div>href="/story/only-in-markup"</div>{PADDING}</body></html>'
    cfg = _config(
        index_strategies=(
            IndexStrategy("selectors", selector="a.headline[href]"),
            IndexStrategy("pattern", pattern=r'href="(/story/[\w-]+)"'),
        )
    )
    handler = _pages({"https://news.example/": httpx.Response(200, text=listing)})

    urls = _run(cfg, handler, lambda a: a.index())

    assert urls == {"https://news.example/story/only-in-markup"}


def test_shell_listing_moves_feed_first():
    shell = '<html><body><a class="headline" href="/story/from-listing">x</a></body></html>'
    cfg = _config(
        index_strategies=(
            IndexStrategy("selectors", selector="a.headline[href]"),
            IndexStrategy("feed", urls=("https://news.example/rss",)),
        ),
        target=1,
    )
    handler = _pages(
        {
            "https://news.example/": httpx.Response(200, text=shell),
            "https://news.example/rss": httpx.Response(200, text=RSS),
        }
    )

    urls = _run(cfg, handler, lambda a: a.index())

    assert urls == {"https://news.example/story/from-feed"}


def test_unavailable_listing_still_runs_feed():
    cfg = _config(
        index_strategies=(
            IndexStrategy("selectors", selector="a.headline[href]"),
            IndexStrategy("feed", urls=("https://news.example/rss",)),
        )
    )
    handler = _pages({"https://news.example/rss": httpx.Response(200, text=RSS)})

    urls = _run(cfg, handler, lambda a: a.index())

    assert urls == {"https://news.example/story/from-feed"}


def test_aggregator_links_are_resolved_to_publisher_urls():
    feed = """<?xml version="1.0"?>
    <rss version="2.0"><channel><title>Agg</title>
      <item><title>1</title><link>https://news.google.com/rss/articles/ONE</link></item>
      <item><title>2</title><link>https://news.google.com/rss/articles/TWO</link></item>
      <item><title>3</title><link>https://news.google.com/rss/articles/THREE</link></item>
      <item><title>4</title><link>https://news.google.com/rss/articles/FOUR</link></item>
      <item><title>5</title><link>https://www.google.com/url?q=https://news.example/story/five&amp;sa=U</link></item>
      <item><title>6</title><link>https://news.google.com/rss/articles/LOST</link></item>
    </channel></rss>"""
    pages = {
        "https://news.google.com/rss/search?q=example": httpx.Response(200, text=feed),
        "https://news.google.com/rss/articles/ONE": httpx.Response(
            302, headers={"Location": "https://news.example/story/one?ref=gn"}
        ),
        "https://news.example/story/one?ref=gn": httpx.Response(200, text="<html></html>"),
        "https://news.google.com/rss/articles/TWO": httpx.Response(
            200, text='<meta http-equiv="refresh" content="0;url=https://news.example/story/two">'
        ),
        "https://news.google.com/rss/articles/THREE": httpx.Response(
            200, text='<meta property="og:url" content="https://news.example/story/three">'
        ),
        "https://news.google.com/rss/articles/FOUR": httpx.Response(
            200, text='<script>var d = {"u":"https:\\/\\/news.example\\/story\\/four"};</script>'
        ),
        "https://news.google.com/rss/articles/LOST": httpx.Response(200, text="<html>consent</html>"),
    }
    cfg = _config(
        listing_urls=(),
        index_strategies=(
            IndexStrategy("feed", urls=("https://news.google.com/rss/search?q=example",)),
            IndexStrategy("aggregator"),
        ),
    )

    urls = _run(cfg, _pages(pages), lambda a: a.index())

    assert urls == {
        "https://news.example/story/one",
        "https://news.example/story/two",
        "https://news.example/story/three",
        "https://news.example/story/four",
        "https://news.example/story/five",
    }


ARTICLE = """
<html><head>
  <meta property="og:title" content="Storm hits coast">
  <script type="application/ld+json">
    {"@type": "NewsArticle", "datePublished": "2024-05-01T09:30:00Z"}
  </script>
</head><body>
  <article><p>First paragraph.</p><script>track()</script><p>Second   paragraph.</p></article>
</body></html>
"""


def test_fetch_composes_header_and_body():
    handler = _pages({"https://news.example/story/a": httpx.Response(200, text=ARTICLE)})

    article = _run(_config(), handler, lambda a: a.fetch("https://news.example/story/a"))

    assert article is not None
    assert article.source == "https://news.example/story/a"
    assert article.content == (
        "Published: 2024-05-01T09:30:00+00:00\n"
        "Title: Storm hits coast\n"
        "\n"
        "First paragraph.\n\nSecond paragraph."
    )


def test_fetch_rejects_url_outside_origin_without_request():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    article = _run(_config(), handler, lambda a: a.fetch("https://elsewhere.example/story/a"))

    assert article is None


def test_fetch_drops_redirect_off_origin():
    handler = _pages(
        {
            "https://news.example/story/moved": httpx.Response(
                301, headers={"Location": "https://elsewhere.example/story/moved"}
            ),
            "https://elsewhere.example/story/moved": httpx.Response(200, text=ARTICLE),
        }
    )

    article = _run(_config(), handler, lambda a: a.fetch("https://news.example/story/moved"))

    assert article is None


def test_fetch_raises_for_unavailable_page():
    handler = _pages({"https://news.example/story/a": httpx.Response(503, text="down")})

    with pytest.raises(PageFetchError) as exc_info:
        _run(_config(), handler, lambda a: a.fetch("https://news.example/story/a"))

    assert exc_info.value.status_code == 503


QUIET_ARTICLE = """
<html><head><meta property="og:title" content="Quiet page"></head>
<body><div class="story">
  <p>The harbour reopened on Tuesday after the storm surge had receded overnight.</p>
  <p>Fishing crews returned to the docks to inspect boats left moored during the warning.</p>
  <p>Officials said repairs to the sea wall would begin before the end of the month.</p>
</div></body></html>
"""


class _EventRecorder(logging.Handler):
    def __init__(self):
        super().__init__()
        self.events: list[str] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.events.append(getattr(record, "event", ""))


def _fetch_with_events(url: str, page: str) -> tuple[object, list[str]]:
    recorder = _EventRecorder()
    logger = logging.getLogger("adapter-events")
    logger.setLevel(logging.INFO)
    logger.propagate = False
    logger.handlers = [recorder]

    async def _go():
        handler = _pages({url: httpx.Response(200, text=page)})
        async with build_client(FetchConfig(), transport=httpx.MockTransport(handler)) as client:
            return await SourceAdapter(_config(), client, FetchConfig(), logger).fetch(url)

    return asyncio.run(_go()), recorder.events


def test_fetch_uses_generic_extraction_when_selectors_find_nothing(monkeypatch):
    monkeypatch.setattr(extraction.trafilatura, "extract", lambda html, **kwargs: "  Harbour reopened.  ")

    article, events = _fetch_with_events("https://news.example/story/quiet", QUIET_ARTICLE)

    assert article is not None
    assert article.content == "Title: Quiet page\n\nHarbour reopened."
    assert "no_content" not in events


def test_generic_extraction_falls_back_to_readability(monkeypatch):
    monkeypatch.setattr(extraction.trafilatura, "extract", lambda html, **kwargs: None)

    text = extraction.extract_generic_body(QUIET_ARTICLE)

    assert text is not None
    assert "The harbour reopened on Tuesday" in text
    assert "Officials said repairs" in text


def test_generic_extraction_failure_is_logged_and_skipped(monkeypatch):
    def _boom(html: str) -> str:
        raise RuntimeError("parser crashed")

    monkeypatch.setattr(adapter_module, "extract_generic_body", _boom)

    article, events = _fetch_with_events("https://news.example/story/quiet", QUIET_ARTICLE)

    assert article is None
    assert events == ["generic_extract_failed", "no_content"]


def test_extract_published_at_skips_placeholders():
    soup = parse_html(
        """
        <meta property="article:published_time" content="[[publish_date]]">
        <time datetime="2024-05-02T10:00:00+00:00">May 2</time>
        """
    )

    published = extract_published_at(soup)

    assert published.origin == "time"
    assert published.value is not None
    assert published.value.day == 2


def test_extract_published_at_keeps_unparsed_text():
    soup = parse_html('<div class="Page-datePublished">Updated 3 hours ago</div>')

    published = extract_published_at(soup, (".Page-datePublished",))

    assert published.value is None
    assert published.raw == "Updated 3 hours ago"


def test_extract_published_at_reads_nested_article_object():
    soup = parse_html(
        """
        <script type="application/ld+json">
        [{"@type": "WebPage", "article": {"datePublished": "2024-05-03T08:00:00+02:00"}}]
        </script>
        """
    )

    published = extract_published_at(soup)

    assert published.origin == "jsonld"
    assert published.raw == "2024-05-03T08:00:00+02:00"


def test_is_placeholder():
    assert is_placeholder("[[date]]")
    assert not is_placeholder("2024-05-01")


def test_registry_publishers_accept_their_article_urls():
    samples = {
        "cnn": "https://lite.cnn.com/2024/05/01/politics/vote-count",
        "npr": "https://text.npr.org/nx-s1-5012345",
        "apnews": "https://apnews.com/article/storm-coast-abc123",
        "aljazeera": "https://www.aljazeera.com/news/2024/5/1/storm-hits-coast",
        "bbc": "https://www.bbc.com/news/articles/c4ngk2p1",
        "reuters": "https://www.reuters.com/world/europe/storm-2024-05-01/",
    }

    for name, url in samples.items():
        assert accepts(get_publisher(name), url), name
