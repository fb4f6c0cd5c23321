"""
Declarative publisher definitions.

Every publisher is described as data: where its listings live, which
strategies discover article links on them, how article URLs look, and
which selectors hold the body, title and publication date. A single
`SourceAdapter` executes any of these definitions.

Strategy kinds:
- selectors: CSS query over the listing page, href taken from the match
- jsonld: URL-bearing fields of embedded JSON-LD blocks
- pattern: regex over the raw listing markup
- feed: item links of RSS/Atom feeds (`urls`)
- aggregator: resolve aggregator-wrapped links collected by earlier steps
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any


@dataclass(frozen=True)
class IndexStrategy:
    """One index-discovery step.

    Attributes:
        kind: "selectors", "jsonld", "pattern", "feed" or "aggregator"
        selector: CSS selector for "selectors"
        pattern: Regex for "pattern"; group 1 is used when present
        urls: Feed URLs for "feed"
        limit: Per-document cap on links taken by this step
    """

    kind: str
    selector: str = ""
    pattern: str = ""
    urls: tuple[str, ...] = ()
    limit: int | None = None


@dataclass(frozen=True)
class PublisherConfig:
    """Immutable definition of one publisher.

    Attributes:
        name: Registry key, also used in logs
        hosts: Accepted article hosts
        path_pattern: Regex an article URL path must match (searched)
        listing_urls: Pages index discovery starts from
        index_strategies: Ordered discovery steps
        body_selectors: Ordered body containers; the first with text wins
        title_selectors: Publisher title elements tried after og:title
        date_selectors: Free-text date elements tried last
        target: Candidates wanted per listing page before later steps are skipped
        max_candidates: Cap on the publisher's final candidate set
        concurrency: In-flight article fetches; None uses the fetch default
    """

    name: str
    hosts: tuple[str, ...]
    path_pattern: str
    listing_urls: tuple[str, ...] = ()
    index_strategies: tuple[IndexStrategy, ...] = ()
    body_selectors: tuple[str, ...] = ("article p", "main p")
    title_selectors: tuple[str, ...] = ()
    date_selectors: tuple[str, ...] = ()
    target: int = 20
    max_candidates: int = 20
    concurrency: int | None = None


CNN = PublisherConfig(
    name="cnn",
    hosts=("lite.cnn.com",),
    path_pattern=r"^/\d{4}/\d{2}/\d{2}/",
    listing_urls=("https://lite.cnn.com",),
    index_strategies=(
        IndexStrategy("selectors", selector=".card--lite a[href]"),
        IndexStrategy("selectors", selector="li a[href]"),
        IndexStrategy("pattern", pattern=r'href="(/\d{4}/\d{2}/\d{2}/[^"]+)"'),
    ),
    body_selectors=(".article--lite",),
    title_selectors=(".headline--lite",),
    target=60,
    max_candidates=60,
)

NPR = PublisherConfig(
    name="npr",
    hosts=("text.npr.org",),
    path_pattern=r"^/(?:[a-z]+-s1-[\w-]+|\d{6,})$",
    listing_urls=("https://text.npr.org",),
    index_strategies=(
        IndexStrategy("selectors", selector="a.topic-title[href]"),
        IndexStrategy("selectors", selector=".topic-title"),
        IndexStrategy("pattern", pattern=r'href="(/[a-z]+-s1-[\w-]+)"'),
    ),
    body_selectors=(".paragraphs-container",),
    title_selectors=(".story-head h1", ".story-head"),
    target=60,
    max_candidates=60,
)

APNEWS = PublisherConfig(
    name="apnews",
    hosts=("apnews.com",),
    path_pattern=r"^/article/",
    listing_urls=(
        "https://www.google.com/search?q=site%3Aapnews.com+inurl%3Aarticle"
        "&hl=en&gl=us&tbm=nws&tbs=qdr:d&num=50",
    ),
    index_strategies=(
        IndexStrategy("selectors", selector='a[href*="apnews.com/article/"]'),
        IndexStrategy("pattern", pattern=r"(https://apnews\.com/article/[\w-]+)"),
        IndexStrategy("aggregator"),
    ),
    body_selectors=(
        ".RichTextStoryBody",
        ".RichTextBody",
        'div[data-t="article-body"]',
        'article[role="main"]',
        "article",
    ),
    date_selectors=(".Page-dateModified", ".Page-datePublished", "time"),
    target=20,
    max_candidates=20,
)

ALJAZEERA = PublisherConfig(
    name="aljazeera",
    hosts=("www.aljazeera.com",),
    path_pattern=r"/20\d{2}/\d{1,2}/\d{1,2}/",
    listing_urls=(
        "https://www.aljazeera.com/climate-crisis",
        "https://www.aljazeera.com/tag/science-and-technology/",
        "https://www.aljazeera.com/news/",
    ),
    index_strategies=(
        IndexStrategy("selectors", selector="a.u-clickable-card__link.article-card__link[href]"),
        IndexStrategy("selectors", selector="h3.article-card__title"),
        IndexStrategy("selectors", selector="article a[href], div a[href]"),
        IndexStrategy("jsonld"),
        IndexStrategy("pattern", pattern=r'href="(/[\w/-]*?/20\d{2}/\d{1,2}/\d{1,2}/[^"]+)"'),
    ),
    body_selectors=(".wysiwyg", "main p", "article p"),
    title_selectors=("header h1", "h1"),
    target=20,
    max_candidates=60,
)

BBC = PublisherConfig(
    name="bbc",
    hosts=("www.bbc.com",),
    path_pattern=r"^/news/articles/[a-zA-Z0-9]+$",
    listing_urls=("https://www.bbc.com/news",),
    index_strategies=(
        IndexStrategy("selectors", selector='a[data-testid="internal-link"][href]'),
        IndexStrategy("selectors", selector='a[href*="/news/articles/"]'),
        IndexStrategy("jsonld"),
        IndexStrategy("pattern", pattern=r"(/news/articles/[a-zA-Z0-9]+)"),
    ),
    body_selectors=(
        'main div[data-component="text-block"] p',
        'article div[data-component="text-block"] p',
        "article p",
        "main p",
    ),
    title_selectors=('h1[data-testid="headline"]',),
    target=20,
    max_candidates=20,
)

REUTERS = PublisherConfig(
    name="reuters",
    hosts=("www.reuters.com",),
    path_pattern=r"^/(?:world|sustainability|technology)/",
    index_strategies=(
        IndexStrategy(
            "feed",
            urls=tuple(
                "https://news.google.com/rss/search?q=site%3Areuters.com%2F"
                f"{section}%2F&hl=en-US&gl=US&ceid=US%3Aen"
                for section in ("world", "sustainability", "technology")
            ),
            limit=40,
        ),
        IndexStrategy("aggregator"),
    ),
    body_selectors=(
        'div[data-testid="article-body"] p',
        'article p[data-testid^="paragraph-"]',
        "article p",
    ),
    target=30,
    max_candidates=30,
    concurrency=4,
)


_REGISTRY: dict[str, PublisherConfig] = {
    cfg.name: cfg for cfg in (CNN, NPR, APNEWS, ALJAZEERA, BBC, REUTERS)
}

_OVERRIDABLE = ("target", "max_candidates", "concurrency")


def available_publishers() -> list[str]:
    """Return registered publisher names in registry order."""
    return list(_REGISTRY)


def get_publisher(name: str, overrides: dict[str, Any] | None = None) -> PublisherConfig:
    """Look up a publisher and apply numeric overrides from config.

    Raises:
        ValueError: If the name is not registered or an override key is unknown
    """
    key = name.lower().strip()
    cfg = _REGISTRY.get(key)
    if cfg is None:
        supported = ", ".join(available_publishers())
        raise ValueError(f"Unknown publisher: {name}. Supported: {supported}")
    if not overrides:
        return cfg
    unknown = sorted(set(overrides) - set(_OVERRIDABLE))
    if unknown:
        raise ValueError(f"Unsupported override(s) for {key}: {', '.join(unknown)}")
    return replace(cfg, **{k: int(v) for k, v in overrides.items()})
