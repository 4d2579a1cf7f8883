"""Pattern classifier shared by every extraction pass.

All patterns are compiled once at import time and held by an immutable
:class:`Classifier`.  Nothing here keeps per-document state, so one instance
is safely shared across documents processed in parallel.

Usage::

    from distill.extractors.classifier import CLASSIFIER

    result = CLASSIFIER.classify(tag)
    if result.is_unlikely and not result.is_override:
        tag.decompose()
"""

from __future__ import annotations

import dataclasses
import html
import re
from dataclasses import dataclass

from bs4 import Tag

# ---------------------------------------------------------------------------
# Compiled patterns (evaluated once at import time)
# ---------------------------------------------------------------------------

_UNLIKELY_CANDIDATES_RE = re.compile(
    r"-ad-|ai2html|banner|breadcrumbs|combx|comment|community|cover-wrap|disqus"
    r"|extra|footer|gdpr|header|legends|menu|related|remark|replies|rss|shoutbox"
    r"|sidebar|skyscraper|social|sponsor|supplemental|ad-break|agegate|pagination"
    r"|pager|popup|yom-remote",
    re.IGNORECASE,
)

_MAYBE_CANDIDATE_RE = re.compile(
    r"and|article|body|column|content|main|mathjax|shadow",
    re.IGNORECASE,
)

_POSITIVE_RE = re.compile(
    r"article|body|content|entry|hentry|h-entry|main|page|pagination|post|text"
    r"|blog|story",
    re.IGNORECASE,
)

_NEGATIVE_RE = re.compile(
    r"-ad-|hidden|^hid$| hid$| hid |^hid |banner|combx|comment|com-|contact"
    r"|footer|gdpr|masthead|media|meta|outbrain|promo|related|scroll|share"
    r"|shoutbox|sidebar|skyscraper|sponsor|shopping|tags|widget",
    re.IGNORECASE,
)

_BYLINE_RE = re.compile(
    r"byline|author|dateline|writtenby|p-author",
    re.IGNORECASE,
)

_VIDEOS_RE = re.compile(
    r"//(www\.)?((dailymotion|youtube|youtube-nocookie|player\.vimeo|v\.qq"
    r"|bilibili|live\.bilibili)\.com|(archive|upload\.wikimedia)\.org"
    r"|player\.twitch\.tv)",
    re.IGNORECASE,
)

_SHARE_ELEMENTS_RE = re.compile(r"(\b|_)(share|sharedaddy)(\b|_)", re.IGNORECASE)

# Commas as used in Latin, Sindhi, Chinese and various other scripts
COMMAS_RE = re.compile("[,،﹐︐︑⹁⸴⸲，]")

NORMALIZE_RE = re.compile(r"\s{2,}")
WHITESPACE_RE = re.compile(r"\s+")

AD_WORDS_RE = re.compile(
    r"^(ad(vertising|vertisement)?|pub(licité)?|werb(ung)?|广告|Реклама|Anuncio)$",
    re.IGNORECASE,
)
LOADING_WORDS_RE = re.compile(
    r"^((loading|正在加载|Загрузка|chargement|cargando)(…|\.\.\.)?)$",
    re.IGNORECASE,
)

# Tags that are page chrome unless their class/id says otherwise
UNLIKELY_TAGS: frozenset[str] = frozenset({"nav", "aside", "footer"})

# Roles that mark navigation chrome rather than content
UNLIKELY_ROLES: frozenset[str] = frozenset(
    {"menu", "menubar", "complementary", "navigation", "alert", "alertdialog", "dialog"},
)

# Explicit main/article role markers protect a subtree from unlikely stripping
CONTENT_ROLES: frozenset[str] = frozenset({"main", "article"})


def attr_str(val: object) -> str:
    """Convert a BeautifulSoup attribute value (str | list | None) to str."""
    if val is None:
        return ""
    if isinstance(val, list):
        return " ".join(str(v) for v in val)
    return str(val)


def class_and_id(tag: Tag) -> str:
    """Return ``"<class> <id>"`` for *tag*, the string every matcher reads."""
    return attr_str(tag.get("class")) + " " + attr_str(tag.get("id"))


def normalize_whitespace(text: str) -> str:
    """Collapse every whitespace run to one space and trim."""
    return WHITESPACE_RE.sub(" ", text).strip()


def unescape_html_entities(text: str) -> str:
    """Decode HTML character references left in metadata strings."""
    if not text:
        return text
    return html.unescape(text)


@dataclass(frozen=True)
class Classification:
    """Result of :meth:`Classifier.classify` for a single element."""

    is_unlikely: bool
    is_override: bool
    positive_hits: int
    negative_hits: int
    is_byline: bool
    is_video: bool

    @property
    def is_unlikely_candidate(self) -> bool:
        return self.is_unlikely and not self.is_override


@dataclass(frozen=True)
class Classifier:
    """Immutable bundle of compiled matchers."""

    unlikely: re.Pattern[str] = _UNLIKELY_CANDIDATES_RE
    maybe_candidate: re.Pattern[str] = _MAYBE_CANDIDATE_RE
    positive: re.Pattern[str] = _POSITIVE_RE
    negative: re.Pattern[str] = _NEGATIVE_RE
    byline: re.Pattern[str] = _BYLINE_RE
    videos: re.Pattern[str] = _VIDEOS_RE
    share_elements: re.Pattern[str] = _SHARE_ELEMENTS_RE

    def with_video_pattern(self, pattern: re.Pattern[str] | None) -> Classifier:
        """Return a copy whose video matcher is *pattern* (or self if None)."""
        if pattern is None:
            return self
        return dataclasses.replace(self, videos=pattern)

    # ------------------------------------------------------------------
    # String queries
    # ------------------------------------------------------------------

    def is_unlikely_candidate(self, match_string: str) -> bool:
        return bool(
            self.unlikely.search(match_string)
            and not self.maybe_candidate.search(match_string),
        )

    def is_video_url(self, url: str) -> bool:
        return bool(url and self.videos.search(url))

    def is_share_element(self, match_string: str) -> bool:
        return bool(self.share_elements.search(match_string))

    # ------------------------------------------------------------------
    # Element queries
    # ------------------------------------------------------------------

    def classify(self, tag: Tag) -> Classification:
        """Classify *tag* from its name, class/id string and media source."""
        cls = attr_str(tag.get("class"))
        ident = attr_str(tag.get("id"))
        match_string = cls + " " + ident

        positive_hits = sum(1 for s in (cls, ident) if s and self.positive.search(s))
        negative_hits = sum(1 for s in (cls, ident) if s and self.negative.search(s))

        rel = attr_str(tag.get("rel")).lower()
        itemprop = attr_str(tag.get("itemprop")).lower()
        is_byline = (
            rel == "author"
            or "author" in itemprop
            or bool(self.byline.search(match_string))
        )

        source = attr_str(tag.get("src")) or attr_str(tag.get("href"))

        return Classification(
            is_unlikely=(
                tag.name in UNLIKELY_TAGS or bool(self.unlikely.search(match_string))
            ) and tag.name not in ("body", "a"),
            is_override=bool(self.maybe_candidate.search(match_string)),
            positive_hits=positive_hits,
            negative_hits=negative_hits,
            is_byline=is_byline,
            is_video=self.is_video_url(source),
        )

    def class_weight(self, tag: Tag) -> int:
        """Return the ±25-per-attribute class/id weight of *tag*."""
        result = self.classify(tag)
        return 25 * (result.positive_hits - result.negative_hits)


CLASSIFIER = Classifier()


def classifier_for(video_re: re.Pattern[str] | None) -> Classifier:
    """Return the shared classifier, or a copy using a caller video pattern."""
    return CLASSIFIER.with_video_pattern(video_re)
