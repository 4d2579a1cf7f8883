"""Deterministic metadata extraction from a parsed document.

Read-only pass.  Each field walks its own priority chain and stops at the
first source yielding a non-empty, validated value; a field with no reliable
source stays ``None``.

    title          JSON-LD headline → social meta → <title> → <h1>
    byline         author meta → rel=author link → JSON-LD author
                   → byline-class element → "By NAME" paragraph
    excerpt        description meta → social description → JSON-LD
                   (plain-text prefix is filled in after extraction)
    site_name      og:site_name → JSON-LD publisher
    published_time article:published_time → <time datetime> → JSON-LD
    lang           <html lang> → content-language meta
    dir            <html dir> → detected script direction
"""

from __future__ import annotations

import json
import logging
import re
import unicodedata
from dataclasses import dataclass, field
from typing import Any

import dateparser
from bs4 import BeautifulSoup, Tag

from .classifier import (
    CLASSIFIER,
    Classifier,
    attr_str,
    normalize_whitespace,
    unescape_html_entities,
)
from .dom import is_probably_visible, node_path

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Calibration constants
# ---------------------------------------------------------------------------

TITLE_MAX_CHARS = 150
TITLE_MAX_WORDS = 40
# <title> texts shorter than this defer to a lone <h1>
TITLE_PREFERRED_MIN_CHARS = 15
# A separator-split segment shorter than this reverts to the whole title
TITLE_MIN_SEGMENT_WORDS = 3

BYLINE_MAX_CHARS = 100

EXCERPT_MAX_CHARS = 200

DIRECTION_SAMPLE_CHARS = 5000
_DIRECTIONS: frozenset[str] = frozenset({"ltr", "rtl", "auto"})

# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

_PROPERTY_RE = re.compile(
    r"\s*(article|dc|dcterm|og|twitter)\s*:\s*"
    r"(author|creator|description|published_time|title|site_name)\s*",
    re.IGNORECASE,
)
_NAME_RE = re.compile(
    r"^\s*(?:(dc|dcterm|og|twitter|parsely|weibo:(article|webpage))\s*[-.:]\s*)?"
    r"(author|creator|pub-date|description|title|site_name)\s*$",
    re.IGNORECASE,
)
_TITLE_SEPARATOR_RE = re.compile(r"\s[|\-–—\\/>»]\s")
_CDATA_RE = re.compile(r"^\s*<!\[CDATA\[|\]\]>\s*$")
_SCHEMA_ORG_RE = re.compile(r"^https?://schema\.org/?$")
_BY_NAME_RE = re.compile(
    r"^[Bb]y\s+[A-Z][\w.'\-]*(?:\s+(?:[A-Z][\w.'\-]*|and|&))*?\s*$",
)
_URL_RE = re.compile(r"^https?://", re.IGNORECASE)

# Meta keys tried for the title, after structured data, in priority order
_TITLE_META_KEYS: tuple[str, ...] = (
    "dc:title",
    "dcterm:title",
    "og:title",
    "weibo:article:title",
    "weibo:webpage:title",
    "title",
    "twitter:title",
    "parsely-title",
)

_ARTICLE_TYPES: frozenset[str] = frozenset(
    {
        "Article",
        "AdvertiserContentArticle",
        "NewsArticle",
        "AnalysisNewsArticle",
        "AskPublicNewsArticle",
        "BackgroundNewsArticle",
        "OpinionNewsArticle",
        "ReportageNewsArticle",
        "ReviewNewsArticle",
        "Report",
        "SatiricalArticle",
        "ScholarlyArticle",
        "MedicalScholarlyArticle",
        "SocialMediaPosting",
        "BlogPosting",
        "LiveBlogPosting",
        "DiscussionForumPosting",
        "TechArticle",
        "APIReference",
    },
)


@dataclass
class Metadata:
    """Fields found by :func:`extract_metadata`."""

    title: str | None = None
    byline: str | None = None
    excerpt: str | None = None
    site_name: str | None = None
    published_time: str | None = None
    lang: str | None = None
    dir: str | None = None
    # Position of the element the byline came from; the content passes
    # drop it from the article body.
    byline_path: tuple[int, ...] | None = field(default=None, repr=False)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _first(*values: Any) -> Any:
    """Return the first non-empty, non-None value."""
    for v in values:
        if v:
            return v
    return None


def _clean(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    value = normalize_whitespace(unescape_html_entities(value))
    return value or None


def _trim(value: Any) -> str | None:
    """Like :func:`_clean` but keeps inner whitespace as authored."""
    if not isinstance(value, str):
        return None
    value = unescape_html_entities(value).strip()
    return value or None


def _word_count(text: str) -> int:
    return len(text.split())


def _text_similarity(text_a: str, text_b: str) -> float:
    """Share of *text_b*'s tokens that also occur in *text_a*."""
    tokens_a = {t for t in re.split(r"\W+", text_a.lower()) if t}
    tokens_b = [t for t in re.split(r"\W+", text_b.lower()) if t]
    if not tokens_a or not tokens_b:
        return 0.0
    uniq_b = [t for t in tokens_b if t not in tokens_a]
    distance = len(" ".join(uniq_b)) / len(" ".join(tokens_b))
    return 1 - distance


def _valid_title(text: str | None) -> bool:
    return bool(text) and len(text) <= TITLE_MAX_CHARS and _word_count(text) <= TITLE_MAX_WORDS


def _valid_byline(text: str | None) -> bool:
    return bool(text) and 0 < len(text) < BYLINE_MAX_CHARS


def _valid_date(raw: str | None) -> bool:
    """True if *raw* parses as a date (1990-2099 keeps epoch defaults out)."""
    if not raw:
        return False
    try:
        parsed = dateparser.parse(
            raw,
            settings={
                "RETURN_AS_TIMEZONE_AWARE": True,
                "PREFER_DAY_OF_MONTH": "first",
                "PREFER_LOCALE_DATE_ORDER": False,
            },
        )
    except Exception as exc:
        logger.debug("Date parse failed for %r: %s", raw, exc)
        return False
    return parsed is not None and 1990 <= parsed.year <= 2099


# ---------------------------------------------------------------------------
# JSON-LD
# ---------------------------------------------------------------------------

def _is_article_type(value: Any) -> bool:
    if isinstance(value, list):
        return any(_is_article_type(v) for v in value)
    return isinstance(value, str) and value in _ARTICLE_TYPES


def _has_schema_context(node: dict) -> bool:
    context = node.get("@context")
    if isinstance(context, str):
        return bool(_SCHEMA_ORG_RE.match(context))
    if isinstance(context, dict):
        return bool(_SCHEMA_ORG_RE.match(str(context.get("@vocab", ""))))
    return False


def _find_article_node(raw: Any) -> dict | None:
    if isinstance(raw, list):
        raw = next(
            (n for n in raw if isinstance(n, dict) and _is_article_type(n.get("@type"))),
            None,
        )
    if not isinstance(raw, dict) or not _has_schema_context(raw):
        return None
    if "@type" not in raw and isinstance(raw.get("@graph"), list):
        raw = next(
            (n for n in raw["@graph"] if isinstance(n, dict) and _is_article_type(n.get("@type"))),
            None,
        )
    if not isinstance(raw, dict) or not _is_article_type(raw.get("@type")):
        return None
    return raw


def _author_from_jsonld(node: dict) -> str | None:
    author = node.get("author")
    if isinstance(author, dict):
        return _clean(author.get("name"))
    if isinstance(author, list):
        names = [
            _clean(a.get("name")) if isinstance(a, dict) else _clean(a)
            for a in author
        ]
        names = [n for n in names if n]
        return ", ".join(names) or None
    return _clean(author)


def _extract_jsonld(soup: BeautifulSoup, title_text: str) -> dict:
    """Return title/byline/excerpt/site_name/published_time from JSON-LD."""
    for script in soup.find_all("script", type="application/ld+json"):
        content = _CDATA_RE.sub("", script.string or "")
        try:
            raw = json.loads(content)
        except (json.JSONDecodeError, TypeError) as exc:
            logger.debug("Skipping malformed JSON-LD block: %s", exc)
            continue

        node = _find_article_node(raw)
        if node is None:
            continue

        result: dict = {}
        name = _trim(node.get("name"))
        headline = _trim(node.get("headline"))
        if name and headline and name != headline:
            # Both present and different: keep the one the <title> agrees with
            name_matches = _text_similarity(name, title_text) > 0.75
            headline_matches = _text_similarity(headline, title_text) > 0.75
            result["title"] = name if name_matches and not headline_matches else headline
        else:
            result["title"] = headline or name

        result["byline"] = _author_from_jsonld(node)
        result["excerpt"] = _clean(node.get("description"))
        publisher = node.get("publisher")
        if isinstance(publisher, dict):
            result["site_name"] = _clean(publisher.get("name"))
        result["published_time"] = _clean(node.get("datePublished"))
        return result

    return {}


# ---------------------------------------------------------------------------
# <meta> tags
# ---------------------------------------------------------------------------

def _harvest_meta(soup: BeautifulSoup) -> dict[str, str]:
    """Collect og/twitter/dc/parsely-style meta values keyed by lower name."""
    values: dict[str, str] = {}
    for tag in soup.find_all("meta"):
        if not isinstance(tag, Tag):
            continue
        content = attr_str(tag.get("content")).strip()
        if not content:
            continue
        prop = attr_str(tag.get("property"))
        name = attr_str(tag.get("name"))

        matched = False
        if prop:
            for m in _PROPERTY_RE.finditer(prop):
                key = re.sub(r"\s", "", m.group(0)).lower()
                values[key] = content
                matched = True
        if not matched and name and _NAME_RE.match(name):
            key = re.sub(r"\s", "", name).lower().replace(".", ":")
            values[key] = content
    return values


# ---------------------------------------------------------------------------
# Title
# ---------------------------------------------------------------------------

def _heading_texts(soup: BeautifulSoup, names: tuple[str, ...]) -> list[str]:
    return [normalize_whitespace(h.get_text()) for h in soup.find_all(list(names))]


def _title_from_document(soup: BeautifulSoup) -> str | None:
    """Title from the <title> element, falling back to the first <h1>."""
    title_tag = soup.find("title")
    orig = normalize_whitespace(title_tag.get_text()) if title_tag else ""
    h1s = [h for h in _heading_texts(soup, ("h1",)) if h]

    candidate = orig
    if orig:
        segments = [s.strip() for s in _TITLE_SEPARATOR_RE.split(orig) if s.strip()]
        if len(segments) > 1:
            h1_lower = {h.lower() for h in h1s}
            matching = [s for s in segments if s.lower() in h1_lower]
            if matching:
                candidate = matching[0]
            else:
                candidate = max(segments, key=len)
                if _word_count(candidate) < TITLE_MIN_SEGMENT_WORDS:
                    candidate = orig
        elif ": " in orig:
            headings = _heading_texts(soup, ("h1", "h2"))
            if orig not in headings:
                candidate = orig[orig.rindex(":") + 1:].strip()
                if _word_count(candidate) < TITLE_MIN_SEGMENT_WORDS:
                    candidate = orig[orig.index(":") + 1:].strip()
                elif _word_count(orig[: orig.index(":")]) > 5:
                    candidate = orig

    candidate = unescape_html_entities(candidate)
    if _valid_title(candidate) and len(candidate) >= TITLE_PREFERRED_MIN_CHARS:
        return candidate
    for h1 in h1s[:1]:
        if _valid_title(h1):
            return h1
    return candidate if _valid_title(candidate) else None


# ---------------------------------------------------------------------------
# Byline
# ---------------------------------------------------------------------------

def _byline_from_meta(values: dict[str, str]) -> str | None:
    article_author = values.get("article:author")
    if article_author and _URL_RE.match(article_author):
        article_author = None
    for raw in (
        values.get("author"),
        values.get("dc:creator"),
        values.get("dcterm:creator"),
        values.get("parsely-author"),
        article_author,
    ):
        value = _clean(raw)
        if _valid_byline(value):
            return value
    return None


def _byline_from_rel_link(soup: BeautifulSoup) -> str | None:
    for link in soup.find_all("a"):
        rel = link.get("rel")
        rels = rel if isinstance(rel, list) else attr_str(rel).split()
        if "author" in (r.lower() for r in rels):
            value = normalize_whitespace(link.get_text())
            if _valid_byline(value):
                return value
    return None


_BYLINE_SKIP_TAGS: frozenset[str] = frozenset(
    {"html", "head", "body", "meta", "link", "script", "style", "title", "a"},
)


def _byline_from_dom(
    soup: BeautifulSoup, classifier: Classifier,
) -> tuple[str, Tag] | None:
    body = soup.body or soup
    for tag in body.find_all(True):
        if tag.name in _BYLINE_SKIP_TAGS or not is_probably_visible(tag):
            continue
        if not classifier.classify(tag).is_byline:
            continue
        source = tag
        if "author" in attr_str(tag.get("itemprop")).lower():
            name = tag.find(attrs={"itemprop": "name"})
            if isinstance(name, Tag):
                source = name
        value = normalize_whitespace(source.get_text())
        if _valid_byline(value):
            return value, tag
    return None


def _byline_from_text(soup: BeautifulSoup) -> tuple[str, Tag] | None:
    body = soup.body or soup
    for p in body.find_all("p"):
        value = normalize_whitespace(p.get_text())
        if _valid_byline(value) and _BY_NAME_RE.match(value):
            return value, p
    return None


# ---------------------------------------------------------------------------
# Dates, language, direction
# ---------------------------------------------------------------------------

def _extract_time_datetime(soup: BeautifulSoup) -> str | None:
    """Return the datetime attribute of the first <time> element that has one."""
    for time_tag in soup.find_all("time"):
        value = attr_str(time_tag.get("datetime")).strip()
        if value:
            return value
    return None


def _extract_language(soup: BeautifulSoup) -> str | None:
    html_tag = soup.find("html")
    if isinstance(html_tag, Tag):
        lang = attr_str(html_tag.get("lang")).strip()
        if lang:
            return lang

    for meta in soup.find_all("meta"):
        equiv = attr_str(meta.get("http-equiv") or meta.get("name")).lower()
        if equiv == "content-language":
            content = attr_str(meta.get("content")).strip()
            if content:
                return content.split(",")[0].strip()
    return None


def detect_direction(text: str) -> str | None:
    """Return ``"rtl"``/``"ltr"`` from the majority of strong characters."""
    rtl = ltr = 0
    for ch in text[:DIRECTION_SAMPLE_CHARS]:
        bidi = unicodedata.bidirectional(ch)
        if bidi in ("R", "AL"):
            rtl += 1
        elif bidi == "L":
            ltr += 1
    if not rtl and not ltr:
        return None
    return "rtl" if rtl > ltr else "ltr"


def _extract_direction(soup: BeautifulSoup) -> str | None:
    for name in ("html", "body"):
        tag = soup.find(name)
        if isinstance(tag, Tag):
            value = attr_str(tag.get("dir")).strip().lower()
            if value in _DIRECTIONS:
                return value
    body = soup.body or soup
    return detect_direction(body.get_text(" "))


# ---------------------------------------------------------------------------
# Excerpt
# ---------------------------------------------------------------------------

def excerpt_from_text(text: str | None) -> str | None:
    """Leading prefix of *text*, cut on a word boundary."""
    text = normalize_whitespace(text or "")
    if not text:
        return None
    if len(text) <= EXCERPT_MAX_CHARS:
        return text
    cut = text[: EXCERPT_MAX_CHARS + 1]
    space = cut.rfind(" ")
    return cut[:space].rstrip() if space > 0 else text[:EXCERPT_MAX_CHARS]


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def extract_metadata(
    soup: BeautifulSoup,
    *,
    disable_json_ld: bool = False,
    classifier: Classifier = CLASSIFIER,
) -> Metadata:
    """Extract every metadata field from *soup* without mutating it."""
    title_tag = soup.find("title")
    title_text = normalize_whitespace(title_tag.get_text()) if title_tag else ""

    jsonld = {} if disable_json_ld else _extract_jsonld(soup, title_text)
    values = _harvest_meta(soup)

    # ---- title ----
    title = None
    # The structured-data headline is already trimmed and stays verbatim
    for value in (
        jsonld.get("title"),
        *(_clean(values.get(key)) for key in _TITLE_META_KEYS),
    ):
        if _valid_title(value):
            title = value
            break
    if title is None:
        title = _title_from_document(soup)

    # ---- byline ----
    byline_path = None
    byline = _first(
        _byline_from_meta(values),
        _byline_from_rel_link(soup),
        jsonld.get("byline") if _valid_byline(jsonld.get("byline")) else None,
    )
    if byline is None:
        found = _byline_from_dom(soup, classifier) or _byline_from_text(soup)
        if found is not None:
            byline, node = found
            byline_path = node_path(node)

    # ---- excerpt ----
    excerpt = _clean(
        _first(
            values.get("description"),
            values.get("og:description"),
            values.get("twitter:description"),
            values.get("dc:description"),
            values.get("dcterm:description"),
            jsonld.get("excerpt"),
        ),
    )

    # ---- site name ----
    site_name = _clean(_first(values.get("og:site_name"), jsonld.get("site_name")))

    # ---- published time ----
    published_time = None
    for raw in (
        values.get("article:published_time"),
        values.get("parsely-pub-date"),
        _extract_time_datetime(soup),
        jsonld.get("published_time"),
    ):
        value = _clean(raw)
        if _valid_date(value):
            published_time = value
            break

    return Metadata(
        title=title,
        byline=byline,
        excerpt=excerpt,
        site_name=site_name,
        published_time=published_time,
        lang=_extract_language(soup),
        dir=_extract_direction(soup),
        byline_path=byline_path,
    )
