"""distill.query - extraction API.

Basic usage::

    from distill.query import extract

    article = extract(html, base_uri="https://example.com/blog/some-post")
    if article is None:
        print("no article found")
    else:
        print(article.title)
        print(article.byline)
        print(article.content)

    # As a plain dict
    data = extract(html).model_dump()

Cheap pre-check before paying for a full extraction::

    from distill.query import is_probably_readerable

    if is_probably_readerable(html):
        article = extract(html)

Structural failures (undecodable bytes, too many elements, a malformed base
URI) raise :class:`ExtractionError`; a page that simply has no article
returns ``None``.
"""

from __future__ import annotations

import logging
from typing import Literal
from urllib.parse import urlparse

from bs4 import BeautifulSoup
from bs4.dammit import UnicodeDammit

from distill.extractors.classifier import classifier_for
from distill.extractors.main_content import extract_main_content
from distill.extractors.metadata import excerpt_from_text, extract_metadata
from distill.extractors.readerable import is_probably_readerable as _is_readerable
from distill.items import Article
from distill.settings import DEFAULT_OPTIONS, ExtractionOptions

logger = logging.getLogger(__name__)

HTMLInput = str | bytes | BeautifulSoup

_PARSER = "lxml"


# ---------------------------------------------------------------------------
# Public exceptions
# ---------------------------------------------------------------------------

class ExtractionError(RuntimeError):
    """Raised when a document cannot be processed at all.

    Attributes:
        kind -- ``"encoding"``, ``"max_elements"`` or ``"base_uri"``
    """

    kind = "unknown"

    def __init__(self, message: str, kind: str | None = None) -> None:
        super().__init__(message)
        if kind is not None:
            self.kind = kind


class EncodingError(ExtractionError):
    """The input bytes could not be decoded."""

    kind = "encoding"


class MaxElementsExceededError(ExtractionError):
    """The document holds more elements than the configured cap.

    Attributes:
        limit -- configured maximum
        count -- elements found
    """

    kind = "max_elements"

    def __init__(self, limit: int, count: int) -> None:
        super().__init__(f"Aborting parsing document; {count} elements found (limit {limit})")
        self.limit = limit
        self.count = count


class InvalidBaseURIError(ExtractionError):
    """The base URI given for link resolution is not an absolute URI."""

    kind = "base_uri"

    def __init__(self, uri: str) -> None:
        super().__init__(f"Invalid base URI: {uri!r}")
        self.uri = uri


# ---------------------------------------------------------------------------
# Input handling
# ---------------------------------------------------------------------------

def _failed_declared_encoding(dammit: UnicodeDammit) -> str | None:
    """Codec of the in-document charset declaration if it was tried and failed."""
    declared = dammit.declared_html_encoding
    if not declared:
        return None
    codec = dammit.find_codec(declared)
    if codec is None or (codec, "strict") not in dammit.tried_encodings:
        return None
    return codec if codec != dammit.original_encoding else None


def parse_document(html: HTMLInput) -> BeautifulSoup:
    """Parse *html* into a tree; an existing tree is returned unchanged."""
    if isinstance(html, BeautifulSoup):
        return html
    if isinstance(html, bytes):
        if not html.strip():
            return BeautifulSoup("", _PARSER)
        dammit = UnicodeDammit(html, is_html=True)
        if dammit.unicode_markup is None:
            raise EncodingError("Could not detect the document encoding")
        if dammit.contains_replacement_characters:
            raise EncodingError(
                f"Document is not valid {dammit.original_encoding or 'text'}; "
                "undecodable bytes were replaced",
            )
        declared = _failed_declared_encoding(dammit)
        if declared is not None:
            raise EncodingError(
                f"Document declares {declared} but is not valid {declared}; "
                f"it decodes only as {dammit.original_encoding}",
            )
        logger.debug("Decoded document as %s", dammit.original_encoding)
        return BeautifulSoup(dammit.unicode_markup, _PARSER)
    return BeautifulSoup(html, _PARSER)


def validate_base_uri(base_uri: str | None) -> str | None:
    """Return *base_uri* stripped, or None when absent.

    Raises :class:`InvalidBaseURIError` unless it is an absolute URI.
    """
    if base_uri is None:
        return None
    uri = base_uri.strip()
    if not uri:
        return None
    try:
        parsed = urlparse(uri)
    except ValueError as exc:
        raise InvalidBaseURIError(base_uri) from exc
    if not parsed.scheme or not (parsed.netloc or parsed.scheme == "file"):
        raise InvalidBaseURIError(base_uri)
    return uri


def check_element_count(soup: BeautifulSoup, limit: int) -> None:
    if not limit:
        return
    count = len(soup.find_all(True))
    if count > limit:
        raise MaxElementsExceededError(limit, count)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def extract(
    html: HTMLInput,
    base_uri: str | None = None,
    options: ExtractionOptions | None = None,
) -> Article | None:
    """Extract the main article and its metadata from *html*.

    Args:
        html:     Markup as ``str`` or ``bytes``, or a parsed ``BeautifulSoup``
                  (left untouched).
        base_uri: Absolute URI of the page, used to resolve relative links.
        options:  :class:`~distill.settings.ExtractionOptions`; defaults apply
                  when omitted.

    Returns:
        :class:`~distill.items.Article`, or ``None`` when the document has no
        readable article.

    Raises:
        :class:`ExtractionError`: For undecodable input, a document over the
            element cap, or a malformed *base_uri*.
    """
    options = options or DEFAULT_OPTIONS
    soup = parse_document(html)
    base = validate_base_uri(base_uri)
    check_element_count(soup, options.max_elems_to_parse)

    classifier = classifier_for(options.video_re)
    metadata = extract_metadata(
        soup, disable_json_ld=options.disable_json_ld, classifier=classifier,
    )
    if options.debug:
        logger.debug("Metadata: %s", metadata)

    drop_paths = (metadata.byline_path,) if metadata.byline_path else ()
    result = extract_main_content(
        soup,
        options=options,
        base_uri=base,
        classifier=classifier,
        drop_paths=drop_paths,
    )
    if result is None:
        return None

    return Article(
        title=metadata.title,
        byline=metadata.byline,
        excerpt=metadata.excerpt or excerpt_from_text(result.text_content),
        site_name=metadata.site_name,
        published_time=metadata.published_time,
        lang=metadata.lang,
        dir=metadata.dir,
        content=result.content,
        text_content=result.text_content,
        length=result.length,
    )


def is_probably_readerable(
    html: HTMLInput,
    options: ExtractionOptions | None = None,
) -> bool:
    """Cheap check whether :func:`extract` is likely to find an article."""
    options = options or DEFAULT_OPTIONS
    soup = parse_document(html)
    return _is_readerable(
        soup,
        min_content_length=options.min_content_length,
        classifier=classifier_for(options.video_re),
    )


# ---------------------------------------------------------------------------
# Batch API
# ---------------------------------------------------------------------------

def extract_batch(
    documents: list[HTMLInput],
    *,
    base_uris: list[str | None] | None = None,
    options: ExtractionOptions | None = None,
    max_workers: int = 4,
    on_error: Literal["skip", "raise", "include"] = "skip",
) -> list[Article | None]:
    """Extract several independent documents concurrently.

    Results keep the order of *documents*.

    Args:
        documents:   Markup per document.
        base_uris:   Optional base URI per document (same length).
        options:     Shared options for every document.
        max_workers: Maximum number of worker threads (default 4).
        on_error:    How to handle individual documents:
                     ``"skip"`` (default) - omit failures and documents
                     without an article;
                     ``"raise"`` - re-raise the first :class:`ExtractionError`;
                     ``"include"`` - keep ``None`` in their slot.

    Raises:
        :class:`ExtractionError`: Only when ``on_error="raise"``.
        :class:`ValueError`: For an unknown *on_error* or mismatched
            *base_uris*.
    """
    from concurrent.futures import ThreadPoolExecutor, as_completed

    if on_error not in ("skip", "raise", "include"):
        raise ValueError(f"on_error must be 'skip', 'raise', or 'include'; got {on_error!r}")
    if base_uris is not None and len(base_uris) != len(documents):
        raise ValueError("base_uris must have one entry per document")

    uris = base_uris if base_uris is not None else [None] * len(documents)
    results: list[Article | None] = [None] * len(documents)

    def _extract_one(idx: int) -> tuple[int, Article | None]:
        try:
            return idx, extract(documents[idx], uris[idx], options)
        except ExtractionError as exc:
            if on_error == "raise":
                raise
            logger.warning("extract_batch: document %d failed (%s): %s", idx, exc.kind, exc)
            return idx, None

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [executor.submit(_extract_one, i) for i in range(len(documents))]
        for future in as_completed(futures):
            idx, article = future.result()
            results[idx] = article

    if on_error == "include":
        return results
    return [r for r in results if r is not None]
