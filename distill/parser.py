"""distill.parser - High-level ArticleParser class.

Bundles one set of extraction options into a reusable object so callers
processing many pages do not thread options through every call.

Usage::

    from distill import ArticleParser
    from distill.settings import ExtractionOptions

    parser = ArticleParser(ExtractionOptions(char_threshold=250, keep_classes=True))

    if parser.is_readerable(html):
        article = parser.parse(html, base_uri="https://example.com/blog/post")

    # Several documents at once
    articles = parser.parse_batch([html_a, html_b], max_workers=2)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from distill.query import extract as _extract
from distill.query import extract_batch as _extract_batch
from distill.query import is_probably_readerable as _is_probably_readerable
from distill.settings import DEFAULT_OPTIONS, ExtractionOptions

if TYPE_CHECKING:
    from distill.items import Article
    from distill.query import HTMLInput


class ArticleParser:
    """Reusable extractor bound to one :class:`ExtractionOptions`.

    Creating ``ArticleParser()`` with no arguments gives identical behaviour
    to calling :func:`distill.extract` directly.

    Args:
        options:   Extraction options; defaults apply when omitted.
        **overrides: Individual option fields, applied on top of *options*
                   (e.g. ``ArticleParser(char_threshold=100)``).
    """

    def __init__(self, options: ExtractionOptions | None = None, **overrides: Any) -> None:
        options = options or DEFAULT_OPTIONS
        if overrides:
            options = ExtractionOptions(**{**options.model_dump(), **overrides})
        self._options = options

    @property
    def options(self) -> ExtractionOptions:
        return self._options

    # ------------------------------------------------------------------
    # Public methods
    # ------------------------------------------------------------------

    def parse(self, html: HTMLInput, base_uri: str | None = None) -> Article | None:
        """Extract the article from *html*.

        Returns:
            :class:`~distill.items.Article`, or ``None`` when there is no
            readable article.

        Raises:
            :class:`~distill.query.ExtractionError`: On structural failures.
        """
        return _extract(html, base_uri, self._options)

    def is_readerable(self, html: HTMLInput) -> bool:
        return _is_probably_readerable(html, self._options)

    def parse_batch(
        self,
        documents: list[HTMLInput],
        base_uris: list[str | None] | None = None,
        **kwargs: Any,
    ) -> list[Article | None]:
        """Extract several documents concurrently; see :func:`distill.query.extract_batch`."""
        return _extract_batch(documents, base_uris=base_uris, options=self._options, **kwargs)
