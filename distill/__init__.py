"""distill - pull the readable article out of any HTML page.

Quick usage::

    from distill import extract

    article = extract(html, base_uri="https://example.com/blog/some-post")
    if article is not None:
        print(article.title)
        print(article.text_content)

Pre-check and configuration::

    from distill import ArticleParser, ExtractionOptions, is_probably_readerable

    if is_probably_readerable(html):
        parser = ArticleParser(ExtractionOptions(char_threshold=250))
        article = parser.parse(html)
"""

from distill.items import Article
from distill.parser import ArticleParser
from distill.query import (
    EncodingError,
    ExtractionError,
    InvalidBaseURIError,
    MaxElementsExceededError,
    extract,
    extract_batch,
    is_probably_readerable,
)
from distill.settings import ExtractionOptions

__version__ = "0.1.0"
__all__ = [
    "Article",
    "ArticleParser",
    "EncodingError",
    "ExtractionError",
    "ExtractionOptions",
    "InvalidBaseURIError",
    "MaxElementsExceededError",
    "extract",
    "extract_batch",
    "is_probably_readerable",
]
