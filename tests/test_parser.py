"""Tests for distill.parser - ArticleParser high-level class."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from pydantic import ValidationError

from distill.items import Article
from distill.parser import ArticleParser
from distill.settings import DEFAULT_OPTIONS, ExtractionOptions

# ---------------------------------------------------------------------------
# Constructor
# ---------------------------------------------------------------------------

class TestArticleParserInit:
    def test_defaults(self):
        assert ArticleParser().options is DEFAULT_OPTIONS

    def test_with_options(self):
        options = ExtractionOptions(char_threshold=250)
        assert ArticleParser(options).options is options

    def test_overrides(self):
        parser = ArticleParser(char_threshold=100, keep_classes=True)
        assert parser.options.char_threshold == 100
        assert parser.options.keep_classes is True
        assert parser.options.nb_top_candidates == DEFAULT_OPTIONS.nb_top_candidates

    def test_overrides_on_top_of_options(self):
        base = ExtractionOptions(keep_classes=True)
        parser = ArticleParser(base, char_threshold=100)
        assert parser.options.keep_classes is True
        assert parser.options.char_threshold == 100
        assert base.char_threshold == DEFAULT_OPTIONS.char_threshold

    def test_invalid_override(self):
        with pytest.raises(ValidationError):
            ArticleParser(char_threshold=-1)


# ---------------------------------------------------------------------------
# parse()
# ---------------------------------------------------------------------------

class TestParse:
    def test_same_as_extract(self, article_html):
        from distill import extract

        assert ArticleParser().parse(article_html) == extract(article_html)

    def test_returns_article(self, plain_article_html):
        article = ArticleParser().parse(plain_article_html)
        assert isinstance(article, Article)
        assert article.title == "The Quiet Life of Lighthouse Keepers"

    def test_options_are_applied(self, rtl_html):
        assert ArticleParser().parse(rtl_html) is None
        assert ArticleParser(char_threshold=100).parse(rtl_html) is not None

    def test_passes_base_uri_and_options(self):
        parser = ArticleParser(char_threshold=100)
        with patch("distill.parser._extract", return_value=None) as mock_extract:
            parser.parse("<p>x</p>", base_uri="https://example.com/")
        mock_extract.assert_called_once_with("<p>x</p>", "https://example.com/", parser.options)


# ---------------------------------------------------------------------------
# is_readerable() / parse_batch()
# ---------------------------------------------------------------------------

class TestOtherMethods:
    def test_is_readerable(self, article_html, listing_html):
        parser = ArticleParser()
        assert parser.is_readerable(article_html) is True
        assert parser.is_readerable(listing_html) is False

    def test_parse_batch(self, article_html, listing_html):
        results = ArticleParser().parse_batch([article_html, listing_html], on_error="include")
        assert len(results) == 2
        assert results[0].title == "Understanding River Ecosystems"
        assert results[1] is None

    def test_parse_batch_forwards_options(self):
        parser = ArticleParser(char_threshold=100)
        with patch("distill.parser._extract_batch", return_value=[]) as mock_batch:
            parser.parse_batch(["<p>x</p>"], max_workers=1)
        mock_batch.assert_called_once_with(
            ["<p>x</p>"], base_uris=None, options=parser.options, max_workers=1,
        )
