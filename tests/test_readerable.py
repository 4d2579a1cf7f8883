"""Tests for distill.extractors.readerable."""

from __future__ import annotations

from bs4 import BeautifulSoup

from distill.extractors.readerable import is_probably_readerable, min_score_for


def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "lxml")


class TestMinScore:
    def test_tiers(self):
        assert min_score_for(40) == 10
        assert min_score_for(50) == 10
        assert min_score_for(100) == 15
        assert min_score_for(140) == 20
        assert min_score_for(1000) == 20


class TestReaderable:
    def test_article_fixture(self, article_html):
        assert is_probably_readerable(_soup(article_html)) is True

    def test_listing_fixture(self, listing_html):
        assert is_probably_readerable(_soup(listing_html)) is False

    def test_empty_document(self):
        assert is_probably_readerable(_soup("")) is False

    def test_lowering_min_length_never_flips_to_false(self, long_paragraph):
        soup = _soup(f"<p>{long_paragraph}</p>")
        results = [is_probably_readerable(soup, min_content_length=n) for n in (300, 200, 140, 50)]
        first_true = results.index(True)
        assert all(results[first_true:])

    def test_hidden_paragraphs_ignored(self, long_paragraph):
        html = "".join(f"<p style='display:none'>{long_paragraph}</p>" for _ in range(3))
        assert is_probably_readerable(_soup(html)) is False

    def test_unlikely_paragraphs_ignored(self, long_paragraph):
        html = "".join(f"<p class='comment'>{long_paragraph}</p>" for _ in range(3))
        assert is_probably_readerable(_soup(html)) is False

    def test_list_item_paragraphs_ignored(self, long_paragraph):
        items = "".join(f"<li><p>{long_paragraph}</p></li>" for _ in range(3))
        assert is_probably_readerable(_soup(f"<ul>{items}</ul>")) is False

    def test_div_with_breaks_counts(self, long_paragraph):
        html = "".join(f"<div>{long_paragraph}<br>More text.</div>" for _ in range(3))
        assert is_probably_readerable(_soup(html)) is True

    def test_read_only(self, article_html):
        soup = _soup(article_html)
        before = str(soup)
        is_probably_readerable(soup)
        assert str(soup) == before
