"""Tests for distill.extractors.metadata."""

from __future__ import annotations

from bs4 import BeautifulSoup

from distill.extractors.dom import node_at
from distill.extractors.metadata import (
    EXCERPT_MAX_CHARS,
    detect_direction,
    excerpt_from_text,
    extract_metadata,
)


def _meta(html: str, **kwargs):
    return extract_metadata(BeautifulSoup(html, "lxml"), **kwargs)


# ---------------------------------------------------------------------------
# Fixture pages
# ---------------------------------------------------------------------------

class TestFixturePages:
    def test_article_page(self, article_html):
        meta = _meta(article_html)
        assert meta.title == "Understanding River Ecosystems"
        assert meta.byline == "Maria Lopez"
        assert meta.excerpt.startswith("How rivers shape")
        assert meta.site_name == "Field Notes"
        assert meta.published_time == "2024-03-12T09:30:00Z"
        assert meta.lang == "en"
        assert meta.dir == "ltr"
        assert meta.byline_path is None

    def test_jsonld_page(self, jsonld_html):
        meta = _meta(jsonld_html)
        assert meta.title == "Tidal Power Comes of Age"
        assert meta.byline == "Sam Rivera, Alex Chen"
        assert meta.excerpt.startswith("Engineers are finally")
        assert meta.site_name == "Coastal Review"
        assert meta.published_time == "2023-11-02T08:00:00Z"
        assert meta.lang == "en-GB"

    def test_jsonld_disabled(self, jsonld_html):
        meta = _meta(jsonld_html, disable_json_ld=True)
        assert meta.title == "Coastal Review - Energy"
        assert meta.byline is None
        assert meta.site_name is None
        assert meta.published_time is None

    def test_plain_page_uses_heading(self, plain_article_html):
        meta = _meta(plain_article_html)
        assert meta.title == "The Quiet Life of Lighthouse Keepers"
        assert meta.byline is None
        assert meta.excerpt is None
        assert meta.lang is None

    def test_byline_element_position(self, byline_html):
        soup = BeautifulSoup(byline_html, "lxml")
        meta = extract_metadata(soup)
        assert meta.byline == "By Jordan Blake"
        node = node_at(soup, meta.byline_path)
        assert node is not None
        assert "byline" in node["class"]

    def test_rtl_page(self, rtl_html):
        meta = _meta(rtl_html)
        assert meta.lang == "ar"
        assert meta.dir == "rtl"

    def test_does_not_mutate(self, article_html):
        soup = BeautifulSoup(article_html, "lxml")
        before = str(soup)
        extract_metadata(soup)
        assert str(soup) == before


# ---------------------------------------------------------------------------
# Title
# ---------------------------------------------------------------------------

class TestTitle:
    def test_og_title_before_document_title(self):
        meta = _meta(
            "<head><title>Site | Page</title>"
            "<meta property='og:title' content='Social Title For The Page'></head>",
        )
        assert meta.title == "Social Title For The Page"

    def test_longest_segment(self):
        meta = _meta("<head><title>A Long Descriptive Page Heading | Site</title></head>")
        assert meta.title == "A Long Descriptive Page Heading"

    def test_short_segments_keep_whole_title(self):
        meta = _meta("<head><title>Weather - Daily News</title></head>")
        assert meta.title == "Weather - Daily News"

    def test_entities_unescaped(self):
        meta = _meta("<head><meta property='og:title' content='Fish &amp; Chips Tonight'></head>")
        assert meta.title == "Fish & Chips Tonight"

    def test_structured_headline_kept_verbatim(self):
        meta = _meta(
            '<head><script type="application/ld+json">'
            '{"@context": "https://schema.org", "@type": "NewsArticle",'
            ' "headline": "  Rates  rise   again: what &amp; why  "}'
            "</script></head>",
        )
        assert meta.title == "Rates  rise   again: what & why"

    def test_meta_title_whitespace_collapsed(self):
        meta = _meta("<head><meta property='og:title' content='Rates  rise   again today'></head>")
        assert meta.title == "Rates rise again today"

    def test_overlong_candidates_rejected(self):
        long_title = " ".join(["word"] * 50)
        meta = _meta(
            f"<head><meta property='og:title' content='{long_title}'>"
            "<title>A Perfectly Ordinary Title</title></head>",
        )
        assert meta.title == "A Perfectly Ordinary Title"

    def test_no_title_at_all(self):
        assert _meta("<p>Just text</p>").title is None


# ---------------------------------------------------------------------------
# Byline
# ---------------------------------------------------------------------------

class TestByline:
    def test_rel_author_link(self):
        meta = _meta("<p>Words by <a rel='author' href='/u/kim'>Kim Park</a></p>")
        assert meta.byline == "Kim Park"
        assert meta.byline_path is None

    def test_itemprop_name(self):
        meta = _meta(
            "<div itemprop='author'><span itemprop='name'>Lee Moss</span>"
            "<span>Staff writer</span></div>",
        )
        assert meta.byline == "Lee Moss"

    def test_by_name_paragraph(self):
        meta = _meta("<p>By Sam Lee and Ana Ruiz</p><p>The story begins here.</p>")
        assert meta.byline == "By Sam Lee and Ana Ruiz"
        assert meta.byline_path is not None

    def test_ordinary_paragraph_is_not_byline(self):
        assert _meta("<p>by the river we sat</p>").byline is None

    def test_url_article_author_ignored(self):
        meta = _meta("<meta property='article:author' content='https://example.com/u/1'>")
        assert meta.byline is None


# ---------------------------------------------------------------------------
# Dates, language, direction
# ---------------------------------------------------------------------------

class TestOtherFields:
    def test_time_element(self):
        meta = _meta("<p>Posted <time datetime='2022-06-01'>June 1</time></p>")
        assert meta.published_time == "2022-06-01"

    def test_out_of_range_date_rejected(self):
        meta = _meta("<meta property='article:published_time' content='1970-01-01T00:00:00Z'>")
        assert meta.published_time is None

    def test_content_language_meta(self):
        meta = _meta("<head><meta http-equiv='content-language' content='fr, en'></head>")
        assert meta.lang == "fr"

    def test_explicit_dir_attribute(self):
        meta = _meta("<html dir='RTL'><body><p>English text</p></body></html>")
        assert meta.dir == "rtl"

    def test_invalid_dir_attribute_falls_back_to_detection(self):
        meta = _meta("<html dir='sideways'><body><p>English text</p></body></html>")
        assert meta.dir == "ltr"

    def test_detect_direction(self):
        assert detect_direction("hello") == "ltr"
        assert detect_direction("שלום עולם") == "rtl"
        assert detect_direction("123 !!") is None


class TestExcerpt:
    def test_short_text_returned_whole(self):
        assert excerpt_from_text("  A short   summary. ") == "A short summary."

    def test_long_text_cut_on_word_boundary(self, long_paragraph):
        excerpt = excerpt_from_text(long_paragraph)
        assert len(excerpt) <= EXCERPT_MAX_CHARS
        assert long_paragraph.startswith(excerpt)
        assert not excerpt.endswith(" ")
        assert long_paragraph[len(excerpt)] == " "

    def test_empty(self):
        assert excerpt_from_text("") is None
        assert excerpt_from_text(None) is None
