"""Tests for distill.extractors.classifier."""

from __future__ import annotations

import dataclasses
import re

import pytest
from bs4 import BeautifulSoup

from distill.extractors.classifier import (
    CLASSIFIER,
    COMMAS_RE,
    attr_str,
    class_and_id,
    classifier_for,
    normalize_whitespace,
    unescape_html_entities,
)


def _tag(html: str):
    return BeautifulSoup(html, "lxml").body.find(True)


# ---------------------------------------------------------------------------
# String queries
# ---------------------------------------------------------------------------

class TestStringQueries:
    def test_sidebar_is_unlikely(self):
        assert CLASSIFIER.is_unlikely_candidate("sidebar ") is True

    def test_maybe_candidate_overrides(self):
        assert CLASSIFIER.is_unlikely_candidate("sidebar main-content") is False

    def test_plain_class_is_not_unlikely(self):
        assert CLASSIFIER.is_unlikely_candidate("story ") is False

    def test_share_element(self):
        assert CLASSIFIER.is_share_element("share-buttons ") is True
        assert CLASSIFIER.is_share_element("post_sharedaddy ") is True

    def test_shareholder_is_not_share_element(self):
        assert CLASSIFIER.is_share_element("shareholder-report ") is False

    def test_video_urls(self):
        assert CLASSIFIER.is_video_url("https://www.youtube.com/embed/abc") is True
        assert CLASSIFIER.is_video_url("https://player.vimeo.com/video/1") is True
        assert CLASSIFIER.is_video_url("https://example.com/video.mp4") is False
        assert CLASSIFIER.is_video_url("") is False


# ---------------------------------------------------------------------------
# classify()
# ---------------------------------------------------------------------------

class TestClassify:
    def test_unlikely_class(self):
        result = CLASSIFIER.classify(_tag('<div class="comment-list">x</div>'))
        assert result.is_unlikely is True
        assert result.is_override is False
        assert result.is_unlikely_candidate is True

    def test_unlikely_with_override(self):
        result = CLASSIFIER.classify(_tag('<div class="sidebar article-body">x</div>'))
        assert result.is_unlikely is True
        assert result.is_override is True
        assert result.is_unlikely_candidate is False

    def test_chrome_tags_are_unlikely(self):
        assert CLASSIFIER.classify(_tag("<nav>x</nav>")).is_unlikely is True
        assert CLASSIFIER.classify(_tag("<aside>x</aside>")).is_unlikely is True

    def test_links_are_never_unlikely(self):
        result = CLASSIFIER.classify(_tag('<a class="sidebar" href="/">x</a>'))
        assert result.is_unlikely is False

    def test_positive_and_negative_hits(self):
        result = CLASSIFIER.classify(_tag('<div class="article" id="sidebar">x</div>'))
        assert result.positive_hits == 1
        assert result.negative_hits == 1

    def test_byline_by_class(self):
        assert CLASSIFIER.classify(_tag('<span class="byline">x</span>')).is_byline is True

    def test_byline_by_rel_and_itemprop(self):
        assert CLASSIFIER.classify(_tag('<a rel="author" href="/me">x</a>')).is_byline is True
        assert CLASSIFIER.classify(_tag('<span itemprop="author">x</span>')).is_byline is True

    def test_not_byline(self):
        assert CLASSIFIER.classify(_tag('<span class="date">x</span>')).is_byline is False

    def test_video_embed(self):
        tag = _tag('<iframe src="https://www.youtube.com/embed/xyz"></iframe>')
        assert CLASSIFIER.classify(tag).is_video is True

    def test_non_video_embed(self):
        tag = _tag('<iframe src="https://ads.example.com/frame"></iframe>')
        assert CLASSIFIER.classify(tag).is_video is False


# ---------------------------------------------------------------------------
# Class weight
# ---------------------------------------------------------------------------

class TestClassWeight:
    def test_positive_class(self):
        assert CLASSIFIER.class_weight(_tag('<div class="post-body">x</div>')) == 25

    def test_positive_class_and_id(self):
        assert CLASSIFIER.class_weight(_tag('<div class="content" id="main">x</div>')) == 50

    def test_negative_class(self):
        assert CLASSIFIER.class_weight(_tag('<div class="widget">x</div>')) == -25

    def test_mixed_cancels_out(self):
        assert CLASSIFIER.class_weight(_tag('<div class="article" id="sidebar">x</div>')) == 0

    def test_no_attributes(self):
        assert CLASSIFIER.class_weight(_tag("<div>x</div>")) == 0


# ---------------------------------------------------------------------------
# Immutability and overrides
# ---------------------------------------------------------------------------

class TestClassifierConfig:
    def test_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            CLASSIFIER.videos = re.compile("x")  # type: ignore[misc]

    def test_custom_video_pattern(self):
        custom = classifier_for(re.compile(r"//videos\.example\.org"))
        assert custom.is_video_url("https://videos.example.org/clip/1") is True
        assert custom.is_video_url("https://www.youtube.com/embed/abc") is False
        # The shared instance is untouched
        assert CLASSIFIER.is_video_url("https://videos.example.org/clip/1") is False

    def test_no_override_returns_shared_instance(self):
        assert classifier_for(None) is CLASSIFIER


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------

class TestTextHelpers:
    def test_attr_str_list(self):
        assert attr_str(["a", "b"]) == "a b"
        assert attr_str(None) == ""
        assert attr_str("x") == "x"

    def test_class_and_id(self):
        assert class_and_id(_tag('<div class="a b" id="c">x</div>')) == "a b c"

    def test_normalize_whitespace(self):
        assert normalize_whitespace("  a \n\t b  ") == "a b"

    def test_unescape_entities(self):
        assert unescape_html_entities("Tom &amp; Jerry &#39;s") == "Tom & Jerry 's"

    def test_commas_across_scripts(self):
        assert len(COMMAS_RE.split("a, b，c،d")) == 4
