"""Tests for distill.extractors.dom tree helpers."""

from __future__ import annotations

import copy

from bs4 import BeautifulSoup

from distill.extractors.dom import (
    NodeCache,
    get_inner_text,
    get_next_node,
    get_node_ancestors,
    has_ancestor_tag,
    has_child_block_element,
    has_single_tag_inside_element,
    is_element_without_content,
    is_phrasing_content,
    is_probably_visible,
    node_at,
    node_path,
)


def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "lxml")


# ---------------------------------------------------------------------------
# Traversal
# ---------------------------------------------------------------------------

class TestTraversal:
    def test_next_node_document_order(self):
        soup = _soup("<div id='a'><p id='b'>x</p></div><div id='c'></div>")
        a = soup.find(id="a")
        assert get_next_node(a)["id"] == "b"
        assert get_next_node(soup.find(id="b"))["id"] == "c"

    def test_next_node_skipping_children(self):
        soup = _soup("<div id='a'><p id='b'>x</p></div><div id='c'></div>")
        assert get_next_node(soup.find(id="a"), ignore_self_and_kids=True)["id"] == "c"

    def test_ancestors_bounded(self):
        soup = _soup("<div id='a'><div id='b'><p id='c'>x</p></div></div>")
        ancestors = get_node_ancestors(soup.find(id="c"), 2)
        assert [a["id"] for a in ancestors] == ["b", "a"]

    def test_ancestors_unbounded_stop_at_document(self):
        soup = _soup("<div><p id='c'>x</p></div>")
        names = [a.name for a in get_node_ancestors(soup.find(id="c"))]
        assert names == ["div", "body", "html"]

    def test_has_ancestor_tag_depth(self):
        soup = _soup("<table><tr><td><div><div><p id='x'>t</p></div></div></td></tr></table>")
        p = soup.find(id="x")
        assert has_ancestor_tag(p, "td", max_depth=3) is True
        assert has_ancestor_tag(p, "table", max_depth=3) is False
        assert has_ancestor_tag(p, "table", max_depth=0) is True

    def test_has_ancestor_tag_filter(self):
        soup = _soup("<section class='keep'><p id='x'>t</p></section>")
        p = soup.find(id="x")
        assert has_ancestor_tag(p, "section", filter_fn=lambda t: "keep" in t["class"]) is True
        assert has_ancestor_tag(p, "section", filter_fn=lambda t: False) is False


# ---------------------------------------------------------------------------
# Structure
# ---------------------------------------------------------------------------

class TestStructure:
    def test_phrasing_content(self):
        soup = _soup("<div><span>a</span><a href='#'><b>b</b></a></div>")
        span, link = soup.div.find_all(["span", "a"], recursive=False)
        block_link = soup.new_tag("a")
        block_link.append(soup.new_tag("div"))
        assert is_phrasing_content(span) is True
        assert is_phrasing_content(link) is True
        assert is_phrasing_content(block_link) is False

    def test_single_tag_inside(self):
        soup = _soup("<div id='a'> <p>x</p> </div><div id='b'>text<p>x</p></div>")
        assert has_single_tag_inside_element(soup.find(id="a"), "p") is True
        assert has_single_tag_inside_element(soup.find(id="b"), "p") is False

    def test_child_block_element(self):
        soup = _soup("<div id='a'><span><img src='x.png'></span></div><div id='b'><span>x</span></div>")
        assert has_child_block_element(soup.find(id="a")) is True
        assert has_child_block_element(soup.find(id="b")) is False

    def test_element_without_content(self):
        soup = _soup("<div id='a'> <br><hr> </div><div id='b'><img src='x.png'></div>")
        assert is_element_without_content(soup.find(id="a")) is True
        assert is_element_without_content(soup.find(id="b")) is False

    def test_visibility(self):
        soup = _soup(
            "<p id='a' style='display: none'>x</p>"
            "<p id='b' hidden>x</p>"
            "<p id='c' aria-hidden='true'>x</p>"
            "<p id='d' aria-hidden='true' class='fallback-image'>x</p>"
            "<p id='e'>x</p>",
        )
        assert [is_probably_visible(soup.find(id=i)) for i in "abcde"] == [
            False, False, False, True, True,
        ]


# ---------------------------------------------------------------------------
# Text measurements
# ---------------------------------------------------------------------------

class TestNodeCache:
    def test_inner_text_normalizes(self):
        soup = _soup("<p>  a   b \n c  </p>")
        assert get_inner_text(soup.p) == "a b c"

    def test_link_density(self):
        soup = _soup("<p>0123456789<a href='/x'>0123456789</a></p>")
        assert NodeCache().link_density(soup.p) == 0.5

    def test_hash_links_are_discounted(self):
        soup = _soup("<p>0123456789<a href='#x'>0123456789</a></p>")
        assert abs(NodeCache().link_density(soup.p) - 0.15) < 1e-9

    def test_empty_node_has_zero_density(self):
        soup = _soup("<p><a href='/x'></a></p>")
        assert NodeCache().link_density(soup.p) == 0.0

    def test_cached_until_invalidated(self):
        soup = _soup("<p>hello</p>")
        cache = NodeCache()
        assert cache.inner_text(soup.p) == "hello"
        soup.p.string = "changed"
        assert cache.inner_text(soup.p) == "hello"
        cache.invalidate()
        assert cache.inner_text(soup.p) == "changed"

    def test_text_density(self):
        soup = _soup("<div><h2>0123456789</h2><p>0123456789</p></div>")
        assert NodeCache().text_density(soup.div, ("h2",)) == 0.5


# ---------------------------------------------------------------------------
# Positions
# ---------------------------------------------------------------------------

class TestNodePath:
    def test_path_survives_copy(self):
        soup = _soup("<div><p>a</p><p id='target'>b</p></div>")
        path = node_path(soup.find(id="target"))
        clone = copy.copy(soup)
        found = node_at(clone, path)
        assert found is not None
        assert found["id"] == "target"
        assert found is not soup.find(id="target")

    def test_identical_siblings_are_distinguished(self):
        soup = _soup("<div><p>same</p><p>same</p></div>")
        second = soup.find_all("p")[1]
        assert node_at(soup, node_path(second)) is second

    def test_missing_path(self):
        soup = _soup("<p>a</p>")
        assert node_at(soup, (0, 9, 9)) is None
