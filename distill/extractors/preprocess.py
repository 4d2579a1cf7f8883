"""Document preprocessing: strip non-content nodes before scoring.

One top-down walk removes invisible and structurally unlikely subtrees and
normalises ``<div>`` wrappers so paragraph-like content is scoreable.  The
tree is mutated in place; sibling order of surviving nodes is preserved.
"""

from __future__ import annotations

import logging

from bs4 import BeautifulSoup, Comment, Tag

from .classifier import (
    CLASSIFIER,
    CONTENT_ROLES,
    UNLIKELY_ROLES,
    Classifier,
    attr_str,
)
from .dom import (
    HEADING_TAGS,
    NodeCache,
    element_children,
    get_next_node,
    has_ancestor_tag,
    has_child_block_element,
    has_single_tag_inside_element,
    is_element_without_content,
    is_phrasing_content,
    is_probably_visible,
    is_whitespace,
    new_tag,
    next_significant_sibling,
    node_at,
    remove_and_get_next,
)

logger = logging.getLogger(__name__)

# Removed wholesale, contents included
_NON_CONTENT_TAGS: tuple[str, ...] = ("script", "noscript", "style", "template")

_EMPTY_REMOVABLE_TAGS: frozenset[str] = frozenset({"div", "section", "header", *HEADING_TAGS})


# ---------------------------------------------------------------------------
# Non-content nodes
# ---------------------------------------------------------------------------

def remove_scripts(soup: BeautifulSoup) -> None:
    """Remove script/style/template subtrees and every comment."""
    for tag in soup.find_all(list(_NON_CONTENT_TAGS)):
        tag.decompose()
    for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()


def replace_brs(root: Tag) -> None:
    """Turn ``<br><br>`` chains into paragraphs.

    The phrasing content that follows a chain of two or more ``<br>`` is
    wrapped in a new ``<p>``.
    """
    for br in list(root.find_all("br")):
        if br.decomposed or br.parent is None:
            continue
        nxt = br.next_sibling
        replaced = False
        nxt = next_significant_sibling(nxt)
        while isinstance(nxt, Tag) and nxt.name == "br":
            replaced = True
            sibling = nxt.next_sibling
            nxt.decompose()
            nxt = next_significant_sibling(sibling)

        if not replaced:
            continue

        p = new_tag(br, "p")
        br.replace_with(p)
        nxt = p.next_sibling
        while nxt is not None:
            if isinstance(nxt, Tag) and nxt.name == "br":
                after = next_significant_sibling(nxt.next_sibling)
                if isinstance(after, Tag) and after.name == "br":
                    break
            if not is_phrasing_content(nxt):
                break
            sibling = nxt.next_sibling
            p.append(nxt)
            nxt = sibling

        while p.contents and is_whitespace(p.contents[-1]):
            p.contents[-1].extract()
        if isinstance(p.parent, Tag) and p.parent.name == "p":
            p.parent.name = "div"


def prep_document(soup: BeautifulSoup) -> None:
    body = soup.body or soup
    replace_brs(body)
    for font in soup.find_all("font"):
        font.name = "span"


# ---------------------------------------------------------------------------
# Unlikely candidates and wrapper normalisation
# ---------------------------------------------------------------------------

def _is_unlikely(node: Tag, classifier: Classifier) -> bool:
    result = classifier.classify(node)
    if not result.is_unlikely or result.is_override:
        return False
    if attr_str(node.get("role")).lower() in CONTENT_ROLES:
        return False
    return not has_ancestor_tag(node, "table") and not has_ancestor_tag(node, "code")


def _wrap_phrasing_runs(div: Tag) -> None:
    """Gather consecutive phrasing children of *div* into ``<p>`` elements."""
    p = None
    child = div.contents[0] if div.contents else None
    while child is not None:
        nxt = child.next_sibling
        if is_phrasing_content(child):
            if p is not None:
                p.append(child)
            elif not is_whitespace(child):
                p = new_tag(div, "p")
                child.replace_with(p)
                p.append(child)
        elif p is not None:
            while p.contents and is_whitespace(p.contents[-1]):
                p.contents[-1].extract()
            p = None
        child = nxt


def strip_unlikely(
    soup: BeautifulSoup,
    *,
    classifier: Classifier = CLASSIFIER,
    strip_unlikelys: bool = True,
    drop: tuple[Tag, ...] = (),
) -> None:
    """Walk the tree once, removing unlikely subtrees and unwrapping divs."""
    node = soup.find(True)
    while node is not None:
        if node.name in ("html", "head"):
            node = get_next_node(node, ignore_self_and_kids=node.name == "head")
            continue

        if not is_probably_visible(node):
            logger.debug("Removing hidden node <%s>", node.name)
            node = remove_and_get_next(node)
            continue

        role = attr_str(node.get("role")).lower()
        if attr_str(node.get("aria-modal")) == "true" and role == "dialog":
            node = remove_and_get_next(node)
            continue

        if any(node is d for d in drop):
            node = remove_and_get_next(node)
            continue

        if strip_unlikelys:
            if _is_unlikely(node, classifier):
                logger.debug("Removing unlikely candidate <%s class=%r>", node.name, node.get("class"))
                node = remove_and_get_next(node)
                continue
            if role in UNLIKELY_ROLES:
                node = remove_and_get_next(node)
                continue

        if node.name in _EMPTY_REMOVABLE_TAGS and is_element_without_content(node):
            node = remove_and_get_next(node)
            continue

        if node.name == "div":
            _wrap_phrasing_runs(node)
            if (
                has_single_tag_inside_element(node, "p")
                and NodeCache().link_density(node) < 0.25
            ):
                child = element_children(node)[0]
                node.replace_with(child)
                node = child
            elif not has_child_block_element(node):
                node.name = "p"

        node = get_next_node(node)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def preprocess(
    soup: BeautifulSoup,
    *,
    classifier: Classifier = CLASSIFIER,
    strip_unlikelys: bool = True,
    drop_paths: tuple[tuple[int, ...], ...] = (),
) -> None:
    """Prepare *soup* for scoring, in place.

    *drop_paths* are node positions (see :func:`~.dom.node_path`) of
    elements to remove outright, resolved before anything moves.
    """
    drop = tuple(n for n in (node_at(soup, p) for p in drop_paths) if n is not None)
    remove_scripts(soup)
    prep_document(soup)
    strip_unlikely(soup, classifier=classifier, strip_unlikelys=strip_unlikelys, drop=drop)
