"""Tree helpers over BeautifulSoup nodes.

Every pass walks the same mutable ``Tag`` graph produced by lxml.  The
helpers here answer the small set of structural questions the passes ask
(phrasing content, block children, ancestors, visibility) and
:class:`NodeCache` memoises the expensive text measurements so the pipeline
never recomputes a subtree's text more than once between mutations.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any

from bs4 import BeautifulSoup, Comment, NavigableString, PageElement, Tag

from .classifier import COMMAS_RE, NORMALIZE_RE, attr_str

# Inline elements of the HTML phrasing content model
PHRASING_ELEMS: frozenset[str] = frozenset(
    {
        "abbr", "audio", "b", "bdo", "br", "button", "cite", "code", "data",
        "datalist", "dfn", "em", "embed", "i", "img", "input", "kbd", "label",
        "mark", "math", "meter", "noscript", "object", "output", "progress", "q",
        "ruby", "samp", "script", "select", "small", "span", "strong", "sub",
        "sup", "textarea", "time", "var", "wbr",
    },
)

# Block elements whose presence keeps a <div> from becoming a <p>
DIV_TO_P_ELEMS: frozenset[str] = frozenset(
    {"blockquote", "dl", "div", "img", "ol", "p", "pre", "table", "ul"},
)

HEADING_TAGS: tuple[str, ...] = ("h1", "h2", "h3", "h4", "h5", "h6")


# ---------------------------------------------------------------------------
# Node kinds
# ---------------------------------------------------------------------------

def is_text(node: PageElement | None) -> bool:
    """True for visible text nodes (comments and other specials excluded)."""
    return type(node) is NavigableString


def element_children(tag: Tag) -> list[Tag]:
    return [c for c in tag.children if isinstance(c, Tag)]


def first_element_child(tag: Tag) -> Tag | None:
    for child in tag.children:
        if isinstance(child, Tag):
            return child
    return None


def next_element_sibling(node: PageElement) -> Tag | None:
    sib = node.next_sibling
    while sib is not None and not isinstance(sib, Tag):
        sib = sib.next_sibling
    return sib


def next_significant_sibling(node: PageElement | None) -> PageElement | None:
    """Return *node* or its first following sibling that is not blank text."""
    while node is not None and not isinstance(node, Tag) and not str(node).strip():
        node = node.next_sibling
    return node


def new_tag(node: PageElement, name: str, **attrs: Any) -> Tag:
    """Create a detached tag owned by *node*'s document."""
    root = node
    while root.parent is not None:
        root = root.parent
    if isinstance(root, BeautifulSoup):
        return root.new_tag(name, attrs=attrs)
    return Tag(name=name, attrs=attrs)


# ---------------------------------------------------------------------------
# Traversal
# ---------------------------------------------------------------------------

def get_next_node(node: Tag, ignore_self_and_kids: bool = False) -> Tag | None:
    """Return the next element in document order.

    With *ignore_self_and_kids* the subtree of *node* is skipped.
    """
    if not ignore_self_and_kids:
        child = first_element_child(node)
        if child is not None:
            return child
    sib = next_element_sibling(node)
    if sib is not None:
        return sib
    parent = node.parent
    while parent is not None and next_element_sibling(parent) is None:
        parent = parent.parent
    return next_element_sibling(parent) if parent is not None else None


def remove_and_get_next(node: Tag) -> Tag | None:
    nxt = get_next_node(node, ignore_self_and_kids=True)
    node.decompose()
    return nxt


def get_node_ancestors(node: Tag, max_depth: int = 0) -> list[Tag]:
    """Return ancestors nearest-first, at most *max_depth* (0 = all)."""
    ancestors: list[Tag] = []
    parent = node.parent
    while isinstance(parent, Tag) and not isinstance(parent, BeautifulSoup):
        ancestors.append(parent)
        if max_depth and len(ancestors) == max_depth:
            break
        parent = parent.parent
    return ancestors


def has_ancestor_tag(
    node: Tag,
    tag_name: str,
    max_depth: int = 3,
    filter_fn: Callable[[Tag], bool] | None = None,
) -> bool:
    """True if an ancestor within *max_depth* levels is a *tag_name*.

    A *max_depth* of zero or less searches all the way up.
    """
    depth = 0
    parent = node.parent
    while isinstance(parent, Tag):
        if 0 < max_depth < depth:
            return False
        if parent.name == tag_name and (filter_fn is None or filter_fn(parent)):
            return True
        parent = parent.parent
        depth += 1
    return False


# ---------------------------------------------------------------------------
# Structural predicates
# ---------------------------------------------------------------------------

def is_whitespace(node: PageElement) -> bool:
    if is_text(node):
        return not str(node).strip()
    return isinstance(node, Tag) and node.name == "br"


def is_phrasing_content(node: PageElement) -> bool:
    if is_text(node):
        return True
    if not isinstance(node, Tag):
        return False
    if node.name in PHRASING_ELEMS:
        return True
    if node.name in ("a", "del", "ins"):
        return all(
            is_phrasing_content(c) for c in node.children if not isinstance(c, Comment)
        )
    return False


def has_single_tag_inside_element(tag: Tag, name: str) -> bool:
    """True if *tag* holds exactly one child element, a *name*, and no text."""
    children = element_children(tag)
    if len(children) != 1 or children[0].name != name:
        return False
    return not any(is_text(c) and str(c).strip() for c in tag.children)


def has_child_block_element(tag: Tag) -> bool:
    for child in element_children(tag):
        if child.name in DIV_TO_P_ELEMS or has_child_block_element(child):
            return True
    return False


def is_element_without_content(tag: Tag) -> bool:
    if tag.get_text().strip():
        return False
    children = element_children(tag)
    return not children or all(c.name in ("br", "hr") for c in children)


def is_probably_visible(tag: Tag) -> bool:
    style = attr_str(tag.get("style")).replace(" ", "").lower()
    if "display:none" in style or "visibility:hidden" in style:
        return False
    if tag.has_attr("hidden"):
        return False
    if attr_str(tag.get("aria-hidden")) == "true":
        return "fallback-image" in attr_str(tag.get("class"))
    return True


# ---------------------------------------------------------------------------
# Text measurements
# ---------------------------------------------------------------------------

def get_inner_text(tag: Tag, normalize_spaces: bool = True) -> str:
    text = tag.get_text().strip()
    if normalize_spaces:
        return NORMALIZE_RE.sub(" ", text)
    return text


def get_char_count(tag: Tag, separator: str = ",") -> int:
    text = get_inner_text(tag)
    if separator == ",":
        return len(COMMAS_RE.split(text)) - 1
    return len(text.split(separator)) - 1


class NodeCache:
    """Per-run memo of text measurements keyed by node identity.

    Entries hold a reference to their node, so an id is never reused while
    it is cached.  Call :meth:`invalidate` after any tree mutation.
    """

    def __init__(self) -> None:
        self._text: dict[int, tuple[Tag, str]] = {}
        self._link_density: dict[int, tuple[Tag, float]] = {}

    def invalidate(self) -> None:
        self._text.clear()
        self._link_density.clear()

    def inner_text(self, tag: Tag) -> str:
        hit = self._text.get(id(tag))
        if hit is not None:
            return hit[1]
        text = get_inner_text(tag)
        self._text[id(tag)] = (tag, text)
        return text

    def text_length(self, tag: Tag) -> int:
        return len(self.inner_text(tag))

    def link_density(self, tag: Tag) -> float:
        """Fraction of *tag*'s text that sits inside links.

        In-page ``#`` anchors count at 30 % of their length.
        """
        hit = self._link_density.get(id(tag))
        if hit is not None:
            return hit[1]
        text_length = self.text_length(tag)
        if text_length == 0:
            density = 0.0
        else:
            link_length = 0.0
            for link in tag.find_all("a"):
                href = attr_str(link.get("href"))
                coefficient = 0.3 if href.startswith("#") and len(href) > 1 else 1.0
                link_length += self.text_length(link) * coefficient
            density = link_length / text_length
        self._link_density[id(tag)] = (tag, density)
        return density

    def text_density(self, tag: Tag, names: Iterable[str]) -> float:
        """Share of *tag*'s text held by descendants named in *names*."""
        text_length = self.text_length(tag)
        if text_length == 0:
            return 0.0
        children_length = sum(self.text_length(child) for child in tag.find_all(list(names)))
        return children_length / text_length


# ---------------------------------------------------------------------------
# Positions
# ---------------------------------------------------------------------------

def node_path(node: Tag) -> tuple[int, ...]:
    """Child-index path from the document root down to *node*.

    Paths survive ``copy.copy`` of the document, unlike node identities.
    """
    path: list[int] = []
    while node.parent is not None:
        # Tag.__eq__ compares markup, so match on identity
        index = next(i for i, c in enumerate(node.parent.contents) if c is node)
        path.append(index)
        node = node.parent
    return tuple(reversed(path))


def node_at(root: Tag, path: tuple[int, ...]) -> Tag | None:
    node: PageElement = root
    for index in path:
        if not isinstance(node, Tag) or index >= len(node.contents):
            return None
        node = node.contents[index]
    return node if isinstance(node, Tag) else None
