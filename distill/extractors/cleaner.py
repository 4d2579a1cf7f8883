"""Post-selection cleanup and serialisation of the article container.

:class:`Cleaner` runs the destructive passes over the assembled subtree
(presentational attributes, layout tables, share widgets, link farms, empty
paragraphs, single-cell tables) and :func:`post_process` finishes the
fragment for output (absolute URIs, collapsed wrappers, stripped classes).

Usage::

    cleaner = Cleaner(classifier=CLASSIFIER, clean_conditionally=True)
    cleaner.prep_article(container)
    post_process(container, base_uri="https://example.com/a/")
"""

from __future__ import annotations

import logging
import re
from urllib.parse import urljoin

from bs4 import BeautifulSoup, NavigableString, Tag

from distill.settings import (
    CHAR_THRESHOLD,
    CLASSES_TO_PRESERVE,
    LINK_DENSITY_MODIFIER,
    MAX_BOILERPLATE_RATIO,
    MIN_WORD_COUNT,
)

from .classifier import (
    AD_WORDS_RE,
    CLASSIFIER,
    LOADING_WORDS_RE,
    Classifier,
    attr_str,
    class_and_id,
    normalize_whitespace,
)
from .dom import (
    DIV_TO_P_ELEMS,
    HEADING_TAGS,
    NodeCache,
    element_children,
    first_element_child,
    get_char_count,
    get_next_node,
    has_ancestor_tag,
    has_single_tag_inside_element,
    is_element_without_content,
    is_phrasing_content,
    is_text,
    new_tag,
    next_significant_sibling,
    remove_and_get_next,
)

logger = logging.getLogger(__name__)

PRESENTATIONAL_ATTRIBUTES: tuple[str, ...] = (
    "align", "background", "bgcolor", "border", "cellpadding", "cellspacing",
    "frame", "hspace", "rules", "style", "valign", "vspace",
)

# width/height are stripped only from these
DEPRECATED_SIZE_ATTRIBUTE_ELEMS: frozenset[str] = frozenset({"table", "th", "td", "hr", "pre"})

EMBED_TAGS: tuple[str, ...] = ("object", "embed", "iframe")

# Removed outright, apart from allowed video embeds.  Share widgets are
# cleaned between the two groups.
REMOVED_BEFORE_SHARE: tuple[str, ...] = ("object", "embed", "footer", "link", "aside")
REMOVED_AFTER_SHARE: tuple[str, ...] = ("iframe", "input", "textarea", "select", "button")

CONDITIONALLY_CLEANED_TAGS: tuple[str, ...] = ("table", "ul", "div")

_TEXTISH_TAGS: tuple[str, ...] = ("span", "li", "td", *sorted(DIV_TO_P_ELEMS))

_DATA_TABLE_DESCENDANTS: tuple[str, ...] = ("col", "colgroup", "tfoot", "thead", "th")

_SRCSET_URL_RE = re.compile(r"(\S+)(\s+[\d.]+[xw])?(\s*(?:,|$))")

MEDIA_TAGS: tuple[str, ...] = ("img", "picture", "figure", "video", "audio", "source")

# Keywords counted by the substantiveness check
BOILERPLATE_WORDS: frozenset[str] = frozenset(
    {
        "advertisement", "advertising", "consent", "cookie", "cookies",
        "login", "newsletter", "paywall", "privacy", "signup", "sponsored",
        "subscribe", "subscribers", "subscription", "unsubscribe",
    },
)

_WORD_RE = re.compile(r"[\w'-]+")

MIN_COMMAS_TO_KEEP_NEGATIVE = 10


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------

def _span(tag: Tag, attr: str) -> int:
    try:
        return int(attr_str(tag.get(attr)) or 0) or 1
    except ValueError:
        return 1


def row_and_column_count(table: Tag) -> tuple[int, int]:
    rows = 0
    columns = 0
    for tr in table.find_all("tr"):
        rows += _span(tr, "rowspan")
        columns = max(columns, sum(_span(td, "colspan") for td in tr.find_all("td")))
    return rows, columns


def is_data_table(table: Tag) -> bool:
    """Guess whether *table* holds data rather than page layout."""
    if attr_str(table.get("role")) == "presentation":
        return False
    if attr_str(table.get("datatable")) == "0":
        return False
    if table.has_attr("summary"):
        return True
    caption = table.find("caption")
    if caption is not None and caption.contents:
        return True
    if any(table.find(name) is not None for name in _DATA_TABLE_DESCENDANTS):
        return True
    if table.find("table") is not None:
        return False
    rows, columns = row_and_column_count(table)
    if rows == 1 or columns == 1:
        return False
    if rows >= 10 or columns > 4:
        return True
    return rows * columns > 10


# ---------------------------------------------------------------------------
# Cleaner
# ---------------------------------------------------------------------------

class Cleaner:
    """Destructive cleanup of one assembled article container."""

    def __init__(
        self,
        *,
        classifier: Classifier = CLASSIFIER,
        cache: NodeCache | None = None,
        weight_classes: bool = True,
        clean_conditionally: bool = True,
        link_density_modifier: float = LINK_DENSITY_MODIFIER,
        share_threshold: int = CHAR_THRESHOLD,
    ) -> None:
        self.classifier = classifier
        self.cache = cache or NodeCache()
        self.weight_classes = weight_classes
        self.clean_conditionally_enabled = clean_conditionally
        self.link_density_modifier = link_density_modifier
        self.share_threshold = share_threshold
        self._data_tables: dict[int, Tag] = {}

    def class_weight(self, tag: Tag) -> int:
        return self.classifier.class_weight(tag) if self.weight_classes else 0

    # ------------------------------------------------------------------
    # Attributes and tables
    # ------------------------------------------------------------------

    def clean_styles(self, root: Tag) -> None:
        """Drop presentational attributes below *root* (svg subtrees untouched)."""
        stack = [root]
        while stack:
            node = stack.pop()
            if node.name == "svg":
                continue
            for attr in PRESENTATIONAL_ATTRIBUTES:
                node.attrs.pop(attr, None)
            if node.name in DEPRECATED_SIZE_ATTRIBUTE_ELEMS:
                node.attrs.pop("width", None)
                node.attrs.pop("height", None)
            stack.extend(element_children(node))

    def mark_data_tables(self, root: Tag) -> None:
        for table in root.find_all("table"):
            if is_data_table(table):
                self._data_tables[id(table)] = table

    def is_data_table(self, tag: Tag) -> bool:
        return id(tag) in self._data_tables

    # ------------------------------------------------------------------
    # Removal passes
    # ------------------------------------------------------------------

    def is_allowed_embed(self, tag: Tag) -> bool:
        """True for embeds whose source matches the video pattern."""
        for value in tag.attrs.values():
            if self.classifier.is_video_url(attr_str(value)):
                return True
        return tag.name == "object" and self.classifier.is_video_url(tag.decode_contents())

    def clean(self, root: Tag, tag_name: str) -> None:
        """Remove every *tag_name* below *root*, sparing allowed video embeds."""
        is_embed = tag_name in EMBED_TAGS
        for node in root.find_all(tag_name):
            if node.decomposed:
                continue
            if is_embed and self.is_allowed_embed(node):
                continue
            node.decompose()
        self.cache.invalidate()

    def clean_share_elements(self, root: Tag) -> None:
        for child in element_children(root):
            end = get_next_node(child, ignore_self_and_kids=True)
            node = get_next_node(child)
            while node is not None and node is not end:
                if (
                    self.classifier.is_share_element(class_and_id(node))
                    and len(node.get_text()) < self.share_threshold
                ):
                    node = remove_and_get_next(node)
                else:
                    node = get_next_node(node)
        self.cache.invalidate()

    def clean_headers(self, root: Tag) -> None:
        for header in root.find_all(["h1", "h2"]):
            if header.decomposed:
                continue
            if self.class_weight(header) < 0:
                logger.debug("Removing header with negative weight: %r", header.get_text()[:40])
                header.decompose()

    def should_remove_conditionally(self, node: Tag, tag_name: str) -> bool:
        if tag_name == "table" and self.is_data_table(node):
            return False
        if has_ancestor_tag(node, "table", -1, self.is_data_table):
            return False
        if has_ancestor_tag(node, "code"):
            return False
        if any(self.is_data_table(t) for t in node.find_all("table")):
            return False

        text = self.cache.inner_text(node)
        is_list = tag_name in ("ul", "ol")
        if not is_list and text:
            list_length = sum(self.cache.text_length(ls) for ls in node.find_all(["ul", "ol"]))
            is_list = list_length / len(text) > 0.9

        weight = self.class_weight(node)
        commas = get_char_count(node, ",")
        if weight < 0 and commas < MIN_COMMAS_TO_KEEP_NEGATIVE:
            return True
        if commas >= MIN_COMMAS_TO_KEEP_NEGATIVE:
            return False

        p_count = len(node.find_all("p"))
        img_count = len(node.find_all("img"))
        li_count = len(node.find_all("li")) - 100
        input_count = len(node.find_all("input"))
        heading_density = self.cache.text_density(node, HEADING_TAGS)

        embed_count = 0
        for embed in node.find_all(list(EMBED_TAGS)):
            if self.is_allowed_embed(embed):
                return False
            embed_count += 1

        if AD_WORDS_RE.match(text) or LOADING_WORDS_RE.match(text):
            return True

        content_length = len(text)
        link_density = self.cache.link_density(node)
        text_density = self.cache.text_density(node, _TEXTISH_TAGS)
        is_figure_child = has_ancestor_tag(node, "figure")
        modifier = self.link_density_modifier

        reasons = []
        if not is_figure_child and img_count > 1 and p_count / img_count < 0.5:
            reasons.append("too many images")
        if not is_list and li_count > p_count:
            reasons.append("more list items than paragraphs")
        if input_count > p_count // 3:
            reasons.append("too many inputs")
        if (
            not is_list
            and not is_figure_child
            and heading_density < 0.9
            and content_length < 25
            and (img_count == 0 or img_count > 2)
            and link_density > 0
        ):
            reasons.append("short linked content")
        if not is_list and weight < 25 and link_density > 0.2 + modifier:
            reasons.append("high link density")
        if weight >= 25 and link_density > 0.5 + modifier:
            reasons.append("high link density for weighted node")
        if (embed_count == 1 and content_length < 75) or embed_count > 1:
            reasons.append("embeds with little text")
        if img_count == 0 and text_density == 0:
            reasons.append("no text")

        if is_list and reasons:
            # Keep image galleries: one image per list item
            if any(len(element_children(child)) > 1 for child in element_children(node)):
                return True
            if img_count == len(node.find_all("li")):
                return False
        if reasons:
            logger.debug("Conditionally removing <%s>: %s", tag_name, ", ".join(reasons))
        return bool(reasons)

    def clean_conditionally(self, root: Tag, tag_name: str) -> None:
        """Remove *tag_name* nodes below *root* that look like clutter."""
        if not self.clean_conditionally_enabled:
            return
        # Reverse document order: descendants are judged before their ancestors
        for node in reversed(root.find_all(tag_name)):
            if node.decomposed:
                continue
            if self.should_remove_conditionally(node, tag_name):
                node.decompose()
                self.cache.invalidate()

    def remove_empty_paragraphs(self, root: Tag) -> None:
        for p in root.find_all("p"):
            if p.find(["img", *EMBED_TAGS]) is None and not p.get_text().strip():
                p.decompose()

    def remove_br_before_paragraphs(self, root: Tag) -> None:
        for br in root.find_all("br"):
            nxt = next_significant_sibling(br.next_sibling)
            if isinstance(nxt, Tag) and nxt.name == "p":
                br.decompose()

    def unwrap_single_cell_tables(self, root: Tag) -> None:
        for table in root.find_all("table"):
            if table.decomposed or table.parent is None:
                continue
            body = table
            if has_single_tag_inside_element(table, "tbody"):
                body = first_element_child(table)
            if not has_single_tag_inside_element(body, "tr"):
                continue
            row = first_element_child(body)
            if not has_single_tag_inside_element(row, "td"):
                continue
            cell = first_element_child(row)
            cell.name = "p" if all(is_phrasing_content(c) for c in cell.contents) else "div"
            table.replace_with(cell.extract())
        self.cache.invalidate()

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def prep_article(self, root: Tag) -> None:
        """Run every cleanup pass over *root* in order."""
        self.clean_styles(root)
        self.mark_data_tables(root)
        self.clean_conditionally(root, "form")
        self.clean_conditionally(root, "fieldset")
        for tag_name in REMOVED_BEFORE_SHARE:
            self.clean(root, tag_name)
        self.clean_share_elements(root)
        for tag_name in REMOVED_AFTER_SHARE:
            self.clean(root, tag_name)
        self.clean_headers(root)
        for tag_name in CONDITIONALLY_CLEANED_TAGS:
            self.clean_conditionally(root, tag_name)
        self.remove_empty_paragraphs(root)
        self.remove_br_before_paragraphs(root)
        self.unwrap_single_cell_tables(root)
        self.cache.invalidate()


# ---------------------------------------------------------------------------
# Post-processing
# ---------------------------------------------------------------------------

def document_base_uri(soup: BeautifulSoup, base_uri: str | None) -> str | None:
    """Resolve the document's ``<base href>`` against *base_uri*."""
    base = soup.find("base", href=True)
    if base is None:
        return base_uri or None
    href = attr_str(base.get("href")).strip()
    return urljoin(base_uri, href) if base_uri else href or None


def _to_absolute(uri: str, base: str | None, has_base_tag: bool) -> str:
    if not base:
        return uri
    if uri.startswith("#") and not has_base_tag:
        return uri
    return urljoin(base, uri)


def fix_relative_uris(root: Tag, base: str | None, *, has_base_tag: bool = False) -> None:
    """Make link and media URIs absolute; flatten ``javascript:`` links."""
    for link in root.find_all("a"):
        href = attr_str(link.get("href")).strip()
        if not href:
            continue
        if href.lower().startswith("javascript:"):
            if len(link.contents) == 1 and is_text(link.contents[0]):
                link.replace_with(NavigableString(link.get_text()))
            else:
                span = new_tag(link, "span")
                for child in list(link.contents):
                    span.append(child)
                link.replace_with(span)
            continue
        link["href"] = _to_absolute(href, base, has_base_tag)

    for media in root.find_all(list(MEDIA_TAGS)):
        for attr in ("src", "poster"):
            value = attr_str(media.get(attr)).strip()
            if value:
                media[attr] = _to_absolute(value, base, has_base_tag)
        srcset = attr_str(media.get("srcset"))
        if srcset:
            media["srcset"] = _SRCSET_URL_RE.sub(
                lambda m: _to_absolute(m.group(1), base, has_base_tag)
                + (m.group(2) or "")
                + m.group(3),
                srcset,
            )


def simplify_nested_elements(root: Tag) -> None:
    """Drop empty wrappers and collapse single-child ``div``/``section`` chains."""
    node = root
    while node is not None:
        if (
            node is not root
            and node.name in ("div", "section")
            and not attr_str(node.get("id")).startswith("readability")
        ):
            if is_element_without_content(node):
                node = remove_and_get_next(node)
                continue
            if has_single_tag_inside_element(node, "div") or has_single_tag_inside_element(
                node, "section",
            ):
                child = first_element_child(node)
                for name, value in node.attrs.items():
                    child[name] = value
                node.replace_with(child.extract())
                node = child
                continue
        node = get_next_node(node)
        if node is not None and not any(a is root for a in node.parents):
            break


def clean_classes(root: Tag, preserve: tuple[str, ...] = CLASSES_TO_PRESERVE) -> None:
    for node in [root, *root.find_all(True)]:
        classes = [c for c in attr_str(node.get("class")).split() if c in preserve]
        if classes:
            node["class"] = classes
        else:
            node.attrs.pop("class", None)


def post_process(
    root: Tag,
    *,
    base_uri: str | None = None,
    soup: BeautifulSoup | None = None,
    keep_classes: bool = False,
    classes_to_preserve: tuple[str, ...] = CLASSES_TO_PRESERVE,
) -> None:
    has_base_tag = soup is not None and soup.find("base", href=True) is not None
    base = document_base_uri(soup, base_uri) if soup is not None else base_uri
    fix_relative_uris(root, base, has_base_tag=has_base_tag)
    simplify_nested_elements(root)
    if not keep_classes:
        clean_classes(root, classes_to_preserve)


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------

def text_content(root: Tag) -> str:
    """Whitespace-normalised text of every surviving text node."""
    return normalize_whitespace(root.get_text(" "))


def is_substantive(
    text: str,
    *,
    min_word_count: int = MIN_WORD_COUNT,
    max_boilerplate_ratio: float = MAX_BOILERPLATE_RATIO,
) -> bool:
    """True if *text* has enough words and not too many boilerplate keywords."""
    words = _WORD_RE.findall(text.lower())
    if len(words) < min_word_count:
        return False
    if not words:
        return True
    boilerplate = sum(1 for w in words if w in BOILERPLATE_WORDS)
    return boilerplate / len(words) <= max_boilerplate_ratio
