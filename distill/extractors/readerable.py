"""Cheap pre-check: is the document worth a full extraction?

Read-only scan over paragraph-level nodes that sums a diminishing-returns
score for every long enough text block and stops as soon as the score
clears a minimum that depends on the configured content length.
"""

from __future__ import annotations

import math

from bs4 import BeautifulSoup, Tag

from distill.settings import MIN_CONTENT_LENGTH

from .classifier import CLASSIFIER, Classifier, class_and_id
from .dom import has_ancestor_tag, is_probably_visible

_SCANNED_TAGS: tuple[str, ...] = ("p", "pre", "article")

# (max min_content_length, required score), checked in order
_SCORE_TIERS: tuple[tuple[int, int], ...] = ((50, 10), (100, 15))
_DEFAULT_MIN_SCORE = 20


def min_score_for(min_content_length: int) -> int:
    """Required score for *min_content_length*; smaller lengths need less."""
    for ceiling, score in _SCORE_TIERS:
        if min_content_length <= ceiling:
            return score
    return _DEFAULT_MIN_SCORE


def _scanned_nodes(soup: BeautifulSoup) -> list[Tag]:
    nodes = list(soup.find_all(list(_SCANNED_TAGS)))
    seen = {id(n) for n in nodes}
    for br in soup.find_all("br"):
        parent = br.parent
        if isinstance(parent, Tag) and parent.name == "div" and id(parent) not in seen:
            seen.add(id(parent))
            nodes.append(parent)
    return nodes


def is_probably_readerable(
    soup: BeautifulSoup,
    *,
    min_content_length: int = MIN_CONTENT_LENGTH,
    classifier: Classifier = CLASSIFIER,
) -> bool:
    """Return True if *soup* probably holds an article.

    Never mutates *soup*.
    """
    min_score = min_score_for(min_content_length)
    score = 0.0
    for node in _scanned_nodes(soup):
        if not is_probably_visible(node):
            continue
        if classifier.is_unlikely_candidate(class_and_id(node)):
            continue
        if node.name == "p" and has_ancestor_tag(node, "li", 0):
            continue
        length = len(node.get_text().strip())
        if length < min_content_length:
            continue
        score += math.sqrt(length - min_content_length)
        if score > min_score:
            return True
    return False
