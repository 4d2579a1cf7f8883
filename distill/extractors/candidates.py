"""Candidate ranking and article assembly.

After scoring, every recorded score is scaled by ``1 - link density`` and
the best ``nb_top_candidates`` nodes are ranked.  The winner is refined by
walking up the tree, then its qualifying siblings are gathered, in document
order, into a new container element.
"""

from __future__ import annotations

import logging
import re
from bisect import insort
from collections.abc import Iterator
from dataclasses import dataclass, field

from bs4 import BeautifulSoup, Tag

from distill.settings import LINK_DENSITY_MODIFIER, NB_TOP_CANDIDATES

from .classifier import attr_str
from .dom import NodeCache, element_children, get_node_ancestors, new_tag
from .scoring import Scorer, ScoreTable

logger = logging.getLogger(__name__)

# Share of the best score another candidate needs to count as an alternative
ALTERNATIVE_SCORE_RATIO = 0.75
MIN_ALTERNATIVE_CANDIDATES = 3

SIBLING_SCORE_FLOOR = 10
SIBLING_SCORE_FRACTION = 0.2
SAME_CLASS_BONUS = 0.2

# Siblings with these tags keep their name when moved into the article
KEEP_TAG_ON_MOVE: frozenset[str] = frozenset({"div", "article", "section", "p", "ol", "ul"})

# Sentence-final punctuation, optionally followed by closing quotes or brackets
_SENTENCE_END_RE = re.compile(r"[.!?…][\"'”’)\]]*$")


# ---------------------------------------------------------------------------
# CandidateList
# ---------------------------------------------------------------------------

@dataclass(frozen=True, order=True)
class Candidate:
    """One ranked entry.  Ordering is by descending score."""

    sort_key: float = field(init=False, repr=False)
    score: float = field(compare=False)
    node: Tag = field(compare=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "sort_key", -self.score)


class CandidateList:
    """Ranked candidates, best first, never longer than *capacity*."""

    def __init__(self, capacity: int = NB_TOP_CANDIDATES) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._items: list[Candidate] = []

    def offer(self, node: Tag, score: float) -> bool:
        """Insert *node* if it ranks within capacity; return whether it did."""
        if len(self._items) == self.capacity and score <= self._items[-1].score:
            return False
        insort(self._items, Candidate(score=score, node=node))
        del self._items[self.capacity:]
        return True

    @property
    def best(self) -> Candidate | None:
        return self._items[0] if self._items else None

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Candidate]:
        return iter(self._items)

    def __getitem__(self, index: int) -> Candidate:
        return self._items[index]


def adjust_for_link_density(table: ScoreTable, cache: NodeCache) -> None:
    """Scale every recorded score by ``1 - link density`` and finalise it."""
    for record in table:
        if record.finalized:
            continue
        record.content_score *= 1 - cache.link_density(record.node)
        record.finalized = True


def rank_candidates(table: ScoreTable, capacity: int = NB_TOP_CANDIDATES) -> CandidateList:
    ranked = CandidateList(capacity)
    for record in table.candidates():
        ranked.offer(record.node, record.content_score)
    return ranked


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------

def _is_root(node: Tag | None) -> bool:
    return node is None or isinstance(node, BeautifulSoup) or node.name in ("body", "html")


@dataclass
class Selection:
    """Assembled article container and how it came about."""

    container: Tag
    top_candidate: Tag
    created_top_candidate: bool


class CandidateSelector:
    """Picks the best candidate and gathers its siblings into one container."""

    def __init__(
        self,
        soup: BeautifulSoup,
        scorer: Scorer,
        *,
        nb_top_candidates: int = NB_TOP_CANDIDATES,
        link_density_modifier: float = LINK_DENSITY_MODIFIER,
    ) -> None:
        self.soup = soup
        self.scorer = scorer
        self.table = scorer.table
        self.cache = scorer.cache
        self.nb_top_candidates = nb_top_candidates
        self.link_density_modifier = link_density_modifier

    def rank(self) -> CandidateList:
        adjust_for_link_density(self.table, self.cache)
        ranked = rank_candidates(self.table, self.nb_top_candidates)
        logger.debug(
            "Top candidates: %s",
            [(c.node.name, round(c.score, 2)) for c in ranked],
        )
        return ranked

    # ------------------------------------------------------------------
    # Top candidate
    # ------------------------------------------------------------------

    def _body_candidate(self) -> Tag:
        """Move the body's children into a new div that becomes the candidate."""
        page = self.soup.body or self.soup
        candidate = new_tag(self.soup, "div")
        for child in list(page.contents):
            candidate.append(child)
        page.append(candidate)
        self.scorer.initialize_node(candidate)
        self.cache.invalidate()
        return candidate

    def _common_alternative_ancestor(self, ranked: CandidateList, top: Tag) -> Tag:
        best_score = ranked[0].score
        if best_score <= 0:
            return top
        alternatives = [
            {id(a) for a in get_node_ancestors(c.node)}
            for c in list(ranked)[1:]
            if c.score / best_score >= ALTERNATIVE_SCORE_RATIO
        ]
        if len(alternatives) < MIN_ALTERNATIVE_CANDIDATES:
            return top
        parent = top.parent
        while not _is_root(parent):
            containing = sum(1 for ancestors in alternatives if id(parent) in ancestors)
            if containing >= MIN_ALTERNATIVE_CANDIDATES:
                return parent
            parent = parent.parent
        return top

    def _climb_while_improving(self, top: Tag) -> Tag:
        last_score = self.table.score(top)
        threshold = last_score / 3
        parent = top.parent
        while not _is_root(parent):
            if parent not in self.table:
                parent = parent.parent
                continue
            parent_score = self.table.score(parent)
            if parent_score < threshold:
                break
            if parent_score > last_score:
                return parent
            last_score = parent_score
            parent = parent.parent
        return top

    @staticmethod
    def _climb_only_children(top: Tag) -> Tag:
        parent = top.parent
        while not _is_root(parent) and len(element_children(parent)) == 1:
            top = parent
            parent = top.parent
        return top

    def top_candidate(self, ranked: CandidateList) -> tuple[Tag, bool]:
        """Return the refined best candidate and whether it had to be created."""
        best = ranked.best
        if best is None or best.node.name == "body":
            logger.debug("No usable candidate, falling back to the page body")
            return self._body_candidate(), True

        top = self._common_alternative_ancestor(ranked, best.node)
        self.scorer.initialize_node(top)
        top = self._climb_while_improving(top)
        top = self._climb_only_children(top)
        self.scorer.initialize_node(top)
        return top, False

    # ------------------------------------------------------------------
    # Siblings
    # ------------------------------------------------------------------

    def sibling_threshold(self, top: Tag) -> float:
        fraction = SIBLING_SCORE_FRACTION + self.link_density_modifier
        return max(SIBLING_SCORE_FLOOR, self.table.score(top) * fraction)

    def include_sibling(self, sibling: Tag, top: Tag, threshold: float) -> bool:
        if sibling is top:
            return True
        top_class = attr_str(top.get("class"))
        bonus = 0.0
        if top_class and attr_str(sibling.get("class")) == top_class:
            bonus = self.table.score(top) * SAME_CLASS_BONUS
        if sibling in self.table and self.table.score(sibling) + bonus >= threshold:
            return True
        if sibling.name != "p":
            return False

        density = self.cache.link_density(sibling)
        text = self.cache.inner_text(sibling)
        length = len(text)
        if length > 80:
            return density < 0.25
        return 0 < length < 80 and density == 0 and bool(_SENTENCE_END_RE.search(text))

    def assemble(self, top: Tag) -> Tag:
        """Gather *top* and its qualifying siblings into a new container."""
        container = new_tag(self.soup, "div")
        parent = top.parent
        threshold = self.sibling_threshold(top)
        siblings = element_children(parent) if parent is not None else [top]
        for sibling in siblings:
            if not self.include_sibling(sibling, top, threshold):
                continue
            if sibling.name not in KEEP_TAG_ON_MOVE:
                sibling.name = "div"
            container.append(sibling)
        self.cache.invalidate()
        return container

    def select(self) -> Selection:
        ranked = self.rank()
        top, created = self.top_candidate(ranked)
        container = self.assemble(top)
        return Selection(container=container, top_candidate=top, created_top_candidate=created)
