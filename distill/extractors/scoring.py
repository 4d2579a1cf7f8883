"""Content scoring.

Every scoreable node with enough text earns a base score.  The node keeps it
and hands it to its ancestors with a per-level divisor.  Scores live in a :class:`ScoreTable`
keyed by node identity rather than on the nodes, so the tree stays a plain
BeautifulSoup graph.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field

from bs4 import BeautifulSoup, Tag

from distill.settings import ANCESTOR_DIVISORS

from .classifier import CLASSIFIER, COMMAS_RE, Classifier, class_and_id
from .dom import HEADING_TAGS, NodeCache, get_node_ancestors

logger = logging.getLogger(__name__)

# Tags whose text is scored and handed up to their ancestors
SCOREABLE_TAGS: tuple[str, ...] = ("section", "h2", "h3", "h4", "h5", "h6", "p", "td", "pre")

# Never given a score record
INELIGIBLE_TAGS: frozenset[str] = frozenset(
    {"script", "style", "noscript", "template", "head", "meta", "link", "title"},
)

MIN_PARAGRAPH_LENGTH = 25
MAX_LENGTH_BONUS = 3

_TAG_WEIGHTS: dict[str, int] = {
    "div": 5,
    "pre": 3,
    "td": 3,
    "blockquote": 3,
    "address": -3,
    "ol": -3,
    "ul": -3,
    "dl": -3,
    "dd": -3,
    "dt": -3,
    "li": -3,
    "form": -3,
    "th": -5,
    **{h: -5 for h in HEADING_TAGS},
}


@dataclass
class ScoreRecord:
    """Accumulated score for one node."""

    node: Tag = field(repr=False)
    tag: str
    class_string: str
    content_score: float = 0.0
    is_candidate: bool = False
    finalized: bool = False


class ScoreTable:
    """Side table of :class:`ScoreRecord` keyed by node identity."""

    def __init__(self) -> None:
        self._records: dict[int, ScoreRecord] = {}

    def __contains__(self, node: Tag) -> bool:
        return id(node) in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[ScoreRecord]:
        return iter(self._records.values())

    def get(self, node: Tag) -> ScoreRecord | None:
        return self._records.get(id(node))

    def score(self, node: Tag) -> float:
        record = self._records.get(id(node))
        return record.content_score if record is not None else 0.0

    def add(self, record: ScoreRecord) -> ScoreRecord:
        self._records[id(record.node)] = record
        return record

    def candidates(self) -> list[ScoreRecord]:
        return [r for r in self._records.values() if r.is_candidate]


class PropagationPolicy:
    """How much of a paragraph's score each ancestor level receives.

    Level *i* (0 = parent) gets ``score / divisors[i]``; the number of
    divisors bounds how far up the score travels.
    """

    def __init__(self, divisors: tuple[float, ...] = ANCESTOR_DIVISORS) -> None:
        if not divisors:
            raise ValueError("divisors must not be empty")
        self.divisors = tuple(divisors)

    @property
    def depth(self) -> int:
        return len(self.divisors)

    def share(self, score: float, level: int) -> float:
        return score / self.divisors[level]


class Scorer:
    """Scores one document tree.  Create one per extraction attempt."""

    def __init__(
        self,
        *,
        classifier: Classifier = CLASSIFIER,
        weight_classes: bool = True,
        policy: PropagationPolicy | None = None,
        cache: NodeCache | None = None,
    ) -> None:
        self.classifier = classifier
        self.weight_classes = weight_classes
        self.policy = policy or PropagationPolicy()
        self.cache = cache or NodeCache()
        self.table = ScoreTable()

    # ------------------------------------------------------------------
    # Node initialisation
    # ------------------------------------------------------------------

    def class_weight(self, node: Tag) -> int:
        if not self.weight_classes:
            return 0
        return self.classifier.class_weight(node)

    def initialize_node(self, node: Tag) -> ScoreRecord | None:
        """Create the score record for *node* from its tag and class weight."""
        if node.name in INELIGIBLE_TAGS:
            return None
        record = self.table.get(node)
        if record is not None:
            return record
        score = _TAG_WEIGHTS.get(node.name, 0) + self.class_weight(node)
        return self.table.add(
            ScoreRecord(
                node=node,
                tag=node.name,
                class_string=class_and_id(node),
                content_score=float(score),
            ),
        )

    # ------------------------------------------------------------------
    # Paragraph scoring
    # ------------------------------------------------------------------

    def base_score(self, node: Tag) -> float | None:
        """Score of *node*'s own text, or None if it is too short to count."""
        text = self.cache.inner_text(node)
        if len(text) < MIN_PARAGRAPH_LENGTH:
            return None
        score = 1.0
        score += len(COMMAS_RE.split(text))
        score += min(len(text) // 100, MAX_LENGTH_BONUS)
        return score

    def score_node(self, node: Tag) -> None:
        if not isinstance(node.parent, Tag) or isinstance(node.parent, BeautifulSoup):
            return
        score = self.base_score(node)
        if score is None:
            return
        # The node keeps its own score but only its ancestors compete
        own = self.initialize_node(node)
        if own is not None:
            own.content_score += score
        ancestors = get_node_ancestors(node, self.policy.depth)
        for level, ancestor in enumerate(ancestors):
            # The root element has no element parent and never competes
            if not isinstance(ancestor.parent, Tag) or isinstance(ancestor.parent, BeautifulSoup):
                continue
            record = self.initialize_node(ancestor)
            if record is None:
                continue
            record.is_candidate = True
            record.content_score += self.policy.share(score, level)

    def score_document(self, root: Tag) -> ScoreTable:
        """Score every scoreable node under *root*; return the score table."""
        for node in root.find_all(list(SCOREABLE_TAGS)):
            self.score_node(node)
        logger.debug("Scored %d candidate nodes", len(self.table.candidates()))
        return self.table
