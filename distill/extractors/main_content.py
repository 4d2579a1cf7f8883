"""Main content extraction with a flag-relaxing retry cascade.

Attempt 1: all heuristics on (strip unlikely nodes, weight classes, clean
           conditionally).
Attempt 2: keep unlikely-looking nodes.
Attempt 3: also ignore class/id weights.
Attempt 4: also skip conditional cleaning.

Each attempt runs preprocess, score, select and clean on a private copy of
the document.  The first attempt whose text reaches the character threshold
and reads as real prose wins; when none does there is no article.
"""

from __future__ import annotations

import copy
import enum
import logging
from typing import NamedTuple

from bs4 import BeautifulSoup, Tag

from distill.settings import CHAR_THRESHOLD, DEFAULT_OPTIONS, ExtractionOptions

from .candidates import CandidateSelector
from .classifier import CLASSIFIER, Classifier
from .cleaner import Cleaner, is_substantive, post_process, text_content
from .dom import new_tag
from .preprocess import preprocess
from .scoring import PropagationPolicy, Scorer

logger = logging.getLogger(__name__)

PAGE_ID = "readability-page-1"
PAGE_CLASS = "page"


class Flag(enum.IntFlag):
    STRIP_UNLIKELYS = 1
    WEIGHT_CLASSES = 2
    CLEAN_CONDITIONALLY = 4


# Cleared one at a time, in this order, when an attempt comes up short
_RELAX_ORDER: tuple[Flag, ...] = (
    Flag.STRIP_UNLIKELYS,
    Flag.WEIGHT_CLASSES,
    Flag.CLEAN_CONDITIONALLY,
)


class ExtractionResult(NamedTuple):
    content: str
    text_content: str
    length: int
    attempt: int
    flags: Flag


def initial_flags(options: ExtractionOptions) -> Flag:
    flags = Flag.STRIP_UNLIKELYS | Flag.WEIGHT_CLASSES | Flag.CLEAN_CONDITIONALLY
    if not options.weight_classes:
        flags &= ~Flag.WEIGHT_CLASSES
    return flags


def _relax(flags: Flag) -> Flag | None:
    for flag in _RELAX_ORDER:
        if flags & flag:
            return flags & ~flag
    return None


# ---------------------------------------------------------------------------
# One attempt
# ---------------------------------------------------------------------------

def grab_article(
    soup: BeautifulSoup,
    *,
    flags: Flag,
    options: ExtractionOptions = DEFAULT_OPTIONS,
    classifier: Classifier = CLASSIFIER,
    drop_paths: tuple[tuple[int, ...], ...] = (),
) -> Tag:
    """Run one attempt over *soup* (mutated) and return the article container.

    The container is detached from *soup* and holds a single
    ``<div id="readability-page-1" class="page">`` wrapping the content.
    """
    weight_classes = bool(flags & Flag.WEIGHT_CLASSES)

    preprocess(
        soup,
        classifier=classifier,
        strip_unlikelys=bool(flags & Flag.STRIP_UNLIKELYS),
        drop_paths=drop_paths,
    )

    scorer = Scorer(
        classifier=classifier,
        weight_classes=weight_classes,
        policy=PropagationPolicy(options.ancestor_divisors),
    )
    scorer.score_document(soup.body or soup)

    selection = CandidateSelector(
        soup,
        scorer,
        nb_top_candidates=options.nb_top_candidates,
        link_density_modifier=options.link_density_modifier,
    ).select()
    container = selection.container

    Cleaner(
        classifier=classifier,
        cache=scorer.cache,
        weight_classes=weight_classes,
        clean_conditionally=bool(flags & Flag.CLEAN_CONDITIONALLY),
        link_density_modifier=options.link_density_modifier,
        share_threshold=CHAR_THRESHOLD,
    ).prep_article(container)

    top = selection.top_candidate
    if selection.created_top_candidate and not top.decomposed and top.parent is container:
        top["id"] = PAGE_ID
        top["class"] = [PAGE_CLASS]
    else:
        page = new_tag(soup, "div", id=PAGE_ID)
        page["class"] = [PAGE_CLASS]
        for child in list(container.contents):
            page.append(child)
        container.append(page)
    return container


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def extract_main_content(
    soup: BeautifulSoup,
    *,
    options: ExtractionOptions = DEFAULT_OPTIONS,
    base_uri: str | None = None,
    classifier: Classifier | None = None,
    drop_paths: tuple[tuple[int, ...], ...] = (),
) -> ExtractionResult | None:
    """Extract the article content of *soup*, or None if there is none.

    *soup* itself is never modified; every attempt works on a copy.

    Returns an ExtractionResult namedtuple:
        content      - serialised HTML fragment
        text_content - whitespace-normalised plain text
        length       - character length of text_content
        attempt      - 1-based index of the winning attempt
        flags        - heuristics that were on for that attempt
    """
    classifier = classifier or CLASSIFIER.with_video_pattern(options.video_re)
    flags: Flag | None = initial_flags(options)
    attempt = 0

    while flags is not None:
        attempt += 1
        work = copy.copy(soup)
        container = grab_article(
            work, flags=flags, options=options, classifier=classifier, drop_paths=drop_paths,
        )
        text = text_content(container)
        if options.debug:
            logger.debug("Attempt %d (%r): %d chars", attempt, flags, len(text))

        if len(text) >= options.char_threshold:
            if is_substantive(
                text,
                min_word_count=options.min_word_count,
                max_boilerplate_ratio=options.max_boilerplate_ratio,
            ):
                post_process(
                    container,
                    base_uri=base_uri,
                    soup=work,
                    keep_classes=options.keep_classes,
                    classes_to_preserve=options.classes_to_preserve,
                )
                text = text_content(container)
                return ExtractionResult(
                    content=container.decode_contents(),
                    text_content=text,
                    length=len(text),
                    attempt=attempt,
                    flags=flags,
                )
            if options.debug:
                logger.debug("Attempt %d rejected: content is not substantive", attempt)

        flags = _relax(flags)

    if options.debug:
        logger.debug("No attempt reached %d chars", options.char_threshold)
    return None
