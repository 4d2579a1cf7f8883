"""Extraction settings for distill.

Module-level constants hold the defaults; :class:`ExtractionOptions` is the
validated, immutable bundle handed to every pass of the pipeline.
"""

from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator

# ---------------------------------------------------------------------------
# Limits
# ---------------------------------------------------------------------------
MAX_ELEMS_TO_PARSE = 0          # 0 = unbounded
NB_TOP_CANDIDATES = 5
CHAR_THRESHOLD = 500

# ---------------------------------------------------------------------------
# Class handling
# ---------------------------------------------------------------------------
CLASSES_TO_PRESERVE: tuple[str, ...] = ("page",)
KEEP_CLASSES = False
WEIGHT_CLASSES = True

# ---------------------------------------------------------------------------
# Scoring policy
# ---------------------------------------------------------------------------
# Divisor applied to a paragraph's score for each ancestor level
# (parent, grandparent, ...).  The length of the tuple bounds the walk.
ANCESTOR_DIVISORS: tuple[float, ...] = (1.0, 2.0, 6.0, 9.0, 12.0)
LINK_DENSITY_MODIFIER = 0.0

# ---------------------------------------------------------------------------
# Acceptance
# ---------------------------------------------------------------------------
MIN_WORD_COUNT = 25
MAX_BOILERPLATE_RATIO = 0.3

# ---------------------------------------------------------------------------
# Readerable pre-check
# ---------------------------------------------------------------------------
MIN_CONTENT_LENGTH = 140


class ExtractionOptions(BaseModel):
    """Caller-facing configuration.  Every field is optional."""

    model_config = ConfigDict(frozen=True)

    debug: bool = False
    max_elems_to_parse: int = Field(default=MAX_ELEMS_TO_PARSE, ge=0)
    nb_top_candidates: int = Field(default=NB_TOP_CANDIDATES, ge=1)
    char_threshold: int = Field(default=CHAR_THRESHOLD, ge=0)
    classes_to_preserve: tuple[str, ...] = CLASSES_TO_PRESERVE
    keep_classes: bool = KEEP_CLASSES
    disable_json_ld: bool = False
    allowed_video_regex: str | None = None
    link_density_modifier: float = LINK_DENSITY_MODIFIER
    min_content_length: int = Field(default=MIN_CONTENT_LENGTH, ge=0)
    weight_classes: bool = WEIGHT_CLASSES
    ancestor_divisors: tuple[float, ...] = ANCESTOR_DIVISORS
    min_word_count: int = Field(default=MIN_WORD_COUNT, ge=0)
    max_boilerplate_ratio: float = Field(default=MAX_BOILERPLATE_RATIO, ge=0.0, le=1.0)

    _video_re: re.Pattern[str] | None = PrivateAttr(default=None)

    @field_validator("classes_to_preserve", mode="before")
    @classmethod
    def split_classes(cls, v: Any) -> Any:
        if isinstance(v, str):
            return tuple(v.split())
        return v

    @field_validator("allowed_video_regex")
    @classmethod
    def check_video_regex(cls, v: str | None) -> str | None:
        if v is not None:
            try:
                re.compile(v, re.IGNORECASE)
            except re.error as exc:
                raise ValueError(f"invalid allowed_video_regex: {exc}") from exc
        return v

    @field_validator("ancestor_divisors")
    @classmethod
    def check_divisors(cls, v: tuple[float, ...]) -> tuple[float, ...]:
        if not v:
            raise ValueError("ancestor_divisors must not be empty")
        if any(d <= 0 for d in v):
            raise ValueError("ancestor_divisors must be positive")
        return v

    def model_post_init(self, __context: Any) -> None:
        if self.allowed_video_regex is not None:
            self._video_re = re.compile(self.allowed_video_regex, re.IGNORECASE)

    @property
    def video_re(self) -> re.Pattern[str] | None:
        """Compiled caller override for the allowed-video matcher."""
        return self._video_re


DEFAULT_OPTIONS = ExtractionOptions()
