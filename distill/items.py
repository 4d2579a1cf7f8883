"""Pydantic schema for extracted articles."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

# ---------------------------------------------------------------------------
# Article
# ---------------------------------------------------------------------------


class Article(BaseModel):
    """Immutable result of one successful extraction.

    Every field is optional: None means no reliable source was found.
    """

    model_config = ConfigDict(frozen=True)

    # Metadata
    title: str | None = None
    byline: str | None = None
    excerpt: str | None = None
    site_name: str | None = None
    published_time: str | None = None
    lang: str | None = None
    dir: str | None = None

    # Content
    content: str | None = None
    text_content: str | None = None
    length: int | None = None

    @field_validator("title", "byline", "excerpt", "site_name", "published_time", "lang", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @field_validator("dir")
    @classmethod
    def check_dir(cls, v: str | None) -> str | None:
        if v is not None and v not in ("ltr", "rtl", "auto"):
            raise ValueError(f"dir must be 'ltr', 'rtl' or 'auto'; got {v!r}")
        return v
