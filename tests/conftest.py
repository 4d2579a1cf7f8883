"""Shared pytest fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def _read_fixture(name: str) -> str:
    return (FIXTURES_DIR / name).read_text(encoding="utf-8")


@pytest.fixture
def article_html() -> str:
    return _read_fixture("article.html")


@pytest.fixture
def plain_article_html() -> str:
    return _read_fixture("plain_article.html")


@pytest.fixture
def jsonld_html() -> str:
    return _read_fixture("jsonld.html")


@pytest.fixture
def byline_html() -> str:
    return _read_fixture("byline.html")


@pytest.fixture
def listing_html() -> str:
    return _read_fixture("listing.html")


@pytest.fixture
def rtl_html() -> str:
    return _read_fixture("rtl.html")


@pytest.fixture
def long_paragraph() -> str:
    """One paragraph of ordinary prose, a little over 300 characters."""
    return (
        "The committee met on Tuesday to review the proposal, and after a long "
        "discussion about costs, timing, and staffing, it agreed to fund a small "
        "pilot project in the spring. Members asked for a progress report in six "
        "months, with clear figures on attendance, spending, and feedback from the "
        "families who took part in the first sessions."
    )
