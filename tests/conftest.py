"""
Product Fetcher: shared pytest fixtures

Provides:
- Page builder for small HTML documents
- In-process document loaders (static HTML / failing fetch)
"""

from __future__ import annotations

from typing import Callable, List

import pytest

from product_fetcher.document import ParsedDocument
from product_fetcher.loader import DocumentLoadError


def build_page(head: str = "", body: str = "") -> str:
    return f"<html><head>{head}</head><body>{body}</body></html>"


class StaticLoader:
    """Loader double that serves one fixed HTML string and records requested URLs."""

    def __init__(self, html: str) -> None:
        self.html = html
        self.requested: List[str] = []

    async def fetch(self, url: str) -> str:
        self.requested.append(url)
        return self.html


class FailingLoader:
    """Loader double whose fetch always fails with the given reason."""

    def __init__(self, reason: str) -> None:
        self.reason = reason

    async def fetch(self, url: str) -> str:
        raise DocumentLoadError(self.reason)


@pytest.fixture
def make_document() -> Callable[..., ParsedDocument]:
    def _make(head: str = "", body: str = "") -> ParsedDocument:
        return ParsedDocument(build_page(head, body))

    return _make


@pytest.fixture
def make_page() -> Callable[..., str]:
    return build_page


@pytest.fixture
def static_loader() -> Callable[[str], StaticLoader]:
    return StaticLoader


@pytest.fixture
def failing_loader() -> Callable[[str], FailingLoader]:
    return FailingLoader
