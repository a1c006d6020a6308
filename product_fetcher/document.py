from __future__ import annotations

from typing import List, Optional

from bs4 import BeautifulSoup
from bs4.element import Tag


class ParsedDocument:
    """Read-only view over one fetched HTML page.

    Wraps a BeautifulSoup tree and keeps the raw markup around so callers can
    run CSS selectors, read attributes and text, and do substring checks on the
    source without touching the soup directly.
    """

    def __init__(self, html: str) -> None:
        self._html = html or ""
        self._soup = BeautifulSoup(self._html, "html.parser")

    @property
    def html(self) -> str:
        return self._html

    def select(self, selector: str) -> List[Tag]:
        return list(self._soup.select(selector))

    def select_one(self, selector: str) -> Optional[Tag]:
        return self._soup.select_one(selector)

    def attr_of(self, selector: str, name: str) -> Optional[str]:
        """Attribute of the first element matching ``selector``."""
        element = self.select_one(selector)
        if element is None:
            return None
        return self.attribute(element, name)

    def text_of(self, selector: str) -> Optional[str]:
        element = self.select_one(selector)
        if element is None:
            return None
        return self.text(element)

    def body_text(self) -> str:
        body = self.select_one("body")
        if body is not None:
            return self.text(body)
        return self._soup.get_text()

    @staticmethod
    def attribute(element: Tag, name: str) -> Optional[str]:
        value = element.get(name)
        if value is None:
            return None
        # bs4 hands back multi-valued attributes such as class/rel as lists
        if isinstance(value, list):
            return " ".join(value)
        return value

    @staticmethod
    def text(element: Tag) -> str:
        return element.get_text()
