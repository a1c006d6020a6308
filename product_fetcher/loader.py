from __future__ import annotations

import asyncio
import logging
from typing import Dict, Optional

import aiohttp

from .utils import DEFAULT_USER_AGENT

logger = logging.getLogger(__name__)


class DocumentLoadError(RuntimeError):
    """Raised when a page cannot be retrieved as HTML."""


class DocumentLoader:
    """Fetches raw page HTML with a browser-like identity and a hard timeout."""

    def __init__(self, timeout: float = 15.0, user_agent: Optional[str] = None) -> None:
        self._timeout = timeout
        self._http_timeout = aiohttp.ClientTimeout(total=timeout)
        self._headers: Dict[str, str] = {
            "User-Agent": user_agent or DEFAULT_USER_AGENT,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,image/apng,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
        }

    @property
    def timeout(self) -> float:
        return self._timeout

    async def fetch(self, url: str) -> str:
        logger.debug("Fetching %s", url)
        try:
            async with aiohttp.ClientSession(timeout=self._http_timeout, headers=self._headers) as session:
                async with session.get(url, allow_redirects=True) as response:
                    if response.status < 200 or response.status >= 300:
                        raise DocumentLoadError(f"Request failed with status code {response.status}")
                    # aiohttp reports application/octet-stream when the header is missing
                    content_type = response.content_type if "Content-Type" in response.headers else ""
                    if content_type and "html" not in content_type and not content_type.startswith("text/"):
                        raise DocumentLoadError(f"Unsupported content type: {content_type}")
                    return await response.text(errors="replace")
        except asyncio.TimeoutError as exc:
            raise DocumentLoadError(f"Request timed out after {self._timeout:g} seconds") from exc
        except aiohttp.ClientError as exc:
            message = str(exc) or type(exc).__name__
            raise DocumentLoadError(message) from exc
