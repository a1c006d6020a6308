"""
Tests for the document loader, run against a local aiohttp test server.
"""

from __future__ import annotations

import asyncio

import pytest
from aiohttp import web

from product_fetcher.extractor import ExtractionPipeline
from product_fetcher.loader import DocumentLoader, DocumentLoadError
from product_fetcher.utils import DEFAULT_USER_AGENT

PRODUCT_PAGE = (
    "<html><head><title>Desk Lamp</title>"
    '<meta property="og:site_name" content="Lights Co">'
    '<link rel="icon" href="/favicon.ico"></head>'
    '<body><span class="price">$24.00</span></body></html>'
)


async def _product(request: web.Request) -> web.Response:
    return web.Response(text=PRODUCT_PAGE, content_type="text/html")


async def _echo_agent(request: web.Request) -> web.Response:
    return web.Response(text=request.headers.get("User-Agent", ""), content_type="text/html")


async def _missing(request: web.Request) -> web.Response:
    return web.Response(status=404, text="gone", content_type="text/html")


async def _json(request: web.Request) -> web.Response:
    return web.json_response({"price": 1})


async def _slow(request: web.Request) -> web.Response:
    await asyncio.sleep(1)
    return web.Response(text="<html></html>", content_type="text/html")


async def _redirect(request: web.Request) -> web.Response:
    raise web.HTTPFound("/product")


@pytest.fixture
async def page_server(aiohttp_server):
    app = web.Application()
    app.router.add_get("/product", _product)
    app.router.add_get("/agent", _echo_agent)
    app.router.add_get("/missing", _missing)
    app.router.add_get("/json", _json)
    app.router.add_get("/slow", _slow)
    app.router.add_get("/moved", _redirect)
    return await aiohttp_server(app)


class TestDocumentLoader:
    async def test_fetch_returns_html(self, page_server) -> None:
        html = await DocumentLoader(timeout=5).fetch(str(page_server.make_url("/product")))
        assert html == PRODUCT_PAGE

    async def test_browser_user_agent_sent(self, page_server) -> None:
        agent = await DocumentLoader(timeout=5).fetch(str(page_server.make_url("/agent")))
        assert agent == DEFAULT_USER_AGENT

    async def test_custom_user_agent(self, page_server) -> None:
        loader = DocumentLoader(timeout=5, user_agent="TestAgent/1.0")
        assert await loader.fetch(str(page_server.make_url("/agent"))) == "TestAgent/1.0"

    async def test_follows_redirects(self, page_server) -> None:
        html = await DocumentLoader(timeout=5).fetch(str(page_server.make_url("/moved")))
        assert html == PRODUCT_PAGE

    async def test_non_success_status(self, page_server) -> None:
        with pytest.raises(DocumentLoadError, match="Request failed with status code 404"):
            await DocumentLoader(timeout=5).fetch(str(page_server.make_url("/missing")))

    async def test_non_html_rejected(self, page_server) -> None:
        with pytest.raises(DocumentLoadError, match="Unsupported content type: application/json"):
            await DocumentLoader(timeout=5).fetch(str(page_server.make_url("/json")))

    async def test_timeout(self, page_server) -> None:
        loader = DocumentLoader(timeout=0.2)
        with pytest.raises(DocumentLoadError, match="timed out after 0.2 seconds"):
            await loader.fetch(str(page_server.make_url("/slow")))

    async def test_connection_refused(self) -> None:
        with pytest.raises(DocumentLoadError) as excinfo:
            await DocumentLoader(timeout=5).fetch("http://127.0.0.1:1/")
        assert str(excinfo.value)

    async def test_invalid_url(self) -> None:
        with pytest.raises(DocumentLoadError):
            await DocumentLoader(timeout=5).fetch("not-a-url")

    def test_timeout_property(self) -> None:
        assert DocumentLoader().timeout == 15.0


class TestPipelineOverHttp:
    async def test_end_to_end(self, page_server) -> None:
        url = str(page_server.make_url("/product"))
        product = await ExtractionPipeline(DocumentLoader(timeout=5)).extract(url)
        assert product.as_dict() == {
            "url": url,
            "title": "Desk Lamp",
            "price": "$24.00",
            "images": [],
            "store": "Lights Co",
            "storeLogo": str(page_server.make_url("/favicon.ico")),
        }

    async def test_unreachable_host(self) -> None:
        product = await ExtractionPipeline(DocumentLoader(timeout=5)).extract("http://127.0.0.1:1/item")
        payload = product.as_dict()
        assert payload["error"]
        assert payload["title"] is None
        assert payload["price"] is None
        assert payload["images"] == []
        assert payload["store"] is None
        assert payload["storeLogo"] is None
