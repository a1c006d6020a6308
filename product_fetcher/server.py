from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional
from urllib.parse import urlparse

from aiohttp import web

from .extractor import ExtractionPipeline
from .loader import DocumentLoader
from .utils import Settings, configure_logging, load_settings

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"

PIPELINE_KEY = web.AppKey("pipeline", ExtractionPipeline)

_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Credentials": "true",
    "Access-Control-Allow-Methods": "GET,POST,OPTIONS",
    "Access-Control-Allow-Headers": (
        "X-CSRF-Token, X-Requested-With, Accept, Accept-Version, Content-Length, "
        "Content-MD5, Content-Type, Date, X-Api-Version"
    ),
}

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def _error(status: int, error: str, message: str) -> web.Response:
    return web.json_response({"error": error, "message": message}, status=status)


@web.middleware
async def cors_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    if request.method == "OPTIONS":
        response: web.StreamResponse = web.Response(status=200)
    else:
        response = await handler(request)
    response.headers.update(_CORS_HEADERS)
    return response


@web.middleware
async def error_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    try:
        return await handler(request)
    except web.HTTPNotFound:
        return _error(404, "Not found", "The requested endpoint does not exist")
    except web.HTTPException:
        raise
    except Exception as exc:
        logger.exception("Error handling %s %s: %s", request.method, request.path, exc)
        return _error(500, "Internal server error", str(exc) or "An unexpected error occurred")


def _api_info(prefix: str) -> Dict[str, Any]:
    return {
        "message": "Product Fetcher API",
        "version": API_VERSION,
        "endpoints": {
            "GET /": "API information",
            f"GET {prefix}/health": "Health check",
            f"POST {prefix}/fetch": "Fetch product metadata",
            f"GET {prefix}/fetch": "Fetch product metadata (query param)",
        },
    }


async def index(request: web.Request) -> web.Response:
    prefix = "/api" if request.path.startswith("/api") else ""
    return web.json_response(_api_info(prefix))


async def health(request: web.Request) -> web.Response:
    return web.json_response({"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()})


def _is_valid_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return bool(parsed.scheme and parsed.netloc)


async def _url_from_body(request: web.Request) -> Optional[str]:
    if request.content_type == "application/json":
        try:
            body = await request.json()
        except json.JSONDecodeError:
            return None
        value = body.get("url") if isinstance(body, dict) else None
    else:
        form = await request.post()
        value = form.get("url")
    return value if isinstance(value, str) else None


async def _fetch_response(request: web.Request, url: Optional[str], hint: str) -> web.Response:
    if not url:
        return _error(400, "Missing required parameter: url", hint)
    if not _is_valid_url(url):
        return _error(400, "Invalid URL", "Please provide a valid product URL")
    product = await request.app[PIPELINE_KEY].extract(url)
    return web.json_response(product.as_dict())


async def fetch_get(request: web.Request) -> web.Response:
    return await _fetch_response(
        request,
        request.query.get("url"),
        "Please provide a product URL as a query parameter (?url=...)",
    )


async def fetch_post(request: web.Request) -> web.Response:
    return await _fetch_response(
        request,
        await _url_from_body(request),
        'Please provide a product URL in the request body as {"url": "..."}',
    )


def create_app(settings: Optional[Settings] = None, pipeline: Optional[ExtractionPipeline] = None) -> web.Application:
    settings = settings or Settings()
    if pipeline is None:
        loader = DocumentLoader(timeout=settings.fetch_timeout, user_agent=settings.user_agent)
        pipeline = ExtractionPipeline(loader, debug=settings.debug_extract, debug_dir=settings.debug_dir)

    app = web.Application(middlewares=[cors_middleware, error_middleware])
    app[PIPELINE_KEY] = pipeline
    for prefix in ("", "/api"):
        app.router.add_get(f"{prefix}/health", health)
        app.router.add_get(f"{prefix}/fetch", fetch_get)
        app.router.add_post(f"{prefix}/fetch", fetch_post)
    app.router.add_get("/", index)
    app.router.add_get("/api", index)
    return app


def run_server(host: Optional[str] = None, port: Optional[int] = None, debug: bool = False) -> None:
    settings = load_settings()
    configure_logging(debug or settings.debug_extract)

    host = host or settings.host
    port = port or settings.port
    logger.info("Product Fetcher API listening on http://%s:%d", host, port)
    web.run_app(create_app(settings), host=host, port=port, print=None)


if __name__ == "__main__":
    run_server()
