from __future__ import annotations

import argparse
import asyncio
import json
from typing import List, Optional

from .extractor import ExtractionPipeline
from .loader import DocumentLoader
from .server import run_server
from .utils import configure_logging, load_settings


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="product-fetcher", description="Extract product metadata from e-commerce pages.")
    parser.add_argument("--debug", action="store_true", help="enable debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    fetch = commands.add_parser("fetch", help="print the metadata for one product URL as JSON")
    fetch.add_argument("url")

    serve = commands.add_parser("serve", help="run the HTTP API")
    serve.add_argument("--host")
    serve.add_argument("--port", type=int)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    if args.command == "serve":
        run_server(host=args.host, port=args.port, debug=args.debug)
        return 0

    settings = load_settings()
    configure_logging(args.debug or settings.debug_extract)
    loader = DocumentLoader(timeout=settings.fetch_timeout, user_agent=settings.user_agent)
    pipeline = ExtractionPipeline(loader, debug=settings.debug_extract, debug_dir=settings.debug_dir)
    product = asyncio.run(pipeline.extract(args.url))
    print(json.dumps(product.as_dict(), indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
