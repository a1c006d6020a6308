from __future__ import annotations

import json
import logging
import re
from typing import Callable, List, Optional, TypeVar
from urllib.parse import urljoin, urlparse

from bs4.element import Tag

from .document import ParsedDocument
from .loader import DocumentLoader, DocumentLoadError
from .platforms import Platform, detect_platform, image_selectors_for
from .utils import ProductMetadata, dump_debug_payload

logger = logging.getLogger(__name__)

T = TypeVar("T")

PRICE_NOT_FOUND_MESSAGE = "Price could not be determined from the page content."
MAX_IMAGES = 10

_CURRENCY_PRICE_REGEX = re.compile(r"[€£$¥₹]\s*\d+[\d,.\s]*")
_PLAIN_PRICE_REGEX = re.compile(r"\d+[\d,.]*")
_WHITESPACE_REGEX = re.compile(r"\s+")

_PRICE_META_SELECTORS = [
    'meta[property="product:price:amount"]',
    'meta[itemprop="price"]',
    'meta[name="price"]',
    'meta[property="og:price:amount"]',
]
_CURRENCY_META_SELECTORS = [
    'meta[property="product:price:currency"]',
    'meta[itemprop="priceCurrency"]',
    'meta[property="og:price:currency"]',
]
_PRICE_ELEMENT_SELECTORS = [
    '[itemprop="price"]',
    '[class*="price"]',
    '[id*="price"]',
    "[data-price]",
]

_META_IMAGE_SELECTORS = [
    'meta[property="og:image"]',
    'meta[property="og:image:url"]',
    'meta[property="og:image:secure_url"]',
    'meta[name="twitter:image"]',
]
_IMAGE_URL_ATTRIBUTES = ("src", "data-src", "data-lazy", "data-zoom-image", "data-image")
_DYNAMIC_IMAGE_ATTRIBUTE = "data-a-dynamic-image"
_SCHEMA_PRODUCT_IMAGE_SELECTOR = '[itemtype*="schema.org/Product"] [itemprop="image"]'
_ICON_MARKERS = (
    "logo",
    "icon",
    "sprite",
    "badge",
    "banner",
    "button",
    "/icons/",
    "favicon",
    "thumbnail",
    "avatar",
    "1x1",
    "16x16",
    "32x32",
    "64x64",
    "spacer.gif",
)

_LOGO_SELECTORS = [
    'meta[property="og:logo"]',
    'link[rel="icon"]',
    'link[rel="shortcut icon"]',
    'link[rel="apple-touch-icon"]',
    'img[class*="logo"]',
    'img[id*="logo"]',
    ".logo img",
    "#logo img",
]
_LOGO_ATTRIBUTES = ("content", "href", "src")


def first_of(*probes: Callable[[], Optional[T]]) -> Optional[T]:
    """Run probes left to right and return the first non-None result."""
    for probe in probes:
        value = probe()
        if value is not None:
            return value
    return None


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def _attr_probe(document: ParsedDocument, selector: str, name: str = "content") -> Callable[[], Optional[str]]:
    return lambda: _clean(document.attr_of(selector, name))


def _first_attribute(element: Tag, names) -> Optional[str]:
    for name in names:
        value = _clean(ParsedDocument.attribute(element, name))
        if value:
            return value
    return None


def extract_title(document: ParsedDocument) -> Optional[str]:
    return first_of(
        _attr_probe(document, 'meta[property="og:title"]'),
        _attr_probe(document, 'meta[name="twitter:title"]'),
        lambda: _clean(document.text_of("title")),
    )


def match_price_text(text: Optional[str], allow_plain: bool = True) -> Optional[str]:
    """Pull a price token out of free text.

    Whitespace runs are collapsed first. A currency-symbol prefixed amount is
    preferred; with ``allow_plain`` a bare number is accepted as a fallback.
    """
    if not text:
        return None
    collapsed = _WHITESPACE_REGEX.sub(" ", text)
    match = _CURRENCY_PRICE_REGEX.search(collapsed)
    if match:
        return _clean(match.group())
    if allow_plain:
        match = _PLAIN_PRICE_REGEX.search(collapsed)
        if match:
            return _clean(match.group())
    return None


def _price_from_meta(document: ParsedDocument) -> Optional[str]:
    for selector in _PRICE_META_SELECTORS:
        amount = _clean(document.attr_of(selector, "content"))
        if amount is None:
            continue
        currency = first_of(*(_attr_probe(document, currency_selector) for currency_selector in _CURRENCY_META_SELECTORS))
        logger.debug("Price found in meta tag %s", selector)
        return f"{currency} {amount}" if currency else amount
    return None


def _price_from_elements(document: ParsedDocument) -> Optional[str]:
    for selector in _PRICE_ELEMENT_SELECTORS:
        for element in document.select(selector):
            candidate = (
                ParsedDocument.attribute(element, "content")
                or ParsedDocument.attribute(element, "data-price")
                or ParsedDocument.text(element)
            )
            if not candidate:
                continue
            price = match_price_text(candidate)
            if price:
                logger.debug("Price found on element matching %s", selector)
                return price
    return None


def _price_from_body(document: ParsedDocument) -> Optional[str]:
    price = match_price_text(document.body_text(), allow_plain=False)
    if price:
        logger.debug("Price found in body text")
    return price


def extract_price(document: ParsedDocument) -> Optional[str]:
    return first_of(
        lambda: _price_from_meta(document),
        lambda: _price_from_elements(document),
        lambda: _price_from_body(document),
    )


def is_icon_url(url: str) -> bool:
    lowered = url.lower()
    return any(marker in lowered for marker in _ICON_MARKERS)


def decode_dynamic_image(value: Optional[str]) -> Optional[str]:
    """First URL key of a JSON ``{url: [width, height]}`` attribute, or None."""
    if not value:
        return None
    try:
        data = json.loads(value)
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    for key in data:
        cleaned = _clean(key)
        if cleaned:
            return cleaned
    return None


def _image_candidate(element: Tag, platform: Platform) -> Optional[str]:
    candidate = _first_attribute(element, _IMAGE_URL_ATTRIBUTES)
    if candidate is None and platform is Platform.AMAZON:
        candidate = decode_dynamic_image(ParsedDocument.attribute(element, _DYNAMIC_IMAGE_ATTRIBUTE))
    return candidate


class _ImageCollector:
    def __init__(self, limit: int) -> None:
        self._limit = limit
        self.images: List[str] = []

    @property
    def full(self) -> bool:
        return len(self.images) >= self._limit

    def add(self, url: Optional[str]) -> None:
        if not url or self.full or url in self.images:
            return
        self.images.append(url)


def extract_images(
    document: ParsedDocument,
    url: str,
    platform: Optional[Platform] = None,
) -> List[str]:
    if platform is None:
        platform = detect_platform(document, url)
    collector = _ImageCollector(MAX_IMAGES)

    for selector in _META_IMAGE_SELECTORS:
        collector.add(_clean(document.attr_of(selector, "content")))

    for selector in image_selectors_for(platform):
        if collector.full:
            break
        for element in document.select(selector):
            if collector.full:
                break
            candidate = _image_candidate(element, platform)
            if candidate is None:
                continue
            if is_icon_url(candidate):
                logger.debug("Skipping icon-like image %s", candidate[:100])
                continue
            collector.add(candidate)

    for element in document.select(_SCHEMA_PRODUCT_IMAGE_SELECTOR):
        if collector.full:
            break
        collector.add(_clean(ParsedDocument.attribute(element, "src")))

    return collector.images


def _store_from_hostname(url: str) -> Optional[str]:
    try:
        host = urlparse(url).hostname
    except ValueError:
        return None
    if not host:
        return None
    if host.startswith("www."):
        host = host[4:]
    label = host.split(".")[0]
    if not label:
        return None
    return label[0].upper() + label[1:]


def extract_store_name(document: ParsedDocument, url: str) -> Optional[str]:
    return first_of(
        _attr_probe(document, 'meta[property="og:site_name"]'),
        _attr_probe(document, 'meta[name="application-name"]'),
        lambda: _store_from_hostname(url),
    )


def _resolve_logo(raw: str, page_url: str) -> Optional[str]:
    try:
        return urljoin(page_url, raw)
    except ValueError:
        return raw if raw.startswith("http") else None


def _logo_probe(document: ParsedDocument, selector: str, page_url: str) -> Callable[[], Optional[str]]:
    def probe() -> Optional[str]:
        element = document.select_one(selector)
        if element is None:
            return None
        raw = _first_attribute(element, _LOGO_ATTRIBUTES)
        if raw is None:
            return None
        return _resolve_logo(raw, page_url)

    return probe


def extract_store_logo(document: ParsedDocument, url: str) -> Optional[str]:
    return first_of(*(_logo_probe(document, selector, url) for selector in _LOGO_SELECTORS))


def extract_from_html(url: str, html: str) -> ProductMetadata:
    """Run every field extractor over already-fetched HTML."""
    document = ParsedDocument(html)
    platform = detect_platform(document, url)

    product = ProductMetadata(
        url=url,
        title=extract_title(document),
        price=extract_price(document),
        images=extract_images(document, url, platform),
        store=extract_store_name(document, url),
        store_logo=extract_store_logo(document, url),
    )
    if product.price is None:
        logger.warning("No price found for %s", url)
        product.error = PRICE_NOT_FOUND_MESSAGE

    logger.info(
        "Extraction finished: platform=%s, title=%s, price=%s, images=%d",
        platform.value,
        product.title,
        product.price,
        len(product.images),
    )
    return product


class ExtractionPipeline:
    def __init__(
        self,
        loader: Optional[DocumentLoader] = None,
        debug: bool = False,
        debug_dir: str = "debug-artifacts",
    ) -> None:
        self._loader = loader or DocumentLoader()
        self._debug = debug
        self._debug_dir = debug_dir

    async def extract(self, url: str) -> ProductMetadata:
        logger.info("Starting product extraction for URL: %s", url)
        try:
            html = await self._loader.fetch(url)
        except DocumentLoadError as exc:
            logger.warning("Could not load %s: %s", url, exc)
            return ProductMetadata(url=url, error=str(exc))

        product = extract_from_html(url, html)

        if self._debug:
            try:
                dump_debug_payload(self._debug_dir, f"extract-{abs(hash(url))}", product.as_dict())
            except OSError:  # pragma: no cover - best effort debug path
                logger.exception("Failed to write debug payload")

        return product
