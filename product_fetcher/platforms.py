from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, List, Tuple
from urllib.parse import urlparse

from .document import ParsedDocument

logger = logging.getLogger(__name__)


class Platform(str, Enum):
    AMAZON = "amazon"
    EBAY = "ebay"
    ETSY = "etsy"
    WALMART = "walmart"
    TARGET = "target"
    SHOPIFY = "shopify"
    WOOCOMMERCE = "woocommerce"
    MAGENTO = "magento"
    BIGCOMMERCE = "bigcommerce"
    GENERIC = "generic"


# Checked against the lower-cased hostname, first hit wins.
_HOST_MARKERS: List[Tuple[str, Platform]] = [
    ("amazon.", Platform.AMAZON),
    ("ebay.", Platform.EBAY),
    ("etsy.", Platform.ETSY),
    ("walmart.", Platform.WALMART),
    ("target.", Platform.TARGET),
]

# (substring in lower-cased HTML, marker tag selectors)
_HTML_SIGNATURES: List[Tuple[Platform, str, List[str]]] = [
    (Platform.SHOPIFY, "shopify", ['meta[name="shopify-checkout-api-token"]']),
    (Platform.WOOCOMMERCE, "woocommerce", ['meta[name="generator"][content*="WooCommerce"]']),
    (Platform.MAGENTO, "magento", ['script[src*="mage/"]', 'script[src*="Magento_"]']),
    (Platform.BIGCOMMERCE, "bigcommerce", []),
]

PLATFORM_IMAGE_SELECTORS: Dict[Platform, List[str]] = {
    Platform.AMAZON: [
        "#landingImage",
        "#imgTagWrapperId img",
        "#main-image-container img",
        "#altImages img",
    ],
    Platform.EBAY: [
        "#icImg",
        ".ux-image-carousel-item img",
        ".ux-image-magnify__image--original",
        "#vi_main_img_fs img",
    ],
    Platform.ETSY: [
        ".listing-page-image-carousel-component img",
        "img.carousel-image",
        "img[data-listing-card-listing-image]",
    ],
    Platform.WALMART: [
        'img[data-testid="hero-image"]',
        '[data-testid="media-thumbnail"] img',
        ".prod-hero-image img",
    ],
    Platform.TARGET: [
        '[data-test="product-image"] img',
        '[data-test="image-gallery-item"] img',
    ],
    Platform.SHOPIFY: [
        ".product__media img",
        ".product-single__photo img",
        "img.product-featured-media",
        ".product-gallery img",
    ],
    Platform.WOOCOMMERCE: [
        ".woocommerce-product-gallery__image img",
        "img.wp-post-image",
    ],
    Platform.MAGENTO: [
        ".gallery-placeholder img",
        ".fotorama__stage img",
        ".product.media img",
    ],
    Platform.BIGCOMMERCE: [
        ".productView-image img",
        ".productView-thumbnail img",
    ],
    Platform.GENERIC: [
        'img[itemprop="image"]',
        'img[class*="product-image"]',
        '[class*="product-image"] img',
        '[id*="product-image"] img',
        '[class*="gallery"] img',
        ".product img",
    ],
}

_missing = [platform.value for platform in Platform if platform not in PLATFORM_IMAGE_SELECTORS]
if _missing:
    raise RuntimeError(f"Image selectors missing for platforms: {', '.join(_missing)}")


def image_selectors_for(platform: Platform) -> List[str]:
    return PLATFORM_IMAGE_SELECTORS.get(platform, PLATFORM_IMAGE_SELECTORS[Platform.GENERIC])


def _hostname(url: str) -> str:
    try:
        return (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""


def detect_platform(document: ParsedDocument, url: str) -> Platform:
    host = _hostname(url)
    for marker, platform in _HOST_MARKERS:
        if marker in host:
            logger.debug("Platform %s detected from hostname %s", platform.value, host)
            return platform

    html = document.html.lower()
    for platform, signature, marker_selectors in _HTML_SIGNATURES:
        if signature in html or any(document.select_one(selector) is not None for selector in marker_selectors):
            logger.debug("Platform %s detected from page markup", platform.value)
            return platform

    return Platform.GENERIC
