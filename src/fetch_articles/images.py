"""Pick the best featured image from HTML metadata and inline images."""

import logging
import re
from typing import Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

MIN_IMAGE_AREA = 90_000

EXCLUDE_PATTERNS = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"logo",
        r"icon",
        r"favicon",
        r"avatar",
        r"gravatar",
        r"emoji",
        r"badge",
        r"button",
        r"banner",
        r"ad[_-]",
        r"sponsor",
        r"tracking",
        r"pixel",
        r"1x1",
        r"\.gif$",
    )
]

LOW_QUALITY_PATTERNS = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"thumb",
        r"small",
        r"tiny",
        r"icon",
        r"avatar",
        r"logo",
        r"favicon",
        r"sprite",
        r"(?<!\d)\d{1,2}x\d{1,2}(?!\d)",
        r"[?&]w=\d{1,2}(?!\d)",
        r"[?&]h=\d{1,2}(?!\d)",
    )
]

# (name, css selector, attribute) in priority order
META_IMAGE_RULES = [
    ("og:image", 'meta[property="og:image"]', "content"),
    ("og:image:url", 'meta[property="og:image:url"]', "content"),
    ("og:image:secure_url", 'meta[property="og:image:secure_url"]', "content"),
    ("twitter:image", 'meta[name="twitter:image"]', "content"),
    ("twitter:image:src", 'meta[name="twitter:image:src"]', "content"),
    ("itemprop:image", 'meta[itemprop="image"]', "content"),
    ("image_src", 'link[rel="image_src"]', "href"),
]

ARTICLE_IMAGE_SELECTOR = (
    "article img, .article img, #article img, .content img, "
    ".entry-content img, .post-content img, main img"
)

DIMENSION_PATTERN = re.compile(r"(\d{2,4})x(\d{2,4})")
WIDTH_PARAM_PATTERN = re.compile(r"[?&]w(?:idth)?=(\d{2,4})", re.IGNORECASE)
LARGE_HINT_PATTERN = re.compile(r"large|big|full|original|hd|high", re.IGNORECASE)
MEDIUM_HINT_PATTERN = re.compile(r"medium|med", re.IGNORECASE)


def is_excluded_image(url: str) -> bool:
    """True for logos, icons, avatars, ads, tracking pixels and GIFs."""
    return any(pattern.search(url) for pattern in EXCLUDE_PATTERNS)


def is_high_quality_image(url: str) -> bool:
    """False when the URL names a thumbnail-ish asset or a tiny size."""
    if not url:
        return False
    return not any(pattern.search(url) for pattern in LOW_QUALITY_PATTERNS)


def guess_image_size(url: str) -> int:
    """Estimate an image's pixel area from hints in its URL."""
    match = DIMENSION_PATTERN.search(url)
    if match:
        return int(match.group(1)) * int(match.group(2))

    match = WIDTH_PARAM_PATTERN.search(url)
    if match:
        width = int(match.group(1))
        return width * width

    if LARGE_HINT_PATTERN.search(url):
        return 500_000
    if MEDIUM_HINT_PATTERN.search(url):
        return 200_000
    return 100_000


def _parse_dimension(value) -> int:
    if not value:
        return 0
    match = re.match(r"\s*(\d+)", str(value))
    return int(match.group(1)) if match else 0


def _image_src(img) -> Optional[str]:
    for attribute in ("src", "data-src", "data-lazy-src", "data-original"):
        value = img.get(attribute)
        if value and not value.startswith("data:"):
            return value.strip()
    return None


def _image_area(img, url: str) -> int:
    area = _parse_dimension(img.get("width")) * _parse_dimension(img.get("height"))
    return area if area > 0 else guess_image_size(url)


def _resolve(url: str, base_url: Optional[str]) -> str:
    if base_url:
        return urljoin(base_url, url)
    return url


def _largest_image(images, base_url: Optional[str]) -> Optional[str]:
    best_url = None
    best_area = 0
    for img in images:
        src = _image_src(img)
        if not src or is_excluded_image(src):
            continue
        area = _image_area(img, src)
        if area >= MIN_IMAGE_AREA and area > best_area:
            best_url = _resolve(src, base_url)
            best_area = area
    return best_url


def extract_image_url(html: Optional[str], base_url: Optional[str] = None) -> Optional[str]:
    """Return the best featured image URL found in `html`, or None.

    Order: Open Graph, Twitter Card, schema.org/link-rel metadata, the
    largest image inside an article-like container, the largest image
    anywhere. Metadata images must look high quality; inline images must
    reach MIN_IMAGE_AREA. Excluded images are never returned.
    """
    if not html:
        return None

    soup = BeautifulSoup(html, "lxml")

    for name, selector, attribute in META_IMAGE_RULES:
        tag = soup.select_one(selector)
        url = (tag.get(attribute) or "").strip() if tag else ""
        if url and is_high_quality_image(url) and not is_excluded_image(url):
            logger.debug("Image from %s: %s", name, url)
            return _resolve(url, base_url)

    url = _largest_image(soup.select(ARTICLE_IMAGE_SELECTOR), base_url)
    if url:
        return url

    return _largest_image(soup.find_all("img"), base_url)
