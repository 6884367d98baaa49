"""Long-form HTML article assembly from the original text and web research."""

from __future__ import annotations

import html
import logging
import re
from typing import Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from process_articles.models import ContentImage, ResearchResult, ResearchSource

logger = logging.getLogger(__name__)

MAX_CONTENT_IMAGES = 5
MIN_IMAGE_DIMENSION = 200
MIN_PARAGRAPH_CHARS = 50
MAX_CAPTION_CHARS = 100
MAX_LISTED_SOURCES = 5
MIN_CONTEXT_CHARS = 100

SENTENCE_PATTERN = re.compile(r"[^.!?]+[.!?]+")
AD_PATTERN = re.compile(r"ad[_-]|advertisement|sponsor|banner|promo", re.IGNORECASE)
AD_ALT_PATTERN = re.compile(r"ad[_-]|advertisement|sponsor", re.IGNORECASE)
ICON_PATTERN = re.compile(r"icon|logo|favicon|sprite|avatar|emoji", re.IGNORECASE)
ICON_ALT_PATTERN = re.compile(r"icon|logo", re.IGNORECASE)
TRACKING_PATTERN = re.compile(r"pixel|tracking|analytics|1x1", re.IGNORECASE)
AD_CONTAINER_CLASSES = {"ad", "advertisement", "sponsored"}

BACKGROUND_HEADING = "Background and Context"
DETAILS_HEADING = "Key Details"
REPORTING_HEADING = "Additional Reporting"
FURTHER_HEADING = "Further Analysis"


def escape_html(text: str) -> str:
    return html.escape(text, quote=True).replace("&#x27;", "&#039;")


def split_sentences(text: str) -> list[str]:
    return [s.strip() for s in SENTENCE_PATTERN.findall(text)] or [text.strip()]


def group_sentences(text: str, size: int) -> list[str]:
    """Group sentences into paragraphs of `size`, dropping fragments under MIN_PARAGRAPH_CHARS."""
    sentences = split_sentences(text)
    paragraphs = []
    for start in range(0, len(sentences), size):
        paragraph = " ".join(sentences[start : start + size]).strip()
        if len(paragraph) > MIN_PARAGRAPH_CHARS:
            paragraphs.append(paragraph)
    return paragraphs


def _normalize_image_url(url: str) -> str:
    parsed = urlparse(url.strip())
    if parsed.scheme and parsed.netloc:
        return f"{parsed.scheme}://{parsed.netloc}{parsed.path}".lower()
    return url.split("?")[0].split("#")[0].strip().lower()


def _dimension(value) -> int:
    match = re.match(r"\s*(\d+)", str(value or ""))
    return int(match.group(1)) if match else 0


def _in_ad_container(img) -> bool:
    for parent in img.parents:
        classes = parent.get("class") if hasattr(parent, "get") else None
        if classes and AD_CONTAINER_CLASSES.intersection(classes):
            return True
    return False


def _caption_for(img) -> str:
    figure = img.find_parent("figure")
    if figure is not None:
        figcaption = figure.find("figcaption")
        return figcaption.get_text(" ", strip=True) if figcaption else ""
    if img.parent is not None and img.parent.name == "p":
        sibling = img.parent.find_next_sibling()
        caption = sibling.get_text(" ", strip=True) if sibling is not None else ""
        return caption if len(caption) <= MAX_CAPTION_CHARS else ""
    return ""


def extract_content_images(original_html: str, featured_image: Optional[str]) -> list[ContentImage]:
    """Inline images worth keeping, excluding the featured image, ads, icons, trackers and small images."""
    if not original_html:
        return []

    soup = BeautifulSoup(original_html, "lxml")
    featured = _normalize_image_url(featured_image) if featured_image else None
    images: list[ContentImage] = []

    for img in soup.find_all("img"):
        src = img.get("src") or img.get("data-src") or img.get("data-lazy-src")
        if not src:
            continue
        if featured and _normalize_image_url(src) == featured:
            continue

        alt = img.get("alt") or ""
        width = _dimension(img.get("width"))
        height = _dimension(img.get("height"))

        if AD_PATTERN.search(src) or AD_ALT_PATTERN.search(alt) or _in_ad_container(img):
            continue
        if (0 < width < MIN_IMAGE_DIMENSION) or (0 < height < MIN_IMAGE_DIMENSION):
            continue
        if ICON_PATTERN.search(src) or ICON_ALT_PATTERN.search(alt):
            continue
        if TRACKING_PATTERN.search(src):
            continue

        images.append(ContentImage(url=src, alt=alt or "Article image", caption=_caption_for(img)))
        if len(images) >= MAX_CONTENT_IMAGES:
            break

    return images


def build_sections(original_text: str, research: ResearchResult) -> list[tuple[Optional[str], str]]:
    """Ordered (heading, text) sections; the first, unheaded section is the original text."""
    sections: list[tuple[Optional[str], str]] = [(None, original_text)]

    context = " ".join(research.context)
    if len(context) > MIN_CONTEXT_CHARS:
        sections.append((BACKGROUND_HEADING, context))

    if research.facts:
        sections.append((DETAILS_HEADING, " ".join(research.facts[:5])))

    original_lower = original_text.lower()
    for source in research.sources[:3]:
        unique = [
            sentence
            for sentence in split_sentences(source.content)
            if sentence[:50].lower() not in original_lower
        ]
        if unique:
            sections.append((f"{REPORTING_HEADING}: {source.title}", " ".join(unique[:3])))

    if len(research.facts) > 5:
        sections.append((FURTHER_HEADING, " ".join(research.facts[5:10])))

    return sections


def format_image(image: ContentImage) -> str:
    parts = [
        '  <figure class="article-image">',
        f'    <img src="{escape_html(image.url)}" alt="{escape_html(image.alt)}" loading="lazy" />',
    ]
    if image.caption:
        parts.append(f"    <figcaption>{escape_html(image.caption)}</figcaption>")
    parts.append("  </figure>")
    return "\n".join(parts) + "\n\n"


def _header(title: str) -> str:
    return (
        "  <header>\n"
        f'    <h1 class="article-title">{escape_html(title)}</h1>\n'
        "  </header>\n\n"
    )


def _lede(text: str) -> str:
    return f'  <p class="lede"><strong>{escape_html(text)}</strong></p>\n\n'


def format_comprehensive_article(
    title: str,
    sections: list[tuple[Optional[str], str]],
    images: list[ContentImage],
    sources: list[ResearchSource],
) -> str:
    """Render sections with a lede, interleaved images and a sources footer."""
    items: list[tuple[str, str]] = []
    for heading, text in sections:
        if heading:
            items.append(("heading", heading))
            items.extend(("paragraph", p) for p in group_sentences(text, 2))
        else:
            items.extend(("paragraph", p) for p in group_sentences(text, 3))

    out = ['<article class="news-article comprehensive">\n\n', _header(title)]

    if items and items[0][0] == "paragraph":
        out.append(_lede(items.pop(0)[1]))

    image_index = 0
    if images:
        out.append(format_image(images[0]))
        image_index = 1

    paragraph_count = 0
    for kind, text in items:
        if kind == "heading":
            out.append(f'  <h2 class="section-heading">{escape_html(text)}</h2>\n\n')
            continue
        out.append(f"  <p>{escape_html(text)}</p>\n\n")
        paragraph_count += 1
        if paragraph_count % 5 == 0 and image_index < len(images):
            out.append(format_image(images[image_index]))
            image_index += 1

    if sources:
        out.append('  <h2 class="section-heading">Sources and References</h2>\n\n')
        out.append('  <div class="sources-list">\n    <ul>\n')
        for source in sources[:MAX_LISTED_SOURCES]:
            out.append(
                f'      <li><a href="{escape_html(source.url)}" target="_blank" rel="noopener">'
                f"{escape_html(source.title)}</a></li>\n"
            )
        out.append("    </ul>\n  </div>\n\n")

    out.append("</article>")
    return "".join(out)


def create_basic_article(title: str, text: str, images: list[ContentImage]) -> str:
    """Two-sentence paragraphs with an image every third paragraph."""
    paragraphs = group_sentences(text, 2)
    out = ['<article class="news-article">\n\n', _header(title)]

    image_index = 0
    for index, paragraph in enumerate(paragraphs):
        if index == 0:
            out.append(_lede(paragraph))
            continue
        out.append(f"  <p>{escape_html(paragraph)}</p>\n\n")
        if index % 3 == 0 and image_index < len(images):
            out.append(format_image(images[image_index]))
            image_index += 1

    out.append("</article>")
    return "".join(out)


class ArticleRewriter:
    """Builds the published HTML body; uses web research when a researcher is given."""

    def __init__(self, researcher=None):
        self.researcher = researcher

    def rewrite(
        self,
        title: str,
        plain_text: str,
        original_html: str,
        featured_image: Optional[str],
        keywords: list[str],
    ) -> tuple[str, list[ContentImage]]:
        """Return (html, inline images used)."""
        images = extract_content_images(original_html, featured_image)

        if self.researcher is None:
            return create_basic_article(title, plain_text, images), images

        research = self.researcher.research(title, plain_text, keywords)
        logger.info(
            "Research for %r: %d sources, %d facts, %d context sentences",
            title[:50],
            len(research.sources),
            len(research.facts),
            len(research.context),
        )
        sections = build_sections(plain_text, research)
        return format_comprehensive_article(title, sections, images, research.sources), images
