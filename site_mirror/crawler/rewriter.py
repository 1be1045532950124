"""
Rewrites a rendered document so that it navigates inside the mirror.
"""
from __future__ import annotations

from typing import Dict, Sequence
from bs4 import BeautifulSoup, Comment
from bs4.element import Tag

from site_mirror.crawler.link_extractor import PARSER, document_base, join_url
from site_mirror.crawler.models import ImageRef, RenderedPage
from site_mirror.crawler.relocator import Relocation
from site_mirror.crawler.urls import is_same_origin, mirror_href

__all__ = (
    "rewrite_document",
    "rewrite_images",
    "rewrite_scripts",
    "rewrite_anchors",
    "disable_scripts",
    "inline_styles",
    "inject_base",
)

_SKIP_SCHEMES = ("mailto:", "javascript:", "tel:", "data:")


def _head(soup: BeautifulSoup) -> Tag:
    if soup.head is not None:
        return soup.head
    head = soup.new_tag("head")
    if soup.html is not None:
        soup.html.insert(0, head)
    else:
        soup.insert(0, head)
    return head


def rewrite_images(soup: BeautifulSoup, images: Sequence[ImageRef], mapping: Dict[str, str]) -> None:
    """
    Point every ``<img>`` at its relocated copy, in document order.

    ``srcset`` is dropped afterwards (also on ``<picture><source>``) so the
    browser cannot switch back to a remote high-DPI variant.
    """
    for img, ref in zip(soup.find_all("img"), images):
        if ref.url:
            img["src"] = mapping.get(ref.url, ref.url)
        if img.has_attr("srcset"):
            del img["srcset"]
    for source in soup.select("picture > source[srcset]"):
        del source["srcset"]


def rewrite_scripts(soup: BeautifulSoup, base: str, mapping: Dict[str, str]) -> None:
    for script in soup.find_all("script", src=True):
        absolute = join_url(base, script["src"].strip())
        local = mapping.get(absolute) if absolute else None
        if local:
            script["src"] = local


def rewrite_anchors(soup: BeautifulSoup, base: str, origin: str, mount: str) -> int:
    """Rewrite same-origin anchors to mirror paths; returns how many were changed."""
    changed = 0
    for a in soup.find_all("a", href=True):
        href = a["href"].strip()
        if href.lower().startswith(_SKIP_SCHEMES):
            continue
        absolute = join_url(base, href)
        if absolute and is_same_origin(absolute, origin):
            a["href"] = mirror_href(absolute, mount)
            changed += 1
    return changed


def disable_scripts(soup: BeautifulSoup) -> None:
    """Replace every ``<script>`` with a comment holding its original markup."""
    for script in soup.find_all("script"):
        script.replace_with(Comment(str(script).replace("-->", "--&gt;")))


def inline_styles(soup: BeautifulSoup, css: str) -> None:
    if not css:
        return
    style = soup.new_tag("style")
    style.string = css
    _head(soup).append(style)


def inject_base(soup: BeautifulSoup, mount: str) -> None:
    for old in soup.find_all("base"):
        old.decompose()
    _head(soup).append(soup.new_tag("base", href=f"{mount}/"))


def rewrite_document(page: RenderedPage, relocation: Relocation, origin: str, mount: str) -> str:
    """Apply relocation maps and link rewriting to *page*; returns the final markup."""
    soup = BeautifulSoup(page.html, PARSER)
    base = document_base(soup, page.final_url)
    rewrite_images(soup, page.images, relocation.images)
    rewrite_scripts(soup, base, relocation.scripts)
    rewrite_anchors(soup, base, origin, mount)
    disable_scripts(soup)
    inline_styles(soup, relocation.css)
    inject_base(soup, mount)
    return str(soup)
