"""
Extraction of images, scripts, stylesheets and internal links from rendered markup.
"""
from __future__ import annotations

import re
from typing import Iterable, List, Optional
from urllib.parse import urljoin, urlsplit

from bs4 import BeautifulSoup
from bs4.element import Tag

from site_mirror.crawler.models import CrawlTarget, ImageRef, RenderedPage, ScriptRef, StylesheetRef
from site_mirror.crawler.urls import is_same_origin, try_normalize
from site_mirror.logger import logger

__all__ = ("extract_page", "extract_links", "best_srcset_candidate", "document_base", "has_rel", "join_url")

PARSER = "html.parser"
_SRCSET_SPLIT_RE = re.compile(r"\s*,\s*")
_SKIP_SCHEMES = ("mailto:", "javascript:", "tel:", "data:")


def best_srcset_candidate(srcset: Optional[str]) -> Optional[str]:
    """
    Pick the highest-resolution candidate of a ``srcset`` value.

    Width (``800w``) and density (``2x``) descriptors are compared numerically;
    a candidate without a descriptor counts as ``1x``. On ties the later one wins.
    """
    if not srcset:
        return None
    best: Optional[str] = None
    best_score = float("-inf")
    for candidate in _SRCSET_SPLIT_RE.split(srcset.strip()):
        pieces = candidate.split()
        if not pieces:
            continue
        score = 1.0
        if len(pieces) > 1 and pieces[-1][-1:].lower() in ("w", "x"):
            try:
                score = float(pieces[-1][:-1])
            except ValueError:
                pass
        if score >= best_score:
            best, best_score = pieces[0], score
    return best


def join_url(base: str, raw: str) -> Optional[str]:
    """``urljoin`` that returns None for references it cannot parse (e.g. ``http://[broken``)."""
    try:
        return urljoin(base, raw)
    except ValueError:
        logger.debug("Dropping unparsable reference %r", raw)
        return None


def document_base(soup: BeautifulSoup, page_url: str) -> str:
    """URL against which relative references resolve (honours ``<base href>``)."""
    base = soup.find("base", href=True)
    if isinstance(base, Tag):
        href = base.get("href")
        if isinstance(href, str) and href.strip():
            return join_url(page_url, href.strip()) or page_url
    return page_url


def has_rel(tag: Tag, value: str) -> bool:
    rel = tag.get("rel") or []
    if isinstance(rel, str):
        rel = rel.split()
    return value in (r.lower() for r in rel)


def _resolve(base: str, raw: Optional[str]) -> Optional[str]:
    if not isinstance(raw, str) or not raw.strip():
        return None
    absolute = join_url(base, raw.strip())
    if absolute is None or urlsplit(absolute).scheme not in ("http", "https"):
        return None
    return absolute


def _images(soup: BeautifulSoup, base: str) -> List[ImageRef]:
    refs: List[ImageRef] = []
    for img in soup.find_all("img"):
        src = img.get("src")
        srcset = img.get("srcset")
        chosen = best_srcset_candidate(srcset) or src
        refs.append(ImageRef(src=src, srcset=srcset, url=_resolve(base, chosen)))
    return refs


def _scripts(soup: BeautifulSoup, base: str) -> List[ScriptRef]:
    refs: List[ScriptRef] = []
    for script in soup.find_all("script", src=True):
        url = _resolve(base, script.get("src"))
        if url:
            refs.append(ScriptRef(src=script["src"], url=url))
    return refs


def _stylesheets(soup: BeautifulSoup, base: str) -> List[StylesheetRef]:
    refs: List[StylesheetRef] = []
    for link in soup.find_all("link", href=True):
        if not has_rel(link, "stylesheet"):
            continue
        url = _resolve(base, link.get("href"))
        if url:
            refs.append(StylesheetRef(href=link["href"], url=url))
    return refs


def extract_links(hrefs: Iterable[str], base: str, origin: str) -> List[CrawlTarget]:
    """
    Normalize anchor hrefs and keep same-origin ones, without duplicates,
    in document order.
    """
    found: dict[CrawlTarget, None] = {}
    for raw in hrefs:
        raw = raw.strip()
        if not raw or raw.lower().startswith(_SKIP_SCHEMES):
            continue
        absolute = join_url(base, raw)
        if absolute is None or not is_same_origin(absolute, origin):
            continue
        target = try_normalize(absolute)
        if target is None:
            logger.debug("Dropping unparsable link %s", absolute)
            continue
        found.setdefault(target, None)
    return list(found)


def extract_page(target: CrawlTarget, final_url: str, html: str, origin: str) -> RenderedPage:
    """Build a :class:`RenderedPage` from the serialized document of *target*."""
    soup = BeautifulSoup(html, PARSER)
    base = document_base(soup, final_url)
    hrefs = [a["href"] for a in soup.find_all("a", href=True) if isinstance(a.get("href"), str)]
    return RenderedPage(
        target=target,
        final_url=final_url,
        html=html,
        images=_images(soup, base),
        scripts=_scripts(soup, base),
        stylesheets=_stylesheets(soup, base),
        links=extract_links(hrefs, base, origin),
    )
