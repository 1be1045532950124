"""
URL normalization and URL → mirror path mapping.
"""
from __future__ import annotations

import posixpath
from pathlib import Path
from typing import Optional, Union
from urllib.parse import unquote, urlsplit, urlunsplit

from site_mirror.crawler.models import CrawlTarget
from site_mirror.errors import InvalidURL

__all__ = ("normalize", "try_normalize", "origin_of", "is_same_origin", "to_local_path", "mirror_href")

_DEFAULT_PORTS = {"http": 80, "https": 443}


def _split(raw: str):
    if not isinstance(raw, str) or not raw.strip():
        raise InvalidURL(raw, "empty URL")
    try:
        parts = urlsplit(raw.strip())
        port = parts.port
    except ValueError as exc:
        raise InvalidURL(raw, str(exc)) from exc
    scheme = parts.scheme.lower()
    host = parts.hostname
    if scheme not in _DEFAULT_PORTS or not host:
        raise InvalidURL(raw, "not an absolute http(s) URL")
    netloc = f"[{host}]" if ":" in host else host
    if port is not None and port != _DEFAULT_PORTS[scheme]:
        netloc = f"{netloc}:{port}"
    return scheme, netloc, parts


def normalize(raw: str) -> CrawlTarget:
    """
    Canonicalize *raw* into a CrawlTarget.

    Lowercases scheme and host, drops the default port, the query string,
    the fragment and trailing slashes. Raises InvalidURL for anything that is
    not an absolute http(s) URL.
    """
    scheme, netloc, parts = _split(raw)
    path = parts.path.rstrip("/")
    return CrawlTarget(urlunsplit((scheme, netloc, path, "", "")))


def try_normalize(raw: str) -> Optional[CrawlTarget]:
    """Like :func:`normalize` but returns None for unusable URLs."""
    try:
        return normalize(raw)
    except InvalidURL:
        return None


def origin_of(url: Union[str, CrawlTarget]) -> str:
    """Return ``scheme://host[:port]`` for *url*."""
    scheme, netloc, _ = _split(str(url))
    return f"{scheme}://{netloc}"


def is_same_origin(url: str, origin: str) -> bool:
    try:
        return origin_of(url) == origin
    except InvalidURL:
        return False


def _pathname(url: str) -> str:
    return urlsplit(url).path.rstrip("/") or "/index"


def to_local_path(root: Union[str, Path], target: Union[CrawlTarget, str]) -> Path:
    """Map a target to ``root/<pathname>.html``; the site root becomes ``index.html``."""
    rel = posixpath.normpath(unquote(_pathname(str(target)))).lstrip("/")
    if rel in ("", "."):
        rel = "index"
    return Path(root) / f"{rel}.html"


def mirror_href(url: str, mount: str) -> str:
    """In-mirror href for a same-origin *url*: ``<mount>/<pathname>.html[#fragment]``."""
    fragment = urlsplit(url).fragment
    return f"{mount}{_pathname(url)}.html" + (f"#{fragment}" if fragment else "")
