"""
Data models for the SiteMirror crawler.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True, slots=True)
class CrawlTarget:
    """Normalized page URL (no fragment, no query, no trailing slash)."""

    url: str

    def __str__(self) -> str:
        return self.url


class AssetKind(str, enum.Enum):
    IMAGE = "image"
    SCRIPT = "script"
    STYLESHEET = "stylesheet"


@dataclass(frozen=True, slots=True)
class AssetRecord:
    """One downloaded asset: where it came from and where it lives in the mirror."""

    remote_url: str
    local_path: str  # relative to the mirror root, posix separators
    kind: AssetKind


@dataclass(slots=True)
class ImageRef:
    """An ``<img>`` element as found in the rendered document."""

    src: Optional[str] = None
    srcset: Optional[str] = None
    url: Optional[str] = None  # effective absolute URL to download


@dataclass(slots=True)
class ScriptRef:
    src: str
    url: str


@dataclass(slots=True)
class StylesheetRef:
    href: str
    url: str


@dataclass(slots=True)
class RenderedPage:
    """Rendered document of one target plus everything extracted from it."""

    target: CrawlTarget
    final_url: str
    html: str
    images: List[ImageRef] = field(default_factory=list)
    scripts: List[ScriptRef] = field(default_factory=list)
    stylesheets: List[StylesheetRef] = field(default_factory=list)
    links: List[CrawlTarget] = field(default_factory=list)


@dataclass(slots=True)
class FetchedAsset:
    url: str
    body: bytes
    content_type: str = ""
    status: int = 200

    @property
    def charset(self) -> str:
        for param in self.content_type.split(";")[1:]:
            key, _, value = param.strip().partition("=")
            if key.lower() == "charset" and value:
                return value.strip("\"' ")
        return "utf-8"

    def text(self) -> str:
        try:
            return self.body.decode(self.charset, errors="replace")
        except LookupError:
            return self.body.decode("utf-8", errors="replace")
