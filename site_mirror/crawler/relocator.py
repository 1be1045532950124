"""
Asset relocation: download page assets into the mirror and map remote URLs to local hrefs.
"""
from __future__ import annotations

import itertools
import posixpath
import time
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional
from urllib.parse import unquote, urlsplit

from site_mirror.config import MirrorConfig
from site_mirror.crawler.fetcher import AssetFetcher
from site_mirror.crawler.models import AssetKind, AssetRecord, FetchedAsset, RenderedPage
from site_mirror.errors import AssetFetchError
from site_mirror.logger import logger

__all__ = ("AssetRelocator", "Relocation", "image_extension")

JS_SUBDIR = "js"

_IMAGE_EXTENSIONS = (
    ("png", "png"),
    ("jpeg", "jpg"),
    ("jpg", "jpg"),
    ("gif", "gif"),
    ("webp", "webp"),
    ("svg", "svg"),
)

# process-wide, keeps image names unique across concurrently rendered pages
_tokens = itertools.count()


def image_extension(content_type: str) -> str:
    """File extension for an image response; ``jpg`` when the type is unknown."""
    content_type = content_type.lower()
    for needle, ext in _IMAGE_EXTENSIONS:
        if needle in content_type:
            return ext
    return "jpg"


@dataclass(slots=True)
class Relocation:
    """Rewrite maps produced for one page."""

    images: Dict[str, str] = field(default_factory=dict)
    scripts: Dict[str, str] = field(default_factory=dict)
    css: str = ""
    records: List[AssetRecord] = field(default_factory=list)


class AssetRelocator:
    """
    Fetches the assets of one page sequentially and stores them under the asset tree.

    One instance per page: the records it collects belong to that page.
    """

    def __init__(self, config: MirrorConfig, fetcher: AssetFetcher) -> None:
        self.config = config
        self.fetcher = fetcher
        self.records: List[AssetRecord] = []

    async def relocate_page(self, page: RenderedPage) -> Relocation:
        """Relocate images and scripts of *page* and collect its stylesheet text."""
        images = await self.relocate((img.url for img in page.images if img.url), AssetKind.IMAGE)
        scripts = await self.relocate((s.url for s in page.scripts), AssetKind.SCRIPT)
        css = await self.inline_stylesheets(s.url for s in page.stylesheets)
        return Relocation(images=images, scripts=scripts, css=css, records=list(self.records))

    async def relocate(self, urls: Iterable[str], kind: AssetKind) -> Dict[str, str]:
        """
        Download every URL of *kind* and return ``{remote url -> href}``.

        A URL that cannot be downloaded maps to itself, so the page keeps
        referencing the remote resource.
        """
        if kind is AssetKind.STYLESHEET:
            raise ValueError("stylesheets are inlined, use inline_stylesheets()")
        mapping: Dict[str, str] = {}
        for url in dict.fromkeys(urls):
            asset = await self._download(url)
            if asset is None:
                mapping[url] = url
                continue
            try:
                rel = self._store(asset, kind)
            except (OSError, ValueError) as exc:
                logger.warning("Asset could not be saved, keeping remote URL %s: %s", url, exc)
                mapping[url] = url
                continue
            self.records.append(AssetRecord(remote_url=url, local_path=rel, kind=kind))
            mapping[url] = f"{self.config.mount_path}/{rel}"
        return mapping

    async def inline_stylesheets(self, urls: Iterable[str]) -> str:
        """Concatenate stylesheet bodies, each preceded by a comment naming its source."""
        chunks: List[str] = []
        for url in dict.fromkeys(urls):
            asset = await self._download(url)
            if asset is not None:
                chunks.append(f"\n/* {url} */\n{asset.text()}")
        return "".join(chunks)

    async def _download(self, url: str) -> Optional[FetchedAsset]:
        try:
            return await self.fetcher.fetch(url)
        except AssetFetchError as exc:
            logger.warning("Asset download failed, keeping remote URL %s: %s", url, exc.reason)
            return None

    def _store(self, asset: FetchedAsset, kind: AssetKind) -> str:
        if kind is AssetKind.IMAGE:
            name = f"image_{time.time_ns()}_{next(_tokens)}.{image_extension(asset.content_type)}"
            rel = posixpath.join(self.config.assets_dir, name)
        else:
            name = posixpath.basename(unquote(urlsplit(asset.url).path))
            if not name or name in (".", ".."):
                name = f"script_{time.time_ns()}_{next(_tokens)}.js"
            rel = posixpath.join(self.config.assets_dir, JS_SUBDIR, name)
        path = self.config.output_dir / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(asset.body)
        logger.debug("Stored %s %s -> %s", kind.value, asset.url, path)
        return rel
