"""Crawler subsystem: URL normalization, rendering, asset relocation, rewriting, scheduling."""
from site_mirror.crawler.crawler import CrawlState, MirrorCrawler
from site_mirror.crawler.models import AssetKind, AssetRecord, CrawlTarget, RenderedPage
from site_mirror.crawler.urls import normalize, to_local_path

__all__ = [
    "AssetKind",
    "AssetRecord",
    "CrawlState",
    "CrawlTarget",
    "MirrorCrawler",
    "RenderedPage",
    "normalize",
    "to_local_path",
]
