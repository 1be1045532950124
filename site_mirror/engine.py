# File: site_mirror/engine.py
"""site_mirror.engine: Orchestration layer для зеркалирования сайта, запуска сервера и отчёта."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from site_mirror.config import MirrorConfig, load_config
from site_mirror.crawler.crawler import MirrorCrawler
from site_mirror.crawler.fetcher import AssetFetcher
from site_mirror.crawler.renderer import Renderer, create_renderer
from site_mirror.crawler.urls import normalize
from site_mirror.editor import EditResult, update_html
from site_mirror.errors import ScrapeFailure
from site_mirror.logger import logger
from site_mirror.report.folder_tree import FileNode, describe, tree_to_dict
from site_mirror.server import MirrorServer

__all__ = ["CrawlResult", "MirrorEngine"]


@dataclass(slots=True)
class CrawlResult:
    """Итог зеркалирования: число посещённых страниц, дерево файлов и адрес сервера."""

    pages_visited: int
    tree: List[FileNode] = field(default_factory=list)
    server_url: str = ""

    @property
    def message(self) -> str:
        return f"Scraped {self.pages_visited} pages successfully. Website running at {self.server_url}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "pages_visited": self.pages_visited,
            "tree": tree_to_dict(self.tree),
            "server_url": self.server_url,
        }

    def json(self, *, pretty: bool = False) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=2 if pretty else None)


class MirrorEngine:
    """Фасад для CLI и тестов: обход сайта, запуск сервера зеркала и правки файлов."""

    @staticmethod
    def load_config(path: Optional[str]) -> MirrorConfig:
        """Загружает конфиг из YAML/JSON или использует значения по умолчанию."""
        return load_config(path)

    def __init__(
        self,
        config: MirrorConfig,
        server: Optional[MirrorServer] = None,
        renderer_factory: Callable[[MirrorConfig], Renderer] = create_renderer,
    ) -> None:
        self.config = config
        self.server = server or MirrorServer(config)
        self.renderer_factory = renderer_factory
        self.last_crawler: Optional[MirrorCrawler] = None

    async def __aenter__(self) -> MirrorEngine:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def crawl(self, url: str) -> CrawlResult:
        """Зеркалирует сайт с url, поднимает сервер и возвращает CrawlResult.

        Raises InvalidURL for a bad seed and ScrapeFailure for anything that
        aborts the run; per-page and per-asset failures are only logged.
        """
        normalize(url)
        logger.info("Starting mirror of %s", url)

        # the old mirror must not be served while it is being overwritten
        await self.server.release()

        try:
            self.config.output_dir.mkdir(parents=True, exist_ok=True)
            async with self.renderer_factory(self.config) as renderer, AssetFetcher(self.config) as fetcher:
                crawler = MirrorCrawler(self.config, renderer, fetcher)
                self.last_crawler = crawler
                visited = await crawler.crawl(url)
            handle = await self.server.bind(self.config.output_dir)
        except ScrapeFailure as exc:
            logger.error("Scraping failed: %s", exc)
            raise
        except Exception as exc:
            logger.error("Scraping failed: %s", exc)
            raise ScrapeFailure("Scraping failed") from exc

        tree = describe(self.config.output_dir, skip=(self.config.assets_dir,))
        return CrawlResult(pages_visited=visited, tree=tree, server_url=handle.url)

    async def update_html(self, file: str, old_text: str, new_text: str) -> EditResult:
        """Правит файл зеркала и перезапускает сервер, если он запущен."""
        return await update_html(self.config.output_dir, file, old_text, new_text, server=self.server)

    def describe(self) -> List[FileNode]:
        return describe(self.config.output_dir, skip=(self.config.assets_dir,))

    async def close(self) -> None:
        await self.server.release()
