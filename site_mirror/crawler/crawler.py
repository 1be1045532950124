# === FILE: site_mirror/crawler/crawler.py ===
"""Планировщик обхода: очередь целей, пачки по N страниц и сохранение зеркала."""
from __future__ import annotations

import asyncio
import enum
import time
from collections import deque
from pathlib import Path
from typing import Deque, Dict, Iterable, List, Set

from site_mirror.config import MirrorConfig
from site_mirror.crawler.fetcher import AssetFetcher
from site_mirror.crawler.models import AssetRecord, CrawlTarget
from site_mirror.crawler.relocator import AssetRelocator
from site_mirror.crawler.renderer import Renderer
from site_mirror.crawler.rewriter import rewrite_document
from site_mirror.crawler.urls import normalize, origin_of, to_local_path
from site_mirror.errors import NavigationError, ScrapeFailure
from site_mirror.logger import logger

__all__ = ("CrawlState", "MirrorCrawler")


class CrawlState(str, enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    DRAINING = "draining"
    DONE = "done"


class MirrorCrawler:
    """
    Обходит страницы одного источника пачками и сохраняет их в зеркало.

    Цель попадает в ``visited`` синхронно при извлечении из очереди, до начала
    рендера, поэтому одна страница никогда не рендерится дважды.
    """

    def __init__(self, config: MirrorConfig, renderer: Renderer, fetcher: AssetFetcher) -> None:
        self.config = config
        self.renderer = renderer
        self.fetcher = fetcher
        self.concurrency: int = config.concurrency
        self.state = CrawlState.IDLE
        self.origin: str = ""
        self.visited: Set[CrawlTarget] = set()
        self.frontier: Deque[CrawlTarget] = deque()
        self.saved: Dict[CrawlTarget, Path] = {}
        self.assets: List[AssetRecord] = []
        self.in_flight = 0
        self.peak_in_flight = 0
        self._enqueued: Set[CrawlTarget] = set()
        self._limiter = asyncio.Semaphore(self.concurrency)

    async def crawl(self, seed: str) -> int:
        """Mirror everything reachable from *seed*; returns the number of visited targets."""
        if self.state is not CrawlState.IDLE:
            raise RuntimeError("MirrorCrawler instances are single-use")
        root = normalize(seed)
        self.origin = origin_of(root)
        self._enqueue([root])
        self.state = CrawlState.RUNNING
        logger.info("Старт обхода: %s", root)
        start = time.monotonic()

        while self.frontier:
            batch = self._next_batch()
            logger.debug("Dispatching batch of %d, %d left in frontier", len(batch), len(self.frontier))
            discovered = await asyncio.gather(*(self._dispatch(t) for t in batch))
            if not any(discovered) and not self.frontier:
                self.state = CrawlState.DRAINING

        self.state = CrawlState.DONE
        duration = time.monotonic() - start
        logger.info(
            "Завершено: %d посещено, %d сохранено за %.2f с",
            len(self.visited),
            len(self.saved),
            duration,
        )
        return len(self.visited)

    def _next_batch(self) -> List[CrawlTarget]:
        batch: List[CrawlTarget] = []
        while self.frontier and len(batch) < self.concurrency:
            target = self.frontier.popleft()
            if target in self.visited:
                continue
            self.visited.add(target)
            batch.append(target)
        return batch

    def _enqueue(self, targets: Iterable[CrawlTarget]) -> int:
        """Discovery contract for workers: queue targets never seen before."""
        added = 0
        for target in targets:
            if target in self._enqueued or target in self.visited:
                continue
            self._enqueued.add(target)
            self.frontier.append(target)
            added += 1
        return added

    async def _dispatch(self, target: CrawlTarget) -> int:
        async with self._limiter:
            self.in_flight += 1
            self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
            try:
                return await self._process(target)
            except NavigationError as exc:
                logger.warning("Failed %s: %s", target, exc.reason)
                return 0
            except ScrapeFailure:
                raise
            except OSError as exc:
                logger.error("Не удалось сохранить %s: %s", target, exc)
                return 0
            except Exception as exc:
                logger.exception("Failed %s: %s", target, exc)
                return 0
            finally:
                self.in_flight -= 1

    async def _process(self, target: CrawlTarget) -> int:
        page = await self.renderer.render(target, self.origin)
        added = self._enqueue(page.links)

        relocation = await AssetRelocator(self.config, self.fetcher).relocate_page(page)
        self.assets.extend(relocation.records)
        html = rewrite_document(page, relocation, self.origin, self.config.mount_path)

        path = to_local_path(self.config.output_dir, target)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(html, encoding="utf-8")
        self.saved[target] = path
        logger.info("Saved: %s -> %s", target, path)
        return added
