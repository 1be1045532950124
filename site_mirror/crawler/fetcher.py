"""
Fetcher module: the single HTTP primitive used to download page assets.
"""
from __future__ import annotations

import asyncio
from typing import Optional

from aiohttp import ClientError, ClientSession, ClientTimeout

from site_mirror.config import MirrorConfig
from site_mirror.crawler.models import FetchedAsset
from site_mirror.errors import AssetFetchError


class AssetFetcher:
    """Downloads assets over a shared aiohttp session; one attempt per asset, no retry."""

    def __init__(self, config: MirrorConfig, session: Optional[ClientSession] = None) -> None:
        self.config = config
        self.session = session
        self._owns_session = session is None

    async def __aenter__(self) -> AssetFetcher:
        if self.session is None:
            self.session = ClientSession(
                timeout=ClientTimeout(total=self.config.asset_timeout),
                headers={"User-Agent": self.config.user_agent},
                raise_for_status=False,
            )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._owns_session and self.session and not self.session.closed:
            await self.session.close()
        if self._owns_session:
            self.session = None

    async def fetch(self, url: str) -> FetchedAsset:
        """
        GET *url* and return its body.

        Raises AssetFetchError on non-2xx status, network error or timeout.
        """
        if not self.session:
            raise RuntimeError("Session not initialized")
        try:
            async with self.session.get(url) as resp:
                if not 200 <= resp.status < 300:
                    raise AssetFetchError(url, f"HTTP {resp.status}", status=resp.status)
                body = await resp.read()
                return FetchedAsset(
                    url=url,
                    body=body,
                    content_type=resp.headers.get("Content-Type", "").lower(),
                    status=resp.status,
                )
        except asyncio.TimeoutError as exc:
            raise AssetFetchError(url, "timeout") from exc
        except (ClientError, ValueError) as exc:
            # aiohttp raises ValueError/InvalidURL for malformed addresses
            raise AssetFetchError(url, str(exc) or type(exc).__name__) from exc
