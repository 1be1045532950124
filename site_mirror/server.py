"""site_mirror.server: локальный HTTP-сервер зеркала и управление его жизненным циклом.

Only one listener over the mirror root may exist at a time. All changes go
through :class:`MirrorServer`, which serializes bind/rebind/release with a lock
and always closes the old listener before opening a new one.
"""
from __future__ import annotations

import asyncio
import signal
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from aiohttp import web

from site_mirror.config import MirrorConfig
from site_mirror.errors import ServerError
from site_mirror.logger import logger

__all__ = ["ServerHandle", "MirrorServer", "build_app", "install_signal_handlers", "serve_until_stopped"]


@dataclass(slots=True)
class ServerHandle:
    """A bound listener serving one mirror root."""

    root: Path
    url: str
    runner: web.AppRunner
    site: web.TCPSite


def build_app(root: Union[str, Path], mount: str) -> web.Application:
    """
    aiohttp application serving *root* under *mount*.

    ``/``, ``<mount>`` and ``<mount>/`` redirect to ``<mount>/index.html``;
    a directory resolves to its ``index.html``.
    """
    root = Path(root).resolve()
    index = f"{mount}/index.html"

    async def to_index(_: web.Request) -> web.StreamResponse:
        raise web.HTTPFound(index)

    async def serve_file(request: web.Request) -> web.StreamResponse:
        tail = request.match_info["tail"]
        if not tail:
            raise web.HTTPFound(index)
        path = (root / tail).resolve()
        try:
            path.relative_to(root)
        except ValueError:
            raise web.HTTPForbidden()
        if path.is_dir():
            path = path / "index.html"
        if not path.is_file():
            raise web.HTTPNotFound()
        return web.FileResponse(path)

    app = web.Application()
    app.router.add_get("/", to_index)
    app.router.add_get(mount, to_index)
    app.router.add_get(mount + "/{tail:.*}", serve_file)
    return app


class MirrorServer:
    """Owns the single mirror listener of the process."""

    def __init__(self, config: MirrorConfig) -> None:
        self.config = config
        self._handle: Optional[ServerHandle] = None
        self._lock = asyncio.Lock()

    @property
    def handle(self) -> Optional[ServerHandle]:
        return self._handle

    @property
    def is_bound(self) -> bool:
        return self._handle is not None

    @property
    def url(self) -> Optional[str]:
        return self._handle.url if self._handle else None

    async def bind(self, root: Union[str, Path, None] = None) -> ServerHandle:
        """Serve *root* (default: the configured output dir), closing any previous listener first."""
        async with self._lock:
            await self._close()
            return await self._open(Path(root) if root is not None else self.config.output_dir)

    async def rebind(self, root: Union[str, Path, None] = None) -> ServerHandle:
        """Close and reopen the listener, e.g. after mirror content changed on disk."""
        async with self._lock:
            if root is None:
                root = self._handle.root if self._handle else self.config.output_dir
            await self._close()
            handle = await self._open(Path(root))
            logger.info("Mirror server restarted at %s", handle.url)
            return handle

    async def release(self) -> None:
        async with self._lock:
            await self._close()

    async def _open(self, root: Path) -> ServerHandle:
        root.mkdir(parents=True, exist_ok=True)
        runner = web.AppRunner(build_app(root, self.config.mount_path))
        await runner.setup()
        site = web.TCPSite(runner, self.config.host, self.config.port)
        try:
            await site.start()
        except OSError as exc:
            await runner.cleanup()
            raise ServerError(
                f"cannot listen on {self.config.host}:{self.config.port}: {exc.strerror or exc}"
            ) from exc
        port = self.config.port or _bound_port(runner)
        url = f"http://{self.config.host}:{port}{self.config.mount_path}/"
        self._handle = ServerHandle(root=root.resolve(), url=url, runner=runner, site=site)
        logger.info("Mirror served at %s", url)
        return self._handle

    async def _close(self) -> None:
        if self._handle is None:
            return
        handle, self._handle = self._handle, None
        await handle.runner.cleanup()
        logger.debug("Mirror server at %s closed", handle.url)


def _bound_port(runner: web.AppRunner) -> int:
    for address in runner.addresses:
        if isinstance(address, tuple) and len(address) >= 2:
            return int(address[1])
    raise ServerError("listener has no TCP address")


def install_signal_handlers(stop: asyncio.Event) -> List[signal.Signals]:
    """Set *stop* on SIGINT/SIGTERM; returns the signals actually hooked."""
    loop = asyncio.get_running_loop()
    installed: List[signal.Signals] = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except (NotImplementedError, RuntimeError):
            # Windows event loops do not support signal handlers
            logger.debug("Signal handler for %s not installed", sig.name)
            continue
        installed.append(sig)
    return installed


async def serve_until_stopped(
    server: MirrorServer,
    stop: Optional[asyncio.Event] = None,
    root: Union[str, Path, None] = None,
) -> None:
    """Keep the mirror served until *stop* is set or a termination signal arrives, then release it."""
    stop = stop or asyncio.Event()
    installed = install_signal_handlers(stop)
    loop = asyncio.get_running_loop()
    try:
        if not server.is_bound:
            await server.bind(root)
        await stop.wait()
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)
        await server.release()
        logger.info("Mirror server stopped")
