"""Exception taxonomy for SiteMirror.

Per-unit failures (a page, an asset) are contained where they happen;
only :class:`ScrapeFailure` aborts a whole run.
"""
from __future__ import annotations

from typing import Optional

__all__ = (
    "MirrorError",
    "InvalidURL",
    "NavigationError",
    "AssetFetchError",
    "ScrapeFailure",
    "ServerError",
    "EditError",
)


class MirrorError(Exception):
    """Base class for all SiteMirror errors."""


class InvalidURL(MirrorError, ValueError):
    """URL could not be parsed into an absolute http(s) address."""

    def __init__(self, url: object, reason: str = "unparsable URL") -> None:
        super().__init__(f"{reason}: {url!r}")
        self.url = url


class NavigationError(MirrorError):
    """A single page failed to load (timeout, network error, bad status)."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"navigation to {url} failed: {reason}")
        self.url = url
        self.reason = reason


class AssetFetchError(MirrorError):
    """A single asset could not be downloaded."""

    def __init__(self, url: str, reason: str, status: Optional[int] = None) -> None:
        super().__init__(f"asset {url} failed: {reason}")
        self.url = url
        self.reason = reason
        self.status = status


class ScrapeFailure(MirrorError):
    """Unrecoverable top-level failure, e.g. the browser engine did not start."""


class ServerError(MirrorError):
    """Mirror server could not be bound."""


class EditError(MirrorError):
    """An edit to a mirrored document could not be applied."""
