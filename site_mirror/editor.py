"""site_mirror.editor: правка HTML-файлов зеркала с перезапуском сервера."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from site_mirror.errors import EditError
from site_mirror.logger import logger
from site_mirror.server import MirrorServer

__all__ = ["EditResult", "update_html"]


@dataclass(slots=True)
class EditResult:
    file: str
    replacements: int
    server_url: Optional[str] = None


def _resolve_inside(root: Path, file: str) -> Path:
    root = root.resolve()
    path = (root / file.lstrip("/")).resolve()
    try:
        path.relative_to(root)
    except ValueError:
        raise EditError(f"Path escapes the mirror root: {file}") from None
    return path


async def update_html(
    root: Union[str, Path],
    file: str,
    old_text: str,
    new_text: str,
    server: Optional[MirrorServer] = None,
) -> EditResult:
    """Заменяет все вхождения old_text на new_text в root/file.

    If *server* currently serves the mirror it is rebound afterwards, so no
    request is answered from a half-written document.
    """
    if not file or not old_text or new_text is None:
        raise EditError("file, old_text and new_text are required")

    path = _resolve_inside(Path(root), file)
    if not path.is_file():
        raise EditError(f"File not found: {file}")

    content = path.read_text(encoding="utf-8")
    count = content.count(old_text)
    if not count:
        raise EditError(f"Text {old_text!r} not found in {file}")

    tmp = path.with_name(path.name + ".tmp")
    tmp.write_text(content.replace(old_text, new_text), encoding="utf-8")
    os.replace(tmp, path)
    logger.info("Updated %s: %d replacement(s)", file, count)

    server_url = None
    if server is not None and server.is_bound:
        handle = await server.rebind()
        server_url = handle.url
    return EditResult(file=file, replacements=count, server_url=server_url)
