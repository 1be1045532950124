"""site_mirror.report.folder_tree: описание структуры папки зеркала."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Collection, Dict, List, Union

__all__ = ["FileEntry", "FolderEntry", "FileNode", "describe", "tree_to_dict"]


@dataclass(frozen=True, slots=True)
class FileEntry:
    name: str

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "file", "name": self.name}


@dataclass(frozen=True, slots=True)
class FolderEntry:
    name: str
    children: List["FileNode"] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "folder",
            "name": self.name,
            "children": [child.to_dict() for child in self.children],
        }


FileNode = Union[FileEntry, FolderEntry]


def describe(root: Union[str, Path], skip: Collection[str] = ("assets",)) -> List[FileNode]:
    """Рекурсивно обходит root и возвращает дерево файлов, пропуская папки из skip.

    Entries are sorted by name. *skip* applies at every level, as the asset
    directory is an artifact of relocation, not navigable content.
    """
    root = Path(root)
    if not root.is_dir():
        return []
    nodes: List[FileNode] = []
    for entry in sorted(root.iterdir(), key=lambda p: p.name):
        if entry.name in skip:
            continue
        if entry.is_dir():
            nodes.append(FolderEntry(entry.name, describe(entry, skip)))
        else:
            nodes.append(FileEntry(entry.name))
    return nodes


def tree_to_dict(tree: List[FileNode]) -> List[Dict[str, Any]]:
    return [node.to_dict() for node in tree]
