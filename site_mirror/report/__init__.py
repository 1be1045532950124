"""site_mirror.report: структура папок зеркала и её сериализация для CLI и вызывающего кода."""

from site_mirror.report.folder_tree import FileEntry, FileNode, FolderEntry, describe, tree_to_dict
from site_mirror.report.json_report import render_json

__all__ = ["FileEntry", "FileNode", "FolderEntry", "describe", "render_json", "tree_to_dict"]
