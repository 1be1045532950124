# site_mirror/report/json_report.py

"""
Генерация JSON-отчёта для проекта SiteMirror.

Сериализация результата зеркалирования (или одного дерева папок) в файл.
"""
import json
from pathlib import Path
from typing import Any


def render_json(data: Any, output_path: Path | str, *, pretty: bool = True) -> Path:
    """
    Сохраняет data в формате JSON по указанному пути.

    :param data: CrawlResult, список узлов дерева или уже готовый dict/list
    :param output_path: путь к JSON-файлу
    :param pretty: отступ 2 для читаемости
    :return: Path сохранённого файла
    """
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)

    if hasattr(data, "to_dict"):
        data = data.to_dict()
    elif isinstance(data, list):
        data = [item.to_dict() if hasattr(item, "to_dict") else item for item in data]

    with output.open("w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2 if pretty else None)

    return output
