"""
Модуль для загрузки и валидации конфигурации SiteMirror.
Используется Pydantic для описания схемы и проверки данных.
"""
from __future__ import annotations

import errno
import json
import os
from pathlib import Path
from typing import Any, Literal, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

__all__ = ["MirrorConfig", "load_config"]


class MirrorConfig(BaseModel):
    """Конфигурация одного зеркала: обход, ресурсы и локальный сервер."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    output_dir: Path = Field(Path("scraped_website"), description="Корень зеркала на диске.")
    mount_path: str = Field("/scraped_website", description="Префикс, под которым сервер отдаёт зеркало.")
    assets_dir: str = Field("assets", min_length=1, description="Подпапка для картинок и скриптов.")
    host: str = Field("localhost", min_length=1, description="Адрес, на котором слушает сервер.")
    port: int = Field(3030, ge=0, le=65535, description="Порт сервера зеркала.")
    concurrency: int = Field(5, ge=1, description="Сколько страниц рендерится одновременно.")
    navigation_timeout: float = Field(30.0, gt=0, description="Таймаут загрузки страницы (секунд).")
    asset_timeout: float = Field(30.0, gt=0, description="Таймаут загрузки ресурса (секунд).")
    scroll_step: int = Field(100, ge=1, description="Шаг прокрутки в пикселях.")
    scroll_delay: float = Field(0.1, ge=0, description="Пауза между шагами прокрутки (секунд).")
    max_scroll_steps: int = Field(500, ge=0, description="Предел шагов для бесконечных лент.")
    user_agent: str = Field(
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/124.0.0.0 Safari/537.36",
        min_length=1,
        description="Заголовок User-Agent.",
    )
    renderer: Literal["browser", "http"] = Field(
        "browser", description="browser: Playwright/Chromium, http: без выполнения JS."
    )
    headless: bool = Field(True, description="Запускать браузер без окна.")

    @field_validator("mount_path", mode="before")
    def _normalize_mount(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = "/" + v.strip("/")
            if v == "/":
                raise ValueError("mount_path must not be the server root")
        return v

    @property
    def assets_root(self) -> Path:
        return self.output_dir / self.assets_dir

    @property
    def server_url(self) -> str:
        return f"http://{self.host}:{self.port}{self.mount_path}/"


_DEFAULT_CFG = Path("configs/default.yaml")


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Неправильный YAML в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень YAML должен быть mapping, получено {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"Неправильный JSON в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень JSON должен быть mapping, получено {type(data).__name__}")
    return data


def load_config(path: Union[str, Path, None] = None) -> MirrorConfig:
    """
    Читает YAML или JSON и возвращает проверенный объект MirrorConfig.
    Без пути берёт configs/default.yaml, а если его нет, значения по умолчанию.
    """
    if path is None:
        if not _DEFAULT_CFG.exists():
            return MirrorConfig()
        path_obj = _DEFAULT_CFG
    else:
        path_obj = Path(path).expanduser().resolve()
        if not path_obj.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))

    suffix = path_obj.suffix.lower()
    if suffix in (".yaml", ".yml"):
        data = _read_yaml(path_obj)
    elif suffix == ".json":
        data = _read_json(path_obj)
    else:
        raise ValueError(f"Неподдерживаемый формат конфига: {suffix}")

    return MirrorConfig(**data)
