# === FILE: site_mirror/cli.py ===
#!/usr/bin/env python3
"""
Точка входа для запуска SiteMirror через командную строку.

Команды:
  mirror URL  Скачать сайт в локальное зеркало и запустить сервер
  serve       Раздавать уже скачанное зеркало
  tree        Показать структуру папки зеркала (JSON)
  edit        Заменить текст в файле зеркала
  config      Показать текущую конфигурацию

Общие опции:
  --config PATH       Путь к YAML/JSON-конфигу (default: configs/default.yaml, если есть)
  --log-level LEVEL   Уровень логирования (DEBUG, INFO, ...)
  --log-file PATH     Файл для логов (stderr, если не указан)
  --log-format FORMAT Формат логирования

Дополнительно:
  --version, -v       Показать версию SiteMirror

Пример:
  site-mirror mirror https://example.com --renderer http --no-serve --pretty
"""
import asyncio
import json
import sys
from pathlib import Path

import click

from site_mirror import __version__
from site_mirror.config import load_config
from site_mirror.editor import update_html
from site_mirror.engine import MirrorEngine
from site_mirror.errors import EditError, InvalidURL, MirrorError, ScrapeFailure
from site_mirror.logger import init_logging
from site_mirror.report import describe, render_json, tree_to_dict
from site_mirror.server import MirrorServer, serve_until_stopped

CONTEXT_SETTINGS = dict(help_option_names=["--help"])


def print_error(message: str):
    click.secho(message, fg="red", err=True)
    sys.exit(1)


def _dump(data, pretty: bool) -> str:
    return json.dumps(data, ensure_ascii=False, indent=2 if pretty else None)


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, "--version", "-v", message="SiteMirror, version %(version)s")
@click.option(
    "--config", "-c", "config_path",
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Путь к файлу конфигурации YAML/JSON.",
)
@click.option(
    "--log-level", "log_level",
    default="INFO", show_default=True,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    help="Уровень логирования",
)
@click.option(
    "--log-file", "log_file",
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help="Путь к файлу логов (stderr, если не указан)",
)
@click.option(
    "--log-format", "log_format",
    default="%(asctime)s %(levelname)s %(message)s",
    show_default=True,
    help="Строка формата для логов",
)
@click.pass_context
def cli(ctx, config_path, log_level, log_file, log_format):
    """Группа команд SiteMirror CLI."""
    init_logging(
        level=log_level,
        log_file=str(log_file) if log_file else None,
        log_format=log_format,
    )
    try:
        cfg = load_config(config_path)
    except Exception as e:
        print_error(f"Ошибка загрузки конфигурации: {e}")
    ctx.ensure_object(dict)
    ctx.obj["config"] = cfg


@cli.command("mirror", context_settings=CONTEXT_SETTINGS)
@click.argument("url")
@click.option(
    "--renderer", "renderer",
    default=None,
    type=click.Choice(["browser", "http"]),
    help="Движок рендеринга (override renderer)",
)
@click.option("--port", "port", type=int, default=None, help="Порт сервера зеркала (override port)")
@click.option(
    "--output", "-o", "output_dir",
    default=None,
    type=click.Path(file_okay=False, path_type=Path),
    help="Папка зеркала (override output_dir)",
)
@click.option("--serve/--no-serve", default=True, show_default=True, help="Раздавать зеркало после обхода")
@click.option(
    "--json", "-j", "json_output",
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help="Сохранить JSON-результат в файл",
)
@click.option("--pretty", is_flag=True, help="Преформатировать JSON-вывод (отступ 2)")
@click.pass_context
def mirror(ctx, url, renderer, port, output_dir, serve, json_output, pretty):
    """Скачать сайт по URL в локальное зеркало."""
    cfg = ctx.obj["config"]
    overrides = {"renderer": renderer, "port": port, "output_dir": output_dir}
    cfg = cfg.model_copy(update={k: v for k, v in overrides.items() if v is not None})
    click.echo(f"Mirroring {url} into {cfg.output_dir}", err=True)

    async def _run():
        engine = MirrorEngine(cfg)
        try:
            result = await engine.crawl(url)
            click.echo(result.json(pretty=pretty))
            if json_output:
                saved = render_json(result, json_output)
                click.echo(f"JSON report: {saved}", err=True)
            if serve:
                click.echo(f"Website running at {result.server_url} (Ctrl+C to stop)", err=True)
                await serve_until_stopped(engine.server)
        finally:
            await engine.close()

    try:
        asyncio.run(_run())
    except InvalidURL as e:
        print_error(f"Invalid or missing URL: {e}")
    except ScrapeFailure:
        print_error("Scraping failed")
    except MirrorError as e:
        print_error(f"Ошибка: {e}")


@cli.command("serve", context_settings=CONTEXT_SETTINGS)
@click.option("--port", "port", type=int, default=None, help="Порт сервера зеркала (override port)")
@click.pass_context
def serve(ctx, port):
    """Раздавать уже скачанное зеркало до Ctrl+C."""
    cfg = ctx.obj["config"]
    if port is not None:
        cfg = cfg.model_copy(update={"port": port})
    if not cfg.output_dir.is_dir():
        print_error(f"Папка зеркала не найдена: {cfg.output_dir}")
    click.echo(f"Website running at {cfg.server_url} (Ctrl+C to stop)", err=True)
    try:
        asyncio.run(serve_until_stopped(MirrorServer(cfg)))
    except MirrorError as e:
        print_error(f"Ошибка сервера: {e}")


@cli.command("tree", context_settings=CONTEXT_SETTINGS)
@click.option("--pretty", is_flag=True, help="Преформатировать JSON-вывод (отступ 2)")
@click.pass_context
def tree(ctx, pretty):
    """Показать структуру папки зеркала в JSON."""
    cfg = ctx.obj["config"]
    nodes = describe(cfg.output_dir, skip=(cfg.assets_dir,))
    click.echo(_dump(tree_to_dict(nodes), pretty))


@cli.command("edit", context_settings=CONTEXT_SETTINGS)
@click.argument("file")
@click.argument("old_text")
@click.argument("new_text")
@click.pass_context
def edit(ctx, file, old_text, new_text):
    """Заменить OLD_TEXT на NEW_TEXT в FILE внутри зеркала."""
    cfg = ctx.obj["config"]
    try:
        result = asyncio.run(update_html(cfg.output_dir, file, old_text, new_text))
    except EditError as e:
        print_error(str(e))
    click.echo(f"Successfully updated {result.replacements} occurrence(s) in {result.file}")


@cli.command("config", context_settings=CONTEXT_SETTINGS)
@click.pass_context
def show_config(ctx):
    """Показать текущую конфигурацию в JSON."""
    cfg = ctx.obj["config"]
    click.echo(cfg.model_dump_json(indent=2))


if __name__ == "__main__":
    cli()
