# File: tests/test_cli.py
"""Тесты для CLI (`site_mirror/cli.py`) с использованием click.testing.CliRunner.
Проверяют команды `mirror`, `tree`, `edit`, `config`, `--version`, а также обработку ошибок.
"""
import importlib
import json

import pytest
from click.testing import CliRunner

from site_mirror.cli import cli
from site_mirror.engine import CrawlResult
from site_mirror.errors import InvalidURL, ScrapeFailure
from site_mirror.report import FileEntry

cli_module = importlib.import_module("site_mirror.cli")


@pytest.fixture()
def cfg_file(tmp_path):
    """Конфиг, указывающий зеркало во временную папку."""
    path = tmp_path / "config.yaml"
    path.write_text(f"output_dir: {(tmp_path / 'site').as_posix()}\nport: 4321\n", encoding="utf-8")
    return path


def _json_line(output: str) -> str:
    """Строка с JSON-результатом; остальное CLI пишет в stderr."""
    return next(line for line in output.splitlines() if line.startswith("{"))


class FakeEngine:
    """Подменяет MirrorEngine: без сети, без сервера."""

    error = None
    closed = 0

    def __init__(self, config):
        self.config = config
        self.server = None

    async def crawl(self, url):
        if FakeEngine.error is not None:
            raise FakeEngine.error
        return CrawlResult(pages_visited=2, tree=[FileEntry("index.html")], server_url=self.config.server_url)

    async def close(self):
        FakeEngine.closed += 1


@pytest.fixture(autouse=True)
def patch_engine(monkeypatch):
    FakeEngine.error = None
    FakeEngine.closed = 0
    monkeypatch.setattr(cli_module, "MirrorEngine", FakeEngine)
    return FakeEngine


def test_version_option():
    runner = CliRunner()
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "SiteMirror" in result.output


def test_show_config(cfg_file):
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(cfg_file), "config"])
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["port"] == 4321
    assert data["mount_path"] == "/scraped_website"


def test_bad_config(tmp_path):
    bad = tmp_path / "bad.yaml"
    bad.write_text("concurrency: 0", encoding="utf-8")
    result = CliRunner().invoke(cli, ["--config", str(bad), "config"])
    assert result.exit_code == 1


def test_mirror_stdout(cfg_file):
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(cfg_file), "mirror", "https://example.com", "--no-serve"])
    assert result.exit_code == 0
    data = json.loads(_json_line(result.output))
    assert data["pages_visited"] == 2
    assert data["server_url"] == "http://localhost:4321/scraped_website/"
    assert data["tree"] == [{"type": "file", "name": "index.html"}]
    assert FakeEngine.closed == 1


def test_mirror_overrides_and_json_file(cfg_file, tmp_path):
    out = tmp_path / "result.json"
    runner = CliRunner()
    result = runner.invoke(
        cli,
        ["--config", str(cfg_file), "mirror", "https://example.com", "--no-serve",
         "--port", "5555", "--json", str(out), "--pretty"],
    )
    assert result.exit_code == 0
    assert '"pages_visited": 2' in result.output
    data = json.loads(out.read_text(encoding="utf-8"))
    assert data["server_url"] == "http://localhost:5555/scraped_website/"


@pytest.mark.parametrize(
    "error, message",
    [
        (InvalidURL("nope", "scheme must be http or https"), "Invalid or missing URL"),
        (ScrapeFailure("browser engine failed to start"), "Scraping failed"),
    ],
)
def test_mirror_errors(cfg_file, error, message):
    FakeEngine.error = error
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(cfg_file), "mirror", "nope", "--no-serve"])
    assert result.exit_code == 1
    assert message in result.output
    assert FakeEngine.closed == 1


def test_tree(cfg_file, tmp_path):
    site = tmp_path / "site"
    (site / "assets").mkdir(parents=True)
    (site / "index.html").write_text("x", encoding="utf-8")
    result = CliRunner().invoke(cli, ["--config", str(cfg_file), "tree"])
    assert result.exit_code == 0
    assert json.loads(result.output) == [{"type": "file", "name": "index.html"}]


def test_edit(cfg_file, tmp_path):
    site = tmp_path / "site"
    site.mkdir()
    (site / "index.html").write_text("old old", encoding="utf-8")
    runner = CliRunner()

    result = runner.invoke(cli, ["--config", str(cfg_file), "edit", "index.html", "old", "new"])
    assert result.exit_code == 0
    assert "Successfully updated 2 occurrence(s) in index.html" in result.output
    assert (site / "index.html").read_text(encoding="utf-8") == "new new"

    result = runner.invoke(cli, ["--config", str(cfg_file), "edit", "index.html", "absent", "new"])
    assert result.exit_code == 1
    assert "not found" in result.output


def test_serve_missing_mirror(cfg_file):
    result = CliRunner().invoke(cli, ["--config", str(cfg_file), "serve"])
    assert result.exit_code == 1
