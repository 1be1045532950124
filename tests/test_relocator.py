# File: tests/test_relocator.py
import pytest
from aiohttp import web

from site_mirror.crawler.fetcher import AssetFetcher
from site_mirror.crawler.models import AssetKind, CrawlTarget, ImageRef, RenderedPage, ScriptRef, StylesheetRef
from site_mirror.crawler.relocator import AssetRelocator, image_extension
from site_mirror.errors import AssetFetchError


def _asset_app(png_bytes: bytes) -> web.Application:
    app = web.Application()

    async def png(_):
        return web.Response(body=png_bytes, content_type="image/png")

    async def jpeg(_):
        return web.Response(body=b"\xff\xd8\xff", content_type="image/jpeg")

    async def untyped(_):
        return web.Response(body=b"???", content_type="application/octet-stream")

    async def script(_):
        return web.Response(text="console.log('app');", content_type="application/javascript")

    async def css_a(_):
        return web.Response(text="body { color: red; }", content_type="text/css")

    async def css_b(_):
        return web.Response(text="h1 { margin: 0; }", content_type="text/css")

    app.router.add_get("/logo.png", png)
    app.router.add_get("/photo", jpeg)
    app.router.add_get("/blob", untyped)
    app.router.add_get("/static/app.js", script)
    app.router.add_get("/a.css", css_a)
    app.router.add_get("/b.css", css_b)
    return app


@pytest.mark.parametrize(
    "content_type,ext",
    [("image/png", "png"), ("image/jpeg", "jpg"), ("image/webp", "webp"), ("", "jpg"), ("text/html", "jpg")],
)
def test_image_extension(content_type, ext):
    assert image_extension(content_type) == ext


@pytest.mark.asyncio()
async def test_fetch_raises_on_missing_asset(mirror_config, serve_app, png_bytes):
    base = await serve_app(_asset_app(png_bytes))
    async with AssetFetcher(mirror_config) as fetcher:
        with pytest.raises(AssetFetchError) as info:
            await fetcher.fetch(f"{base}/missing.png")
    assert info.value.status == 404


@pytest.mark.asyncio()
async def test_fetch_raises_on_unreachable_host(mirror_config, unused_tcp_port_factory):
    async with AssetFetcher(mirror_config) as fetcher:
        with pytest.raises(AssetFetchError):
            await fetcher.fetch(f"http://127.0.0.1:{unused_tcp_port_factory()}/x.png")


@pytest.mark.asyncio()
async def test_relocate_images(mirror_config, serve_app, png_bytes):
    base = await serve_app(_asset_app(png_bytes))
    urls = [f"{base}/logo.png", f"{base}/photo", f"{base}/blob", f"{base}/missing.png"]

    async with AssetFetcher(mirror_config) as fetcher:
        relocator = AssetRelocator(mirror_config, fetcher)
        mapping = await relocator.relocate(urls, AssetKind.IMAGE)

    assert mapping[f"{base}/missing.png"] == f"{base}/missing.png"
    local = [mapping[u] for u in urls[:3]]
    assert all(href.startswith("/scraped_website/assets/image_") for href in local)
    assert [href.rsplit(".", 1)[1] for href in local] == ["png", "jpg", "jpg"]
    assert len(set(local)) == 3

    stored = sorted(p.name for p in mirror_config.assets_root.iterdir())
    assert len(stored) == 3
    assert len(relocator.records) == 3
    logo = relocator.records[0]
    assert logo.kind is AssetKind.IMAGE
    assert (mirror_config.output_dir / logo.local_path).read_bytes() == png_bytes


@pytest.mark.asyncio()
async def test_relocate_scripts_keeps_basename(mirror_config, serve_app, png_bytes):
    base = await serve_app(_asset_app(png_bytes))
    async with AssetFetcher(mirror_config) as fetcher:
        mapping = await AssetRelocator(mirror_config, fetcher).relocate(
            [f"{base}/static/app.js", f"{base}/gone.js"], AssetKind.SCRIPT
        )

    assert mapping[f"{base}/static/app.js"] == "/scraped_website/assets/js/app.js"
    assert mapping[f"{base}/gone.js"] == f"{base}/gone.js"
    assert (mirror_config.assets_root / "js" / "app.js").read_text() == "console.log('app');"


@pytest.mark.asyncio()
async def test_stylesheets_are_concatenated_with_source_headers(mirror_config, serve_app, png_bytes):
    base = await serve_app(_asset_app(png_bytes))
    async with AssetFetcher(mirror_config) as fetcher:
        relocator = AssetRelocator(mirror_config, fetcher)
        css = await relocator.inline_stylesheets([f"{base}/a.css", f"{base}/404.css", f"{base}/b.css"])
        with pytest.raises(ValueError):
            await relocator.relocate([f"{base}/a.css"], AssetKind.STYLESHEET)

    assert css == f"\n/* {base}/a.css */\nbody {{ color: red; }}\n/* {base}/b.css */\nh1 {{ margin: 0; }}"
    assert not mirror_config.assets_root.exists()


@pytest.mark.asyncio()
async def test_relocate_page(mirror_config, serve_app, png_bytes):
    base = await serve_app(_asset_app(png_bytes))
    page = RenderedPage(
        target=CrawlTarget(base),
        final_url=base,
        html="",
        images=[ImageRef(src="/logo.png", url=f"{base}/logo.png"), ImageRef()],
        scripts=[ScriptRef(src="/static/app.js", url=f"{base}/static/app.js")],
        stylesheets=[StylesheetRef(href="/a.css", url=f"{base}/a.css")],
    )
    async with AssetFetcher(mirror_config) as fetcher:
        relocation = await AssetRelocator(mirror_config, fetcher).relocate_page(page)

    assert list(relocation.images) == [f"{base}/logo.png"]
    assert relocation.scripts == {f"{base}/static/app.js": "/scraped_website/assets/js/app.js"}
    assert "body { color: red; }" in relocation.css
    assert [r.kind for r in relocation.records] == [AssetKind.IMAGE, AssetKind.SCRIPT]
