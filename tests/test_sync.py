"""End-to-end tests for the sync runner with mocked HTTP and sqlite."""

from decimal import Decimal

import httpx
import pytest

from catalog_sync.db.repository import ProductRepository
from catalog_sync.worker.tasks import CatalogSyncRunner

FEED_URL = "https://feeds.example.com/urunler"
MIRROR_URL = "https://feeds.example.com/products"


@pytest.fixture
def make_runner(session_factory, make_fetcher, respond):
    """Factory: feed body (or {url: handler}) -> runner over the sqlite store."""
    def _make_runner(feed_text=None, responses=None):
        responses = responses or {FEED_URL: respond(200, feed_text)}
        return CatalogSyncRunner(
            session_factory=session_factory,
            fetcher=make_fetcher(responses),
            feed_urls=[FEED_URL, MIRROR_URL],
        )
    return _make_runner


async def stored_products(session_factory):
    async with session_factory() as session:
        return await ProductRepository(session).find_many()


@pytest.mark.asyncio
async def test_sync_writes_products(session_factory, make_runner, catalog_feed):
    result = await make_runner(catalog_feed).sync_products()

    assert result.to_dict() == {"success": True, "count": 10}
    assert result.source_url == FEED_URL

    products = await stored_products(session_factory)
    assert len(products) == 10
    assert products[0].price == Decimal("11000.00")


@pytest.mark.asyncio
async def test_sync_twice_is_idempotent(session_factory, make_runner, catalog_feed):
    first = await make_runner(catalog_feed).sync_products()
    before = await stored_products(session_factory)

    second = await make_runner(catalog_feed).sync_products()
    after = await stored_products(session_factory)

    assert first.count == second.count == 10
    assert after == before


@pytest.mark.asyncio
async def test_sync_uses_fallback_url(make_runner, respond, connect_error, single_product_feed):
    runner = make_runner(responses={
        FEED_URL: connect_error,
        MIRROR_URL: respond(200, single_product_feed),
    })

    result = await runner.sync_products()

    assert result.success
    assert result.source_url == MIRROR_URL
    assert result.count == 1


@pytest.mark.asyncio
async def test_one_failed_save_does_not_abort_batch(session_factory, make_runner, ticimax_feed, monkeypatch):
    feed = ticimax_feed([{"id": str(i), "name": f"Zil {i}"} for i in range(1, 12)])
    original_upsert = ProductRepository.upsert

    async def flaky_upsert(self, product):
        if product.id == "11":
            raise RuntimeError("constraint violation")
        return await original_upsert(self, product)

    monkeypatch.setattr(ProductRepository, "upsert", flaky_upsert)

    result = await make_runner(feed).sync_products()

    assert result.success
    assert result.count == 10
    assert result.failed == 1
    assert len(await stored_products(session_factory)) == 10


@pytest.mark.asyncio
async def test_nameless_products_are_not_saved(session_factory, make_runner, ticimax_feed):
    feed = ticimax_feed([
        {"id": "1", "name": "Zil"},
        {"id": "2", "name": ""},
    ])

    result = await make_runner(feed).sync_products()

    assert result.count == 1
    assert result.discarded == 1
    assert [p.id for p in await stored_products(session_factory)] == ["1"]


@pytest.mark.asyncio
async def test_stray_ampersands_do_not_fail_the_run(session_factory, make_runner, ticimax_feed):
    feed = ticimax_feed([
        {"id": "1", "name": "Dunlop & Co Pena"},
        {"id": "2", "name": "Gitar&nbsp;Teli"},
    ])

    result = await make_runner(feed).sync_products()

    assert result.to_dict() == {"success": True, "count": 2}
    names = [p.name for p in await stored_products(session_factory)]
    assert names == ["Dunlop & Co Pena", "Gitar&nbsp;Teli"]


@pytest.mark.asyncio
async def test_feed_encoding_follows_xml_declaration(session_factory, make_runner):
    xml = (
        '<?xml version="1.0" encoding="ISO-8859-9"?>'
        "<Root><Urunler><Urun>"
        "<UrunKartiID>7</UrunKartiID><UrunAdi>Çello Yayı Ğ Şş</UrunAdi>"
        "</Urun></Urunler></Root>"
    )
    body = xml.encode("iso-8859-9")

    runner = make_runner(responses={
        FEED_URL: lambda request: httpx.Response(
            200, content=body, headers={"Content-Type": "application/xml"}
        ),
    })

    result = await runner.sync_products()

    assert result.success
    stored = await stored_products(session_factory)
    assert stored[0].name == "Çello Yayı Ğ Şş"


@pytest.mark.asyncio
async def test_acquisition_failure_is_reported(make_runner, respond, connect_error):
    runner = make_runner(responses={
        FEED_URL: respond(503),
        MIRROR_URL: connect_error,
    })

    result = await runner.sync_products()

    assert result.to_dict()["success"] is False
    assert "Connection refused" in result.to_dict()["error"]


@pytest.mark.asyncio
async def test_feed_without_products_is_reported(make_runner):
    runner = make_runner("<Root><Ayarlar><Tema>koyu</Tema></Ayarlar></Root>")

    result = await runner.sync_products()

    assert result.to_dict() == {"success": False, "error": "No products found in feed"}


@pytest.mark.asyncio
async def test_preview_does_not_write(session_factory, make_runner, catalog_feed):
    products = await make_runner(catalog_feed).load_feed_products()

    assert len(products) == 10
    assert products[0].to_dict()["currency"] == "TRY"
    assert await stored_products(session_factory) == []


@pytest.mark.asyncio
async def test_feed_census(make_runner, ticimax_feed):
    feed = ticimax_feed([
        {"id": "1", "name": "Valencia Klasik Gitar"},
        {"id": "2", "name": "Yamaha Klasik Gitar"},
    ])

    census = await make_runner(feed).count_feed_products()

    assert census.total == 2
    assert census.by_category == {"Klasik Gitar": 2}
    assert census.by_section == {"gitar": 2}
    assert census.to_dict()["source_url"] == FEED_URL
