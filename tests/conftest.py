"""Shared fixtures: sample feeds, an in-file sqlite store and mock HTTP."""

from typing import Callable, Dict, List, Optional

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from catalog_sync.db.models import Base
from catalog_sync.ingest.feed_fetcher import FeedFetcher

TICIMAX_PRODUCT = """
    <Urun>
      <UrunKartiID>{id}</UrunKartiID>
      <UrunAdi>{name}</UrunAdi>
      <OnYazi>Klasik gitar</OnYazi>
      <Aciklama><![CDATA[<p>Ladin <b>kapak</b>, maun gövde</p>]]></Aciklama>
      <Marka>Valencia</Marka>
      <Kategori>Klasik Gitar</Kategori>
      <KategoriTree>Telli Enstrumanlar/Gitar/Klasik Gitar</KategoriTree>
      <UrunUrl>/valencia-vc104-klasik-gitar</UrunUrl>
      <Resimler>
        <Resim>https://cdn.example.com/{id}-1.jpg</Resim>
      </Resimler>
      <UrunSecenek>
        <Secenek>
          <StokKodu>MAG150</StokKodu>
          <StokAdedi>3</StokAdedi>
          <SatisFiyati>11000,00</SatisFiyati>
          <IndirimliFiyat>0,00</IndirimliFiyat>
          <ParaBirimi>TL</ParaBirimi>
          <ParaBirimiKodu>TRY</ParaBirimiKodu>
        </Secenek>
      </UrunSecenek>
    </Urun>"""


def _ticimax_feed(products: List[Dict[str, str]]) -> str:
    """Build a Ticimax-style Root > Urunler > Urun document."""
    body = "".join(TICIMAX_PRODUCT.format(**p) for p in products)
    return f'<?xml version="1.0" encoding="utf-8"?>\n<Root><Urunler>{body}\n</Urunler></Root>'


@pytest.fixture
def single_product_feed() -> str:
    return _ticimax_feed([{"id": "4", "name": "Valencia VC104 Klasik Gitar"}])


@pytest.fixture
def catalog_feed() -> str:
    return _ticimax_feed([
        {"id": str(i), "name": f"Klasik Gitar Model {i}"} for i in range(1, 11)
    ])


@pytest.fixture
async def session_factory(tmp_path):
    """Session factory bound to a fresh sqlite database."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'catalog.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    try:
        yield factory
    finally:
        await engine.dispose()


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


def _make_fetcher(
    responses: Dict[str, Callable[[httpx.Request], httpx.Response]],
    requested: Optional[List[str]] = None,
    timeout: Optional[float] = 5.0,
) -> FeedFetcher:
    """
    FeedFetcher backed by httpx.MockTransport.

    Args:
        responses: URL -> handler returning a response (or raising)
        requested: Optional list collecting every requested URL in order
        timeout: Per-URL timeout; None uses the configured default
    """
    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if requested is not None:
            requested.append(url)
        if url not in responses:
            return httpx.Response(404, text="not found")
        return responses[url](request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return FeedFetcher(client=client, timeout=timeout)


def _respond(status_code: int = 200, text: str = "") -> Callable[[httpx.Request], httpx.Response]:
    return lambda request: httpx.Response(status_code, text=text)


def _connect_error(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("Connection refused", request=request)


def _read_timeout(request: httpx.Request) -> httpx.Response:
    raise httpx.ReadTimeout("Read timed out", request=request)


@pytest.fixture
def ticimax_feed():
    """Factory: list of {"id", "name"} dicts -> Ticimax feed document."""
    return _ticimax_feed


@pytest.fixture
def make_fetcher():
    """Factory: {url: handler} (and optional request log) -> FeedFetcher on MockTransport."""
    return _make_fetcher


@pytest.fixture
def respond():
    """Factory: (status, body) -> handler returning that response."""
    return _respond


@pytest.fixture
def connect_error():
    return _connect_error


@pytest.fixture
def read_timeout():
    return _read_timeout
