import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

from typing import Any
from urllib.parse import parse_qs

import httpx
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.deps import get_db, get_soil_providers
from app.core.security import create_access_token
from app.db.base import Base
from app.main import app
from app.models import PipelineRun, SoilCacheEntry  # noqa: F401
from app.schemas.soil import GeoJSONPolygon
from app.services.soil.providers.ssurgo import UsdaSsurgoProvider
from app.services.soil.sda_client import SdaClient

# ── Canned SDA responses (format=JSON rows are positional) ───────────────────

MAP_UNITS_TABLE = {"Table": [
    ["123456", "DrA", "Drummer silty clay loam, 0 to 2 percent slopes", "Consociation",
     "All areas are prime farmland"],
    ["123457", "FlB", "Flanagan silt loam, 2 to 5 percent slopes", "Consociation",
     "Prime farmland if drained"],
]}

ACRES_TABLE = {"Table": [["123456", "12.5"], ["123457", "7.25"]]}

COMPONENTS_TABLE = {"Table": [
    ["c1", "123456", "Drummer", "Series", "90", "1", "Poorly drained", "B/D",
     "Mollisols", "Typic Endoaquolls", "2", "w"],
    ["c2", "123457", "Flanagan", "Series", "85", "3", "Somewhat poorly drained", "C/D",
     "Mollisols", "Aquic Argiudolls", "1", None],
    ["c3", "123457", "Drummer", "Series", "10", "1", "Poorly drained", "B/D",
     "Mollisols", "Typic Endoaquolls", "2", "w"],
    ["c4", "123456", "Catlin", "Series", "10", "4", "Moderately well drained", "B",
     "Mollisols", "Oxyaquic Argiudolls", "2", "e"],
]}

HORIZONS_TABLE = {"Table": [
    ["c1", "Bg", "46", "112", "8", "60", "32", "1", "6.8", "9", "0.18", "25"],
    ["c1", "Ap", "0", "18", "6", "62", "32", "5", "6.3", "9", "0.22", "32"],
    ["c1", "A", "18", "46", "6", "62", "32", "3.5", "6.5", "9", "0.2", "29"],
    ["c4", "Ap", "0", "20", "10", "65", "25", "3", "", "9", "0.21", "20"],
]}

GEOMETRIES_TABLE = {"Table": [
    ["123456", "DrA", "Drummer silty clay loam",
     "POLYGON ((-88.2 40.1, -88.19 40.1, -88.19 40.11, -88.2 40.1))"],
    ["123457", "FlB", "Flanagan silt loam",
     "MULTIPOLYGON (((-88.21 40.1, -88.2 40.1, -88.2 40.11, -88.21 40.1)), ((-88.3 40.2, -88.29 40.2, -88.29 40.21, -88.3 40.2)))"],
    ["123458", "XxA", "Broken", "GEOMETRYCOLLECTION EMPTY"],
]}

# Illinois farm field, closed ring
FIELD_COORDINATES = [[
    [-88.205, 40.100],
    [-88.195, 40.100],
    [-88.195, 40.108],
    [-88.205, 40.108],
    [-88.205, 40.100],
]]


class SdaStub:
    """Answers SDA queries from canned tables, picked by a marker substring of the SQL."""

    URL = "https://sda.test/Tabular/post.rest"

    def __init__(self):
        self.routes: list[tuple[str, Any]] = []
        self.queries: list[str] = []

    def on(self, marker: str, payload: Any = None, status_code: int = 200, text: str | None = None) -> None:
        self.routes.insert(0, (marker, (payload, status_code, text)))

    def handler(self, request: httpx.Request) -> httpx.Response:
        form = parse_qs(request.content.decode())
        query = form["query"][0]
        self.queries.append(query)
        for marker, (payload, status_code, text) in self.routes:
            if marker in query:
                if text is not None:
                    return httpx.Response(status_code, text=text)
                return httpx.Response(status_code, json=payload)
        return httpx.Response(200, json={})

    def count(self, marker: str) -> int:
        return sum(1 for q in self.queries if marker in q)

    def client(self, timeout: float = 5.0) -> SdaClient:
        return SdaClient(self.URL, timeout=timeout, transport=httpx.MockTransport(self.handler))


@pytest.fixture
def polygon() -> GeoJSONPolygon:
    return GeoJSONPolygon(type="Polygon", coordinates=FIELD_COORDINATES)


@pytest.fixture
def sda() -> SdaStub:
    stub = SdaStub()
    stub.on("SDA_Get_Mukey_from_intersection", MAP_UNITS_TABLE)
    stub.on("area_acres", ACRES_TABLE)
    stub.on("WHERE mukey =", {"Table": [MAP_UNITS_TABLE["Table"][0]]})
    stub.on("FROM component", COMPONENTS_TABLE)
    stub.on("FROM chorizon", HORIZONS_TABLE)
    stub.on("geom_wkt", GEOMETRIES_TABLE)
    return stub


@pytest.fixture
def provider(sda: SdaStub) -> UsdaSsurgoProvider:
    return UsdaSsurgoProvider(sda.client())


@pytest_asyncio.fixture
async def session_factory():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(db: AsyncSession, provider: UsdaSsurgoProvider):
    async def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_soil_providers] = lambda: (provider,)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict:
    return {"Authorization": f"Bearer {create_access_token('42')}"}
