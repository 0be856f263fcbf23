import pytest
from httpx import ASGITransport, AsyncClient

from conftest import FakeESClient
from tripsearch.main import app, get_search_service, parse_bbox
from tripsearch.search.service import SearchService


@pytest.fixture
def client_for():
    def make(es):
        service = SearchService(es)
        app.dependency_overrides[get_search_service] = lambda: service
        return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")

    yield make
    app.dependency_overrides.clear()


@pytest.mark.asyncio
async def test_search(client_for, es):
    async with client_for(es) as ac:
        resp = await ac.get("/search", params={"q": "easy hikes near yosemite"})

    assert resp.status_code == 200
    data = resp.json()
    assert data["query"]["intent"] == "activity"
    assert data["total"] == 1
    assert data["results"][0]["id"] == "1"
    assert data["degraded"] is False
    assert isinstance(data["suggestions"], list)


@pytest.mark.asyncio
@pytest.mark.parametrize("params", [{}, {"q": "   "}])
async def test_search_requires_query(client_for, es, params):
    async with client_for(es) as ac:
        resp = await ac.get("/search", params=params)

    assert resp.status_code == 400
    assert resp.json() == {"detail": "Query parameter 'q' is required"}
    assert es.calls == []


@pytest.mark.asyncio
async def test_search_passes_caller(client_for, es):
    async with client_for(es) as ac:
        resp = await ac.get(
            "/search",
            params={"q": "lakes", "limit": 500, "bbox": "-120,37,-119,38"},
            headers={"X-User-ID": "U1", "X-Session-ID": "s-1"},
        )

    assert resp.status_code == 200
    body = es.bodies[0]
    assert body["size"] == 100
    filters = body["query"]["bool"]["filter"]
    assert any("geo_bounding_box" in c for c in filters)
    assert {"term": {"visibility": "public"}} not in filters


@pytest.mark.asyncio
async def test_search_degraded(client_for):
    async with client_for(FakeESClient(available=False)) as ac:
        resp = await ac.get("/search", params={"q": "lakes"})

    assert resp.status_code == 200
    assert resp.json()["degraded"] is True
    assert resp.json()["results"] == []


@pytest.mark.asyncio
async def test_suggestions(client_for, es):
    async with client_for(es) as ac:
        resp = await ac.get("/search/suggestions", params={"prefix": "HIK"})
        limited = await ac.get("/search/suggestions", params={"prefix": "hik", "limit": 1})
        out_of_range = await ac.get("/search/suggestions", params={"limit": 500})

    assert resp.json() == ["hiking trails near me", "waterfall hikes", "dog-friendly hikes"]
    assert limited.json() == ["hiking trails near me"]
    assert len(out_of_range.json()) == 10


@pytest.mark.asyncio
async def test_parse(client_for, es):
    async with client_for(es) as ac:
        resp = await ac.get("/search/parse", params={"q": "easy hikes near yosemite"})
        blank = await ac.get("/search/parse", params={"q": ""})

    data = resp.json()
    assert data["intent"] == "activity"
    assert data["filters"]["difficulty_levels"] == {"kind": "difficulty_levels", "levels": ["easy"]}
    assert data["spatial"]["near"]["type"] == "circle"
    assert blank.status_code == 400
    assert es.calls == []


@pytest.mark.asyncio
async def test_health(client_for):
    async with client_for(FakeESClient(available=False)) as ac:
        resp = await ac.get("/health")

    assert resp.json() == {"status": "ok", "elasticsearch": False}


def test_parse_bbox():
    assert parse_bbox("-120,37,-119,38") == [-120.0, 37.0, -119.0, 38.0]
    assert parse_bbox("1,2,3") is None
    assert parse_bbox("a,b,c,d") is None
    assert parse_bbox(None) is None
    assert parse_bbox("nan,nan,nan,nan") is None
    assert parse_bbox("-120,37,inf,38") is None


@pytest.mark.asyncio
async def test_non_finite_bbox_is_ignored(client_for, es):
    async with client_for(es) as ac:
        resp = await ac.get("/search", params={"q": "lakes", "bbox": "nan,nan,nan,nan"})

    assert resp.status_code == 200
    assert resp.json()["degraded"] is False
    filters = es.bodies[0]["query"]["bool"]["filter"]
    assert not any("geo_bounding_box" in c for c in filters)
