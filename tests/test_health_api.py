import httpx
import pytest

from manifesto.core.context import AppContext
from manifesto.core.database import Database
from manifesto.main import create_app
from manifesto.services.identity import IdentityClient
from manifesto.services.storage import StorageClient


@pytest.fixture
async def unreachable_db_client(settings, supabase, tmp_path):
    """App whose database file lives in a directory that does not exist"""
    broken = settings.model_copy(update={"DATABASE_URL": f"sqlite:///{tmp_path / 'missing' / 'manifesto.db'}"})
    transport = httpx.MockTransport(supabase.handler)
    ctx = AppContext(
        settings=broken,
        database=Database.from_settings(broken),
        identity=IdentityClient(broken.SUPABASE_URL, broken.SUPABASE_SERVICE_ROLE_KEY, transport=transport),
        storage=StorageClient(broken.SUPABASE_URL, broken.SUPABASE_SERVICE_ROLE_KEY, transport=transport),
    )
    app = create_app(context=ctx)
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac
    await ctx.close()


async def test_health(client):
    response = await client.get("/api/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["database"] == "connected"
    assert "GET /api/health" in body["routes"]
    assert "POST /api/cart/add" in body["routes"]


async def test_test_db(client):
    response = await client.get("/api/test-db")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "success"
    assert body["data"]["dbVersion"].startswith("SQLite")
    assert body["data"]["latencyMs"] >= 0
    assert body["data"]["host"] is None


async def test_request_id_is_echoed(client):
    response = await client.get("/api/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"
    assert "X-Process-Time" in response.headers


async def test_unknown_route_uses_error_envelope(client):
    response = await client.get("/api/nope")
    assert response.status_code == 404
    assert response.json() == {"error": "Not Found"}


async def test_routes_cover_every_router(client):
    routes = (await client.get("/api/health")).json()["routes"]
    for endpoint in (
        "POST /api/auth/login",
        "POST /api/auth/resend-verification",
        "GET /api/drafts/batch",
        "PATCH /api/orders/{order_id}/cancel",
        "GET /api/library",
        "POST /api/books/counts",
        "DELETE /api/profile/address/{index}",
        "GET /api/test-db",
    ):
        assert endpoint in routes
    assert routes == sorted(routes, key=lambda endpoint: (endpoint.split(" ", 1)[1], endpoint))


async def test_health_reports_unreachable_database(unreachable_db_client):
    response = await unreachable_db_client.get("/api/health")
    assert response.status_code == 500
    body = response.json()
    assert body["status"] == "error"
    assert body["error"]
    assert "routes" not in body


async def test_test_db_reports_unreachable_database(unreachable_db_client):
    response = await unreachable_db_client.get("/api/test-db")
    assert response.status_code == 500
    body = response.json()
    assert body["status"] == "error"
    assert body["error"]
    assert "DATABASE_URL" in body["hint"]
