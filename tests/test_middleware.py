import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from app.main import app
from app.middleware import RateLimitMiddleware, _client_ip, _is_event_stream, _is_static_asset


@pytest_asyncio.fixture
async def raw_client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c


@pytest_asyncio.fixture
async def limited_client():
    limited = FastAPI()

    @limited.get("/api/games")
    async def read():
        return []

    @limited.post("/api/games/{game_id}/reviews")
    async def write(game_id: str):
        return {"ok": True}

    limited.add_middleware(RateLimitMiddleware, max_requests=2)
    transport = ASGITransport(app=limited)
    async with AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c


class TestSecurityHeaders:
    @pytest.mark.asyncio
    async def test_x_content_type_options(self, raw_client):
        resp = await raw_client.get("/api/health")
        assert resp.headers.get("x-content-type-options") == "nosniff"

    @pytest.mark.asyncio
    async def test_x_frame_options(self, raw_client):
        resp = await raw_client.get("/api/health")
        assert resp.headers.get("x-frame-options") == "DENY"

    @pytest.mark.asyncio
    async def test_csp_allows_storage_images(self, raw_client):
        resp = await raw_client.get("/api/health")
        assert "https://storage.googleapis.com" in resp.headers["content-security-policy"]

    @pytest.mark.asyncio
    async def test_hsts_header(self, raw_client):
        resp = await raw_client.get("/api/health")
        assert "strict-transport-security" in resp.headers

    @pytest.mark.asyncio
    async def test_api_responses_not_cached(self, raw_client):
        resp = await raw_client.get("/api/health")
        assert resp.headers.get("cache-control") == "no-store"

    @pytest.mark.asyncio
    async def test_static_assets_cached(self, raw_client):
        resp = await raw_client.get("/css/style.css")
        assert resp.headers.get("cache-control") == "public, max-age=86400"


class TestRateLimiting:
    @pytest.mark.asyncio
    async def test_writes_are_limited(self, limited_client):
        for _ in range(2):
            resp = await limited_client.post("/api/games/g1/reviews")
            assert resp.status_code == 200
        resp = await limited_client.post("/api/games/g1/reviews")
        assert resp.status_code == 429
        assert resp.headers["retry-after"] == "60"

    @pytest.mark.asyncio
    async def test_reads_are_not_limited(self, limited_client):
        for _ in range(5):
            resp = await limited_client.get("/api/games")
            assert resp.status_code == 200

    @pytest.mark.asyncio
    async def test_limit_is_per_client(self, limited_client):
        for _ in range(2):
            await limited_client.post("/api/games/g1/reviews", headers={"x-forwarded-for": "10.0.0.1"})
        resp = await limited_client.post("/api/games/g1/reviews", headers={"x-forwarded-for": "10.0.0.2"})
        assert resp.status_code == 200

    @pytest.mark.asyncio
    async def test_forged_forwarded_entries_do_not_reset_the_limit(self, limited_client):
        statuses = []
        for i in range(4):
            resp = await limited_client.post(
                "/api/games/g1/reviews",
                headers={"x-forwarded-for": f"10.0.0.{i}, 203.0.113.9"},
            )
            statuses.append(resp.status_code)
        assert statuses == [200, 200, 429, 429]


class TestHelpers:
    def test_static_asset_detection(self):
        assert _is_static_asset("/js/app.js")
        assert not _is_static_asset("/api/games")

    def test_event_stream_detection(self):
        assert _is_event_stream("/api/games/g1/reviews/stream")
        assert not _is_event_stream("/api/games/g1/reviews")

    def test_client_ip_uses_address_appended_by_proxy(self):
        class _Req:
            headers = {"x-forwarded-for": "10.0.0.1, 203.0.113.7"}
            client = None

        assert _client_ip(_Req()) == "203.0.113.7"

    def test_client_ip_falls_back_to_peer(self):
        class _Req:
            headers = {}
            client = type("Peer", (), {"host": "192.0.2.4"})()

        assert _client_ip(_Req()) == "192.0.2.4"


class TestStaticFiles:
    @pytest.mark.asyncio
    async def test_serves_index_html(self, raw_client):
        resp = await raw_client.get("/")
        assert resp.status_code == 200
        assert "text/html" in resp.headers.get("content-type", "")

    @pytest.mark.asyncio
    async def test_serves_css(self, raw_client):
        resp = await raw_client.get("/css/style.css")
        assert resp.status_code == 200

    @pytest.mark.asyncio
    async def test_serves_js(self, raw_client):
        resp = await raw_client.get("/js/app.js")
        assert resp.status_code == 200
