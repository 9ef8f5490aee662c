"""
Integration tests for the catalog REST API.

Tests verify:
- Session creation runs the first load and returns the read model
- Query, advance, reset, refetch and focus endpoints drive the session
- Unknown sessions and invalid input are rejected
"""

import httpx
import pytest
from fastapi.testclient import TestClient

from carcatalog.api import server
from carcatalog.core.session import CatalogSession
from carcatalog.utils.platform import PlatformFacts


def _brands(count):
    countries = ["Germany", "Italy", "USA"]
    return [
        {"id": f"b{i}", "title": f"Brand {i:03d}", "country": countries[i % 3], "brandimage": f"https://cdn.example.com/{i}.png"}
        for i in range(count)
    ]


@pytest.fixture
def api_calls():
    return []


@pytest.fixture
def client(config, api_calls):
    def api(request):
        api_calls.append(request.url.path)
        return httpx.Response(200, json=_brands(45))

    def images(request):
        return httpx.Response(200, content=b"png")

    def factory():
        def build(route, platform=None):
            return CatalogSession.from_config(
                route,
                config,
                platform=PlatformFacts(platform or config.platform),
                api_transport=httpx.MockTransport(api),
                image_transport=httpx.MockTransport(images),
            )
        return build

    server.app.dependency_overrides[server.get_session_factory] = factory
    with TestClient(server.app) as test_client:
        yield test_client
    server.app.dependency_overrides.clear()
    server.sessions.clear()


def _create(client, **body):
    response = client.post("/sessions", json=body)
    assert response.status_code == 200, response.text
    return response.json()


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "online"


def test_create_desktop_session(client, api_calls):
    data = _create(client, route="brands")
    assert data["strategy"] == "api_only"
    assert data["status"] == "ready"
    assert data["total"] == 45
    assert len(data["records"]) == 45
    assert data["has_more"] is False
    assert data["filter_options"]["countries"] == ["Germany", "Italy", "USA"]
    assert api_calls == ["/api/cars/car-brands"]


def test_unfocused_desktop_session_waits(client, api_calls):
    data = _create(client, route="brands", focused=False)
    assert data["status"] == "loading"
    assert api_calls == []

    response = client.post(f"/sessions/{data['session_id']}/focus", json={"focused": True})
    assert response.json()["status"] == "ready"
    assert api_calls == ["/api/cars/car-brands"]


def test_mobile_advance_and_reset(client):
    data = _create(client, route="brands", platform="mobile")
    session_id = data["session_id"]
    assert data["strategy"] == "mobile_api"
    assert len(data["records"]) == 20

    lengths = []
    for _ in range(3):
        response = client.post(f"/sessions/{session_id}/advance").json()
        lengths.append((len(response["records"]), response["advanced"]))
    assert lengths == [(40, True), (45, True), (45, False)]

    response = client.post(f"/sessions/{session_id}/reset").json()
    assert response["visible_page"] == 1
    assert len(response["records"]) == 20


def test_query_resets_pagination(client):
    session_id = _create(client, route="brands", platform="mobile")["session_id"]
    client.post(f"/sessions/{session_id}/advance")

    response = client.post(f"/sessions/{session_id}/query", json={"country": "usa", "order_by": "country"})
    data = response.json()
    assert data["visible_page"] == 1
    assert data["total"] == 15
    assert [group["label"] for group in data["groups"]] == ["USA"]


def test_refetch_and_get(client, api_calls):
    session_id = _create(client, route="brands")["session_id"]
    client.post(f"/sessions/{session_id}/refetch")
    assert len(api_calls) == 2
    assert client.get(f"/sessions/{session_id}").json()["session_id"] == session_id


def test_delete_session(client):
    session_id = _create(client, route="brands")["session_id"]
    assert client.delete(f"/sessions/{session_id}").status_code == 200
    assert client.get(f"/sessions/{session_id}").status_code == 404
    assert client.delete(f"/sessions/{session_id}").status_code == 404


@pytest.mark.parametrize("body", [
    {"route": "cars"},
    {"route": "brands", "platform": "toaster"},
    {"route": "brands", "order_by": "price"},
])
def test_invalid_session_request(client, body):
    assert client.post("/sessions", json=body).status_code == 400


def test_unknown_session(client):
    assert client.post("/sessions/nope/advance").status_code == 404
