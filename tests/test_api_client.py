"""
Tests for the catalog HTTP client.
"""

import httpx
import pytest

from carcatalog.data.api_client import CatalogApiClient, CatalogApiError


def _client(handler, token=None):
    return CatalogApiClient("http://catalog.test/api/", token=token, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_plain_list_and_auth_header():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json=[{"id": 1, "title": "Volvo"}])

    client = _client(handler, token="secret")
    brands = await client.get_brands()
    await client.aclose()

    assert brands == [{"id": 1, "title": "Volvo"}]
    assert seen == {"path": "/api/cars/car-brands", "auth": "Bearer secret"}


@pytest.mark.asyncio
async def test_wrapped_payload_is_unwrapped():
    client = _client(lambda request: httpx.Response(200, json={"data": [{"ID": "m1"}]}))
    assert await client.get_models("Volvo") == [{"ID": "m1"}]
    await client.aclose()


@pytest.mark.asyncio
@pytest.mark.parametrize("response", [
    httpx.Response(500, text="boom"),
    httpx.Response(200, json={"message": "nope"}),
    httpx.Response(200, content=b"not json"),
])
async def test_failures_raise_catalog_error(response):
    client = _client(lambda request: response)
    with pytest.raises(CatalogApiError):
        await client.get_brands()
    await client.aclose()


@pytest.mark.asyncio
async def test_transport_error_raises_catalog_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    client = _client(handler)
    with pytest.raises(CatalogApiError, match="failed"):
        await client.get_brands()
    await client.aclose()
