"""Shorten endpoint behavior tests."""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_shorten_via_query(client: AsyncClient, store) -> None:
    response = await client.get("/new", params={"url": "https://www.google.com"})
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["result"].startswith("https://clp.test/")
    slug = data["result"].rsplit("/", 1)[-1]
    assert store.data[f"clp:{slug}"] == "https://www.google.com"


@pytest.mark.asyncio
async def test_shorten_via_body(client: AsyncClient) -> None:
    response = await client.post("/new", json={"url": "https://www.github.com", "slug": "ghub"})
    assert response.status_code == 200
    assert response.json() == {"success": True, "result": "https://clp.test/ghub"}


@pytest.mark.asyncio
async def test_shorten_missing_url_query(client: AsyncClient) -> None:
    response = await client.get("/new")
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "URL parameter is required"}


@pytest.mark.asyncio
async def test_shorten_missing_url_body(client: AsyncClient) -> None:
    response = await client.post("/new", json={"slug": "abc"})
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "URL is required in request body"}


@pytest.mark.asyncio
async def test_shorten_without_body(client: AsyncClient) -> None:
    response = await client.post("/new")
    assert response.status_code == 400
    assert response.json()["error"] == "URL is required in request body"


@pytest.mark.asyncio
async def test_shorten_invalid_url(client: AsyncClient) -> None:
    response = await client.get("/new", params={"url": "not a url"})
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Invalid URL format"}


@pytest.mark.asyncio
async def test_shorten_malformed_json(client: AsyncClient) -> None:
    response = await client.post("/new", content=b"{not json", headers={"content-type": "application/json"})
    assert response.status_code == 400
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_shorten_duplicate_custom_slug(client: AsyncClient, store) -> None:
    await client.get("/new", params={"url": "https://www.github.com", "slug": "taken1"})
    response = await client.post("/new", json={"url": "https://www.example.com", "slug": "taken1"})
    assert response.status_code == 409
    assert response.json() == {"success": False, "error": "Slug already exists"}
    assert store.data["clp:taken1"] == "https://www.github.com"


@pytest.mark.asyncio
async def test_shorten_counts_links(client: AsyncClient, store) -> None:
    for url in ["https://www.google.com", "https://www.github.com", "https://www.python.org"]:
        response = await client.get("/new", params={"url": url})
        assert response.status_code == 200
    await client.get("/new", params={"url": "bad"})

    assert store.data["clp:total_links"] == "3"


@pytest.mark.asyncio
async def test_shorten_store_unavailable(client: AsyncClient, store) -> None:
    from redis.exceptions import TimeoutError as RedisTimeoutError

    store.set.side_effect = RedisTimeoutError("timed out talking to 10.0.0.5")
    response = await client.get("/new", params={"url": "https://www.google.com"})
    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Internal server error"}
