"""
HTTP tests for the link API and the public redirect.

Requests go through the ASGI app with httpx, against a temporary
SQLite database.
"""

import pytest

from shortlinks.db.models import Link
from shortlinks.services.redirect_service import RedirectService


async def create_link(client, headers, url="https://example.com", slug="abc"):
    return await client.post("/api/links", json={"url": url, "slug": slug}, headers=headers)


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


@pytest.mark.asyncio
async def test_end_to_end_scenario(client, auth_headers):
    actor_a = auth_headers("A")
    actor_b = auth_headers("B")

    created = await create_link(client, actor_a)
    assert created.status_code == 201
    body = created.json()
    assert body["success"] is True
    link = body["data"]
    assert link["slug"] == "abc"
    assert link["original_url"] == "https://example.com"
    assert link["owner_id"] == "A"
    assert link["short_url"].endswith("/l/abc")

    redirect = await client.get("/l/abc")
    assert redirect.status_code == 307
    assert redirect.headers["location"] == "https://example.com"

    missing = await client.get("/l/zzz")
    assert missing.status_code == 404
    assert missing.json() == {"error": "Link not found"}

    forbidden = await client.put(
        f"/api/links/{link['id']}",
        json={"url": "https://evil.test", "slug": "abc"},
        headers=actor_b,
    )
    assert forbidden.status_code == 403
    assert forbidden.json() == {
        "success": False,
        "error": "You don't have permission to update this link",
    }

    taken = await create_link(client, actor_a, url="http://x.com")
    assert taken.status_code == 409
    assert taken.json() == {"success": False, "error": "This slug is already taken"}

    # Destination unchanged after the refused update
    assert (await client.get("/l/abc")).headers["location"] == "https://example.com"


@pytest.mark.asyncio
async def test_mutations_require_authentication(client):
    created = await create_link(client, headers={})
    assert created.status_code == 401
    assert created.json() == {"success": False, "error": "You must be logged in to create links"}

    updated = await client.put("/api/links/1", json={"url": "https://example.com", "slug": "abc"})
    assert updated.status_code == 401

    deleted = await client.delete("/api/links/1")
    assert deleted.status_code == 401
    assert deleted.json()["error"] == "You must be logged in to delete links"


@pytest.mark.asyncio
async def test_invalid_token_is_unauthenticated(client):
    response = await create_link(client, {"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_validation_failures(client, auth_headers):
    headers = auth_headers("A")

    short = await create_link(client, headers, slug="ab")
    assert short.status_code == 400
    assert short.json() == {"success": False, "error": "Slug must be at least 3 characters"}

    unsafe = await create_link(client, headers, url="javascript:alert(1)")
    assert unsafe.status_code == 400
    assert unsafe.json()["error"] == "Only HTTP and HTTPS URLs are allowed"


@pytest.mark.asyncio
async def test_wrong_body_types_keep_envelope(client, auth_headers):
    response = await client.post(
        "/api/links", json={"url": 123, "slug": "abc"}, headers=auth_headers("A")
    )
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Please enter a valid URL"}


@pytest.mark.asyncio
async def test_malformed_requests_check_authentication_first(client):
    requests = [
        ("POST", "/api/links", {"json": {"url": 123, "slug": "abc"}}),
        ("POST", "/api/links", {}),
        ("POST", "/api/links", {"content": "not json", "headers": {"Content-Type": "application/json"}}),
        ("PUT", "/api/links/xyz", {"json": {"url": "https://example.com", "slug": "abc"}}),
        ("DELETE", "/api/links/xyz", {}),
    ]
    for method, url, kwargs in requests:
        response = await client.request(method, url, **kwargs)
        assert response.status_code == 401
        assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_non_numeric_link_id(client, auth_headers):
    headers = auth_headers("A")

    updated = await client.put(
        "/api/links/xyz", json={"url": "https://example.com", "slug": "abc"}, headers=headers
    )
    deleted = await client.delete("/api/links/xyz", headers=headers)

    for response in (updated, deleted):
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Link id must be a number"}


@pytest.mark.asyncio
async def test_missing_body_is_invalid_input(client, auth_headers):
    response = await client.post("/api/links", headers=auth_headers("A"))
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Please enter a valid URL"}


@pytest.mark.asyncio
async def test_update_and_delete(client, auth_headers):
    headers = auth_headers("A")
    link = (await create_link(client, headers)).json()["data"]

    updated = await client.put(
        f"/api/links/{link['id']}",
        json={"url": "https://new.example", "slug": "fresh"},
        headers=headers,
    )
    assert updated.status_code == 200
    assert updated.json()["data"]["slug"] == "fresh"
    assert (await client.get("/l/fresh")).headers["location"] == "https://new.example"

    deleted = await client.delete(f"/api/links/{link['id']}", headers=headers)
    assert deleted.status_code == 200
    assert deleted.json() == {"success": True, "data": None}

    assert (await client.get("/l/fresh")).status_code == 404
    again = await client.delete(f"/api/links/{link['id']}", headers=headers)
    assert again.status_code == 404


@pytest.mark.asyncio
async def test_list_links(client, auth_headers):
    headers = auth_headers("A")
    await create_link(client, headers, slug="first")
    await create_link(client, auth_headers("B"), slug="theirs")
    await create_link(client, headers, slug="second")

    response = await client.get("/api/links", headers=headers)

    assert response.status_code == 200
    assert [link["slug"] for link in response.json()["data"]] == ["second", "first"]

    anonymous = await client.get("/api/links")
    assert anonymous.status_code == 401


@pytest.mark.asyncio
async def test_create_rate_limit(client, auth_headers):
    headers = auth_headers("A")
    for i in range(10):
        assert (await create_link(client, headers, slug=f"slug-{i}")).status_code == 201

    limited = await create_link(client, headers, slug="slug-10")

    assert limited.status_code == 429
    assert limited.json()["error"] == "Too many requests. Please wait a moment and try again."


@pytest.mark.asyncio
async def test_redirect_refuses_unsafe_stored_url(client, session):
    session.add(Link(owner_id="A", slug="evil", original_url="javascript:alert(1)"))
    session.add(Link(owner_id="A", slug="broken", original_url="nonsense"))
    await session.commit()

    unsafe = await client.get("/l/evil")
    assert unsafe.status_code == 400
    assert unsafe.json() == {"error": "Invalid URL protocol"}
    assert "location" not in unsafe.headers

    malformed = await client.get("/l/broken")
    assert malformed.status_code == 400
    assert malformed.json() == {"error": "Invalid URL format"}


@pytest.mark.asyncio
async def test_redirect_unexpected_failure(client, monkeypatch):
    async def explode(self, slug):
        raise RuntimeError("database is on fire")

    monkeypatch.setattr(RedirectService, "resolve", explode)

    response = await client.get("/l/abc")

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}
