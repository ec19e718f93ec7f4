"""Tests for coparent.communication."""

from __future__ import annotations

import json

import httpx
import pytest

from coparent.models import CoParentPermissions

TOKEN = "mock-token"


@pytest.mark.asyncio
async def test_list_by_companion_unwraps_links(mock_client) -> None:
    """The links wrapper is unwrapped and the bearer token is sent."""
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["method"] = request.method
        captured["path"] = request.url.path
        captured["auth"] = request.headers.get("authorization")
        return httpx.Response(200, json={"links": [{"id": "link-1"}]})

    client = mock_client(handler)
    result = await client.list_by_companion("comp-1", TOKEN)

    assert result == [{"id": "link-1"}]
    assert captured["method"] == "GET"
    assert captured["path"] == "/v1/parent-companion/companion/comp-1"
    assert captured["auth"] == "Bearer mock-token"
    await client.close()


@pytest.mark.asyncio
async def test_list_by_companion_bare_array(mock_client) -> None:
    """An array body without the links wrapper is returned as-is."""
    client = mock_client(lambda request: httpx.Response(200, json=[{"id": "link-2"}]))
    assert await client.list_by_companion("comp-1", TOKEN) == [{"id": "link-2"}]
    await client.close()


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [None, {}, {"links": None}, {"unexpected": 1}, "oops"])
async def test_list_by_parent_empty_fallback(mock_client, body) -> None:
    """Null or malformed bodies give an empty list instead of raising."""
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/v1/parent-companion/parent/parent-1"
        return httpx.Response(200, json=body)

    client = mock_client(handler)
    assert await client.list_by_parent("parent-1", TOKEN) == []
    await client.close()


@pytest.mark.asyncio
async def test_list_by_parent_empty_body(mock_client) -> None:
    client = mock_client(lambda request: httpx.Response(204))
    assert await client.list_by_parent("parent-1", TOKEN) == []
    await client.close()


@pytest.mark.asyncio
async def test_list_pending_invites_shapes(mock_client) -> None:
    bodies = iter([{"pendingInvites": [{"id": "inv-1"}]}, [{"id": "inv-2"}], None])

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/v1/coparent-invite/pending"
        return httpx.Response(200, json=next(bodies))

    client = mock_client(handler)
    assert await client.list_pending_invites(TOKEN) == [{"id": "inv-1"}]
    assert await client.list_pending_invites(TOKEN) == [{"id": "inv-2"}]
    assert await client.list_pending_invites(TOKEN) == []
    await client.close()


@pytest.mark.asyncio
async def test_send_invite_with_phone(mock_client) -> None:
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["path"] = request.url.path
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"success": True})

    client = mock_client(handler)
    result = await client.send_invite(
        invitee_name="John Doe",
        email="john@example.com",
        companion_id="comp-123",
        phone_number="1234567890",
        token=TOKEN,
    )

    assert result == {"success": True}
    assert captured["path"] == "/v1/coparent-invite/sent"
    assert captured["body"] == {
        "inviteeName": "John Doe",
        "email": "john@example.com",
        "companionId": "comp-123",
        "phoneNumber": "1234567890",
    }
    await client.close()


@pytest.mark.asyncio
@pytest.mark.parametrize("phone", [None, ""])
async def test_send_invite_omits_missing_phone(mock_client, phone) -> None:
    """phoneNumber is left out entirely, not sent as null or empty."""
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"success": True})

    client = mock_client(handler)
    await client.send_invite(
        invitee_name="John Doe",
        email="john@example.com",
        companion_id="comp-123",
        phone_number=phone,
        token=TOKEN,
    )

    assert "phoneNumber" not in captured["body"]
    await client.close()


@pytest.mark.asyncio
@pytest.mark.parametrize("action", ["accept", "decline"])
async def test_resolve_invite_echoes_token(mock_client, action) -> None:
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["path"] = request.url.path
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={})

    client = mock_client(handler)
    method = client.accept_invite if action == "accept" else client.decline_invite
    result = await method("invite-token-123", TOKEN)

    assert result == "invite-token-123"
    assert captured["path"] == f"/v1/coparent-invite/{action}"
    assert captured["body"] == {"token": "invite-token-123"}
    await client.close()


@pytest.mark.asyncio
async def test_update_permissions_sends_full_record(mock_client) -> None:
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["method"] = request.method
        captured["path"] = request.url.path
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"success": True})

    client = mock_client(handler)
    result = await client.update_permissions("c1", "cp-1", CoParentPermissions(tasks=True), TOKEN)

    assert result == {"success": True}
    assert captured["method"] == "PATCH"
    assert captured["path"] == "/v1/parent-companion/companion/c1/cp-1/permissions"
    assert len(captured["body"]) == 8
    assert captured["body"]["tasks"] is True
    assert captured["body"]["chatWithVet"] is False
    await client.close()


@pytest.mark.asyncio
async def test_update_permissions_empty_response(mock_client) -> None:
    client = mock_client(lambda request: httpx.Response(200))
    assert await client.update_permissions("c1", "cp-1", {"tasks": True}, TOKEN) == {}
    await client.close()


@pytest.mark.asyncio
async def test_promote_and_remove(mock_client) -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.method, request.url.path, request.content))
        return httpx.Response(200, json={})

    client = mock_client(handler)
    assert await client.promote_to_primary("c1", "cp-1", TOKEN) is True
    assert await client.remove("c1", "cp-1", TOKEN) is True

    assert seen[0][:2] == ("POST", "/v1/parent-companion/companion/c1/cp-1/promote")
    assert json.loads(seen[0][2]) == {}
    assert seen[1][:2] == ("DELETE", "/v1/parent-companion/companion/c1/cp-1")
    await client.close()


@pytest.mark.asyncio
async def test_http_error_propagates(mock_client) -> None:
    """Non-2xx responses are raised unchanged, without retry."""
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(500, text="Internal Server Error")

    client = mock_client(handler)
    with pytest.raises(httpx.HTTPStatusError):
        await client.remove("c1", "cp-1", TOKEN)
    assert len(calls) == 1
    await client.close()


@pytest.mark.asyncio
async def test_network_error_propagates(mock_client) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = mock_client(handler)
    with pytest.raises(httpx.ConnectError):
        await client.list_by_companion("c1", TOKEN)
    await client.close()
