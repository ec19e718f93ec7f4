"""REST communication with the co-parent endpoints of the backend.

Uses httpx for async REST calls.  The client holds no auth state of its own:
every call takes the caller's bearer token and sends it in the
``Authorization`` header.  Failures are logged and re-raised unchanged; the
transport never retries and never interprets error bodies.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

import httpx

from .config import ClientConfig
from .models import CoParentPermissions

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _extract_list(data: Any, key: str) -> list[Any]:
    """Pull a record list out of a ``{key: [...]}`` wrapper or a bare list.

    ``None`` and any other shape give an empty list.
    """
    if isinstance(data, Mapping):
        wrapped = data.get(key)
        return list(wrapped) if isinstance(wrapped, list) else []
    if isinstance(data, list):
        return data
    return []


def _decode(resp: httpx.Response) -> Any:
    """Return the JSON body, or *None* for an empty / non-JSON body."""
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError:
        log.debug("Non-JSON response body from %s", resp.request.url)
        return None


def _permissions_payload(permissions: CoParentPermissions | Mapping[str, Any]) -> dict[str, Any]:
    if isinstance(permissions, CoParentPermissions):
        return permissions.model_dump(by_alias=True)
    return dict(permissions)


# ---------------------------------------------------------------------------
# REST client
# ---------------------------------------------------------------------------

class RestClient:
    """Async HTTP client for the parent-companion and co-parent-invite APIs."""

    def __init__(self, config: ClientConfig) -> None:
        self._config = config
        self._client: httpx.AsyncClient | None = None

    # -- lifecycle -----------------------------------------------------------

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._config.api_base,
                timeout=httpx.Timeout(
                    self._config.timeout, connect=self._config.connect_timeout,
                ),
            )
        return self._client

    async def close(self) -> None:
        """Shut down the underlying HTTP client gracefully."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        path: str,
        token: str,
        *,
        json: Any = None,
        label: str,
    ) -> httpx.Response:
        client = await self._ensure_client()
        log.debug("%s %s", method, path)
        try:
            resp = await client.request(method, path, json=json, headers=_auth_headers(token))
            resp.raise_for_status()
            return resp
        except httpx.HTTPStatusError as exc:
            log.error(
                "%s failed with HTTP %s: %s",
                label,
                exc.response.status_code,
                exc.response.text,
            )
            raise
        except httpx.HTTPError as exc:
            log.error("%s request error: %s", label, exc)
            raise

    # -- parent-companion links ----------------------------------------------

    async def list_by_companion(self, companion_id: str, token: str) -> list[dict[str, Any]]:
        """GET /v1/parent-companion/companion/{companionId}

        Returns the link records of every parent attached to the companion,
        or ``[]`` when the body carries none.
        """
        resp = await self._request(
            "GET", f"/v1/parent-companion/companion/{companion_id}", token,
            label="List links by companion",
        )
        return _extract_list(_decode(resp), "links")

    async def list_by_parent(self, parent_id: str, token: str) -> list[dict[str, Any]]:
        """GET /v1/parent-companion/parent/{parentId}"""
        resp = await self._request(
            "GET", f"/v1/parent-companion/parent/{parent_id}", token,
            label="List links by parent",
        )
        return _extract_list(_decode(resp), "links")

    async def update_permissions(
        self,
        companion_id: str,
        co_parent_id: str,
        permissions: CoParentPermissions | Mapping[str, Any],
        token: str,
    ) -> dict[str, Any]:
        """PATCH /v1/parent-companion/companion/{companionId}/{coParentId}/permissions

        Returns the response body, ``{}`` when the server sends none.
        """
        resp = await self._request(
            "PATCH",
            f"/v1/parent-companion/companion/{companion_id}/{co_parent_id}/permissions",
            token,
            json=_permissions_payload(permissions),
            label="Update permissions",
        )
        data = _decode(resp)
        return data if isinstance(data, dict) else {}

    async def promote_to_primary(self, companion_id: str, co_parent_id: str, token: str) -> bool:
        """POST /v1/parent-companion/companion/{companionId}/{coParentId}/promote"""
        await self._request(
            "POST",
            f"/v1/parent-companion/companion/{companion_id}/{co_parent_id}/promote",
            token,
            json={},
            label="Promote to primary",
        )
        return True

    async def remove(self, companion_id: str, co_parent_id: str, token: str) -> bool:
        """DELETE /v1/parent-companion/companion/{companionId}/{coParentId}"""
        await self._request(
            "DELETE",
            f"/v1/parent-companion/companion/{companion_id}/{co_parent_id}",
            token,
            label="Remove co-parent",
        )
        return True

    # -- co-parent invites ---------------------------------------------------

    async def send_invite(
        self,
        *,
        invitee_name: str,
        email: str,
        companion_id: str,
        token: str,
        phone_number: str | None = None,
    ) -> dict[str, Any]:
        """POST /v1/coparent-invite/sent

        ``phoneNumber`` is left out of the body entirely when not given.
        """
        payload: dict[str, Any] = {
            "inviteeName": invitee_name,
            "email": email,
            "companionId": companion_id,
        }
        if phone_number:
            payload["phoneNumber"] = phone_number
        resp = await self._request(
            "POST", "/v1/coparent-invite/sent", token, json=payload,
            label="Send invite",
        )
        data = _decode(resp)
        return data if isinstance(data, dict) else {}

    async def list_pending_invites(self, token: str) -> list[dict[str, Any]]:
        """GET /v1/coparent-invite/pending"""
        resp = await self._request(
            "GET", "/v1/coparent-invite/pending", token,
            label="List pending invites",
        )
        return _extract_list(_decode(resp), "pendingInvites")

    async def accept_invite(self, invite_token: str, token: str) -> str:
        """POST /v1/coparent-invite/accept

        Returns *invite_token* so callers know which invite was resolved.
        """
        await self._request(
            "POST", "/v1/coparent-invite/accept", token, json={"token": invite_token},
            label="Accept invite",
        )
        return invite_token

    async def decline_invite(self, invite_token: str, token: str) -> str:
        """POST /v1/coparent-invite/decline"""
        await self._request(
            "POST", "/v1/coparent-invite/decline", token, json={"token": invite_token},
            label="Decline invite",
        )
        return invite_token
