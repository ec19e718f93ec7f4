"""Async co-parent operations.

Each operation obtains a fresh access token, calls the REST client,
normalizes what comes back and reports the result to the store through the
pending / fulfilled / rejected actions.  Callers get an :class:`Outcome`
instead of an exception; ``outcome.unwrap()`` re-raises the failure as an
:class:`~coparent.errors.OperationError` when the caller needs to branch on
it.

No operation retries.  The primary failure of an operation is never
swallowed; the only tolerated failures are the per-companion lookups inside
:meth:`CoParentOperations.fetch_parent_access`.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Mapping, TypeVar

from .auth import TokenProvider, ensure_access_token
from .communication import RestClient
from .errors import MissingCompanionError, OperationError
from .models import (
    CoParent,
    CoParentPermissions,
    CompanionContext,
    InviteRequest,
    ParentCompanionAccess,
    PendingCoParentInvite,
)
from .normalization import (
    build_provisional_co_parent,
    normalize_access,
    normalize_co_parent,
    normalize_invite,
    normalize_permissions,
    resolve_parent_id,
)
from .store import (
    ACCEPT_INVITE,
    ADD_CO_PARENT,
    DECLINE_INVITE,
    DELETE_CO_PARENT,
    FETCH_CO_PARENTS,
    FETCH_PARENT_ACCESS,
    FETCH_PENDING_INVITES,
    PROMOTE_TO_PRIMARY,
    SEARCH_BY_EMAIL,
    UPDATE_PERMISSIONS,
    CoParentStore,
    fulfilled,
    pending,
    rejected,
)

log = logging.getLogger(__name__)

T = TypeVar("T")

_MIN_SEARCH_LENGTH = 3

# Keys whose presence marks a response body as a link record.
_LINK_KEYS = ("id", "_id", "linkId", "parentId", "parent")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Tagged result of one operation."""

    operation: str
    ok: bool
    value: T | None = None
    error: str | None = None

    def unwrap(self) -> T:
        if not self.ok:
            raise OperationError(self.error or f"{self.operation} failed", self.operation)
        return self.value  # type: ignore[return-value]


class CoParentOperations:
    """Wires the token provider, REST client and store together."""

    def __init__(
        self,
        client: RestClient,
        token_provider: TokenProvider,
        store: CoParentStore,
    ) -> None:
        self._client = client
        self._tokens = token_provider
        self._store = store

    @property
    def store(self) -> CoParentStore:
        return self._store

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    async def _run(
        self,
        operation: str,
        body: Callable[[], Awaitable[T]],
        *,
        fallback: str,
        **meta: Any,
    ) -> Outcome[T]:
        self._store.dispatch(pending(operation, **meta))
        try:
            value = await body()
        except Exception as exc:
            message = str(exc) or fallback
            log.warning("%s rejected: %s", operation, message)
            self._store.dispatch(rejected(operation, message, **meta))
            return Outcome(operation, ok=False, error=message)
        self._store.dispatch(fulfilled(operation, value, **meta))
        return Outcome(operation, ok=True, value=value)

    async def _token(self) -> str:
        return await ensure_access_token(self._tokens)

    def _known_co_parent(self, co_parent_id: str, companion_id: str | None = None) -> CoParent | None:
        candidates = [
            cp for cp in self._store.state.co_parents
            if co_parent_id in (cp.id, cp.parent_id)
        ]
        for cp in candidates:
            if companion_id is None or cp.companion_id == companion_id:
                return cp
        return candidates[0] if candidates else None

    # ------------------------------------------------------------------
    # Co-parents of a companion
    # ------------------------------------------------------------------

    async def fetch_co_parents(
        self,
        companion_id: str,
        companion_name: str | None = None,
        companion_image: str | None = None,
    ) -> Outcome[list[CoParent]]:
        """Reload every co-parent of *companion_id*, replacing the list."""
        context = CompanionContext(id=companion_id, name=companion_name, photo_url=companion_image)

        async def body() -> list[CoParent]:
            token = await self._token()
            links = await self._client.list_by_companion(companion_id, token)
            return [normalize_co_parent(link, context) for link in links]

        return await self._run(
            FETCH_CO_PARENTS, body,
            fallback="Failed to fetch co-parents",
            companion_id=companion_id,
        )

    async def add_co_parent(
        self,
        invite_request: InviteRequest | Mapping[str, Any],
        companion_name: str | None = None,
        companion_image: str | None = None,
    ) -> Outcome[CoParent]:
        """Send an invite and append the resulting pending co-parent."""
        request = (
            invite_request if isinstance(invite_request, InviteRequest)
            else InviteRequest.model_validate(invite_request)
        )

        async def body() -> CoParent:
            if not request.companion_id:
                raise MissingCompanionError()
            token = await self._token()
            echo = await self._client.send_invite(
                invitee_name=request.candidate_name,
                email=request.email,
                companion_id=request.companion_id,
                phone_number=request.phone_number,
                token=token,
            )
            context = CompanionContext(
                id=request.companion_id, name=companion_name, photo_url=companion_image,
            )
            return build_provisional_co_parent(request, echo, context)

        return await self._run(
            ADD_CO_PARENT, body,
            fallback="Failed to send invite",
            companion_id=request.companion_id,
        )

    async def update_co_parent_permissions(
        self,
        companion_id: str,
        co_parent_id: str,
        permissions: CoParentPermissions | Mapping[str, Any],
    ) -> Outcome[CoParent]:
        """Patch permissions and swap the stored record for the result.

        When the server answers without a link record the stored record is
        kept and only its permissions are replaced.
        """
        new_permissions = (
            permissions if isinstance(permissions, CoParentPermissions)
            else normalize_permissions(permissions)
        )

        async def body() -> CoParent:
            token = await self._token()
            data = await self._client.update_permissions(
                companion_id, co_parent_id, new_permissions, token,
            )
            known = self._known_co_parent(co_parent_id, companion_id)
            record = data.get("link") if isinstance(data.get("link"), Mapping) else data
            if any(key in record for key in _LINK_KEYS):
                context = None
                if known is not None and known.companions:
                    companion = known.companions[0]
                    context = CompanionContext(
                        id=companion.companion_id,
                        name=companion.companion_name,
                        photo_url=companion.profile_image,
                    )
                return normalize_co_parent(record, context)
            if known is not None:
                return known.model_copy(update={"permissions": new_permissions})
            return CoParent(
                id=co_parent_id,
                parent_id=co_parent_id,
                companion_id=companion_id,
                permissions=new_permissions,
            )

        return await self._run(
            UPDATE_PERMISSIONS, body,
            fallback="Failed to update permissions",
            companion_id=companion_id, co_parent_id=co_parent_id,
        )

    async def delete_co_parent(self, companion_id: str, co_parent_id: str) -> Outcome[str]:
        async def body() -> str:
            token = await self._token()
            await self._client.remove(companion_id, co_parent_id, token)
            return co_parent_id

        return await self._run(
            DELETE_CO_PARENT, body,
            fallback="Failed to delete co-parent",
            companion_id=companion_id, co_parent_id=co_parent_id,
        )

    async def promote_co_parent_to_primary(self, companion_id: str, co_parent_id: str) -> Outcome[bool]:
        """Hand the primary role to *co_parent_id*.

        Leaves the store untouched; callers refresh companions and their own
        access afterwards (see :func:`coparent.flows.transfer_primary_ownership`).
        """
        async def body() -> bool:
            token = await self._token()
            return await self._client.promote_to_primary(companion_id, co_parent_id, token)

        return await self._run(
            PROMOTE_TO_PRIMARY, body,
            fallback="Failed to promote co-parent",
            companion_id=companion_id, co_parent_id=co_parent_id,
        )

    async def search_co_parents_by_email(self, query: str) -> Outcome[list[CoParent]]:
        """Match *query* against the email and name of known co-parents.

        Queries shorter than three characters match nothing.
        """
        needle = (query or "").strip().lower()

        async def body() -> list[CoParent]:
            if len(needle) < _MIN_SEARCH_LENGTH:
                return []
            await self._token()
            return [
                cp for cp in self._store.state.co_parents
                if needle in cp.email.lower() or needle in cp.display_name.lower()
            ]

        return await self._run(SEARCH_BY_EMAIL, body, fallback="Search failed", query=needle)

    # ------------------------------------------------------------------
    # Invites
    # ------------------------------------------------------------------

    async def fetch_pending_invites(self) -> Outcome[list[PendingCoParentInvite]]:
        async def body() -> list[PendingCoParentInvite]:
            token = await self._token()
            raw_invites = await self._client.list_pending_invites(token)
            return [normalize_invite(raw) for raw in raw_invites]

        return await self._run(
            FETCH_PENDING_INVITES, body, fallback="Failed to fetch pending invites",
        )

    async def accept_co_parent_invite(self, invite_token: str) -> Outcome[str]:
        """Accept an invite; the outcome value is the resolved invite token."""
        async def body() -> str:
            token = await self._token()
            return await self._client.accept_invite(invite_token, token)

        return await self._run(ACCEPT_INVITE, body, fallback="Failed to accept invite")

    async def decline_co_parent_invite(self, invite_token: str) -> Outcome[str]:
        async def body() -> str:
            token = await self._token()
            return await self._client.decline_invite(invite_token, token)

        return await self._run(DECLINE_INVITE, body, fallback="Failed to decline invite")

    # ------------------------------------------------------------------
    # Own access
    # ------------------------------------------------------------------

    async def _companion_links(self, companion_id: str, token: str) -> list[dict[str, Any]]:
        try:
            return await self._client.list_by_companion(companion_id, token)
        except Exception:
            log.warning("Access lookup for companion %s failed", companion_id, exc_info=True)
            return []

    async def fetch_parent_access(
        self,
        parent_id: str,
        companion_ids: list[str] | None = None,
    ) -> Outcome[dict[str, ParentCompanionAccess]]:
        """Resolve the current user's role and permissions per companion.

        Links listed for the parent come first.  Any requested companion they
        do not cover is looked up concurrently by companion; a failed lookup
        just leaves that companion out.
        """
        async def body() -> dict[str, ParentCompanionAccess]:
            token = await self._token()
            access: dict[str, ParentCompanionAccess] = {}
            for link in await self._client.list_by_parent(parent_id, token):
                entry = normalize_access(link)
                if entry.companion_id:
                    access[entry.companion_id] = entry

            missing = [cid for cid in dict.fromkeys(companion_ids or []) if cid and cid not in access]
            if not missing:
                return access

            results = await asyncio.gather(
                *(self._companion_links(cid, token) for cid in missing)
            )
            for cid, links in zip(missing, results):
                own = next((link for link in links if resolve_parent_id(link) == parent_id), None)
                if own is not None:
                    access[cid] = normalize_access(own, cid).model_copy(update={"companion_id": cid})
            return access

        return await self._run(
            FETCH_PARENT_ACCESS, body,
            fallback="Failed to fetch parent access",
            parent_id=parent_id,
        )
