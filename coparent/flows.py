"""Multi-step co-parent flows driven from the management screens.

These sit one level above :mod:`coparent.thunks`: they apply the role guards
the UI enforces, chain several operations and decide which failures abort
the flow and which are only logged.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Mapping

from .errors import CoParentError, MissingCompanionError, OperationError, PermissionDeniedError
from .models import CoParent, CoParentPermissions, InviteRequest
from .selectors import select_is_primary_for_companion
from .sequencer import InviteFlowSequencer
from .thunks import CoParentOperations

log = logging.getLogger(__name__)

Callback = Callable[[], Any]


async def _call(callback: Callback | None) -> None:
    if callback is None:
        return
    result = callback()
    # Support both sync and async callbacks.
    if asyncio.iscoroutine(result):
        await result


def resolve_target_co_parent_id(co_parent: CoParent | None, fallback: str | None = None) -> str | None:
    """The id the parent-companion endpoints expect for *co_parent*."""
    if co_parent is not None:
        return co_parent.parent_id or co_parent.id or fallback
    return fallback


def is_self_primary(co_parent: CoParent | None, own_parent_id: str | None) -> bool:
    """True when *co_parent* is the signed-in primary parent's own entry."""
    if co_parent is None or not own_parent_id:
        return False
    return co_parent.is_primary and co_parent.parent_id == own_parent_id


def _require_primary(ops: CoParentOperations, companion_id: str | None, global_role: str | None, message: str) -> None:
    if not select_is_primary_for_companion(companion_id, global_role)(ops.store.state):
        raise PermissionDeniedError(message)


def _require_target(co_parent: CoParent | None, fallback: str | None) -> str:
    target = resolve_target_co_parent_id(co_parent, fallback)
    if not target:
        raise CoParentError("Unable to determine co-parent details. Please try again.")
    return target


async def transfer_primary_ownership(
    ops: CoParentOperations,
    *,
    companion_id: str | None,
    co_parent: CoParent | None,
    parent_id: str | None,
    navigate: Callback,
    refresh_companions: Callable[[str], Awaitable[Any]] | None = None,
    companion_ids: list[str] | None = None,
    global_role: str | None = None,
    fallback_id: str | None = None,
) -> bool:
    """Promote *co_parent* to primary parent of *companion_id*.

    Steps: promote, refresh the user's companions, refresh the user's own
    access, navigate.  Only a failed promotion aborts; a failed refresh is
    logged and the flow still navigates.
    """
    _require_primary(ops, companion_id, global_role, "Only the primary parent can transfer ownership.")
    if not companion_id:
        raise MissingCompanionError()
    target = _require_target(co_parent, fallback_id)

    (await ops.promote_co_parent_to_primary(companion_id, target)).unwrap()
    log.info("Promoted %s to primary parent of companion %s", target, companion_id)

    if parent_id:
        if refresh_companions is not None:
            try:
                await refresh_companions(parent_id)
            except Exception:
                log.warning("Failed to refresh companions after promotion", exc_info=True)
        try:
            (await ops.fetch_parent_access(parent_id, companion_ids or None)).unwrap()
        except OperationError:
            log.warning("Failed to refresh access after promotion", exc_info=True)

    await _call(navigate)
    return True


async def save_co_parent_permissions(
    ops: CoParentOperations,
    *,
    companion_id: str | None,
    co_parent: CoParent | None,
    permissions: CoParentPermissions | Mapping[str, Any],
    on_saved: Callback | None = None,
    global_role: str | None = None,
    fallback_id: str | None = None,
) -> CoParent:
    _require_primary(ops, companion_id, global_role, "Only the primary parent can update permissions.")
    if not companion_id:
        raise MissingCompanionError()
    target = _require_target(co_parent, fallback_id)

    updated = (await ops.update_co_parent_permissions(companion_id, target, permissions)).unwrap()
    await _call(on_saved)
    return updated


async def remove_co_parent(
    ops: CoParentOperations,
    *,
    companion_id: str | None,
    co_parent: CoParent | None,
    on_removed: Callback | None = None,
    fallback_id: str | None = None,
) -> str:
    if not companion_id:
        raise MissingCompanionError()
    target = _require_target(co_parent, fallback_id)

    removed = (await ops.delete_co_parent(companion_id, target)).unwrap()
    await _call(on_removed)
    return removed


def invite_request_for(co_parent: CoParent, companion_id: str | None) -> InviteRequest:
    """Build an invite for someone already known as *co_parent*.

    The name falls back to the email address when no name is on file.
    """
    if not companion_id:
        raise MissingCompanionError("Unable to send invite. Please select a companion.")
    email = (co_parent.email or "").strip()
    if not email:
        raise CoParentError("This co-parent does not have an email address on file.")
    name = f"{co_parent.first_name} {co_parent.last_name}".strip()
    return InviteRequest(
        candidate_name=name or email,
        email=email,
        phone_number=co_parent.phone_number or None,
        companion_id=companion_id,
    )


async def send_invite_and_open_sheet(
    ops: CoParentOperations,
    sequencer: InviteFlowSequencer,
    invite_request: InviteRequest | Mapping[str, Any],
    companion_name: str | None = None,
    companion_image: str | None = None,
) -> CoParent:
    """Send the invite, then show the confirmation sheet."""
    added = (await ops.add_co_parent(invite_request, companion_name, companion_image)).unwrap()
    sequencer.open_add_co_parent_sheet()
    return added
