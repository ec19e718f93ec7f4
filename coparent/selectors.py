"""Read-only views over :class:`~coparent.store.CoParentState`."""

from __future__ import annotations

from typing import Callable

from .models import (
    ROLE_PRIMARY,
    STATUS_ACCEPTED,
    STATUS_PENDING,
    CoParent,
    ParentCompanionAccess,
    PendingCoParentInvite,
)
from .normalization import normalize_status
from .store import CoParentState


def is_primary_role(role: str | None) -> bool:
    """Any role containing ``PRIMARY`` counts as primary."""
    return ROLE_PRIMARY in (role or "").upper()


def select_co_parents(state: CoParentState) -> list[CoParent]:
    return list(state.co_parents)


def select_co_parent_loading(state: CoParentState) -> bool:
    return state.loading


def select_co_parent_error(state: CoParentState) -> str | None:
    return state.error


def select_co_parent_by_id(co_parent_id: str) -> Callable[[CoParentState], CoParent | None]:
    def selector(state: CoParentState) -> CoParent | None:
        for cp in state.co_parents:
            if co_parent_id in (cp.id, cp.parent_id, cp.user_id):
                return cp
        return None

    return selector


def select_co_parents_by_status(status: str) -> Callable[[CoParentState], list[CoParent]]:
    wanted = normalize_status(status)

    def selector(state: CoParentState) -> list[CoParent]:
        return [cp for cp in state.co_parents if cp.status == wanted]

    return selector


def select_accepted_co_parents(state: CoParentState) -> list[CoParent]:
    return select_co_parents_by_status(STATUS_ACCEPTED)(state)


def select_pending_co_parents(state: CoParentState) -> list[CoParent]:
    return select_co_parents_by_status(STATUS_PENDING)(state)


def select_selected_co_parent(state: CoParentState) -> CoParent | None:
    if not state.selected_co_parent_id:
        return None
    return select_co_parent_by_id(state.selected_co_parent_id)(state)


def select_pending_invites(state: CoParentState) -> list[PendingCoParentInvite]:
    return list(state.pending_invites)


def select_invites_loading(state: CoParentState) -> bool:
    return state.invites_loading


def select_access_loading(state: CoParentState) -> bool:
    return state.access_loading


def select_access_map(state: CoParentState) -> dict[str, ParentCompanionAccess]:
    return dict(state.access_by_companion_id)


def select_default_access(state: CoParentState) -> ParentCompanionAccess | None:
    return state.default_access


def select_access_for_companion(
    companion_id: str | None,
) -> Callable[[CoParentState], ParentCompanionAccess | None]:
    """The user's access to *companion_id*, else the default access."""
    def selector(state: CoParentState) -> ParentCompanionAccess | None:
        if companion_id and companion_id in state.access_by_companion_id:
            return state.access_by_companion_id[companion_id]
        return state.default_access

    return selector


def select_is_primary_for_companion(
    companion_id: str | None,
    global_role: str | None = None,
) -> Callable[[CoParentState], bool]:
    """Role check behind every primary-only action.

    *global_role* is the account-level role, used when no access entry is
    known at all.
    """
    def selector(state: CoParentState) -> bool:
        access = select_access_for_companion(companion_id)(state)
        role = access.role if access is not None else global_role
        return is_primary_role(role)

    return selector


def select_can_add_co_parent(
    companion_id: str | None,
    global_role: str | None = None,
) -> Callable[[CoParentState], bool]:
    return select_is_primary_for_companion(companion_id, global_role)


def select_has_permission(companion_id: str | None, key: str) -> Callable[[CoParentState], bool]:
    """Whether the user may use *key* (wire or attribute name) on a companion.

    A co-parent is never granted an unknown key.
    """
    def selector(state: CoParentState) -> bool:
        access = select_access_for_companion(companion_id)(state)
        if access is None:
            return False
        if access.is_primary:
            return True
        try:
            return access.permissions.granted(key)
        except KeyError:
            return False

    return selector
