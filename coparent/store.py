"""Co-parent state container.

A single :class:`CoParentState` snapshot is held by :class:`CoParentStore`
and replaced, never edited, by :func:`reduce`.  Every async operation reaches
the store through exactly three actions::

    coParent/<operation>/pending    loading flag on, error cleared
    coParent/<operation>/fulfilled  loading flag off, mutation applied
    coParent/<operation>/rejected   loading flag off, error recorded

There is no optimistic phase; the state only reflects confirmed server
outcomes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable

from .models import CoParent, ParentCompanionAccess, PendingCoParentInvite

log = logging.getLogger(__name__)

SLICE = "coParent"

PENDING = "pending"
FULFILLED = "fulfilled"
REJECTED = "rejected"

FETCH_CO_PARENTS = "fetchCoParents"
ADD_CO_PARENT = "addCoParent"
UPDATE_PERMISSIONS = "updateCoParentPermissions"
DELETE_CO_PARENT = "deleteCoParent"
PROMOTE_TO_PRIMARY = "promoteCoParentToPrimary"
SEARCH_BY_EMAIL = "searchCoParentsByEmail"
FETCH_PENDING_INVITES = "fetchPendingInvites"
ACCEPT_INVITE = "acceptCoParentInvite"
DECLINE_INVITE = "declineCoParentInvite"
FETCH_PARENT_ACCESS = "fetchParentAccess"

SET_SELECTED_CO_PARENT = f"{SLICE}/setSelectedCoParent"
CLEAR_ERROR = f"{SLICE}/clearError"
RESET = f"{SLICE}/reset"

# Which loading flag each operation drives; search drives none.
_LOADING_FLAG: dict[str, str | None] = {
    FETCH_CO_PARENTS: "loading",
    ADD_CO_PARENT: "loading",
    UPDATE_PERMISSIONS: "loading",
    DELETE_CO_PARENT: "loading",
    PROMOTE_TO_PRIMARY: "loading",
    SEARCH_BY_EMAIL: None,
    FETCH_PENDING_INVITES: "invites_loading",
    ACCEPT_INVITE: "invites_loading",
    DECLINE_INVITE: "invites_loading",
    FETCH_PARENT_ACCESS: "access_loading",
}


@dataclass(frozen=True)
class CoParentState:
    co_parents: tuple[CoParent, ...] = ()
    pending_invites: tuple[PendingCoParentInvite, ...] = ()
    access_by_companion_id: dict[str, ParentCompanionAccess] = field(default_factory=dict)
    default_access: ParentCompanionAccess | None = None
    loading: bool = False
    invites_loading: bool = False
    access_loading: bool = False
    error: str | None = None
    selected_co_parent_id: str | None = None
    last_companion_id: str | None = None


@dataclass(frozen=True)
class Action:
    type: str
    payload: Any = None
    error: str | None = None
    meta: dict[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Action creators
# ---------------------------------------------------------------------------

def action_type(operation: str, phase: str) -> str:
    return f"{SLICE}/{operation}/{phase}"


def pending(operation: str, **meta: Any) -> Action:
    return Action(action_type(operation, PENDING), meta=meta)


def fulfilled(operation: str, payload: Any, **meta: Any) -> Action:
    return Action(action_type(operation, FULFILLED), payload=payload, meta=meta)


def rejected(operation: str, error: str, **meta: Any) -> Action:
    return Action(action_type(operation, REJECTED), error=error, meta=meta)


def set_selected_co_parent(co_parent_id: str | None) -> Action:
    return Action(SET_SELECTED_CO_PARENT, payload=co_parent_id)


def clear_error() -> Action:
    return Action(CLEAR_ERROR)


def reset() -> Action:
    return Action(RESET)


# ---------------------------------------------------------------------------
# Fulfilled mutations
# ---------------------------------------------------------------------------

def _matches(co_parent: CoParent, key: str | None) -> bool:
    return bool(key) and key in (co_parent.id, co_parent.parent_id)


def _on_fetch(state: CoParentState, action: Action) -> CoParentState:
    # Wholesale replace: the last fetch to resolve wins.
    return replace(
        state,
        co_parents=tuple(action.payload),
        last_companion_id=action.meta.get("companion_id"),
    )


def _on_add(state: CoParentState, action: Action) -> CoParentState:
    added: CoParent = action.payload
    return replace(state, co_parents=state.co_parents + (added,))


def _on_update(state: CoParentState, action: Action) -> CoParentState:
    updated: CoParent = action.payload
    target = action.meta.get("co_parent_id")
    co_parents = tuple(
        updated if cp.id == updated.id or _matches(cp, target) else cp
        for cp in state.co_parents
    )
    return replace(state, co_parents=co_parents)


def _on_delete(state: CoParentState, action: Action) -> CoParentState:
    removed_id: str = action.payload
    kept = tuple(cp for cp in state.co_parents if not _matches(cp, removed_id))
    selected = state.selected_co_parent_id
    if selected and not any(cp.id == selected for cp in kept):
        selected = None
    return replace(state, co_parents=kept, selected_co_parent_id=selected)


def _on_fetch_invites(state: CoParentState, action: Action) -> CoParentState:
    return replace(state, pending_invites=tuple(action.payload))


def _on_resolve_invite(state: CoParentState, action: Action) -> CoParentState:
    token: str = action.payload
    return replace(
        state,
        pending_invites=tuple(i for i in state.pending_invites if i.token != token),
    )


def _on_fetch_access(state: CoParentState, action: Action) -> CoParentState:
    fresh: dict[str, ParentCompanionAccess] = action.payload
    return replace(
        state,
        access_by_companion_id={**state.access_by_companion_id, **fresh},
        default_access=next(iter(fresh.values()), state.default_access),
    )


def _unchanged(state: CoParentState, action: Action) -> CoParentState:
    return state


_ON_FULFILLED: dict[str, Callable[[CoParentState, Action], CoParentState]] = {
    FETCH_CO_PARENTS: _on_fetch,
    ADD_CO_PARENT: _on_add,
    UPDATE_PERMISSIONS: _on_update,
    DELETE_CO_PARENT: _on_delete,
    PROMOTE_TO_PRIMARY: _unchanged,
    SEARCH_BY_EMAIL: _unchanged,
    FETCH_PENDING_INVITES: _on_fetch_invites,
    ACCEPT_INVITE: _on_resolve_invite,
    DECLINE_INVITE: _on_resolve_invite,
    FETCH_PARENT_ACCESS: _on_fetch_access,
}


# ---------------------------------------------------------------------------
# Reducer
# ---------------------------------------------------------------------------

def reduce(state: CoParentState, action: Action) -> CoParentState:
    """Return the state that follows *action*; unknown actions are no-ops."""
    if action.type == SET_SELECTED_CO_PARENT:
        return replace(state, selected_co_parent_id=action.payload)
    if action.type == CLEAR_ERROR:
        return replace(state, error=None)
    if action.type == RESET:
        return CoParentState()

    prefix, _, phase = action.type.rpartition("/")
    operation = prefix.removeprefix(f"{SLICE}/")
    if operation not in _LOADING_FLAG:
        return state

    flag = _LOADING_FLAG[operation]
    flags: dict[str, bool] = {}
    if flag is not None:
        flags[flag] = phase == PENDING

    if phase == PENDING:
        return replace(state, error=None, **flags)
    if phase == REJECTED:
        return replace(state, error=action.error, **flags)
    if phase == FULFILLED:
        return _ON_FULFILLED[operation](replace(state, **flags), action)
    return state


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

Listener = Callable[[CoParentState], Any]


class CoParentStore:
    """Holds the current state; all writes go through :meth:`dispatch`."""

    def __init__(self, state: CoParentState | None = None) -> None:
        self._state = state or CoParentState()
        self._listeners: list[Listener] = []

    @property
    def state(self) -> CoParentState:
        return self._state

    def dispatch(self, action: Action) -> Action:
        log.debug("dispatch %s", action.type)
        self._state = reduce(self._state, action)
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception:
                log.exception("Store listener failed after %s", action.type)
        return action

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener*; call the returned function to remove it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
