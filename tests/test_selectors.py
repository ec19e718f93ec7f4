"""Tests for coparent.selectors."""

from __future__ import annotations

import pytest

from coparent.models import CoParent, CoParentPermissions, ParentCompanionAccess
from coparent.selectors import (
    is_primary_role,
    select_accepted_co_parents,
    select_access_for_companion,
    select_can_add_co_parent,
    select_co_parent_by_id,
    select_co_parents_by_status,
    select_has_permission,
    select_is_primary_for_companion,
    select_pending_co_parents,
    select_selected_co_parent,
)
from coparent.store import CoParentState


@pytest.fixture()
def state() -> CoParentState:
    co_parents = (
        CoParent(id="l1", parent_id="p1", user_id="u1", status="accepted"),
        CoParent(id="l2", parent_id="p2", status="pending"),
        CoParent(id="l3", parent_id="p3", status="declined"),
    )
    primary = ParentCompanionAccess(companion_id="c1", role="PRIMARY")
    limited = ParentCompanionAccess(
        companion_id="c2",
        role="CO-PARENT",
        permissions=CoParentPermissions(tasks=True),
    )
    return CoParentState(
        co_parents=co_parents,
        access_by_companion_id={"c1": primary, "c2": limited},
        default_access=limited,
        selected_co_parent_id="l2",
    )


@pytest.mark.parametrize(
    "role, expected",
    [("PRIMARY", True), ("primary", True), ("PRIMARY_PARENT", True),
     ("CO-PARENT", False), ("", False), (None, False)],
)
def test_is_primary_role(role, expected) -> None:
    assert is_primary_role(role) is expected


def test_by_id_matches_any_identifier(state: CoParentState) -> None:
    assert select_co_parent_by_id("l1")(state).id == "l1"
    assert select_co_parent_by_id("p2")(state).id == "l2"
    assert select_co_parent_by_id("u1")(state).id == "l1"
    assert select_co_parent_by_id("missing")(state) is None


def test_status_selectors(state: CoParentState) -> None:
    assert [cp.id for cp in select_accepted_co_parents(state)] == ["l1"]
    assert [cp.id for cp in select_pending_co_parents(state)] == ["l2"]
    # Raw backend statuses are normalized before comparing.
    assert [cp.id for cp in select_co_parents_by_status("ACTIVE")(state)] == ["l1"]


def test_selected_co_parent(state: CoParentState) -> None:
    assert select_selected_co_parent(state).id == "l2"
    assert select_selected_co_parent(CoParentState()) is None


def test_access_falls_back_to_default(state: CoParentState) -> None:
    assert select_access_for_companion("c1")(state).role == "PRIMARY"
    assert select_access_for_companion("unknown")(state).companion_id == "c2"
    assert select_access_for_companion(None)(state).companion_id == "c2"
    assert select_access_for_companion("c1")(CoParentState()) is None


def test_is_primary_for_companion(state: CoParentState) -> None:
    assert select_is_primary_for_companion("c1")(state) is True
    assert select_is_primary_for_companion("c2")(state) is False
    assert select_can_add_co_parent("c1")(state) is True


def test_global_role_used_without_access() -> None:
    empty = CoParentState()
    assert select_is_primary_for_companion("c1", "PRIMARY")(empty) is True
    assert select_is_primary_for_companion("c1", None)(empty) is False


def test_has_permission(state: CoParentState) -> None:
    # Primary parents hold every permission.
    assert select_has_permission("c1", "documents")(state) is True
    assert select_has_permission("c2", "tasks")(state) is True
    assert select_has_permission("c2", "chatWithVet")(state) is False
    assert select_has_permission("c2", "chat_with_vet")(state) is False
    assert select_has_permission("c9", "tasks")(CoParentState()) is False


def test_has_permission_unknown_key(state: CoParentState) -> None:
    assert select_has_permission("c2", "flying")(state) is False
    assert select_has_permission("c1", "flying")(state) is True
