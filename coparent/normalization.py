"""Normalization of backend link / invite payloads into domain models.

The backend is not consistent about shape: the same concept may arrive as a
flat field, inside a nested ``parent`` / ``companion`` object, or under an
alternate key.  Each attribute is therefore resolved through a fixed
priority chain; the first non-empty candidate wins and unknown fields are
ignored.  None of the functions here raise on mapping input.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Mapping

from pydantic.alias_generators import to_camel

from .models import (
    ROLE_CO_PARENT,
    ROLE_PRIMARY,
    STATUS_ACCEPTED,
    STATUS_DECLINED,
    STATUS_PENDING,
    CoParent,
    CoParentPermissions,
    CompanionContext,
    CompanionCoParent,
    InviteCompanion,
    InviteParty,
    InviteRequest,
    ParentCompanionAccess,
    PendingCoParentInvite,
)

_STATUS_ALIASES: dict[str, str] = {
    "active": STATUS_ACCEPTED,
    "accepted": STATUS_ACCEPTED,
    "declined": STATUS_DECLINED,
    "rejected": STATUS_DECLINED,
    "pending": STATUS_PENDING,
    "invited": STATUS_PENDING,
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _get(data: Any, *path: str) -> Any:
    """Walk nested mappings; any non-mapping step yields *None*."""
    for key in path:
        if not isinstance(data, Mapping):
            return None
        data = data.get(key)
    return data


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def _first(*candidates: Any, default: Any = None) -> Any:
    for value in candidates:
        if not _is_empty(value):
            return value
    return default


def _text(value: Any) -> str | None:
    """Coerce ids and timestamps to strings; *None* stays *None*."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _split_name(full_name: Any) -> tuple[str, str]:
    if not isinstance(full_name, str) or not full_name.strip():
        return "", ""
    parts = full_name.strip().split(maxsplit=1)
    return parts[0], parts[1] if len(parts) > 1 else ""


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _provisional_id() -> str:
    return f"cp_{uuid.uuid4().hex}"


# ---------------------------------------------------------------------------
# Scalars
# ---------------------------------------------------------------------------

def normalize_status(value: Any) -> str:
    """Map raw link / invite statuses onto ``accepted|pending|declined``.

    Unrecognised values are returned verbatim, so the mapping is total and
    idempotent.  A missing status counts as pending.
    """
    if value is None:
        return STATUS_PENDING
    raw = value if isinstance(value, str) else str(value)
    return _STATUS_ALIASES.get(raw.strip().lower(), raw)


def normalize_permissions(raw: Any) -> CoParentPermissions:
    """Build a complete permission record from a possibly sparse payload.

    Every key is coerced to ``bool`` on its own; absent keys are ``False``.
    Both camelCase and snake_case keys are understood.
    """
    data = _mapping(raw)
    values: dict[str, bool] = {}
    for name in CoParentPermissions.model_fields:
        alias = to_camel(name)
        value = data.get(alias) if alias in data else data.get(name)
        values[name] = bool(value)
    return CoParentPermissions(**values)


# ---------------------------------------------------------------------------
# Link records
# ---------------------------------------------------------------------------

def resolve_parent_id(raw: Mapping[str, Any]) -> str:
    """parentId, then the nested parent object, then userId."""
    raw = _mapping(raw)
    return _text(_first(
        raw.get("parentId"),
        _get(raw, "parent", "id"),
        _get(raw, "parent", "_id"),
        raw.get("userId"),
        default="",
    ))


def _resolve_companion_id(raw: Mapping[str, Any], context: CompanionContext | None) -> str:
    return _text(_first(
        raw.get("companionId"),
        _get(raw, "companion", "id"),
        _get(raw, "companion", "_id"),
        context.id if context else None,
        default="",
    ))


def _resolve_link_id(raw: Mapping[str, Any], parent_id: str, companion_id: str) -> str:
    link_id = _first(raw.get("id"), raw.get("_id"), raw.get("linkId"))
    if link_id is not None:
        return _text(link_id)
    if parent_id:
        return f"{parent_id}-{companion_id or 'companion'}"
    return _provisional_id()


def normalize_co_parent(
    raw_link: Mapping[str, Any],
    companion_context: CompanionContext | None = None,
) -> CoParent:
    """Convert one backend link record into a :class:`CoParent`.

    *companion_context* supplies companion display data the link itself may
    lack.  Its name and photo win over values nested in the link; for the
    companion id the link's own fields are preferred.
    """
    raw = _mapping(raw_link)
    parent = _mapping(raw.get("parent"))
    companion = _mapping(raw.get("companion"))
    ctx = companion_context

    parent_id = resolve_parent_id(raw)
    companion_id = _resolve_companion_id(raw, ctx)

    split_first, split_last = _split_name(_first(parent.get("name"), raw.get("name")))
    first_name = _first(parent.get("firstName"), raw.get("firstName"), default=split_first)
    last_name = _first(parent.get("lastName"), raw.get("lastName"), default=split_last)

    status = normalize_status(raw.get("status"))
    created_at = _text(_first(raw.get("createdAt"), raw.get("created_at")))

    companions: list[CompanionCoParent] = []
    if companion_id:
        companions.append(CompanionCoParent(
            companion_id=companion_id,
            companion_name=str(_first(
                ctx.name if ctx else None,
                companion.get("name"),
                raw.get("companionName"),
                default="",
            )),
            breed=_text(_first(companion.get("breed"), raw.get("breed"))),
            profile_image=_text(_first(
                ctx.photo_url if ctx else None,
                companion.get("photoUrl"),
                companion.get("profileImage"),
            )),
            has_permission=status == STATUS_ACCEPTED,
        ))

    return CoParent(
        id=_resolve_link_id(raw, parent_id, companion_id),
        parent_id=parent_id,
        user_id=_text(_first(raw.get("userId"), parent.get("userId"), default=parent_id)),
        companion_id=companion_id,
        role=str(_first(raw.get("role"), parent.get("role"), default=ROLE_CO_PARENT)),
        status=status,
        email=str(_first(parent.get("email"), raw.get("email"), raw.get("parentEmail"), default="")),
        first_name=str(first_name),
        last_name=str(last_name),
        phone_number=_text(_first(
            parent.get("phoneNumber"), raw.get("phoneNumber"),
            parent.get("phone"), raw.get("phone"),
        )),
        profile_picture=_text(_first(
            parent.get("profileImageUrl"),
            parent.get("profilePicture"),
            raw.get("profilePicture"),
            raw.get("profileImage"),
        )),
        profile_token=_text(_first(parent.get("profileToken"), raw.get("profileToken"))),
        companions=companions,
        permissions=normalize_permissions(raw.get("permissions")),
        created_at=created_at,
        updated_at=_text(_first(raw.get("updatedAt"), raw.get("updated_at"), default=created_at)),
    )


def normalize_access(
    raw_link: Mapping[str, Any],
    companion_id: str | None = None,
) -> ParentCompanionAccess:
    """The current user's own access entry from a link record.

    A primary parent holds every permission whatever the link says.
    """
    raw = _mapping(raw_link)
    role = str(_first(raw.get("role"), _get(raw, "parent", "role"), default=ROLE_CO_PARENT))
    permissions = (
        CoParentPermissions.all_granted() if ROLE_PRIMARY in role.upper()
        else normalize_permissions(raw.get("permissions"))
    )
    return ParentCompanionAccess(
        companion_id=_text(_first(
            raw.get("companionId"),
            _get(raw, "companion", "id"),
            _get(raw, "companion", "_id"),
            companion_id,
            default="",
        )),
        role=role,
        status=normalize_status(raw.get("status")),
        permissions=permissions,
    )


# ---------------------------------------------------------------------------
# Invites
# ---------------------------------------------------------------------------

def _normalize_party(raw: Any) -> InviteParty | None:
    data = _mapping(raw)
    if not data:
        return None
    joined = f"{data.get('firstName') or ''} {data.get('lastName') or ''}".strip()
    return InviteParty(
        name=str(_first(data.get("name"), joined, data.get("email"), default="")),
        email=_text(_first(data.get("email"))),
        profile_image=_text(_first(data.get("profileImageUrl"), data.get("profileImage"))),
    )


def _normalize_invite_companion(raw: Any) -> InviteCompanion | None:
    data = _mapping(raw)
    if not data:
        return None
    return InviteCompanion(
        id=_text(_first(data.get("id"), data.get("_id"), data.get("companionId"), default="")),
        name=str(_first(data.get("name"), default="")),
        photo_url=_text(_first(data.get("photoUrl"), data.get("profileImage"))),
        breed=_text(_first(data.get("breed"))),
    )


def normalize_invite(raw_invite: Mapping[str, Any]) -> PendingCoParentInvite:
    raw = _mapping(raw_invite)
    return PendingCoParentInvite(
        token=_text(_first(
            raw.get("token"), raw.get("inviteToken"), raw.get("id"), raw.get("_id"),
            default="",
        )),
        email=str(_first(raw.get("email"), raw.get("inviteeEmail"), default="")),
        invitee_name=str(_first(raw.get("inviteeName"), raw.get("name"), default="")),
        expires_at=_text(_first(raw.get("expiresAt"), raw.get("expires_at"))),
        invited_by=_normalize_party(_first(raw.get("invitedBy"), raw.get("inviter"))),
        companion=_normalize_invite_companion(raw.get("companion")),
    )


def build_provisional_co_parent(
    request: InviteRequest,
    echo: Mapping[str, Any] | None = None,
    companion_context: CompanionContext | None = None,
) -> CoParent:
    """The co-parent record an invite is expected to create.

    Starts from the submitted form, lets any non-empty field the server
    echoed back override it and defaults to a pending ``CO-PARENT`` link
    stamped with the current time.
    """
    first_name, last_name = _split_name(request.candidate_name)
    now = _now_iso()
    raw: dict[str, Any] = {
        "email": request.email,
        "firstName": first_name,
        "lastName": last_name,
        "phoneNumber": request.phone_number,
        "companionId": request.companion_id,
        "role": ROLE_CO_PARENT,
        "status": STATUS_PENDING,
        "createdAt": now,
        "updatedAt": now,
    }

    data = _mapping(echo)
    if isinstance(data.get("invite"), Mapping):
        data = data["invite"]
    for key, value in data.items():
        if _is_empty(value) or value == {} or value == []:
            continue
        raw[key] = value

    # Every invite gets its own id, even when the echo carries none.
    if _first(raw.get("id"), raw.get("_id"), raw.get("linkId")) is None:
        raw["id"] = _text(_first(
            data.get("inviteToken"), data.get("token"), _get(echo, "inviteToken"),
        )) or _provisional_id()

    return normalize_co_parent(raw, companion_context)
