"""Co-parent domain models.

Attributes are snake_case in Python; the backend speaks camelCase, so every
model validates and dumps through camelCase aliases
(``model_dump(by_alias=True)``).
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ROLE_PRIMARY = "PRIMARY"
ROLE_CO_PARENT = "CO-PARENT"

STATUS_ACCEPTED = "accepted"
STATUS_PENDING = "pending"
STATUS_DECLINED = "declined"

# Wire keys of the permission record, in display order.
PERMISSION_KEYS: tuple[str, ...] = (
    "assignAsPrimaryParent",
    "emergencyBasedPermissions",
    "appointments",
    "companionProfile",
    "documents",
    "expenses",
    "tasks",
    "chatWithVet",
)


class _WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class CoParentPermissions(_WireModel):
    assign_as_primary_parent: bool = False
    emergency_based_permissions: bool = False
    appointments: bool = False
    companion_profile: bool = False
    documents: bool = False
    expenses: bool = False
    tasks: bool = False
    chat_with_vet: bool = False

    @classmethod
    def all_granted(cls) -> CoParentPermissions:
        """The preset a primary parent holds."""
        return cls(**{name: True for name in cls.model_fields})

    def granted(self, key: str) -> bool:
        """Look up one permission by wire key or attribute name."""
        for name in type(self).model_fields:
            if key in (name, to_camel(name)):
                return getattr(self, name)
        raise KeyError(key)


class CompanionCoParent(_WireModel):
    companion_id: str
    companion_name: str = ""
    breed: str | None = None
    profile_image: str | None = None
    has_permission: bool = False


class CoParent(_WireModel):
    """Another person's link to one of the current user's companions."""

    id: str
    parent_id: str = ""
    user_id: str = ""
    companion_id: str = ""
    role: str = ROLE_CO_PARENT
    status: str = STATUS_PENDING
    email: str = ""
    first_name: str = ""
    last_name: str = ""
    phone_number: str | None = None
    profile_picture: str | None = None
    profile_token: str | None = None
    companions: list[CompanionCoParent] = Field(default_factory=list, max_length=1)
    permissions: CoParentPermissions = Field(default_factory=CoParentPermissions)
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def is_primary(self) -> bool:
        return ROLE_PRIMARY in (self.role or "").upper()

    @property
    def display_name(self) -> str:
        name = f"{self.first_name} {self.last_name}".strip()
        return name or self.email or "Co-parent"


class ParentCompanionAccess(_WireModel):
    """The current user's own role and permissions on one companion."""

    companion_id: str = ""
    role: str = ROLE_CO_PARENT
    status: str = STATUS_PENDING
    permissions: CoParentPermissions = Field(default_factory=CoParentPermissions)

    @property
    def is_primary(self) -> bool:
        return ROLE_PRIMARY in (self.role or "").upper()


class InviteParty(_WireModel):
    name: str = ""
    email: str | None = None
    profile_image: str | None = None


class InviteCompanion(_WireModel):
    id: str = ""
    name: str = ""
    photo_url: str | None = None
    breed: str | None = None


class PendingCoParentInvite(_WireModel):
    token: str
    email: str = ""
    invitee_name: str = ""
    expires_at: str | None = None
    invited_by: InviteParty | None = None
    companion: InviteCompanion | None = None


class InviteRequest(_WireModel):
    """An invite as submitted from the add-co-parent form."""

    candidate_name: str
    email: str
    phone_number: str | None = None
    companion_id: str | None = None


class CompanionContext(_WireModel):
    """Companion display data a caller already knows about."""

    id: str | None = None
    name: str | None = None
    photo_url: str | None = None
