"""Co-parent access and invitation client.

The public surface is re-exported here so callers can wire the pieces
together without reaching into submodules.
"""

from coparent.auth import JwtTokenProvider, StaticTokenProvider, StoredTokens, TokenProvider  # noqa: F401
from coparent.communication import RestClient  # noqa: F401
from coparent.config import ClientConfig  # noqa: F401
from coparent.models import (  # noqa: F401
    CoParent,
    CoParentPermissions,
    CompanionCoParent,
    InviteRequest,
    ParentCompanionAccess,
    PendingCoParentInvite,
)
from coparent.sequencer import InviteFlowSequencer, SheetRef  # noqa: F401
from coparent.store import CoParentState, CoParentStore  # noqa: F401
from coparent.thunks import CoParentOperations, Outcome  # noqa: F401

__version__ = "0.1.0"

__all__ = [
    "ClientConfig",
    "CoParent",
    "CoParentOperations",
    "CoParentPermissions",
    "CoParentState",
    "CoParentStore",
    "CompanionCoParent",
    "InviteFlowSequencer",
    "InviteRequest",
    "JwtTokenProvider",
    "Outcome",
    "ParentCompanionAccess",
    "PendingCoParentInvite",
    "RestClient",
    "SheetRef",
    "StaticTokenProvider",
    "StoredTokens",
    "TokenProvider",
]
