"""Exception hierarchy for the co-parent client.

Transport failures are not wrapped here: they surface as ``httpx.HTTPError``
subclasses from :mod:`coparent.communication` and only become
:class:`OperationError` once an async operation rejects.
"""

from __future__ import annotations


class CoParentError(Exception):
    """Base class for every error raised by this package."""


class AuthError(CoParentError):
    """No usable access token; raised before any network call."""


class MissingTokenError(AuthError):
    def __init__(self, message: str = "Missing access token. Please sign in again.") -> None:
        super().__init__(message)


class SessionExpiredError(AuthError):
    def __init__(self, message: str = "Your session expired. Please sign in again.") -> None:
        super().__init__(message)


class OperationError(CoParentError):
    """A rejected async operation, raised by ``Outcome.unwrap()``."""

    def __init__(self, message: str, operation: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.operation = operation


class PermissionDeniedError(CoParentError):
    """The current user lacks the role needed for a co-parent action."""


class MissingCompanionError(CoParentError):
    def __init__(self, message: str = "Please select a companion first.") -> None:
        super().__init__(message)
