from __future__ import annotations


class RoleBotError(Exception):
    """Base class for errors raised by rolebot."""


class DirectoryError(RoleBotError):
    """A call to the remote directory (Discord) failed.

    Raised by the directory adapter for network errors, rate limits and any
    other HTTP failure. Callers treat it as "this unit of work did not happen".
    """


class NotFoundError(DirectoryError):
    """The channel, message, member or reaction no longer exists."""


class PermissionDeniedError(DirectoryError):
    """The bot is not allowed to perform the call (usually role hierarchy)."""


class PanelConfigError(RoleBotError):
    """A panel definition is malformed."""
