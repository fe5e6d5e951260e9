from __future__ import annotations

from typing import Final

# Discord limits
MAX_EMBED_DESCRIPTION: Final[int] = 4096
MAX_EMBED_TITLE: Final[int] = 256
REACTOR_PAGE_SIZE: Final[int] = 100

# Bot configuration
CACHE_TTL_SECONDS: Final[int] = 120
PANEL_SCHEMA_VERSION: Final[int] = 2

# Button custom_id namespace: "rr:<role_id>"
BUTTON_PREFIX: Final[str] = "rr:"

# Pacing (seconds). Fixed policy, not user-configurable.
REACTOR_PAGE_DELAY: Final[float] = 0.3
EMOJI_DELAY: Final[float] = 0.2
ROLE_MUTATION_DELAY: Final[float] = 0.12
MEMBER_DELAY: Final[float] = 0.12
PANEL_DELAY: Final[float] = 0.4

# Audit reasons attached to every role mutation
REASON_SYNC_EXCLUSIVE: Final[str] = "rr sync (exclusive)"
REASON_SYNC_EXCLUSIVE_CLEANUP: Final[str] = "rr sync (exclusive cleanup)"
REASON_SYNC_MULTI: Final[str] = "rr sync (multi)"
REASON_SYNC_CLEANUP: Final[str] = "rr sync (no longer reacting)"
REASON_REACTION_ADD: Final[str] = "reaction role"
REASON_REACTION_SWITCH: Final[str] = "exclusive reaction-role switch"
REASON_REACTION_REMOVE: Final[str] = "reaction role remove"
REASON_BUTTON_SWITCH: Final[str] = "exclusive button-role switch"
REASON_BUTTON_ADD: Final[str] = "exclusive button-role add"
REASON_BUTTON_TOGGLE: Final[str] = "button role toggle"
REASON_AUTOROLE: Final[str] = "autorole"

# Colors (hex values)
COLORS = {
    "default": 0x5865F2,
    "success": 0x57F287,
    "warning": 0xF1C40F,
    "error": 0xED4245,
    "info": 0x3498DB,
}

ERROR_MESSAGES = {
    "missing_permissions": "You don't have permission to use this command.",
    "guild_only": "This command can only be used in a server.",
    "unexpected": "Something went wrong running that command.",
}
