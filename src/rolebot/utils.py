from __future__ import annotations

import logging
from typing import Any, Iterable, List

import discord

from .constants import COLORS, MAX_EMBED_DESCRIPTION, MAX_EMBED_TITLE

log = logging.getLogger("rolebot.utils")


def safe_embed(title: str, description: str, color: int = COLORS["default"]) -> discord.Embed:
    """Create an embed with safe length limits."""
    if len(title) > MAX_EMBED_TITLE:
        title = title[:MAX_EMBED_TITLE - 1] + "…"
    if len(description) > MAX_EMBED_DESCRIPTION:
        description = description[:MAX_EMBED_DESCRIPTION - 1] + "…"

    return discord.Embed(title=title, description=description, color=color)


def error_embed(message: str) -> discord.Embed:
    return safe_embed("Error", message, COLORS["error"])


def success_embed(message: str) -> discord.Embed:
    return safe_embed("Success", message, COLORS["success"])


def info_embed(message: str) -> discord.Embed:
    return safe_embed("Information", message, COLORS["info"])


async def safe_send(
    interaction: discord.Interaction,
    content: str | None = None,
    *,
    embed: discord.Embed | None = None,
    ephemeral: bool = True,
    **kwargs: Any,
) -> bool:
    """Reply to an interaction whether or not it was already answered/deferred."""
    try:
        if not interaction.response.is_done():
            await interaction.response.send_message(content=content, embed=embed, ephemeral=ephemeral, **kwargs)
        else:
            await interaction.followup.send(content=content, embed=embed, ephemeral=ephemeral, **kwargs)
        return True
    except discord.HTTPException as e:
        log.error("Failed to send response: %s", e)
        return False


async def safe_defer(interaction: discord.Interaction, *, ephemeral: bool = True) -> bool:
    try:
        if interaction.response.is_done():
            return True
        await interaction.response.defer(ephemeral=ephemeral, thinking=True)
        return True
    except discord.HTTPException:
        return interaction.response.is_done()


def unmanageable_roles(roles: Iterable[discord.Role]) -> List[discord.Role]:
    """Roles the bot cannot grant: @everyone, integration roles, or at/above its top role."""
    return [role for role in roles if not role.is_assignable()]
