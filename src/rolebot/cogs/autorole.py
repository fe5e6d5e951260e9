from __future__ import annotations

import logging

import discord
from discord import app_commands
from discord.ext import commands

from ..constants import REASON_AUTOROLE
from ..utils import error_embed, safe_send, success_embed

log = logging.getLogger("rolebot.autorole")


class AutoroleCog(commands.Cog):
    """Grants the configured role to every member who joins."""

    autorole = app_commands.Group(
        name="autorole",
        description="Configure auto role on member join",
        guild_only=True,
        default_permissions=discord.Permissions(manage_roles=True),
    )

    def __init__(self, bot: commands.Bot) -> None:
        self.bot = bot  # type: ignore[assignment]

    @commands.Cog.listener()
    async def on_member_join(self, member: discord.Member) -> None:
        role_id = await self.bot.config_store.get_autorole(member.guild.id)  # type: ignore[attr-defined]
        if not role_id:
            return

        role = member.guild.get_role(role_id)
        if role is None:
            log.warning("Autorole %s no longer exists in guild %s", role_id, member.guild.id)
            return

        try:
            await member.add_roles(role, reason=REASON_AUTOROLE)
            log.info("Autorole %s granted to %s in guild %s", role.id, member.id, member.guild.id)
        except discord.HTTPException as e:
            log.warning("Failed autorole %s for %s in guild %s: %s", role.id, member.id, member.guild.id, e)

    @autorole.command(name="set", description="Set the autorole")
    @app_commands.describe(role="Role to auto-assign")
    async def autorole_set(self, interaction: discord.Interaction, role: discord.Role) -> None:
        if not role.is_assignable():
            await safe_send(interaction, embed=error_embed(f"I can't manage {role.mention}. Move my role above it."))
            return

        await self.bot.config_store.set_autorole(role.guild.id, role.id)  # type: ignore[attr-defined]
        await safe_send(interaction, embed=success_embed(f"Autorole set to {role.mention}."))

    @autorole.command(name="clear", description="Clear the autorole")
    async def autorole_clear(self, interaction: discord.Interaction) -> None:
        await self.bot.config_store.clear_autorole(interaction.guild_id)  # type: ignore[attr-defined]
        await safe_send(interaction, embed=success_embed("Autorole cleared."))
