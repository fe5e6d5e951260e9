from __future__ import annotations

import logging

import discord
from discord import app_commands
from discord.ext import commands

from ..utils import error_embed, safe_defer, safe_send

log = logging.getLogger("rolebot.roles")


class RolesCog(commands.Cog):
    """Direct role grants by moderators."""

    role = app_commands.Group(
        name="role",
        description="Add or remove a role for a user",
        guild_only=True,
        default_permissions=discord.Permissions(manage_roles=True),
    )

    def __init__(self, bot: commands.Bot) -> None:
        self.bot = bot

    @role.command(name="add", description="Give a role to a user")
    @app_commands.describe(user="Target user", role="Role to add")
    async def role_add(self, interaction: discord.Interaction, user: discord.Member, role: discord.Role) -> None:
        if not role.is_assignable():
            await safe_send(interaction, embed=error_embed(f"I can't manage {role.mention}. Move my role above it."))
            return

        await safe_defer(interaction)
        await user.add_roles(role, reason=f"by {interaction.user}")
        log.info("%s added role %s to %s in guild %s", interaction.user.id, role.id, user.id, role.guild.id)
        await safe_send(interaction, f"Added {role.mention} to {user.mention}.")

    @role.command(name="remove", description="Remove a role from a user")
    @app_commands.describe(user="Target user", role="Role to remove")
    async def role_remove(self, interaction: discord.Interaction, user: discord.Member, role: discord.Role) -> None:
        if not role.is_assignable():
            await safe_send(interaction, embed=error_embed(f"I can't manage {role.mention}. Move my role above it."))
            return

        await safe_defer(interaction)
        await user.remove_roles(role, reason=f"by {interaction.user}")
        log.info("%s removed role %s from %s in guild %s", interaction.user.id, role.id, user.id, role.guild.id)
        await safe_send(interaction, f"Removed {role.mention} from {user.mention}.")
