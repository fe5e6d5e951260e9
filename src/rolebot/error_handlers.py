from __future__ import annotations

import logging

import discord
from discord import app_commands
from discord.ext import commands

from .constants import ERROR_MESSAGES
from .utils import error_embed, safe_send

log = logging.getLogger("rolebot.error_handlers")


async def on_app_command_error(interaction: discord.Interaction, error: app_commands.AppCommandError) -> None:
    """Tree-wide handler for slash command errors."""
    if isinstance(error, app_commands.MissingPermissions):
        await safe_send(interaction, embed=error_embed(ERROR_MESSAGES["missing_permissions"]))
        return

    if isinstance(error, app_commands.NoPrivateMessage):
        await safe_send(interaction, embed=error_embed(ERROR_MESSAGES["guild_only"]))
        return

    if isinstance(error, app_commands.BotMissingPermissions):
        await safe_send(interaction, embed=error_embed("I lack the permissions needed to run this command."))
        return

    if isinstance(error, app_commands.CommandInvokeError) and isinstance(error.original, discord.Forbidden):
        await safe_send(interaction, embed=error_embed("Failed. Check my role position and permissions."))
        return

    log.error(
        "Unexpected error in app command %s",
        interaction.command.qualified_name if interaction.command else "?",
        exc_info=error,
    )
    await safe_send(interaction, embed=error_embed(ERROR_MESSAGES["unexpected"]))


async def setup_error_handlers(bot: commands.Bot) -> None:
    """Install the slash command error handler on the bot's tree."""
    bot.tree.error(on_app_command_error)
