from __future__ import annotations

import logging
from typing import List, Optional

import discord

from ..errors import DirectoryError, NotFoundError, PermissionDeniedError

log = logging.getLogger("rolebot.directory")


def translate_http_error(e: discord.HTTPException) -> DirectoryError:
    if isinstance(e, discord.Forbidden):
        return PermissionDeniedError(str(e))
    if isinstance(e, discord.NotFound):
        return NotFoundError(str(e))
    return DirectoryError(f"{e.status}: {e.text or e}")


class DiscordDirectory:
    """RoleDirectory backed by a discord.py client.

    Every discord.py HTTP error is translated into a DirectoryError so the
    sync core only ever handles one exception family.
    """

    def __init__(self, client: discord.Client) -> None:
        self.client = client

    def _guild(self, guild_id: int) -> discord.Guild:
        guild = self.client.get_guild(guild_id)
        if guild is None:
            raise NotFoundError(f"guild {guild_id} is not available")
        return guild

    async def fetch_message(self, guild_id: int, channel_id: int, message_id: int) -> discord.Message:
        guild = self._guild(guild_id)
        try:
            channel = guild.get_channel_or_thread(channel_id) or await guild.fetch_channel(channel_id)
            if not isinstance(channel, discord.abc.Messageable):
                raise NotFoundError(f"channel {channel_id} is not a text channel")
            return await channel.fetch_message(message_id)
        except discord.HTTPException as e:
            raise translate_http_error(e) from e

    async def resolve_reaction(self, message: discord.Message, emoji: str) -> Optional[discord.Reaction]:
        # ``message`` comes from fetch_message, so its reaction list is current.
        for reaction in message.reactions:
            if str(reaction.emoji) == emoji:
                return reaction
        return None

    async def has_reacted(self, message: discord.Message, emoji: str, user_id: int) -> bool:
        reaction = await self.resolve_reaction(message, emoji)
        if reaction is None:
            return False
        # Reactors are ordered by id: the first one after user_id - 1 is the user if they reacted.
        page = await self.fetch_reactors(reaction, 1, user_id - 1)
        return bool(page) and page[0].id == user_id

    async def fetch_reactors(
        self,
        reaction: discord.Reaction,
        limit: int,
        after: Optional[int],
    ) -> List[discord.abc.User]:
        cursor = discord.Object(id=after) if after else None
        try:
            return [user async for user in reaction.users(limit=limit, after=cursor)]
        except discord.HTTPException as e:
            raise translate_http_error(e) from e

    async def fetch_member(self, guild_id: int, user_id: int) -> discord.Member:
        guild = self._guild(guild_id)
        try:
            return await guild.fetch_member(user_id)
        except discord.HTTPException as e:
            raise translate_http_error(e) from e

    async def fetch_members(self, guild_id: int) -> List[discord.Member]:
        guild = self._guild(guild_id)
        try:
            return [member async for member in guild.fetch_members(limit=None)]
        except discord.HTTPException as e:
            raise translate_http_error(e) from e
        except discord.ClientException as e:
            # Raised when the members intent is disabled.
            raise DirectoryError(str(e)) from e

    def member_has_role(self, member: discord.Member, role_id: int) -> bool:
        return member.get_role(role_id) is not None

    async def role_exists(self, guild_id: int, role_id: int) -> bool:
        guild = self._guild(guild_id)
        if guild.get_role(role_id) is not None:
            return True
        try:
            roles = await guild.fetch_roles()
        except discord.HTTPException as e:
            raise translate_http_error(e) from e
        return any(r.id == role_id for r in roles)

    async def add_role(self, member: discord.Member, role_id: int, reason: str) -> None:
        try:
            await member.add_roles(discord.Object(id=role_id), reason=reason)
        except discord.HTTPException as e:
            raise translate_http_error(e) from e

    async def remove_role(self, member: discord.Member, role_id: int, reason: str) -> None:
        try:
            await member.remove_roles(discord.Object(id=role_id), reason=reason)
        except discord.HTTPException as e:
            raise translate_http_error(e) from e

    async def remove_reaction(self, message: discord.Message, emoji: str, user_id: int) -> None:
        if not any(str(r.emoji) == emoji for r in message.reactions):
            return
        try:
            await message.remove_reaction(emoji, discord.Object(id=user_id))
        except discord.HTTPException as e:
            raise translate_http_error(e) from e
