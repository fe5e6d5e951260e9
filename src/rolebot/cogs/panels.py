from __future__ import annotations

import logging
from typing import List, Optional

import discord
from discord import app_commands
from discord.ext import commands

from ..constants import BUTTON_PREFIX, COLORS
from ..models import Panel, PanelKind
from ..sync import ClickStatus, ReactionEvent
from ..utils import error_embed, info_embed, safe_defer, safe_send, unmanageable_roles

log = logging.getLogger("rolebot.panels")

CLICK_REPLIES = {
    ClickStatus.STALE: "This button is stale.",
    ClickStatus.ROLE_MISSING: "Role missing now.",
    ClickStatus.SELECTED: "You now have {role}.",
    ClickStatus.ADDED: "Added {role}.",
    ClickStatus.REMOVED: "Removed {role}.",
    ClickStatus.FAILED: "Failed. Check my role position and permissions.",
}


def _unique_roles(*roles: Optional[discord.Role]) -> List[discord.Role]:
    seen: dict[int, discord.Role] = {}
    for role in roles:
        if role is not None:
            seen.setdefault(role.id, role)
    return list(seen.values())


class PanelButtonView(discord.ui.View):
    """Buttons for a role panel. Clicks are handled by PanelsCog.on_interaction."""

    def __init__(self, roles: List[discord.Role]) -> None:
        super().__init__(timeout=None)
        for role in roles:
            self.add_item(
                discord.ui.Button(
                    label=role.name[:80],
                    style=discord.ButtonStyle.secondary,
                    custom_id=f"{BUTTON_PREFIX}{role.id}",
                )
            )


class PanelsCog(commands.Cog):
    """Button and reaction role panels."""

    rr = app_commands.Group(
        name="rr",
        description="Reaction-role utilities",
        guild_only=True,
        default_permissions=discord.Permissions(manage_roles=True),
    )

    def __init__(self, bot: commands.Bot) -> None:
        self.bot = bot  # type: ignore[assignment]

    async def _reject_unmanageable(self, interaction: discord.Interaction, roles: List[discord.Role]) -> bool:
        blocked = unmanageable_roles(roles)
        if not blocked:
            return False
        await safe_send(
            interaction,
            embed=error_embed(f"I can't manage {blocked[0].mention}. Move my role above it."),
        )
        return True

    @rr.command(name="create", description="Create a role button panel")
    @app_commands.describe(
        title="Panel title",
        role1="Role 1",
        role2="Role 2",
        role3="Role 3",
        role4="Role 4",
        role5="Role 5",
        multi="Allow selecting multiple roles from this panel?",
        channel="Channel to post the panel to",
    )
    async def rr_create(
        self,
        interaction: discord.Interaction,
        title: str,
        role1: discord.Role,
        role2: Optional[discord.Role] = None,
        role3: Optional[discord.Role] = None,
        role4: Optional[discord.Role] = None,
        role5: Optional[discord.Role] = None,
        multi: Optional[bool] = None,
        channel: Optional[discord.TextChannel] = None,
    ) -> None:
        roles = _unique_roles(role1, role2, role3, role4, role5)
        if not roles:
            await safe_send(interaction, "Give me at least one role.")
            return
        if await self._reject_unmanageable(interaction, roles):
            return

        allow_multi = True if multi is None else multi
        target = channel or interaction.channel
        if not isinstance(target, discord.abc.Messageable):
            await safe_send(interaction, embed=error_embed("I can't post in that channel."))
            return

        sent = await target.send(content=f"**{title}**\nClick to toggle roles:", view=PanelButtonView(roles))
        panel = Panel.buttons(
            guild_id=interaction.guild_id,
            message_id=sent.id,
            channel_id=sent.channel.id,
            role_ids=[r.id for r in roles],
            exclusive=not allow_multi,
        )
        await self.bot.config_store.save_panel(panel)  # type: ignore[attr-defined]
        await safe_send(interaction, f"Panel posted in {sent.channel.mention}")

    @rr.command(name="react", description="Create an embed + emoji reaction roles")
    @app_commands.describe(
        title="Embed title",
        image="Image URL to show",
        emoji1="Emoji for role1",
        role1="Role 1",
        channel="Channel to send panel to",
        multi="Allow selecting multiple roles from this panel?",
        emoji2="Emoji for role2",
        role2="Role 2",
        emoji3="Emoji for role3",
        role3="Role 3",
        emoji4="Emoji for role4",
        role4="Role 4",
        emoji5="Emoji for role5",
        role5="Role 5",
    )
    async def rr_react(
        self,
        interaction: discord.Interaction,
        title: str,
        image: str,
        emoji1: str,
        role1: discord.Role,
        channel: Optional[discord.TextChannel] = None,
        multi: Optional[bool] = None,
        emoji2: Optional[str] = None,
        role2: Optional[discord.Role] = None,
        emoji3: Optional[str] = None,
        role3: Optional[discord.Role] = None,
        emoji4: Optional[str] = None,
        role4: Optional[discord.Role] = None,
        emoji5: Optional[str] = None,
        role5: Optional[discord.Role] = None,
    ) -> None:
        mapping: dict[str, discord.Role] = {}
        pairs = ((emoji1, role1), (emoji2, role2), (emoji3, role3), (emoji4, role4), (emoji5, role5))
        for emoji, role in pairs:
            if not emoji or role is None:
                continue
            emoji = emoji.strip()
            if emoji in mapping or any(r.id == role.id for r in mapping.values()):
                await safe_send(interaction, embed=error_embed("Each emoji and each role may appear only once."))
                return
            mapping[emoji] = role

        if not mapping:
            await safe_send(interaction, "Give me at least one emoji + role pair.")
            return
        if await self._reject_unmanageable(interaction, list(mapping.values())):
            return

        allow_multi = True if multi is None else multi
        target = channel or interaction.channel
        if not isinstance(target, discord.abc.Messageable):
            await safe_send(interaction, embed=error_embed("I can't post in that channel."))
            return

        embed = discord.Embed(
            title=title[:256],
            description="\n".join(f"{emoji} {role.mention}" for emoji, role in mapping.items()),
            color=COLORS["default"],
        )
        embed.set_image(url=image)

        await safe_defer(interaction)
        msg = await target.send(embed=embed)

        panel = Panel.reactions(
            guild_id=interaction.guild_id,
            message_id=msg.id,
            channel_id=msg.channel.id,
            mapping={emoji: role.id for emoji, role in mapping.items()},
            exclusive=not allow_multi,
        )
        await self.bot.config_store.save_panel(panel)  # type: ignore[attr-defined]

        failed: list[str] = []
        for emoji in mapping:
            try:
                await msg.add_reaction(emoji)
            except discord.HTTPException as e:
                log.warning("Could not add %s to panel %s: %s", emoji, msg.id, e)
                failed.append(emoji)

        reply = f"Panel posted in {msg.channel.mention}"
        if failed:
            reply += f"\nI couldn't react with: {' '.join(failed)}"
        await safe_send(interaction, reply)

    @rr.command(name="sync", description="Re-scan all reaction panels in this server and fix roles now")
    async def rr_sync(self, interaction: discord.Interaction) -> None:
        counts = await self.bot.config_store.count_panels(interaction.guild_id)  # type: ignore[attr-defined]
        if not counts.get(PanelKind.REACTION.value):
            await safe_send(interaction, embed=info_embed("No reaction panels are stored for this server."))
            return

        await safe_defer(interaction)
        report = await self.bot.sweeper.sweep_guild(interaction.guild_id)  # type: ignore[attr-defined]
        await safe_send(
            interaction,
            embed=info_embed(
                f"Sync complete. Panels: {report.panels} ({report.panels_failed} skipped), "
                f"roles added: {report.roles_added}, removed: {report.roles_removed}."
            ),
        )

    # ---- live events ----

    def _reaction_event(self, payload: discord.RawReactionActionEvent) -> Optional[ReactionEvent]:
        if self.bot.user is not None and payload.user_id == self.bot.user.id:
            return None
        return ReactionEvent(
            guild_id=payload.guild_id,
            channel_id=payload.channel_id,
            message_id=payload.message_id,
            user_id=payload.user_id,
            emoji=str(payload.emoji),
            user_is_bot=payload.member.bot if payload.member is not None else None,
        )

    @commands.Cog.listener()
    async def on_raw_reaction_add(self, payload: discord.RawReactionActionEvent) -> None:
        event = self._reaction_event(payload)
        if event is not None:
            await self.bot.live_reactions.on_reaction_added(event)  # type: ignore[attr-defined]

    @commands.Cog.listener()
    async def on_raw_reaction_remove(self, payload: discord.RawReactionActionEvent) -> None:
        event = self._reaction_event(payload)
        if event is not None:
            await self.bot.live_reactions.on_reaction_removed(event)  # type: ignore[attr-defined]

    @commands.Cog.listener()
    async def on_interaction(self, interaction: discord.Interaction) -> None:
        if interaction.type is not discord.InteractionType.component:
            return
        custom_id = str((interaction.data or {}).get("custom_id", ""))
        if not custom_id.startswith(BUTTON_PREFIX) or interaction.message is None or interaction.guild_id is None:
            return
        try:
            role_id = int(custom_id[len(BUTTON_PREFIX):])
        except ValueError:
            return

        await safe_defer(interaction)
        result = await self.bot.button_toggle.click(  # type: ignore[attr-defined]
            interaction.guild_id,
            interaction.message.id,
            interaction.user.id,
            role_id,
        )
        await safe_send(interaction, CLICK_REPLIES[result.status].format(role=f"<@&{role_id}>"))
