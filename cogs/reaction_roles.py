# cogs/reaction_roles.py
import logging
from typing import Iterable, Optional

import discord
from discord.ext import commands

from guildconfig import ReactionRole

log = logging.getLogger("tezca.reaction_roles")


def emoji_key(emoji: discord.PartialEmoji) -> str:
    """Emoji custom -> su id; unicode -> el propio carácter."""
    return str(emoji.id) if emoji.id else str(emoji.name)


def find_reaction_role(roles: Iterable[ReactionRole], message_id: int, key: str) -> Optional[ReactionRole]:
    by_message = [r for r in roles if r.message_id == int(message_id)]
    if not by_message:
        log.warning("No matching reaction role configuration for message ID %s", message_id)
        return None
    match = next((r for r in by_message if r.emoji == key), None)
    if match is None:
        log.warning("No matching emoji configuration for message ID %s and emoji %s", message_id, key)
    return match


class ReactionRoles(commands.Cog):
    """Da o quita roles según las reacciones configuradas (eventos raw: funciona sin caché)."""

    def __init__(self, bot: commands.Bot):
        self.bot = bot

    async def _resolve(self, payload: discord.RawReactionActionEvent):
        if payload.guild_id is None:
            return None, None
        guild = self.bot.get_guild(payload.guild_id)
        if guild is None:
            return None, None

        member = payload.member or guild.get_member(payload.user_id)
        if member is None:
            try:
                member = await guild.fetch_member(payload.user_id)
            except discord.HTTPException as e:
                log.warning("Could not fetch member %s in guild %s: %s", payload.user_id, guild.id, e)
                return None, None
        if member.bot:
            return None, None

        roles = await self.bot.guild_config.reaction_roles(guild.id)
        config = find_reaction_role(roles, payload.message_id, emoji_key(payload.emoji))
        if config is None:
            return None, None

        role = guild.get_role(config.role_id)
        if role is None:
            log.warning("Role %s configured for message %s does not exist", config.role_id, payload.message_id)
            return None, None
        return member, role

    @commands.Cog.listener()
    async def on_raw_reaction_add(self, payload: discord.RawReactionActionEvent):
        member, role = await self._resolve(payload)
        if not member:
            return
        try:
            await member.add_roles(role, reason="Reaction role")
            log.info("Gave role %s to %s", role.name, member)
        except discord.HTTPException as e:
            log.error("Error handling reaction add: %s", e)

    @commands.Cog.listener()
    async def on_raw_reaction_remove(self, payload: discord.RawReactionActionEvent):
        member, role = await self._resolve(payload)
        if not member:
            return
        try:
            await member.remove_roles(role, reason="Reaction role")
            log.info("Removed role %s from %s", role.name, member)
        except discord.HTTPException as e:
            log.error("Error handling reaction remove: %s", e)


async def setup(bot: commands.Bot):
    await bot.add_cog(ReactionRoles(bot))
