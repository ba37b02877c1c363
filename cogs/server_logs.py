# cogs/server_logs.py
import logging
from typing import List

import discord
from discord.ext import commands

log = logging.getLogger("tezca.server_logs")


def member_update_lines(before: discord.Member, after: discord.Member) -> List[str]:
    lines = []
    if before.nick != after.nick:
        old = before.nick or before.name
        new = after.nick or after.name
        lines.append(f"🔄 **{old}** changed their nickname to **{new}**")

    old_roles = {r.id for r in before.roles}
    new_roles = {r.id for r in after.roles}
    for role in after.roles:
        if role.id not in old_roles:
            lines.append(f"➕ **{after}** was given the role **{role.name}**")
    for role in before.roles:
        if role.id not in new_roles:
            lines.append(f"➖ **{after}** was removed from the role **{role.name}**")
    return lines


def voice_update_line(member: discord.Member, before: discord.VoiceState, after: discord.VoiceState):
    if not before.channel and after.channel:
        return f"🔊 **{member}** joined voice channel **{after.channel.name}**"
    if before.channel and not after.channel:
        return f"🔇 **{member}** left voice channel **{before.channel.name}**"
    return None


class ServerLogs(commands.Cog):
    """Reenvía cambios de apodo, roles y voz al canal de logs del servidor."""

    def __init__(self, bot: commands.Bot):
        self.bot = bot

    async def _log_channel(self, guild: discord.Guild):
        channel_id = await self.bot.guild_config.log_channel_id(guild.id)
        if not channel_id:
            log.warning("No log channel configured for guild %s", guild.id)
            return None
        channel = guild.get_channel(channel_id)
        if channel is None:
            log.warning("Log channel %s not found in guild %s.", channel_id, guild.id)
        return channel

    async def _post(self, guild: discord.Guild, lines: List[str]):
        if not lines:
            return
        channel = await self._log_channel(guild)
        if channel is None:
            return
        for line in lines:
            try:
                await channel.send(line)
            except discord.HTTPException as e:
                log.error("Failed to relay log line in guild %s: %s", guild.id, e)
                return

    @commands.Cog.listener()
    async def on_member_update(self, before: discord.Member, after: discord.Member):
        await self._post(after.guild, member_update_lines(before, after))

    @commands.Cog.listener()
    async def on_voice_state_update(self, member: discord.Member, before: discord.VoiceState,
                                    after: discord.VoiceState):
        line = voice_update_line(member, before, after)
        if line:
            await self._post(member.guild, [line])


async def setup(bot: commands.Bot):
    await bot.add_cog(ServerLogs(bot))
