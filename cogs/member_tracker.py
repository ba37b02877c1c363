# cogs/member_tracker.py
import asyncio
import logging

import discord
from discord.ext import commands

log = logging.getLogger("tezca.member_tracker")


class MemberTracker(commands.Cog):
    """
    Renombra un canal de voz a "Members: N" cuando alguien entra o sale.
    Una sola actualización en vuelo por guild: los disparos extra se saltan.
    """

    def __init__(self, bot: commands.Bot):
        self.bot = bot
        self.in_flight: set[int] = set()
        self._tasks: set[asyncio.Task] = set()

    def cog_unload(self):
        for task in self._tasks:
            task.cancel()

    def schedule_update(self, guild_id: int) -> bool:
        if guild_id in self.in_flight:
            log.info("Update already in progress for guild %s. Skipping...", guild_id)
            return False

        self.in_flight.add(guild_id)
        task = asyncio.create_task(self._run_update(guild_id))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return True

    async def _run_update(self, guild_id: int):
        try:
            await self.update_channel_name(guild_id)
        finally:
            self.in_flight.discard(guild_id)

    async def update_channel_name(self, guild_id: int) -> bool:
        log.info("Updating channel name for guild: %s", guild_id)
        guild = self.bot.get_guild(guild_id)
        if guild is None:
            log.error("Failed to update channel for guild %s: guild not found", guild_id)
            return False

        if not guild.me.guild_permissions.manage_channels:
            log.error("Failed to update channel for guild %s: missing permission Manage Channels", guild_id)
            return False

        channel_id = await self.bot.guild_config.member_count_channel_id(guild_id)
        if not channel_id:
            log.warning("No member-count channel configured for guild %s", guild_id)
            return False

        channel = guild.get_channel(channel_id)
        if not isinstance(channel, discord.VoiceChannel):
            log.error("Failed to update channel for guild %s: invalid or missing voice channel", guild_id)
            return False

        name = f"Members: {guild.member_count}"
        try:
            await channel.edit(name=name)
        except discord.HTTPException as e:
            log.error("Failed to update channel for guild %s: %s", guild_id, e)
            return False
        log.info("Updated channel name for guild %s to: %s", guild_id, name)
        return True

    @commands.Cog.listener()
    async def on_member_join(self, member: discord.Member):
        self.schedule_update(member.guild.id)

    @commands.Cog.listener()
    async def on_member_remove(self, member: discord.Member):
        self.schedule_update(member.guild.id)


async def setup(bot: commands.Bot):
    await bot.add_cog(MemberTracker(bot))
