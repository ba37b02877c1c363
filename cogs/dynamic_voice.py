# cogs/dynamic_voice.py
import logging
import re

import discord
from discord.ext import commands

log = logging.getLogger("tezca.dynamic_voice")

DYNAMIC_SUFFIX = "'s Channel"


def dynamic_channel_name(member_name: str) -> str:
    name = re.sub(r"[^a-zA-Z0-9\-_ ]", "", (member_name or "").strip())
    return f"{name or 'Default Channel'}{DYNAMIC_SUFFIX}"


def is_dynamic_channel(channel) -> bool:
    return bool(channel) and DYNAMIC_SUFFIX in channel.name


class DynamicVoice(commands.Cog):
    """Canal "disparador": al entrar se crea un canal propio; vacío -> se borra."""

    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @commands.Cog.listener()
    async def on_voice_state_update(self, member: discord.Member, before: discord.VoiceState,
                                    after: discord.VoiceState):
        if before.channel == after.channel:
            return  # mute/deafen, no cambió de canal

        guild_id = member.guild.id
        trigger_id = await self.bot.guild_config.base_voice_channel_id(guild_id)
        if not trigger_id:
            log.warning("Guild %s does not have a configured trigger channel ID", guild_id)
            return

        if after.channel and after.channel.id == trigger_id:
            await self.create_dynamic_channel(member, after.channel)

        if before.channel:
            await self.delete_if_empty(before.channel)

    async def create_dynamic_channel(self, member: discord.Member, trigger: discord.VoiceChannel):
        overwrites = {
            member: discord.PermissionOverwrite(
                manage_channels=True,
                move_members=True,
                mute_members=True,
                deafen_members=True,
            )
        }
        try:
            channel = await member.guild.create_voice_channel(
                dynamic_channel_name(member.name),
                category=trigger.category,
                overwrites=overwrites,
                reason="Dynamic voice channel",
            )
            await member.move_to(channel)
            log.info("Created and moved member to channel: %s", channel.id)
        except discord.HTTPException as e:
            log.error("Failed to create dynamic channel: %s", e)

    async def delete_if_empty(self, channel):
        if channel.members or not is_dynamic_channel(channel):
            return
        try:
            await channel.delete(reason="Dynamic voice channel is empty")
            log.info("Deleted empty channel: %s", channel.id)
        except discord.NotFound:
            pass
        except discord.HTTPException as e:
            log.error("Failed to delete empty channel: %s", e)


async def setup(bot: commands.Bot):
    await bot.add_cog(DynamicVoice(bot))
