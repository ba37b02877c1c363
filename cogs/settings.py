# cogs/settings.py
import logging
from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands

from guildconfig import GuildConfigStore

from .utils import THEME, build_embed, respond

log = logging.getLogger("tezca.config")

KEY_CHOICES = [
    app_commands.Choice(name="Welcome channel", value="welcome"),
    app_commands.Choice(name="Leave channel", value="leave"),
    app_commands.Choice(name="Log channel", value="log"),
    app_commands.Choice(name="Dynamic voice trigger", value="dynamic_voice"),
    app_commands.Choice(name="Member count channel", value="member_count"),
]


def _fmt_channel(channel_id: Optional[int]) -> str:
    return f"<#{channel_id}>" if channel_id else "—"


class Settings(commands.Cog):
    """Ver y cambiar la configuración del servidor."""

    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @property
    def provider(self):
        return self.bot.guild_config

    @app_commands.command(name="config_show", description="Show this server's bot configuration")
    @app_commands.default_permissions(administrator=True)
    @app_commands.guild_only()
    async def config_show(self, interaction: discord.Interaction):
        await interaction.response.defer(ephemeral=True)
        gid = interaction.guild.id

        wl = await self.provider.welcome_leave(gid)
        roles = await self.provider.reaction_roles(gid)

        embed = build_embed("⚙️ Server configuration", f"Backend: `{type(self.provider).__name__}`", THEME["primary"])
        embed.add_field(name="Welcome", value=_fmt_channel(wl.welcome_channel_id if wl else None))
        embed.add_field(name="Leave", value=_fmt_channel(wl.leave_channel_id if wl else None))
        embed.add_field(name="Logs", value=_fmt_channel(await self.provider.log_channel_id(gid)))
        embed.add_field(name="Dynamic voice", value=_fmt_channel(await self.provider.base_voice_channel_id(gid)))
        embed.add_field(name="Member count", value=_fmt_channel(await self.provider.member_count_channel_id(gid)))
        embed.add_field(name="Reaction roles", value=str(len(roles)))
        await respond(interaction, embed=embed, ephemeral=True)

    @app_commands.command(name="config_set", description="Set a channel in this server's bot configuration")
    @app_commands.describe(key="Which setting to change", channel="Channel to use (leave empty to unset)")
    @app_commands.choices(key=KEY_CHOICES)
    @app_commands.default_permissions(administrator=True)
    @app_commands.checks.has_permissions(administrator=True)
    @app_commands.guild_only()
    async def config_set(self, interaction: discord.Interaction, key: app_commands.Choice[str],
                         channel: Optional[discord.abc.GuildChannel] = None):
        if not isinstance(self.provider, GuildConfigStore):
            await respond(
                interaction,
                "⚠️ This bot reads its configuration from the web dashboard. Change it there.",
                ephemeral=True,
            )
            return

        if key.value == "dynamic_voice" and channel and not isinstance(channel, discord.VoiceChannel):
            await respond(interaction, "❌ The dynamic voice trigger must be a voice channel.", ephemeral=True)
            return
        if key.value == "member_count" and channel and not isinstance(channel, discord.VoiceChannel):
            await respond(interaction, "❌ The member count channel must be a voice channel.", ephemeral=True)
            return

        await self.provider.update_channel(
            interaction.guild.id,
            key.value,
            channel.id if channel else None,
            guild_name=interaction.guild.name,
        )
        log.info("Guild %s: %s set to %s by %s", interaction.guild.id, key.value, channel, interaction.user)
        await respond(interaction, f"✅ **{key.name}** set to {_fmt_channel(channel.id if channel else None)}.",
                      ephemeral=True)


async def setup(bot: commands.Bot):
    await bot.add_cog(Settings(bot))
