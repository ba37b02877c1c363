# cogs/welcome.py
import logging
import os

import discord
from discord.ext import commands

log = logging.getLogger("tezca.welcome")

BANNER_PATH = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "assets", "welcome-banner.png")


def build_welcome_embed(member: discord.Member) -> discord.Embed:
    embed = discord.Embed(
        title=f"Welcome {member} to the server!",
        description=f"{member.mention} welcome to the server!",
    )
    embed.set_thumbnail(url=member.display_avatar.replace(format="png", size=256).url)
    return embed


class Welcome(commands.Cog):
    """Mensajes de bienvenida y despedida en los canales configurados."""

    def __init__(self, bot: commands.Bot, *, banner_path: str = BANNER_PATH):
        self.bot = bot
        self.banner_path = banner_path

    async def _channels(self, guild_id: int):
        return await self.bot.guild_config.welcome_leave(guild_id)

    @commands.Cog.listener()
    async def on_member_join(self, member: discord.Member):
        config = await self._channels(member.guild.id)
        if not config or not config.welcome_channel_id:
            log.info("❕Welcome channel configuration not found for guild %s.", member.guild.id)
            return

        channel = self.bot.get_channel(config.welcome_channel_id)
        if channel is None:
            log.info("❕Welcome channel %s not found.", config.welcome_channel_id)
            return

        kwargs = {"embed": build_welcome_embed(member)}
        if os.path.exists(self.banner_path):
            kwargs["file"] = discord.File(self.banner_path, filename="welcome-banner.png")
        else:
            log.debug("Welcome banner missing at %s", self.banner_path)

        try:
            await channel.send(**kwargs)
        except discord.HTTPException as e:
            log.error("An error occurred while sending the welcome message or banner: %s", e)

    @commands.Cog.listener()
    async def on_member_remove(self, member: discord.Member):
        config = await self._channels(member.guild.id)
        if not config or not config.leave_channel_id:
            log.info("❕Leave channel configuration not found for guild %s.", member.guild.id)
            return

        channel = self.bot.get_channel(config.leave_channel_id)
        if channel is None:
            log.info("❕Leave channel %s not found.", config.leave_channel_id)
            return

        try:
            await channel.send(f"**{member}** has left the server.")
        except discord.HTTPException as e:
            log.error("An error occurred while sending the leave message: %s", e)


async def setup(bot: commands.Bot):
    await bot.add_cog(Welcome(bot))
