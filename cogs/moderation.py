# cogs/moderation.py
import asyncio
import datetime
import logging
from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands

from .utils import respond

log = logging.getLogger("tezca.moderation")

BATCH_SIZE = 100
BATCH_DELAY = 0.5  # segundos entre tandas
BULK_MAX_AGE = datetime.timedelta(days=14)


class MessageDeleter:
    """
    Borra mensajes de un canal.
    - Ruta simple (≤100 y sin modo antiguo): purge solo de mensajes < 14 días
    - Ruta por tandas: trae hasta 100, borra uno por uno, pausa y repite
    """

    def __init__(self, channel: discord.abc.Messageable, *, log: Optional[logging.Logger] = None,
                 delay: float = BATCH_DELAY):
        if channel is None:
            raise ValueError("Invalid interaction or channel is not accessible")
        self.channel = channel
        self.delay = delay
        self.log = log or logging.getLogger("tezca.moderation.deleter")

    async def delete_messages(self, number: int = 1, large_range: bool = False) -> int:
        if large_range or number > BATCH_SIZE:
            self.log.info("🔄 Performing multiple batch deletes...")
            return await self.batch_delete(number)
        return await self.simple_delete(number)

    async def simple_delete(self, number: int) -> int:
        cutoff = discord.utils.utcnow() - BULK_MAX_AGE
        try:
            deleted = await self.channel.purge(limit=number, after=cutoff, oldest_first=False)
        except discord.HTTPException as e:
            self.log.error("❌ Error in simple delete: %s", e)
            return 0
        self.log.info("✅ Successfully deleted %s messages.", len(deleted))
        return len(deleted)

    async def _delete_one(self, message: discord.Message) -> bool:
        try:
            await message.delete()
            return True
        except discord.HTTPException as e:
            self.log.warning("Could not delete message %s: %s", message.id, e)
            return False

    async def batch_delete(self, number: int) -> int:
        remaining = number
        deleted = 0
        before = None

        try:
            while remaining > 0:
                limit = min(remaining, BATCH_SIZE)
                fetched = [m async for m in self.channel.history(limit=limit, before=before)]
                if not fetched:
                    break

                self.log.info("🗑️ Deleting %s messages in batch...", len(fetched))
                results = await asyncio.gather(*(self._delete_one(m) for m in fetched))
                deleted += sum(1 for ok in results if ok)

                remaining -= len(fetched)
                before = fetched[-1]
                if len(fetched) < limit:
                    break
                if remaining > 0:
                    self.log.debug("⏳ Waiting %ss before next batch...", self.delay)
                    await asyncio.sleep(self.delay)
        except discord.HTTPException as e:
            self.log.error("❌ Error during batch deletion: %s", e)

        return deleted


class Moderation(commands.Cog):
    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @app_commands.command(name="mod_delete_message", description="Delete message")
    @app_commands.describe(
        message_number="Number of messages to delete",
        reliable_vintage_model="Is it the deletion mode for messages older than two weeks or more than 100 messages?",
    )
    @app_commands.default_permissions(manage_messages=True)
    @app_commands.checks.has_permissions(manage_messages=True)
    @app_commands.guild_only()
    async def mod_delete_message(self, interaction: discord.Interaction, message_number: int,
                                 reliable_vintage_model: bool = True):
        if message_number < 1:
            await respond(interaction, "⚠️ The number of messages must be at least 1.", ephemeral=True)
            return

        await interaction.response.defer(ephemeral=True)
        try:
            deleter = MessageDeleter(interaction.channel, log=log.getChild("deleter"))
            count = await deleter.delete_messages(message_number, reliable_vintage_model)
        except (ValueError, discord.HTTPException) as e:
            log.error("Error executing mod_delete_message command: %s", e)
            await respond(interaction, "❌ Failed to delete messages.", ephemeral=True)
            return

        msg = f"✅ Successfully deleted {count} messages." if count > 0 else "⚠️ No messages were deleted."
        await respond(interaction, msg, ephemeral=True)

    @mod_delete_message.error
    async def mod_delete_message_error(self, interaction: discord.Interaction, error: app_commands.AppCommandError):
        if isinstance(error, app_commands.MissingPermissions):
            interaction.extras["handled"] = True
            await respond(interaction, "🚫 You need the Manage Messages permission.", ephemeral=True)


async def setup(bot: commands.Bot):
    await bot.add_cog(Moderation(bot))
