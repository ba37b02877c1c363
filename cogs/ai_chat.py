# cogs/ai_chat.py
import logging

import discord
from discord import app_commands
from discord.ext import commands

from aichat import build_chat

from .utils import chunk_text, respond

log = logging.getLogger("tezca.ai")

THINKING = "💬 Thinking about your words…"


class AIChatCog(commands.Cog, name="AIChat"):
    """Chat con IA por mensaje directo, con memoria por usuario."""

    def __init__(self, bot: commands.Bot, chat=None):
        self.bot = bot
        self.chat = chat if chat is not None else build_chat(bot.settings)

    async def cog_unload(self):
        if self.chat and self.chat.search:
            await self.chat.search.close()

    async def _deliver(self, message: discord.Message, placeholder, reply: str):
        parts = chunk_text(reply)
        try:
            if placeholder:
                await placeholder.edit(content=parts[0])
            else:
                await message.channel.send(parts[0])
            for part in parts[1:]:
                await message.channel.send(part)
        except discord.HTTPException as e:
            log.error("❌ Failed to reply or edit the message: %s", e)

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message):
        if message.author.bot or message.guild is not None:
            return
        if not isinstance(message.channel, discord.DMChannel):
            log.debug("📨 Non-DM message ignored")
            return

        user = message.author
        question = message.content.strip()
        if not question:
            log.warning("⚠️ Received a blank message from %s", user.name)
            return
        if self.chat is None:
            await message.channel.send("❌ AI chat is not configured on this bot.")
            return

        log.info("💌 Handling DM from %s (%s): %s", user.name, user.id, question)

        placeholder = None
        try:
            placeholder = await message.channel.send(THINKING)
        except discord.HTTPException as e:
            log.error("❌ Could not send the thinking message: %s", e)

        reply = await self.chat.ask(user.id, user.name, question)
        if reply:
            await self._deliver(message, placeholder, reply)

    @app_commands.command(name="ai_reset", description="Forget our previous conversations")
    async def ai_reset(self, interaction: discord.Interaction):
        if self.chat is None:
            await respond(interaction, "❌ AI chat is not configured on this bot.", ephemeral=True)
            return
        removed = self.chat.reset(interaction.user.id)
        log.info("AI memory reset for %s (%s files)", interaction.user.id, removed)
        await respond(interaction, "🧹 Done, I've forgotten our previous conversations.", ephemeral=True)


async def setup(bot: commands.Bot):
    await bot.add_cog(AIChatCog(bot))
