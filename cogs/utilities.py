# cogs/utilities.py
import logging
import random
from typing import Optional

import discord
from discord import app_commands
from discord.ext import commands

from .utils import THEME

log = logging.getLogger("tezca.utilities")

HELP_CATEGORIES = [
    {
        "title": "🎵 Music commands",
        "description": "Control music playback.",
        "commands": [
            "`/music_add` - Add a song",
            "`/music_play` - Play the playlist",
            "`/music_skip` - Skip the current song",
            "`/music_stop` - Stop playback",
            "`/music_remove` - Remove a song",
            "`/music_showplaylist` - Show the playlist",
            "`/download_video` - Download a video as MP3",
        ],
        "color": THEME["music"],
    },
    {
        "title": "🛠️ Utilities",
        "description": "Handy tools.",
        "commands": [
            "`/bot_anonymousmessage` - Send an anonymous message",
            "`/randomchar` - Pick a random word",
            "`/bot_test` - Check that the bot is alive",
            "`/ai_reset` - Clear your AI chat memory (DM the bot to chat)",
        ],
        "color": 0x7289DA,
    },
    {
        "title": "🔧 Server management",
        "description": "Server administration commands.",
        "commands": [
            "`/mod_delete_message` - Delete messages",
            "`/config_show` - Show the server configuration",
            "`/config_set` - Change a configured channel",
        ],
        "color": 0xFF5733,
    },
]


def help_page(index: int) -> discord.Embed:
    category = HELP_CATEGORIES[index]
    embed = discord.Embed(title=category["title"], description=category["description"], color=category["color"])
    embed.add_field(name="📌 Commands", value="\n".join(category["commands"]), inline=False)
    embed.set_footer(text=f"📖 Page {index + 1} / {len(HELP_CATEGORIES)}")
    return embed


def pick_random_word(text: str) -> Optional[str]:
    words = (text or "").split()
    return random.choice(words) if words else None


class HelpPager(discord.ui.View):
    """Paginador del /help: solo quien lo pidió puede pasar páginas; 60 s de vida."""

    def __init__(self, author_id: int, *, timeout: float = 60):
        super().__init__(timeout=timeout)
        self.author_id = author_id
        self.page = 0
        self.interaction: Optional[discord.Interaction] = None

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        if interaction.user.id != self.author_id:
            await interaction.response.send_message("❌ This menu belongs to whoever asked for help.", ephemeral=True)
            return False
        return True

    async def _show(self, interaction: discord.Interaction):
        await interaction.response.edit_message(embed=help_page(self.page), view=self)

    @discord.ui.button(label="⬅️", style=discord.ButtonStyle.primary)
    async def prev(self, interaction: discord.Interaction, button: discord.ui.Button):
        self.page = (self.page - 1) % len(HELP_CATEGORIES)
        await self._show(interaction)

    @discord.ui.button(label="➡️", style=discord.ButtonStyle.primary)
    async def next(self, interaction: discord.Interaction, button: discord.ui.Button):
        self.page = (self.page + 1) % len(HELP_CATEGORIES)
        await self._show(interaction)

    async def on_timeout(self):
        if self.interaction is None:
            return
        try:
            await self.interaction.edit_original_response(view=None)
        except discord.HTTPException as e:
            log.debug("Could not remove help buttons: %s", e)


class Utilities(commands.Cog):
    def __init__(self, bot: commands.Bot):
        self.bot = bot

    @app_commands.command(name="bot_test", description="Test the robot running status")
    async def ping_test(self, interaction: discord.Interaction):
        await interaction.response.send_message("The robot is running")

    @app_commands.command(name="bot_anonymousmessage", description="Anonymous messages/endorsements")
    @app_commands.describe(message="Anonymous message to send", messageid="Message id to reply to")
    async def anonymous_message(self, interaction: discord.Interaction, message: str,
                                messageid: Optional[str] = None):
        try:
            if messageid:
                await interaction.response.send_message(
                    f'Anonymous message sent: "{message}", reply to: {messageid}', ephemeral=True
                )
                reference = discord.MessageReference(
                    message_id=int(messageid), channel_id=interaction.channel_id, fail_if_not_exists=False
                )
                await interaction.channel.send(message, reference=reference)
            else:
                await interaction.response.send_message(f'Anonymous message sent: "{message}"', ephemeral=True)
                await interaction.channel.send(message)
        except (ValueError, discord.HTTPException) as e:
            log.error("Failed to send anonymous message: %s", e)
            text = "Failed to send anonymous message. Please try again later."
            if interaction.response.is_done():
                await interaction.followup.send(text, ephemeral=True)
            else:
                await interaction.response.send_message(text, ephemeral=True)

    @app_commands.command(name="randomchar", description="Randomly returns a user-inputted word")
    @app_commands.describe(input="Input string, separated by spaces")
    async def randomchar(self, interaction: discord.Interaction, input: str):
        word = pick_random_word(input)
        await interaction.response.send_message(word or "You did not provide any words.")

    @app_commands.command(name="help", description="📜 Show the bot's command list")
    async def help(self, interaction: discord.Interaction):
        view = HelpPager(interaction.user.id)
        await interaction.response.send_message(embed=help_page(0), view=view, ephemeral=True)
        view.interaction = interaction


async def setup(bot: commands.Bot):
    await bot.add_cog(Utilities(bot))
