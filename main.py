# main.py
import asyncio
import logging
import os

import discord
from discord import app_commands
from discord.ext import commands

from config import Settings
from guildconfig import build_provider
from logger import install_crash_handlers, install_loop_handler, setup_logging

log = logging.getLogger("tezca")

# Archivos de /cogs que NO se cargan como extensiones
SKIP_FILES = {"__init__.py", "utils.py"}
COGS_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "cogs")

GENERIC_COMMAND_ERROR = "An error occurred while executing this command!"


def build_intents() -> discord.Intents:
    intents = discord.Intents.default()
    intents.guilds = True
    intents.members = True
    intents.voice_states = True
    intents.guild_messages = True
    intents.guild_reactions = True
    intents.dm_messages = True
    intents.message_content = True
    return intents


def extension_names(cogs_dir: str = COGS_DIR) -> list:
    if not os.path.isdir(cogs_dir):
        log.warning("⚠️ Missing cogs folder: %s", cogs_dir)
        return []
    return sorted(
        f"cogs.{filename[:-3]}"
        for filename in os.listdir(cogs_dir)
        if filename.endswith(".py") and filename not in SKIP_FILES
    )


class TezcaBot(commands.Bot):
    def __init__(self, settings: Settings):
        super().__init__(
            command_prefix=".",
            intents=build_intents(),
            help_command=None,
            application_id=settings.application_id,
        )
        self.settings = settings
        self.guild_config = build_provider(settings)
        self.tree.on_error = self.on_app_command_error

    # =========================
    #  setup_hook = lugar correcto para preparar el bot
    # =========================
    async def setup_hook(self):
        install_loop_handler(asyncio.get_running_loop())
        await self.guild_config.start()
        await self.load_extensions()
        await self.sync_commands()

    async def load_extensions(self):
        log.info("📂 Loading cogs...")
        for mod in extension_names():
            try:
                await self.load_extension(mod)
                log.info("✅  Loaded: %s", mod)
            except commands.ExtensionError:
                log.exception("❌  Failed to load %s", mod)

    async def sync_commands(self) -> int:
        try:
            if self.settings.dev_guild_id:
                # solo en el servidor de pruebas (aparecen al instante)
                guild = discord.Object(id=self.settings.dev_guild_id)
                self.tree.copy_global_to(guild=guild)
                synced = await self.tree.sync(guild=guild)
                log.info("[SYNC] Guild %s: %d slash commands registered.", self.settings.dev_guild_id, len(synced))
            else:
                synced = await self.tree.sync()
                log.info("[SYNC] Global: %d slash commands registered.", len(synced))
            return len(synced)
        except discord.HTTPException as e:
            log.error("[SYNC][ERROR] %s", e)
            return 0

    async def on_ready(self):
        log.info("✅ Tezca online as %s (%s)", self.user, self.user.id)
        await self.change_presence(activity=discord.Game(name="/help"))

    async def on_app_command_error(self, interaction: discord.Interaction, error: app_commands.AppCommandError):
        if interaction.extras.get("handled"):
            return
        command = interaction.command.qualified_name if interaction.command else "?"
        log.error("Error in /%s: %s", command, error, exc_info=getattr(error, "original", error))

        if interaction.response.is_done():
            return
        try:
            await interaction.response.send_message(GENERIC_COMMAND_ERROR, ephemeral=True)
        except discord.HTTPException as e:
            log.warning("Could not report the error to the user: %s", e)

    async def close(self):
        await self.guild_config.close()
        await super().close()


def create_bot(settings: Settings) -> TezcaBot:
    bot = TezcaBot(settings)

    @bot.command(name="sync")
    @commands.is_owner()
    async def sync(ctx: commands.Context):
        """Sincroniza manualmente los slash (global o por guild si DEV_GUILD_ID está seteado)."""
        msg = await ctx.send("⏳ **Syncing commands with Discord...**")
        count = await bot.sync_commands()
        await msg.edit(content=f"✅ **Done!** `{count}` commands synced.")
        log.info("Manual sync by %s: %d commands.", ctx.author, count)

    return bot


# =========================
#  Run
# =========================
async def main():
    settings = Settings.from_env()
    setup_logging(settings.log_dir, settings.log_level)
    install_crash_handlers(settings.log_dir, exit_on_crash=settings.exit_on_crash)

    if not settings.token:
        log.critical("❌ DISCORD_TOKEN not found in .env")
        return

    bot = create_bot(settings)
    async with bot:
        await bot.start(settings.token)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        log.info("🛑 Tezca was shut down manually.")
