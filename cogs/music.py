# cogs/music.py
import asyncio
import ctypes.util
import logging
import os

import discord
from discord import app_commands
from discord.ext import commands

from musicbot import (
    MusicControls,
    MusicError,
    MusicService,
    PlaybackSession,
    PlaylistStore,
    YTDLDownloader,
    build_playlist_embed,
    build_track_embed,
)
from musicbot.views import build_download_embed

from .utils import respond

log = logging.getLogger("tezca.music")

MAX_UPLOAD_MB = 8


class Music(commands.Cog):
    """
    Comandos de música. Toda la lógica de cola/reproducción vive en musicbot;
    aquí solo se traduce interacción -> sesión y excepción -> mensaje.
    """

    def __init__(self, bot: commands.Bot):
        self.bot = bot
        settings = bot.settings
        self.download_dir = settings.download_dir
        self.stop_clears_playlist = settings.stop_clears_playlist

        store = PlaylistStore(settings.playlist_path, log=log.getChild("playlists"))
        store.load()
        self.service = MusicService(store, YTDLDownloader(log=log.getChild("downloader")), log=log)

        # Opus en Linux (si discord.py no lo encontró solo)
        if not discord.opus.is_loaded():
            opus_path = ctypes.util.find_library("opus")
            if opus_path:
                try:
                    discord.opus.load_opus(opus_path)
                except OSError as e:
                    log.warning("Could not load opus from %s: %s", opus_path, e)

        os.makedirs(self.download_dir, exist_ok=True)

    @property
    def store(self) -> PlaylistStore:
        return self.service.store

    def player_for(self, interaction: discord.Interaction):
        return self.service.get_player(interaction.guild.id)

    async def cog_unload(self):
        for guild_id, player in list(self.service.players.items()):
            guild = self.bot.get_guild(guild_id)
            if guild and guild.voice_client:
                await player.stop(PlaybackSession(guild, None))

    # ==========================================
    # ➕ ADD
    # ==========================================
    @app_commands.command(name="music_add", description="Add a song to a playlist")
    @app_commands.describe(url="The URL of the song to add to the playlist")
    @app_commands.guild_only()
    async def music_add(self, interaction: discord.Interaction, url: str):
        await interaction.response.defer()
        guild_id = interaction.guild.id
        log.info("Command /music_add triggered by %s in guild %s with URL: %s", interaction.user, guild_id, url)

        track = await self.service.downloader.validate(url)
        if track is None:
            log.warning("Invalid URL provided by %s: %s", interaction.user, url)
            await respond(interaction, f'The provided URL "{url}" is not a valid YouTube video.')
            return

        self.store.add(guild_id, url)
        log.info("Added song to playlist for guild %s: %s", guild_id, url)
        track.url = url
        await respond(interaction, "✅ Song added to the playlist!", embed=build_track_embed(track))

    # ==========================================
    # ▶️ PLAY
    # ==========================================
    @app_commands.command(name="music_play", description="Play the first song in the playlist")
    @app_commands.guild_only()
    async def music_play(self, interaction: discord.Interaction):
        session = PlaybackSession.from_interaction(interaction)
        player = self.player_for(interaction)

        await interaction.response.defer()
        try:
            track = await player.play(session)
        except MusicError as e:
            log.warning("Music play failed in guild %s: %s", interaction.guild_id, e)
            await respond(interaction, e.user_message)
            return

        if track is None:
            await respond(interaction, "⏹️ Playback was stopped before the song could start.")
            return
        await respond(interaction, "🎵 Now playing:", embed=build_track_embed(track), view=MusicControls(self))

    # ==========================================
    # ⏭️ SKIP / ⏹️ STOP
    # ==========================================
    async def skip_for(self, interaction: discord.Interaction):
        player = self.player_for(interaction)
        try:
            track = await player.skip(PlaybackSession.from_interaction(interaction))
        except MusicError as e:
            await respond(interaction, e.user_message, ephemeral=True)
            return
        if track:
            await respond(interaction, "✅ Skipped to the next song!", embed=build_track_embed(track))
        else:
            await respond(interaction, "✅ Skipped to the next song!")

    async def stop_for(self, interaction: discord.Interaction):
        player = self.player_for(interaction)
        await player.stop(PlaybackSession.from_interaction(interaction), clear_playlist=self.stop_clears_playlist)
        if self.stop_clears_playlist:
            await respond(interaction, "✅ Playback has been stopped, the playlist has been cleared.")
        else:
            await respond(interaction, "✅ Playback has been stopped.")

    @app_commands.command(name="music_skip", description="Skip to the next song")
    @app_commands.guild_only()
    async def music_skip(self, interaction: discord.Interaction):
        await interaction.response.defer()
        await self.skip_for(interaction)

    @app_commands.command(name="music_stop", description="Stop playing the current song")
    @app_commands.guild_only()
    async def music_stop(self, interaction: discord.Interaction):
        await interaction.response.defer()
        await self.stop_for(interaction)

    # ==========================================
    # ➖ REMOVE
    # ==========================================
    @app_commands.command(name="music_remove", description="Remove a song from the playlist")
    @app_commands.describe(url="The URL of the song to remove from the playlist")
    @app_commands.guild_only()
    async def music_remove(self, interaction: discord.Interaction, url: str):
        await interaction.response.defer()
        guild_id = interaction.guild.id

        if url not in self.store.get(guild_id):
            await respond(interaction, f"❌ The song URL ({url}) is not in the playlist.")
            return

        # no afecta a la sesión activa: si suena, sigue sonando
        self.store.remove(guild_id, url)
        log.info("Removed %s from the playlist of guild %s", url, guild_id)

        try:
            track = await self.service.downloader.resolve(url)
        except Exception as e:
            log.warning("Could not fetch info for removed song %s: %s", url, e)
            await respond(interaction, f"🎵 The song has been successfully removed from the playlist: {url}")
            return

        track.url = url
        embed = build_track_embed(track, description="🎵 This song has been successfully removed from the playlist.")
        await respond(interaction, embed=embed)

    # ==========================================
    # 📜 PLAYLIST
    # ==========================================
    @app_commands.command(name="music_showplaylist", description="Show the current playlist")
    @app_commands.guild_only()
    async def music_showplaylist(self, interaction: discord.Interaction):
        playlist = self.store.get(interaction.guild.id)
        if not playlist:
            await respond(interaction, "🎵 The playlist is currently empty!")
            return

        await interaction.response.defer()
        results = await asyncio.gather(
            *(self.service.downloader.resolve(url) for url in playlist),
            return_exceptions=True,
        )
        for url, info in zip(playlist, results):
            if isinstance(info, Exception):
                log.error("Error fetching song info for %s: %s", url, info)
        await respond(interaction, embed=build_playlist_embed(list(zip(playlist, results))))

    # ==========================================
    # 💾 DOWNLOAD
    # ==========================================
    @app_commands.command(name="download_video", description="Download MP3 audio from a YouTube video")
    @app_commands.describe(url="URL of the YouTube video")
    async def download_video(self, interaction: discord.Interaction, url: str):
        await interaction.response.defer()
        path = None
        try:
            path, track = await self.service.downloader.download_audio(url, self.download_dir)
            size_mb = os.path.getsize(path) / (1024 * 1024)
            if size_mb > MAX_UPLOAD_MB:
                await respond(
                    interaction,
                    f"File too large ({size_mb:.2f} MB), exceeds Discord upload limit.",
                )
                return
            await interaction.edit_original_response(
                embed=build_download_embed(track),
                attachments=[discord.File(path)],
            )
        except Exception as e:
            log.error("Error in download_video for %s: %s", url, e)
            await respond(
                interaction,
                "❌ An error occurred while downloading or uploading the video, please try again later.",
            )
        finally:
            if path and os.path.exists(path):
                try:
                    os.remove(path)
                except OSError as e:
                    log.warning("Could not delete %s: %s", path, e)


async def setup(bot: commands.Bot):
    await bot.add_cog(Music(bot))
