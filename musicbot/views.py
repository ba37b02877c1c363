# musicbot/views.py
from __future__ import annotations

import logging
from typing import Optional, Sequence

import discord

from cogs.utils import THEME, build_embed, clean_query, fmt_duration_words

log = logging.getLogger("tezca.music.views")

MAX_PLAYLIST_FIELDS = 25


def build_track_embed(track, *, description: Optional[str] = None) -> discord.Embed:
    embed = discord.Embed(
        title=clean_query(track.title, limit=250),
        url=track.webpage_url or track.url or None,
        description=description if description is not None else track.short_description(),
        color=THEME["youtube"],
    )
    if track.thumbnail:
        embed.set_thumbnail(url=track.thumbnail)
    return embed


def build_download_embed(track) -> discord.Embed:
    embed = build_track_embed(
        track,
        description=f"**Author**: {track.uploader or 'Unknown'}\n**Duration**: {fmt_duration_words(track.duration)}",
    )
    embed.set_footer(text="Thank you for using our music bot!")
    return embed


def build_playlist_embed(entries: Sequence[tuple[str, object]]) -> discord.Embed:
    """
    entries: (url, TrackInfo | Exception) en orden de cola.
    Una entrada con Exception se muestra como aviso y no corta el listado.
    """
    embed = build_embed(
        "🎶 Current Playlist",
        "Here are the songs in the current playlist:",
        color=THEME["youtube"],
    )

    shown = 0
    for index, (url, info) in enumerate(entries):
        if shown >= MAX_PLAYLIST_FIELDS - 1:
            embed.add_field(
                name="⚠️ More songs...",
                value=f"The playlist is too long, only the first {shown} songs are displayed.",
                inline=False,
            )
            break

        if isinstance(info, Exception):
            embed.add_field(name="⚠️ Error", value="Unable to fetch song information.", inline=False)
        else:
            embed.add_field(
                name=f"{index + 1}. {clean_query(info.title, limit=200)}",
                value=f"[Click to open]({url})",
                inline=False,
            )
            if index == 0 and info.thumbnail:
                embed.set_thumbnail(url=info.thumbnail)
        shown += 1

    return embed


class MusicControls(discord.ui.View):
    """
    Botones bajo el "Now playing":
    - Solo deja usarlos a quien está en el MISMO canal de voz que el bot
    """

    def __init__(self, cog, *, timeout: Optional[float] = 600):
        super().__init__(timeout=timeout)
        self.cog = cog  # cogs.music.Music

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        vc = interaction.guild.voice_client if interaction.guild else None
        if not vc or not vc.channel:
            await interaction.response.send_message("🚫 I'm not connected to a voice channel.", ephemeral=True)
            return False

        user_v = getattr(interaction.user, "voice", None)
        if not user_v or not user_v.channel or user_v.channel.id != vc.channel.id:
            await interaction.response.send_message(
                "🎧 You must be in **the same voice channel** as me to use these buttons.",
                ephemeral=True,
            )
            return False
        return True

    @discord.ui.button(emoji="⏭️", style=discord.ButtonStyle.secondary)
    async def skip(self, interaction: discord.Interaction, button: discord.ui.Button):
        await interaction.response.defer(ephemeral=True, thinking=True)
        await self.cog.skip_for(interaction)

    @discord.ui.button(emoji="⏹️", style=discord.ButtonStyle.danger)
    async def stop_btn(self, interaction: discord.Interaction, button: discord.ui.Button):
        await interaction.response.defer(ephemeral=True, thinking=True)
        await self.cog.stop_for(interaction)
        for item in self.children:
            item.disabled = True
        if interaction.message:
            try:
                await interaction.message.edit(view=self)
            except discord.HTTPException as e:
                log.debug("Could not disable controls: %s", e)
