# musicbot/source.py
from __future__ import annotations

import discord

from .downloader import TrackInfo

# reconnect ayuda a streams que se cortan
FFMPEG_OPTIONS = {
    "before_options": "-reconnect 1 -reconnect_streamed 1 -reconnect_delay_max 5",
    "options": "-vn -ar 48000 -ac 2",
}


class YTDLSource(discord.PCMVolumeTransformer):
    def __init__(self, source, *, track: TrackInfo, volume: float = 0.5):
        super().__init__(source, volume)
        self.track = track

    @classmethod
    def from_track(cls, track: TrackInfo) -> "YTDLSource":
        # stream remoto -> ffmpeg -> PCM para discord
        audio = discord.FFmpegPCMAudio(track.stream_url, **FFMPEG_OPTIONS)
        return cls(audio, track=track)
