"""
Fixtures compartidos: dobles de discord.py para la capa de música
y un store de playlists en un directorio temporal.
"""

import asyncio
import sys
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

# raíz del repo en el path (cogs/, musicbot/, etc.)
sys.path.insert(0, str(Path(__file__).parent.parent))

from musicbot.downloader import TrackInfo, YTDLDownloader  # noqa: E402
from musicbot.player import GuildMusicPlayer, PlaybackSession  # noqa: E402
from musicbot.playlists import PlaylistStore  # noqa: E402


class FakeVoiceClient:
    """Imita lo que el player usa de discord.VoiceClient."""

    def __init__(self, guild, channel):
        self.guild = guild
        self.channel = channel
        self._connected = True
        self._playing = False
        self.source = None
        self.after = None
        self.play_calls = 0
        self.stop_calls = 0

    def is_connected(self):
        return self._connected

    def is_playing(self):
        return self._playing

    def is_paused(self):
        return False

    def play(self, source, *, after=None):
        self.source = source
        self.after = after
        self._playing = True
        self.play_calls += 1

    def stop(self):
        self._playing = False
        self.stop_calls += 1

    async def disconnect(self, *, force=False):
        self._connected = False
        self._playing = False
        if self.guild.voice_client is self:
            self.guild.voice_client = None


class FakeDownloader(YTDLDownloader):
    """resolve() devuelve un TrackInfo; las URLs en `broken` fallan."""

    def __init__(self, broken=()):
        super().__init__()
        self.broken = set(broken)
        self.calls = []
        self.gate = None  # asyncio.Event para pausar en medio del fetch

    async def resolve(self, url):
        self.calls.append(url)
        if self.gate is not None:
            await self.gate.wait()
        if url in self.broken:
            raise RuntimeError(f"video unavailable: {url}")
        return TrackInfo(url=url, title=f"Song {url}", stream_url=f"https://stream.example/{url}")


def make_guild(guild_id=1):
    return SimpleNamespace(id=guild_id, voice_client=None)


def make_voice_channel(guild):
    channel = SimpleNamespace(id=500, name="General")

    async def _connect(**kwargs):
        vc = FakeVoiceClient(guild, channel)
        guild.voice_client = vc
        return vc

    channel.connect = AsyncMock(side_effect=_connect)
    return channel


async def settle(rounds: int = 20):
    """Deja correr las tareas pendientes del loop."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def store(tmp_path):
    s = PlaylistStore(str(tmp_path / "playlists.json"))
    s.load()
    return s


@pytest.fixture
def downloader():
    return FakeDownloader(broken={"BAD"})


@pytest.fixture
def guild():
    return make_guild()


@pytest.fixture
def session(guild):
    text_channel = SimpleNamespace(send=AsyncMock())
    return PlaybackSession(guild=guild, voice_channel=make_voice_channel(guild), text_channel=text_channel)


@pytest.fixture
def player(guild, store, downloader):
    return GuildMusicPlayer(guild.id, store, downloader, source_factory=lambda track: MagicMock(name=track.url))
