# musicbot/player.py
from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Optional, Callable

import discord

from .downloader import TrackInfo, YTDLDownloader
from .errors import (
    AlreadyPlayingError,
    EmptyPlaylistError,
    MusicError,
    NotInVoiceChannelError,
    NothingToSkipError,
    StillLoadingError,
    TrackLoadError,
    VoiceConnectionError,
)
from .playlists import PlaylistStore
from .source import YTDLSource
from .views import build_track_embed


class PlayerState(enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    PLAYING = "playing"
    STOPPING = "stopping"


@dataclass
class PlaybackSession:
    """Dónde suena (guild + canal de voz) y dónde se avisa (canal de texto)."""

    guild: discord.Guild
    voice_channel: Optional[discord.abc.Connectable]
    text_channel: Optional[discord.abc.Messageable] = None

    @classmethod
    def from_interaction(cls, interaction: discord.Interaction) -> "PlaybackSession":
        voice = getattr(interaction.user, "voice", None)
        return cls(
            guild=interaction.guild,
            voice_channel=voice.channel if voice else None,
            text_channel=interaction.channel,
        )


class GuildMusicPlayer:
    """
    Player por servidor.
    - La cola vive en PlaylistStore (la cabeza es lo que suena)
    - Una sola reproducción a la vez por guild (lock del store)
    - Cada stop invalida el token: un fetch viejo que termina tarde se descarta
    """

    def __init__(
        self,
        guild_id: int,
        store: PlaylistStore,
        downloader: YTDLDownloader,
        *,
        source_factory: Optional[Callable[[TrackInfo], discord.AudioSource]] = None,
        log: Optional[logging.Logger] = None,
    ):
        self.guild_id = guild_id
        self.store = store
        self.downloader = downloader
        self.source_factory = source_factory or YTDLSource.from_track
        self.log = log or logging.getLogger("tezca.music.player")

        self.state = PlayerState.IDLE
        self.current: Optional[TrackInfo] = None
        self._token = 0

    # ---------- estado ----------
    @property
    def token(self) -> int:
        return self._token

    def _invalidate(self) -> int:
        self._token += 1
        return self._token

    @staticmethod
    def voice_of(session: PlaybackSession) -> Optional[discord.VoiceClient]:
        vc = session.guild.voice_client if session.guild else None
        if vc and vc.is_connected():
            return vc
        return None

    def is_active(self, session: PlaybackSession) -> bool:
        vc = self.voice_of(session)
        return bool(vc and (vc.is_playing() or vc.is_paused()))

    # ---------- helpers ----------
    async def _ensure_voice(self, session: PlaybackSession) -> discord.VoiceClient:
        vc = self.voice_of(session)
        if vc:
            return vc
        try:
            return await session.voice_channel.connect(self_deaf=True)
        except (discord.ClientException, discord.HTTPException, asyncio.TimeoutError) as e:
            self.log.error("Voice connection failed for guild %s: %s", self.guild_id, e)
            raise VoiceConnectionError(str(e)) from e

    async def _disconnect(self, session: PlaybackSession):
        vc = session.guild.voice_client if session.guild else None
        if not vc:
            return
        try:
            await vc.disconnect(force=True)
        except Exception as e:
            self.log.warning("Disconnect failed for guild %s: %s", self.guild_id, e)

    async def _notify(self, session: PlaybackSession, content: Optional[str] = None, *,
                      embed: Optional[discord.Embed] = None):
        if not session.text_channel:
            return
        try:
            await session.text_channel.send(content=content, embed=embed)
        except discord.HTTPException as e:
            self.log.warning("Could not post to text channel in guild %s: %s", self.guild_id, e)

    def _after_callback(self, token: int, session: PlaybackSession):
        loop = asyncio.get_running_loop()

        def _after(error: Optional[Exception]):
            # corre en el hilo de audio de discord.py
            if error:
                self.log.error("Player error in guild %s: %s", self.guild_id, error)
            asyncio.run_coroutine_threadsafe(self.on_track_end(token, session), loop)

        return _after

    # ---------- reproducción ----------
    async def play(self, session: PlaybackSession) -> Optional[TrackInfo]:
        """
        Reproduce la cabeza de la cola.
        Devuelve la pista iniciada, o None si un stop la dejó obsoleta.
        """
        if not session.voice_channel:
            raise NotInVoiceChannelError()
        if not self.store.head(self.guild_id):
            raise EmptyPlaylistError()

        async with self.store.lock(self.guild_id):
            return await self._play_locked(session)

    async def _play_locked(self, session: PlaybackSession) -> Optional[TrackInfo]:
        if self.state is PlayerState.PLAYING and self.is_active(session):
            raise AlreadyPlayingError()

        url = self.store.head(self.guild_id)
        if not url:
            raise EmptyPlaylistError()

        token = self._invalidate()
        self.state = PlayerState.LOADING
        self.current = None

        try:
            track = await self.downloader.resolve(url)
            track.url = url
            if not track.stream_url:
                raise TrackLoadError(url)
            source = self.source_factory(track)
        except Exception as e:
            if token == self._token:
                self.state = PlayerState.IDLE
            self.log.error("Error creating audio resource for %s: %s", url, e)
            if isinstance(e, TrackLoadError):
                raise
            raise TrackLoadError(url, e) from e

        if token != self._token:
            self.log.info("Discarding stale track %s for guild %s", url, self.guild_id)
            source.cleanup()
            return None

        try:
            vc = await self._ensure_voice(session)
        except MusicError:
            source.cleanup()
            if token == self._token:
                self.state = PlayerState.IDLE
            raise

        if token != self._token:
            # stop llegó mientras conectábamos
            source.cleanup()
            await self._disconnect(session)
            return None

        try:
            vc.play(source, after=self._after_callback(token, session))
        except discord.ClientException as e:
            source.cleanup()
            if token == self._token:
                self.state = PlayerState.IDLE
            self.log.error("Voice client refused to play %s in guild %s: %s", url, self.guild_id, e)
            raise VoiceConnectionError(str(e)) from e

        self.current = track
        self.state = PlayerState.PLAYING
        self.log.info("Now playing %s in guild %s", track.title, self.guild_id)
        return track

    async def on_track_end(self, token: int, session: PlaybackSession):
        if token != self._token or self.state is not PlayerState.PLAYING:
            return
        try:
            await self.handle_next(session)
        except Exception:
            # el futuro de run_coroutine_threadsafe no lo espera nadie
            self.log.exception("Auto-advance crashed in guild %s", self.guild_id)
            if token == self._token:
                self.state = PlayerState.IDLE
            await self._notify(session, MusicError.user_message)

    async def handle_next(self, session: PlaybackSession):
        """Saca la pista terminada y sigue con la próxima, o se desconecta."""
        finished = self.current
        self.current = None
        self.state = PlayerState.IDLE

        # solo si sigue en la cabeza: si la quitaron (y quizá la volvieron a
        # agregar al final) esa copia no es la que terminó
        if finished and self.store.head(self.guild_id) == finished.url:
            self.store.remove_first(self.guild_id, finished.url)

        if not self.store.head(self.guild_id):
            await self._disconnect(session)
            self.log.info("Music playback stopped for guild: %s", self.guild_id)
            return

        try:
            track = await self.play(session)
        except MusicError as e:
            self.log.error("Auto-advance failed in guild %s: %s", self.guild_id, e)
            await self._notify(session, e.user_message)
            return

        if track:
            await self._notify(session, "🎵 Now playing:", embed=build_track_embed(track))

    # ---------- controles ----------
    async def skip(self, session: PlaybackSession) -> Optional[TrackInfo]:
        if self.state is PlayerState.LOADING:
            raise StillLoadingError()
        if len(self.store.get(self.guild_id)) <= 1:
            raise NothingToSkipError()

        vc = self.voice_of(session)
        if self.state is PlayerState.PLAYING and vc and (vc.is_playing() or vc.is_paused()):
            vc.stop()  # dispara after -> on_track_end -> handle_next
            return None

        head = self.store.head(self.guild_id)
        if head:
            self.store.remove_first(self.guild_id, head)
        return await self.play(session)

    async def stop(self, session: PlaybackSession, *, clear_playlist: bool = False):
        self._invalidate()
        self.state = PlayerState.STOPPING

        vc = session.guild.voice_client if session.guild else None
        if vc:
            try:
                vc.stop()
            except Exception as e:
                self.log.warning("Stopping output failed for guild %s: %s", self.guild_id, e)
        await self._disconnect(session)

        self.current = None
        if clear_playlist:
            self.store.clear(self.guild_id)
        self.state = PlayerState.IDLE
        self.log.info("Music playback stopped for guild: %s", self.guild_id)


class MusicService:
    def __init__(
        self,
        store: PlaylistStore,
        downloader: YTDLDownloader,
        *,
        source_factory: Optional[Callable[[TrackInfo], discord.AudioSource]] = None,
        log: Optional[logging.Logger] = None,
    ):
        self.store = store
        self.downloader = downloader
        self.source_factory = source_factory
        self.log = log or logging.getLogger("tezca.music")
        self.players: dict[int, GuildMusicPlayer] = {}

    def get_player(self, guild_id: int) -> GuildMusicPlayer:
        if guild_id not in self.players:
            self.players[guild_id] = GuildMusicPlayer(
                guild_id,
                self.store,
                self.downloader,
                source_factory=self.source_factory,
                log=self.log.getChild("player"),
            )
        return self.players[guild_id]
