# musicbot/errors.py
from __future__ import annotations


class MusicError(Exception):
    """Base class for everything the music layer rejects or fails on."""

    user_message = "❌ Unable to play the song, please try again later."


class NotInVoiceChannelError(MusicError):
    user_message = "❌ Please join a voice channel first!"


class EmptyPlaylistError(MusicError):
    user_message = "🎵 The playlist is currently empty. Please add some songs first!"


class AlreadyPlayingError(MusicError):
    user_message = "🎶 Music is already playing. Use `/music_skip` to move on."


class NothingToSkipError(MusicError):
    user_message = "❌ There are no more songs in the playlist to skip."


class StillLoadingError(MusicError):
    user_message = "⏳ A song is still loading, try again in a moment."


class VoiceConnectionError(MusicError):
    user_message = "❌ Could not play in the voice channel, please try again later."


class TrackLoadError(MusicError):
    """Fetching or decoding a track failed. The track stays queued."""

    def __init__(self, url: str, cause: Exception | None = None):
        super().__init__(f"could not load {url}: {cause}")
        self.url = url
        self.cause = cause
