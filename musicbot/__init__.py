# musicbot/__init__.py
from .downloader import TrackInfo, YTDLDownloader
from .errors import MusicError, TrackLoadError
from .player import GuildMusicPlayer, MusicService, PlaybackSession, PlayerState
from .playlists import PlaylistStore
from .views import MusicControls, build_playlist_embed, build_track_embed
