# musicbot/playlists.py
from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from typing import Dict, List, Optional


class PlaylistStore:
    """
    Tabla guild -> lista de URLs, persistida como JSON plano.

    - El orden de inserción es el orden de reproducción
    - Se permiten duplicados
    - Cada mutación pasa por _persist() (último en escribir gana)
    """

    def __init__(self, path: str, *, log: Optional[logging.Logger] = None):
        self.path = path
        self.log = log or logging.getLogger("tezca.music.playlists")
        self._playlists: Dict[str, List[str]] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    @staticmethod
    def _key(guild_id) -> str:
        return str(guild_id)

    # ---------- disco ----------
    def load(self) -> None:
        if not os.path.exists(self.path):
            self.log.info("No playlist file at %s, starting empty.", self.path)
            self._playlists = {}
            return
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                raw = json.load(fh)
        except (OSError, ValueError) as e:
            self.log.error("Failed to load playlists from %s: %s", self.path, e)
            self._playlists = {}
            return

        if not isinstance(raw, dict):
            self.log.error("Playlist file %s is not a JSON object, ignoring it.", self.path)
            self._playlists = {}
            return

        self._playlists = {
            str(gid): [str(u) for u in urls]
            for gid, urls in raw.items()
            if isinstance(urls, list)
        }
        self.log.info("Loaded playlists for %d guild(s).", len(self._playlists))

    def _persist(self) -> None:
        folder = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(folder, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=folder, prefix=".playlists-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(self._playlists, fh)
            os.replace(tmp, self.path)
        except OSError:
            if os.path.exists(tmp):
                os.remove(tmp)
            raise

    # ---------- lectura ----------
    def get(self, guild_id) -> List[str]:
        return list(self._playlists.get(self._key(guild_id), []))

    def head(self, guild_id) -> Optional[str]:
        playlist = self._playlists.get(self._key(guild_id))
        return playlist[0] if playlist else None

    # ---------- mutación ----------
    def add(self, guild_id, url: str) -> None:
        self._playlists.setdefault(self._key(guild_id), []).append(url)
        self._persist()

    def remove(self, guild_id, url: str) -> bool:
        """Quita todas las apariciones de url. Devuelve False si no estaba."""
        key = self._key(guild_id)
        playlist = self._playlists.get(key, [])
        kept = [u for u in playlist if u != url]
        if len(kept) == len(playlist):
            return False
        self._playlists[key] = kept
        self._persist()
        return True

    def remove_first(self, guild_id, url: str) -> bool:
        """Quita una sola aparición (la pista que acaba de terminar)."""
        playlist = self._playlists.get(self._key(guild_id), [])
        if url not in playlist:
            return False
        playlist.remove(url)
        self._persist()
        return True

    def clear(self, guild_id) -> None:
        key = self._key(guild_id)
        if self._playlists.get(key):
            self._playlists[key] = []
            self._persist()

    # ---------- concurrencia ----------
    def lock(self, guild_id) -> asyncio.Lock:
        key = self._key(guild_id)
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock
