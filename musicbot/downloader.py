# musicbot/downloader.py
from __future__ import annotations

import asyncio
import logging
import os
import re
from dataclasses import dataclass
from typing import Optional, Dict, Any

import yt_dlp


@dataclass
class TrackInfo:
    url: str
    title: str = "Unknown"
    webpage_url: str = ""
    thumbnail: str = ""
    description: str = ""
    duration: int = 0
    uploader: str = ""
    stream_url: str = ""

    @classmethod
    def from_info(cls, url: str, info: Dict[str, Any]) -> "TrackInfo":
        return cls(
            url=url,
            title=info.get("title") or "Unknown",
            webpage_url=info.get("webpage_url") or url,
            thumbnail=info.get("thumbnail") or "",
            description=info.get("description") or "",
            duration=int(info.get("duration") or 0),
            uploader=info.get("uploader") or info.get("channel") or "",
            stream_url=info.get("url") or "",
        )

    def short_description(self, limit: int = 200) -> str:
        if not self.description:
            return "No description available."
        return self.description[:limit] + "..."


class YTDLDownloader:
    """
    - Resuelve info (title, duration, thumbnail, descripción) con yt-dlp
    - Devuelve la URL del stream solo-audio para reproducir sin descargar
    - Descarga a mp3 solo para /download_video
    """

    def __init__(self, *, log: Optional[logging.Logger] = None):
        self.log = log or logging.getLogger("tezca.music.downloader")

        self._resolve_opts = {
            "quiet": True,
            "no_warnings": True,
            "format": "bestaudio/best",
            "noplaylist": True,
            "extract_flat": False,
            "skip_download": True,
            "source_address": "0.0.0.0",
        }

        self._download_opts_base = {
            "quiet": True,
            "no_warnings": True,
            "format": "bestaudio/best",
            "noplaylist": True,
            "retries": 3,
            "fragment_retries": 3,
            "postprocessors": [
                {"key": "FFmpegExtractAudio", "preferredcodec": "mp3", "preferredquality": "192"}
            ],
        }

    async def resolve(self, url: str) -> TrackInfo:
        """Info + stream de audio. Lanza la excepción de yt-dlp si falla."""
        q = (url or "").strip()

        def _extract():
            with yt_dlp.YoutubeDL(self._resolve_opts) as ydl:
                info = ydl.extract_info(q, download=False)
                if isinstance(info, dict) and "entries" in info:
                    info = next((e for e in info["entries"] if e), None)
                return info

        info = await asyncio.to_thread(_extract)
        if not info:
            raise yt_dlp.utils.DownloadError(f"No playable entry for {q}")
        return TrackInfo.from_info(q, info)

    async def validate(self, url: str) -> Optional[TrackInfo]:
        """Sondea la URL antes de encolarla. None si no se puede reproducir."""
        try:
            info = await self.resolve(url)
        except Exception as e:
            self.log.error("Error validating URL %s: %s", url, e)
            return None
        playable = bool(info.stream_url)
        self.log.info("URL validation for %r: %s", url, "Playable" if playable else "Unplayable/Restricted")
        return info if playable else None

    async def download_audio(self, url: str, out_dir: str) -> tuple[str, TrackInfo]:
        """
        Descarga el audio como mp3 en out_dir.
        Retorna (ruta, info).
        """
        os.makedirs(out_dir, exist_ok=True)

        def _dl():
            probe = dict(self._resolve_opts)
            with yt_dlp.YoutubeDL(probe) as ydl:
                info = ydl.extract_info(url, download=False)
            safe = re.sub(r"[^a-zA-Z0-9_\-]", "_", info.get("title") or "audio")
            opts = dict(self._download_opts_base)
            opts["outtmpl"] = os.path.join(out_dir, f"{safe}.%(ext)s")
            with yt_dlp.YoutubeDL(opts) as ydl:
                ydl.extract_info(url, download=True)
            return os.path.join(out_dir, f"{safe}.mp3"), info

        path, info = await asyncio.to_thread(_dl)
        return path, TrackInfo.from_info(url, info or {})
