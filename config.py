# config.py
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

TRUE_VALUES = {"1", "true", "yes", "on"}


def env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in TRUE_VALUES


def env_int(name: str, default: int = 0) -> int:
    raw = (os.getenv(name) or "").strip()
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


@dataclass
class Settings:
    # Discord
    token: Optional[str] = None
    application_id: Optional[int] = None
    dev_guild_id: int = 0

    # Config por guild
    api_endpoint: str = ""
    api_verify_ssl: bool = False
    config_backend: str = "api"
    database_path: str = "tezca.db"

    # IA
    groq_api_key: Optional[str] = None
    groq_model: str = "llama-3.3-70b-versatile"
    cse_api_key: Optional[str] = None
    cse_cx: Optional[str] = None
    memory_dir: str = "data/memory"

    # Música
    playlist_path: str = "data/playlists.json"
    download_dir: str = "downloads"
    stop_clears_playlist: bool = False

    # Logs
    log_dir: str = "logs"
    log_level: str = "INFO"
    exit_on_crash: bool = True

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "Settings":
        load_dotenv(dotenv_path)
        return cls(
            token=os.getenv("DISCORD_TOKEN"),
            application_id=env_int("APPLICATION_ID") or None,
            dev_guild_id=env_int("DEV_GUILD_ID"),
            api_endpoint=(os.getenv("API_ENDPOINT") or "").rstrip("/"),
            api_verify_ssl=env_bool("API_VERIFY_SSL", False),
            config_backend=(os.getenv("CONFIG_BACKEND") or "api").strip().lower(),
            database_path=os.getenv("DATABASE_PATH", "tezca.db"),
            groq_api_key=os.getenv("GROQ_API_KEY"),
            groq_model=os.getenv("GROQ_MODEL", "llama-3.3-70b-versatile"),
            cse_api_key=os.getenv("GOOGLE_CSE_API_KEY"),
            cse_cx=os.getenv("GOOGLE_CSE_CX"),
            memory_dir=os.getenv("MEMORY_DIR", "data/memory"),
            playlist_path=os.getenv("PLAYLIST_PATH", "data/playlists.json"),
            download_dir=os.getenv("DOWNLOAD_DIR", "downloads"),
            stop_clears_playlist=env_bool("MUSIC_STOP_CLEARS_PLAYLIST", False),
            log_dir=os.getenv("LOG_DIR", "logs"),
            log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
            exit_on_crash=env_bool("EXIT_ON_CRASH", True),
        )

    @property
    def search_enabled(self) -> bool:
        return bool(self.cse_api_key and self.cse_cx)
