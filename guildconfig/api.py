# guildconfig/api.py
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

import aiohttp

from .models import ReactionRole, WelcomeLeave, _opt_id


class GuildConfigAPI:
    """
    Cliente HTTP de la API de configuración por guild.

    GET {base}/api/{guild_id}/<recurso>. Cualquier fallo (red, timeout, 4xx/5xx,
    JSON roto) se registra y se devuelve None: para el llamador es igual que
    "no configurado".
    """

    def __init__(
        self,
        base_url: str,
        *,
        verify_ssl: bool = False,
        timeout: float = 10,
        session: Optional[aiohttp.ClientSession] = None,
        log: Optional[logging.Logger] = None,
    ):
        self.base_url = (base_url or "").rstrip("/")
        self.verify_ssl = verify_ssl
        self.timeout = timeout
        self.log = log or logging.getLogger("tezca.config.api")
        self._session = session
        self._owns_session = session is None
        self._cache: Dict[tuple, Any] = {}

    async def start(self):
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout))

    async def close(self):
        if self._session and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    def invalidate(self, guild_id: Optional[int] = None):
        if guild_id is None:
            self._cache.clear()
            return
        for key in [k for k in self._cache if k[0] == str(guild_id)]:
            del self._cache[key]

    async def _get_json(self, guild_id: int, resource: str) -> Optional[Dict[str, Any]]:
        if not self.base_url:
            self.log.warning("API_ENDPOINT is not configured, cannot fetch %s for guild %s", resource, guild_id)
            return None
        if self._session is None:
            await self.start()

        url = f"{self.base_url}/api/{guild_id}/{resource}"
        try:
            async with self._session.get(url, ssl=None if self.verify_ssl else False) as resp:
                if resp.status != 200:
                    self.log.error("Error fetching %s for guild %s: HTTP %s", resource, guild_id, resp.status)
                    return None
                data = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            self.log.error("Error fetching %s for guild %s: %s", resource, guild_id, e)
            return None

        if not isinstance(data, dict):
            self.log.warning("Unexpected payload for %s in guild %s", resource, guild_id)
            return None
        return data

    @staticmethod
    def _config(data: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        if not data:
            return {}
        return data.get("config") or {}

    # ---------- recursos ----------
    async def welcome_leave(self, guild_id: int) -> Optional[WelcomeLeave]:
        cfg = self._config(await self._get_json(guild_id, "getWelcomeLeave"))
        if not cfg:
            return None
        return WelcomeLeave(
            welcome_channel_id=_opt_id(cfg.get("welcome_channel_id")),
            leave_channel_id=_opt_id(cfg.get("leave_channel_id")),
        )

    async def log_channel_id(self, guild_id: int) -> Optional[int]:
        return _opt_id(self._config(await self._get_json(guild_id, "log-channel")).get("log_channel_id"))

    async def base_voice_channel_id(self, guild_id: int) -> Optional[int]:
        cfg = self._config(await self._get_json(guild_id, "dynamic-voice-channels"))
        return _opt_id(cfg.get("base_channel_id"))

    async def member_count_channel_id(self, guild_id: int) -> Optional[int]:
        key = (str(guild_id), "trackingMembers")
        if key in self._cache:
            return self._cache[key]

        data = await self._get_json(guild_id, "trackingMembers")
        if data is None:
            return None
        channel_id = _opt_id(self._config(data).get("trackingmembers_channel_id"))
        self._cache[key] = channel_id
        if channel_id:
            self.log.info("Fetched member-count channel for guild %s: %s", guild_id, channel_id)
        else:
            self.log.warning("No member-count channel configured for guild %s", guild_id)
        return channel_id

    async def reaction_roles(self, guild_id: int) -> List[ReactionRole]:
        data = await self._get_json(guild_id, "reaction-roles")
        if not data or not data.get("success") or not data.get("data"):
            self.log.warning("Reaction-role response is invalid or unsuccessful for guild %s", guild_id)
            return []
        roles = [ReactionRole.from_api(item) for item in data["data"] if isinstance(item, dict)]
        return [r for r in roles if r]
