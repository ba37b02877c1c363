# guildconfig/store.py
from __future__ import annotations

import json
import logging
import os
from typing import List, Optional

import aiosqlite

from .models import GuildSettings, ReactionRole, WelcomeLeave


class GuildConfigStore:
    """
    Almacén documental de configuración por guild sobre SQLite.
    Una fila por guild: id, nombre y el documento de ajustes en JSON.
    Expone la misma interfaz de lectura que GuildConfigAPI.
    """

    def __init__(self, db_path: str, *, log: Optional[logging.Logger] = None):
        self.db_path = db_path
        self.log = log or logging.getLogger("tezca.config.store")

    async def start(self):
        """Crea la tabla si no existe."""
        folder = os.path.dirname(self.db_path)
        if folder:
            os.makedirs(folder, exist_ok=True)
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute("""
                CREATE TABLE IF NOT EXISTS guild_configs (
                    guild_id TEXT PRIMARY KEY,
                    guild_name TEXT,
                    settings TEXT NOT NULL
                )
            """)
            await db.commit()
        self.log.info("Guild config store ready at %s", self.db_path)

    async def close(self):
        # cada operación abre y cierra su propia conexión
        return None

    async def get_settings(self, guild_id: int) -> GuildSettings:
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                "SELECT settings FROM guild_configs WHERE guild_id = ?", (str(guild_id),)
            )
            row = await cursor.fetchone()

        if not row:
            return GuildSettings()
        try:
            return GuildSettings.from_document(json.loads(row[0]))
        except (TypeError, ValueError) as e:
            self.log.error("Corrupt settings document for guild %s: %s", guild_id, e)
            return GuildSettings()

    async def save(self, guild_id: int, settings: GuildSettings, guild_name: Optional[str] = None):
        doc = json.dumps(settings.to_document(), ensure_ascii=False)
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute("""
                INSERT INTO guild_configs (guild_id, guild_name, settings)
                VALUES (?, ?, ?)
                ON CONFLICT(guild_id) DO UPDATE SET
                    settings = excluded.settings,
                    guild_name = COALESCE(excluded.guild_name, guild_configs.guild_name)
            """, (str(guild_id), guild_name, doc))
            await db.commit()

    async def update_channel(self, guild_id: int, key: str, channel_id: Optional[int],
                             guild_name: Optional[str] = None) -> GuildSettings:
        """Cambia un canal por su clave corta (welcome, leave, log, dynamic_voice, member_count)."""
        attr = GuildSettings.CHANNEL_KEYS.get(key)
        if attr is None:
            raise KeyError(key)
        settings = await self.get_settings(guild_id)
        setattr(settings, attr, channel_id)
        await self.save(guild_id, settings, guild_name)
        self.log.info("Guild %s: %s set to %s", guild_id, attr, channel_id)
        return settings

    async def add_reaction_role(self, guild_id: int, role: ReactionRole) -> GuildSettings:
        settings = await self.get_settings(guild_id)
        settings.reaction_roles = [
            r for r in settings.reaction_roles if not r.matches(role.message_id, role.emoji)
        ]
        settings.reaction_roles.append(role)
        await self.save(guild_id, settings)
        return settings

    # ---------- misma interfaz que GuildConfigAPI ----------
    async def welcome_leave(self, guild_id: int) -> Optional[WelcomeLeave]:
        s = await self.get_settings(guild_id)
        if not (s.welcome_channel_id or s.leave_channel_id):
            return None
        return WelcomeLeave(s.welcome_channel_id, s.leave_channel_id)

    async def log_channel_id(self, guild_id: int) -> Optional[int]:
        return (await self.get_settings(guild_id)).log_channel_id

    async def base_voice_channel_id(self, guild_id: int) -> Optional[int]:
        return (await self.get_settings(guild_id)).base_voice_channel_id

    async def member_count_channel_id(self, guild_id: int) -> Optional[int]:
        return (await self.get_settings(guild_id)).member_count_channel_id

    async def reaction_roles(self, guild_id: int) -> List[ReactionRole]:
        return (await self.get_settings(guild_id)).reaction_roles

    def invalidate(self, guild_id: Optional[int] = None):
        # sin caché: siempre se lee de la base
        return None
