# cogs/utils.py
from __future__ import annotations

from typing import Optional

import discord

THEME = {
    "primary": 0x5865F2,
    "youtube": 0xFF0000,
    "music": 0x1DB954,
}

MAX_MESSAGE_CHARS = 1900  # margen bajo el límite de 2000


def build_embed(title: str, desc: str = "", color: int = THEME["primary"]) -> discord.Embed:
    return discord.Embed(title=title, description=desc, color=color)


def fmt_duration_words(seconds: int) -> str:
    minutes, secs = divmod(int(seconds or 0), 60)
    return f"{minutes} min {secs} sec"


def clean_query(text: str, limit: int = 80) -> str:
    text = " ".join((text or "").split())
    return text if len(text) <= limit else text[: limit - 1] + "…"


def chunk_text(text: str, size: int = MAX_MESSAGE_CHARS) -> list[str]:
    if not text:
        return []
    return [text[i:i + size] for i in range(0, len(text), size)]


async def respond(interaction: discord.Interaction, content: Optional[str] = None, *,
                  embed: Optional[discord.Embed] = None, ephemeral: bool = False, **kwargs):
    """
    Responde sin importar el estado de la interacción:
    - sin responder: send_message
    - diferida: edit_original_response
    - ya respondida: followup
    """
    payload = dict(kwargs)
    if content is not None:
        payload["content"] = content
    if embed is not None:
        payload["embed"] = embed

    if not interaction.response.is_done():
        await interaction.response.send_message(ephemeral=ephemeral, **payload)
        return
    try:
        await interaction.edit_original_response(**payload)
    except discord.NotFound:
        await interaction.followup.send(ephemeral=ephemeral, **payload)
