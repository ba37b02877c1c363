# guildconfig/models.py
from __future__ import annotations

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional


def _opt_id(value) -> Optional[int]:
    if value in (None, "", 0, "0"):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@dataclass
class ReactionRole:
    message_id: int
    emoji: str
    role_id: int
    channel_id: Optional[int] = None

    @classmethod
    def from_api(cls, item: Dict[str, Any]) -> Optional["ReactionRole"]:
        message_id = _opt_id(item.get("message_id"))
        role_id = _opt_id(item.get("role_id") or item.get("role"))
        emoji = item.get("emoji")
        if not message_id or not role_id or not emoji:
            return None
        return cls(
            message_id=message_id,
            emoji=str(emoji),
            role_id=role_id,
            channel_id=_opt_id(item.get("channel_id") or item.get("channel")),
        )

    def matches(self, message_id: int, emoji_key: str) -> bool:
        return self.message_id == int(message_id) and self.emoji == str(emoji_key)


@dataclass
class WelcomeLeave:
    welcome_channel_id: Optional[int] = None
    leave_channel_id: Optional[int] = None


@dataclass
class GuildSettings:
    """Documento de configuración de un guild (mismo esquema que la API)."""

    auto_moderation: bool = False
    greeting_message: str = "Welcome to the server!"
    welcome_channel_id: Optional[int] = None
    leave_channel_id: Optional[int] = None
    log_channel_id: Optional[int] = None
    base_voice_channel_id: Optional[int] = None
    member_count_channel_id: Optional[int] = None
    reaction_roles: List[ReactionRole] = field(default_factory=list)

    # claves que /config_set puede tocar -> atributo
    CHANNEL_KEYS = {
        "welcome": "welcome_channel_id",
        "leave": "leave_channel_id",
        "log": "log_channel_id",
        "dynamic_voice": "base_voice_channel_id",
        "member_count": "member_count_channel_id",
    }

    def to_document(self) -> Dict[str, Any]:
        doc = asdict(self)
        for key in ("welcome_channel_id", "leave_channel_id", "log_channel_id",
                    "base_voice_channel_id", "member_count_channel_id"):
            if doc[key] is not None:
                doc[key] = str(doc[key])
        doc["reaction_roles"] = [
            {
                "message_id": str(r.message_id),
                "emoji": r.emoji,
                "role_id": str(r.role_id),
                "channel_id": str(r.channel_id) if r.channel_id else None,
            }
            for r in self.reaction_roles
        ]
        return doc

    @classmethod
    def from_document(cls, doc: Optional[Dict[str, Any]]) -> "GuildSettings":
        doc = doc or {}
        roles = [ReactionRole.from_api(item) for item in doc.get("reaction_roles") or []]
        return cls(
            auto_moderation=bool(doc.get("auto_moderation", False)),
            greeting_message=doc.get("greeting_message") or "Welcome to the server!",
            welcome_channel_id=_opt_id(doc.get("welcome_channel_id")),
            leave_channel_id=_opt_id(doc.get("leave_channel_id")),
            log_channel_id=_opt_id(doc.get("log_channel_id")),
            base_voice_channel_id=_opt_id(doc.get("base_voice_channel_id")),
            member_count_channel_id=_opt_id(doc.get("member_count_channel_id")),
            reaction_roles=[r for r in roles if r],
        )
