# guildconfig/__init__.py
import logging

from .api import GuildConfigAPI
from .models import GuildSettings, ReactionRole, WelcomeLeave
from .store import GuildConfigStore

__all__ = [
    "GuildConfigAPI",
    "GuildConfigStore",
    "GuildSettings",
    "ReactionRole",
    "WelcomeLeave",
    "build_provider",
]


def build_provider(settings):
    """Devuelve el origen de configuración según CONFIG_BACKEND (api | database)."""
    log = logging.getLogger("tezca.config")
    backend = (settings.config_backend or "api").lower()
    if backend == "database":
        log.info("Guild configuration backend: database (%s)", settings.database_path)
        return GuildConfigStore(settings.database_path)
    if backend != "api":
        log.warning("Unknown CONFIG_BACKEND %r, falling back to api", backend)
    if not settings.api_endpoint:
        log.warning("API_ENDPOINT is empty; guild features will stay unconfigured")
    return GuildConfigAPI(settings.api_endpoint, verify_ssl=settings.api_verify_ssl)
