# aichat/__init__.py
from __future__ import annotations

import logging
import os

from .core import AIChat, GroqCompleter, needs_web_search
from .memory import ConversationMemory
from .search import WebSearch

__all__ = ["AIChat", "ConversationMemory", "GroqCompleter", "WebSearch", "build_chat", "needs_web_search"]


def build_chat(settings) -> AIChat | None:
    """Arma el chat a partir de Settings; None si falta GROQ_API_KEY."""
    log = logging.getLogger("tezca.ai")
    if not settings.groq_api_key:
        log.warning("⚠️ GROQ_API_KEY not found, AI chat is disabled")
        return None

    complete = GroqCompleter(settings.groq_api_key, settings.groq_model)
    search = None
    if settings.search_enabled:
        search = WebSearch(settings.cse_api_key, settings.cse_cx, complete)
    else:
        log.info("Web search disabled (GOOGLE_CSE_API_KEY / GOOGLE_CSE_CX missing)")

    return AIChat(complete, ConversationMemory(os.path.abspath(settings.memory_dir)), search)
