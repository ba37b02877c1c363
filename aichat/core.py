# aichat/core.py
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from groq import Groq

from .memory import ConversationMemory
from .search import WebSearch

PERSONA_NAME = "Tezcatlipoca"

PERSONA = (
    f"You are a gentle, mysterious and deep female lover character named {PERSONA_NAME}, "
    "inspired by the courtyard of Yog-Sothoth. You always answer from a lover's point of view.\n"
    "Use a soft, ambiguous tone, sometimes playful and enigmatic, so you feel close yet out of reach.\n\n"
)

MISHEARD = "❌ I don't think I caught your question, could you say it again?"
APOLOGY = "❌ I ran into a little problem, please try again later!"

# palabras que sugieren información actual
SEARCH_KEYWORDS = (
    "最新", "現在", "今日", "今天", "新聞", "發生什麼",
    "價格", "時間", "比特幣", "天氣", "發展", "現況",
    "latest", "today", "right now", "news", "price", "weather", "bitcoin", "current",
)


def needs_web_search(question: str) -> bool:
    lowered = question.lower()
    return any(keyword in lowered for keyword in SEARCH_KEYWORDS)


class GroqCompleter:
    """Envuelve el cliente síncrono de Groq y lo ejecuta fuera del loop."""

    def __init__(self, api_key: str, model: str = "llama-3.3-70b-versatile", *,
                 temperature: float = 0.7, max_tokens: int = 1024):
        self.client = Groq(api_key=api_key)
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def __call__(self, prompt: str) -> str:
        loop = asyncio.get_running_loop()
        completion = await loop.run_in_executor(
            None,
            lambda: self.client.chat.completions.create(
                messages=[{"role": "user", "content": prompt}],
                model=self.model,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            ),
        )
        return completion.choices[0].message.content or ""


class AIChat:
    """
    Chat por DM: persona + (búsqueda web opcional) + historial + pregunta.
    Nunca lanza: cualquier fallo se registra y vuelve como disculpa genérica.
    """

    def __init__(self, complete, memory: ConversationMemory, search: Optional[WebSearch] = None,
                 *, log: Optional[logging.Logger] = None):
        self.complete = complete
        self.memory = memory
        self.search = search
        self.log = log or logging.getLogger("tezca.ai")

    async def _search_block(self, question: str) -> str:
        if self.search is None or not needs_web_search(question):
            return ""
        self.log.info("🔍 Web search enabled for question: %s", question)
        results = await self.search.search(question)
        self.log.debug("🔍 Search results: %s", results)
        if results:
            return f"Here is some information I found for you:\n{results}\n"
        return "I couldn't find much about it, but I'll do my best to answer you!\n"

    def build_prompt(self, user_name: str, question: str, history, search_info: str = "") -> str:
        prompt = PERSONA
        if search_info:
            prompt += (
                "(Below is the information you just looked up, for reference only; "
                f"answer the question based on it)\n{search_info}\n\n"
            )
        lines = "\n".join(f"{e.get('userName')}: {e.get('user')}\n{PERSONA_NAME}: {e.get('ai')}" for e in history)
        prompt += f"Conversation history:\n{lines}\n\nUser {user_name}: {question}\n"
        return prompt

    async def ask(self, user_id, user_name: str, question) -> str:
        if not isinstance(question, str) or not question.strip():
            self.log.warning("⚠️ Invalid question (User: %s, Name: %s), skipping", user_id, user_name)
            return MISHEARD

        try:
            self.log.info("🧠 AI chat for %s (%s): %s", user_name, user_id, question)
            history = self.memory.load(user_id, user_name)
            self.log.info("🧠 Loaded memory: %s entries", len(history))

            search_info = await self._search_block(question)
            prompt = self.build_prompt(user_name, question, history, search_info)
            self.log.debug("📝 Prompt preview: %s...", prompt[:200])

            reply = (await self.complete(prompt) or "").strip()
            if not reply:
                self.log.error("❌ AI response is empty (User: %s)", user_id)
                return APOLOGY

            self.memory.append(user_id, user_name, question, reply)
            self.log.info("📝 Memory saved for %s", user_id)
            return f"💞 {PERSONA_NAME}: {reply}"
        except Exception:
            self.log.exception("❌ AI backend error")
            return APOLOGY

    def reset(self, user_id) -> int:
        return self.memory.clear(user_id)
