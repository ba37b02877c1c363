# aichat/search.py
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional

import aiohttp

CSE_URL = "https://www.googleapis.com/customsearch/v1"

NO_RESULTS = "Sorry, I couldn't find any relevant information."
EMPTY_SUMMARY = "Sorry, I couldn't produce a useful answer from the search results."
FILTER_ERROR = "Sorry, something went wrong while filtering the information."

FILTER_PROMPT = """You are a professional information-filtering assistant. Based on the user's question, pick the most relevant information from the search results below and reply with concise, clear text. Do not repeat irrelevant content.

User question:
{question}

Search results:
{results}

Give me a short and useful summary answer:
"""


class WebSearch:
    """Google Custom Search + una pasada de IA que resume los resultados."""

    def __init__(
        self,
        api_key: str,
        cx: str,
        complete: Callable[[str], Awaitable[str]],
        *,
        session: Optional[aiohttp.ClientSession] = None,
        log: Optional[logging.Logger] = None,
    ):
        self.api_key = api_key
        self.cx = cx
        self.complete = complete
        self.log = log or logging.getLogger("tezca.ai.search")
        self._session = session
        self._owns_session = session is None

    async def close(self):
        if self._session and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    async def raw_search(self, query: str, num: int = 5) -> List[Dict[str, str]]:
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=15))

        params = {"key": self.api_key, "cx": self.cx, "q": query, "num": str(num)}
        try:
            async with self._session.get(CSE_URL, params=params) as resp:
                if resp.status != 200:
                    self.log.error("WebSearch raw search error: HTTP %s", resp.status)
                    return []
                data = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            self.log.error("WebSearch raw search error: %s", e)
            return []

        return [
            {"title": item.get("title", ""), "snippet": item.get("snippet", ""), "link": item.get("link", "")}
            for item in (data.get("items") or [])
        ]

    async def filter_results(self, question: str, results: List[Dict[str, str]]) -> str:
        if not results:
            return NO_RESULTS

        results_text = "\n\n".join(
            f"{i}. Title: {r['title']}\nSnippet: {r['snippet']}\nURL: {r['link']}"
            for i, r in enumerate(results, start=1)
        )
        try:
            reply = (await self.complete(FILTER_PROMPT.format(question=question, results=results_text)) or "").strip()
        except Exception as e:
            self.log.error("AI filtering error: %s", e)
            return FILTER_ERROR

        if not reply:
            self.log.warning("AI filtering returned an empty result")
            return EMPTY_SUMMARY
        return reply

    async def search(self, query: str, num: int = 5) -> str:
        results = await self.raw_search(query, num)
        return await self.filter_results(query, results)
