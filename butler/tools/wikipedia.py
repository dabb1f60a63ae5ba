"""
Wikipedia lookup tool.

Quotes the intro extract of a page through the MediaWiki query API. Lookup
failures are reported as text; the tool never raises for them.
"""

from __future__ import annotations

from typing import Any

import httpx

from butler.config.logging import get_logger
from butler.llm.agent import ToolContext
from butler.tools.base import ToolArgument, ToolPlugin, ToolRegistry, ToolSpec

logger = get_logger(__name__)

DEFAULT_HOST = "https://ja.wikipedia.org/"
SEARCH_FAILED = (
    "Search failed :smiling_face_with_tear: "
    "Something may be wrong with the Wikipedia servers."
)
QUERY_PARAMS = {
    "format": "json",
    "action": "query",
    "prop": "extracts",
    "exintro": "1",
    "explaintext": "1",
    "redirects": "1",
}

WIKI_SPEC = ToolSpec(
    name="wiki",
    description="Look up a word on Wikipedia and quote the summary.",
    arguments=[ToolArgument(name="word", description="Word or title to look up", required=True)],
    ai_hint="Use when the user asks what something is according to Wikipedia. "
            "Quote the summary rather than paraphrasing it.",
)


def format_summary(host: str, word: str, data: Any) -> str:
    """
    Render a MediaWiki ``query`` response as a markdown list.

    Pages without an extract are skipped; the link points at the first page
    that has one. Payloads of an unexpected shape read as not found.
    """
    query = data.get("query") if isinstance(data, dict) else None
    pages = query.get("pages") if isinstance(query, dict) else None
    found = [
        page for page in (pages.values() if isinstance(pages, dict) else [])
        if isinstance(page, dict) and page.get("extract")
    ]
    if not found:
        return f"`{word}` could not be found on Wikipedia :smiling_face_with_tear:"

    lines = [f"<{host}?curid={found[0].get('pageid')}> `[{word}]`"]
    lines.extend(f"- **{page.get('title', word)}**\n  {page['extract']}" for page in found)
    return "\n".join(lines)


class WikipediaPlugin(ToolPlugin):
    """
    Registers the ``wiki`` tool.

    Args:
        host: MediaWiki host, trailing slash included
        client: Optional HTTP client; one is created on start otherwise
    """

    name = "wikipedia"

    def __init__(self, host: str = DEFAULT_HOST, client: httpx.AsyncClient | None = None):
        self._host = host if host.endswith("/") else f"{host}/"
        self._client = client
        self._owns_client = client is None

    def register(self, registry: ToolRegistry) -> None:
        registry.register(WIKI_SPEC, self.handle)

    async def start(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=10.0)

    async def shutdown(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def handle(self, args: dict[str, Any], context: ToolContext) -> str:
        word = str(args.get("word") or "").strip()
        if not word:
            return "Please give a word to look up."
        return await self.summary(word)

    async def summary(self, word: str) -> str:
        if self._client is None:
            await self.start()
        try:
            response = await self._client.get(
                f"{self._host}w/api.php", params={**QUERY_PARAMS, "titles": word}
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Wikipedia lookup for {word!r} failed: {e}")
            return SEARCH_FAILED
        if not isinstance(data, dict):
            logger.warning(f"Wikipedia lookup for {word!r} returned a JSON {type(data).__name__}")
            return SEARCH_FAILED
        return format_summary(self._host, word, data)
