"""SerpApi web search client, used to find social posts that signal buying intent."""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from prospectflow.core.exceptions import ProviderError

logger = logging.getLogger(__name__)

SERPAPI_URL = "https://serpapi.com/search.json"
SOCIAL_NETWORKS = "(site:linkedin.com/posts OR site:instagram.com OR site:facebook.com)"


@dataclass(frozen=True)
class WebResult:
    title: Optional[str]
    link: Optional[str] = None
    snippet: Optional[str] = None


class WebSearchClient:
    def __init__(self, api_key: str = "", timeout: float = 20.0, num: int = 10,
                 transport: httpx.AsyncBaseTransport | None = None):
        self.api_key = api_key
        self.timeout = timeout
        self.num = num
        self.transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def search(self, query: str) -> list[WebResult]:
        """Organic results for ``query`` on Google Brazil. Raises ProviderError on failure."""
        if not self.enabled:
            raise ProviderError("SERPAPI_KEY is not configured")

        params = {
            "q": query,
            "api_key": self.api_key,
            "num": self.num,
            "google_domain": "google.com.br",
            "gl": "br",
            "hl": "pt",
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(SERPAPI_URL, params=params)
        except httpx.HTTPError as e:
            raise ProviderError(f"SerpApi request failed: {e}") from e

        if response.status_code >= 300:
            raise ProviderError(f"SerpApi Error: {response.status_code} - {response.text[:300]}")

        data = response.json()
        if data.get("error"):
            raise ProviderError(f"SerpApi Error: {data['error']}")

        organic = data.get("organic_results") or []
        results = [
            WebResult(title=item.get("title"), link=item.get("link"), snippet=item.get("snippet"))
            for item in organic
        ]
        logger.info("Web search %r returned %d results", query, len(results))
        return results
