from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional

import httpx


logger = logging.getLogger(__name__)

COMMON_WORDS = {"and", "the", "for", "with", "that", "this", "what", "how", "why"}
MAX_TRENDING_TOPICS = 10


def extract_trending_topics(results: List[Dict[str, Any]]) -> List[str]:
    """Collect distinctive title words, in first-seen order."""
    topics: List[str] = []
    for result in results:
        title = re.sub(r"[^\w\s]", "", (result.get("title") or "").lower())
        for word in title.split(" "):
            if len(word) > 4 and word not in COMMON_WORDS and word not in topics:
                topics.append(word)
    return topics[:MAX_TRENDING_TOPICS]


class SerperApiTool:
    def __init__(
        self,
        api_key: Optional[str],
        url: str = "https://google.serper.dev/search",
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.url = url
        self.timeout = timeout
        self.transport = transport

    @staticmethod
    def build_query(query: str, industries: Optional[List[str]] = None) -> str:
        # Only the primary industry is appended.
        if industries:
            return f"{query} {industries[0]}"
        return query

    def search(self, query: str, industries: Optional[List[str]] = None) -> Dict[str, Any]:
        if not self.api_key:
            logger.error("Serper API key is missing")
            return {"error": "API key is missing", "results": []}

        search_query = self.build_query(query, industries)
        logger.info("Searching with Serper for query: %r", search_query)

        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.post(
                    self.url,
                    json={"q": search_query, "gl": "us", "hl": "en", "num": 10},
                    headers={"X-API-KEY": self.api_key},
                )
                if response.is_error:
                    raise RuntimeError(f"Serper API error: {response.status_code} - {response.text}")
                data = response.json()
        except (httpx.HTTPError, RuntimeError, ValueError) as exc:
            logger.error("Error searching with Serper: %s", exc)
            return {"error": f"Failed to fetch search data: {exc}", "results": []}

        return self.process_search_results(data)

    @staticmethod
    def process_search_results(data: Any) -> Dict[str, Any]:
        organic = data.get("organic") if isinstance(data, dict) else None
        if not organic:
            return {"summary": "No relevant search results found.", "results": []}

        results = [
            {
                "title": item.get("title") or "",
                "link": item.get("link"),
                "snippet": item.get("snippet"),
                "position": item.get("position"),
                "date": item.get("date") or "N/A",
            }
            for item in organic
        ]
        trending = extract_trending_topics(results)
        return {
            "summary": (
                f"Found {len(results)} relevant search results with "
                f"{len(trending)} potential trending topics."
            ),
            "results": results,
            "trendingTopics": trending,
            "relatedSearches": data.get("relatedSearches") or [],
        }
