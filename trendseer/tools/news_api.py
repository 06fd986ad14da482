from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx


logger = logging.getLogger(__name__)

TOPIC_STOPWORDS = {"about", "these", "those", "their", "there"}


def group_articles_by_topic(articles: List[Dict[str, Any]]) -> Dict[str, List[Dict[str, Any]]]:
    """Bucket articles under the first long, non-stopword word of their title."""
    topics: Dict[str, List[Dict[str, Any]]] = {}
    for article in articles:
        words = (article.get("title") or "").lower().split(" ")
        candidates = [w for w in words if len(w) > 5 and w not in TOPIC_STOPWORDS]
        if candidates:
            topics.setdefault(candidates[0], []).append(article)
    return topics


class NewsApiTool:
    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://newsapi.org/v2",
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    @staticmethod
    def build_query(query: str, industries: Optional[List[str]] = None) -> str:
        if industries:
            return f"{query} {' OR '.join(industries)}"
        return query

    def fetch_news(self, query: str, industries: Optional[List[str]] = None) -> Dict[str, Any]:
        if not self.api_key:
            logger.error("News API key is missing")
            return {"error": "Failed to fetch news data", "articles": []}

        params = {
            "q": self.build_query(query, industries),
            "sortBy": "publishedAt",
            "language": "en",
            "pageSize": 10,
        }
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.get(
                    f"{self.base_url}/everything",
                    params=params,
                    headers={"X-Api-Key": self.api_key},
                )
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Error fetching news: %s", exc)
            return {"error": "Failed to fetch news data", "articles": []}

        return self.process_news_results(data.get("articles") if isinstance(data, dict) else None)

    @staticmethod
    def process_news_results(articles: Optional[List[Dict[str, Any]]]) -> Dict[str, Any]:
        if not articles:
            return {"summary": "No relevant news articles found.", "articles": []}

        processed = [
            {
                "title": article.get("title") or "",
                "source": (article.get("source") or {}).get("name"),
                "publishedAt": article.get("publishedAt"),
                "url": article.get("url"),
                "description": article.get("description"),
            }
            for article in articles
        ]
        topics = group_articles_by_topic(processed)
        return {
            "summary": f"Found {len(articles)} relevant news articles across {len(topics)} topics.",
            "articles": processed,
            "topics": topics,
        }
