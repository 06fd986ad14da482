from __future__ import annotations

from typing import Any, Dict, List, Optional

from langchain_core.tools import BaseTool, StructuredTool
from pydantic import BaseModel, Field, field_validator

from config.settings import Settings
from trendseer.tools.news_api import NewsApiTool
from trendseer.tools.serper_api import SerperApiTool


NEWS_TOOL = "news-api"
SEARCH_TOOL = "serper-api"


class TrendQueryInput(BaseModel):
    query: str = Field(..., description="User query to search for")
    industries: List[str] = Field(
        default_factory=list, description="Industries of interest used to focus the search"
    )

    @field_validator("industries", mode="before")
    @classmethod
    def _coerce_industries(cls, value: Any) -> List[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return [value] if value.strip() else []
        return [str(item) for item in value if str(item).strip()]


def build_news_tool(client: NewsApiTool) -> StructuredTool:
    description = (
        "Use this tool to find recent news articles and publications about a topic. "
        "Input must be a JSON object with keys query and industries."
    )
    return StructuredTool.from_function(
        func=client.fetch_news,
        name=NEWS_TOOL,
        description=description,
        args_schema=TrendQueryInput,
    )


def build_search_tool(client: SerperApiTool) -> StructuredTool:
    description = (
        "Use this tool to search the web for what is trending online about a topic. "
        "Input must be a JSON object with keys query and industries."
    )
    return StructuredTool.from_function(
        func=client.search,
        name=SEARCH_TOOL,
        description=description,
        args_schema=TrendQueryInput,
    )


def build_tool_registry(
    settings: Settings,
    news_client: Optional[NewsApiTool] = None,
    search_client: Optional[SerperApiTool] = None,
) -> Dict[str, BaseTool]:
    news_client = news_client or NewsApiTool(
        settings.news_api_key, base_url=settings.news_api_url, timeout=settings.http_timeout
    )
    search_client = search_client or SerperApiTool(
        settings.serper_api_key, url=settings.serper_api_url, timeout=settings.http_timeout
    )
    return {
        NEWS_TOOL: build_news_tool(news_client),
        SEARCH_TOOL: build_search_tool(search_client),
    }


__all__ = [
    "NEWS_TOOL",
    "SEARCH_TOOL",
    "NewsApiTool",
    "SerperApiTool",
    "TrendQueryInput",
    "build_news_tool",
    "build_search_tool",
    "build_tool_registry",
]
