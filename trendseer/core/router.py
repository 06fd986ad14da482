"""Keyword-based selection of the live-data tools for a chat turn."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Tuple

from langchain_core.tools import BaseTool

from trendseer.core.memory import UserContext
from trendseer.tools import NEWS_TOOL, SEARCH_TOOL


logger = logging.getLogger(__name__)

# Order matters: tools run and report in this order.
TOOL_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    (NEWS_TOOL, ("news", "articles", "publications")),
    (SEARCH_TOOL, ("search", "trends", "online")),
)

RESULT_KEYS = {NEWS_TOOL: "news", SEARCH_TOOL: "search"}


def determine_tools_to_use(message: str) -> List[str]:
    text = (message or "").lower()
    return [tool for tool, keywords in TOOL_KEYWORDS if any(k in text for k in keywords)]


def fetch_real_time_data(
    tools: List[str],
    query: str,
    context: UserContext,
    registry: Mapping[str, BaseTool],
) -> Dict[str, Any]:
    results: Dict[str, Any] = {}
    for name in tools:
        tool = registry.get(name)
        if tool is None:
            logger.warning("No tool registered under %r, skipping", name)
            continue
        logger.info("Calling %s for query_len=%s", name, len(query))
        results[RESULT_KEYS.get(name, name)] = tool.invoke(
            {"query": query, "industries": list(context.industries)}
        )
    return results
