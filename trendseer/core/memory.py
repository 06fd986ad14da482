"""Long-term user memory backed by Supabase.

Each chat turn is summarised into a small JSON blob (industries, audience,
goals, trends) and stored in the ``memories`` table together with an
embedding. Reading the memory back merges every stored blob into a single
``UserContext`` used to personalise the next prompt.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, Iterable, List, Optional

import httpx
from langchain_core.embeddings import Embeddings
from postgrest.exceptions import APIError
from pydantic import BaseModel, Field, model_validator
from supabase import Client

from config.settings import Settings


logger = logging.getLogger(__name__)

_LIST_SPLIT = re.compile(r"[,\n;]+")


def _as_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [part.strip(" -\t") for part in _LIST_SPLIT.split(value) if part.strip(" -\t")]
    if isinstance(value, (list, tuple)):
        items = []
        for item in value:
            if isinstance(item, str) and item.strip():
                items.append(item.strip())
        return items
    return []


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (list, tuple)):
        return ", ".join(str(item).strip() for item in value if str(item).strip())
    return ""


def _dedupe(items: Iterable[str]) -> List[str]:
    seen: List[str] = []
    for item in items:
        if item not in seen:
            seen.append(item)
    return seen


class UserContext(BaseModel):
    industries: List[str] = Field(default_factory=list)
    audience: str = ""
    goals: str = ""
    previous_trends: List[str] = Field(default_factory=list)

    def as_profile(self) -> Dict[str, Any]:
        return {
            "industries": list(self.industries),
            "audience": self.audience,
            "goals": self.goals,
            "trends": list(self.previous_trends),
        }


class MemorySummary(BaseModel):
    """What the model extracted from one conversation."""

    industries: List[str] = Field(default_factory=list)
    audience: str = ""
    goals: str = ""
    trends: List[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _coerce_loose_output(cls, values):
        if not isinstance(values, dict):
            return {}
        lowered = {str(k).strip().lower(): v for k, v in values.items()}
        return {
            "industries": _dedupe(_as_list(lowered.get("industries"))),
            "audience": _as_text(lowered.get("audience")),
            "goals": _as_text(lowered.get("goals")),
            "trends": _dedupe(_as_list(lowered.get("trends"))),
        }

    def is_empty(self) -> bool:
        return not (self.industries or self.audience or self.goals or self.trends)


def consolidate_memories(memories: Iterable[Dict[str, Any]]) -> UserContext:
    """Merge stored memory rows into one context.

    Rows are expected newest first. List fields keep first-seen order without
    duplicates; a text field is only replaced by a strictly longer value.
    """
    context = UserContext()

    for memory in memories:
        content = memory.get("content") if isinstance(memory, dict) else None
        if isinstance(content, str):
            try:
                content = json.loads(content)
            except json.JSONDecodeError:
                continue
        if not isinstance(content, dict):
            continue

        industries = content.get("industries")
        if isinstance(industries, list):
            for industry in industries:
                if isinstance(industry, str) and industry and industry not in context.industries:
                    context.industries.append(industry)

        audience = content.get("audience")
        if isinstance(audience, str) and audience and len(audience) > len(context.audience):
            context.audience = audience

        goals = content.get("goals")
        if isinstance(goals, str) and goals and len(goals) > len(context.goals):
            context.goals = goals

        trends = content.get("trends")
        if isinstance(trends, list):
            for trend in trends:
                if isinstance(trend, str) and trend and trend not in context.previous_trends:
                    context.previous_trends.append(trend)

    return context


class MemoryManager:
    def __init__(self, client: Client, embeddings: Optional[Embeddings], settings: Settings) -> None:
        self.client = client
        self.embeddings = embeddings
        self.settings = settings

    def _user_exists(self, user_id: str) -> bool:
        rows = self.client.table("users").select("id").eq("id", user_id).limit(1).execute().data
        return bool(rows)

    def fetch_memories(self, user_id: str) -> List[Dict[str, Any]]:
        return (
            self.client.table("memories")
            .select("*")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .execute()
            .data
            or []
        )

    def get_user_context(self, user_id: str) -> UserContext:
        try:
            if not self._user_exists(user_id):
                logger.info("Registering new user %s", user_id)
                self.client.table("users").insert([{"id": user_id}]).execute()
                return UserContext()
            memories = self.fetch_memories(user_id)
        except (APIError, httpx.HTTPError) as exc:
            logger.error("Could not load memory for %s: %s", user_id, exc)
            return UserContext()

        if not memories:
            return UserContext()
        context = consolidate_memories(memories)
        logger.info(
            "Loaded %s memories for %s (industries=%s trends=%s)",
            len(memories),
            user_id,
            len(context.industries),
            len(context.previous_trends),
        )
        return context

    def update_memory(self, user_id: str, memory: Dict[str, Any]) -> bool:
        if not self.settings.enable_memory or self.embeddings is None:
            return False
        try:
            embedding = self.embeddings.embed_query(json.dumps(memory))
            self.client.table("memories").insert(
                [{"user_id": user_id, "content": memory, "embedding": embedding}]
            ).execute()
        except Exception:
            logger.exception("Error updating memory for %s", user_id)
            return False
        return True

    def search_similar_memories(
        self, user_id: str, query: str, limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        if self.embeddings is None:
            return []
        try:
            query_embedding = self.embeddings.embed_query(query)
            response = self.client.rpc(
                "match_memories",
                {
                    "query_embedding": query_embedding,
                    "match_threshold": self.settings.memory_threshold,
                    "match_count": limit or self.settings.max_memories,
                    "p_user_id": user_id,
                },
            ).execute()
        except Exception:
            logger.exception("Error searching similar memories for %s", user_id)
            return []
        return response.data or []
