from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, Optional

from fastapi import HTTPException, Request
from langchain_core.language_models import BaseChatModel
from langchain_core.tools import BaseTool
from supabase import Client

from config.settings import Settings, get_settings
from trendseer.agent import build_embeddings, build_llm
from trendseer.core.db import get_supabase_client
from trendseer.core.history import ChatHistoryStore
from trendseer.core.memory import MemoryManager
from trendseer.tools import build_tool_registry


@dataclass
class Services:
    """Everything a request handler needs, built once per process."""

    settings: Settings
    database: Client
    llm: BaseChatModel
    memory: MemoryManager
    history: ChatHistoryStore
    tools: Dict[str, BaseTool]


@lru_cache(maxsize=1)
def get_services() -> Services:
    settings = get_settings()
    database = get_supabase_client()
    return Services(
        settings=settings,
        database=database,
        llm=build_llm(settings),
        memory=MemoryManager(database, build_embeddings(settings), settings),
        history=ChatHistoryStore(database),
        tools=build_tool_registry(settings),
    )


def resolve_user_id(request: Request, user_id: Optional[str]) -> str:
    """The signed-in user's id when there is a session, else the explicit id.

    A session always wins: asking for someone else's id is rejected with 403.
    """
    explicit = user_id.strip() if user_id and user_id.strip() else None
    user = getattr(request.state, "user", None)
    if user and user.get("id"):
        if explicit and explicit != user["id"]:
            raise HTTPException(status_code=403, detail="User ID does not match the signed-in user")
        return user["id"]
    if explicit:
        return explicit
    raise HTTPException(status_code=400, detail="User ID is required")
