from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx
from postgrest.exceptions import APIError
from supabase import Client


logger = logging.getLogger(__name__)


class ChatHistoryStore:
    """Raw user/assistant turns in the ``chat_history`` table."""

    table = "chat_history"

    def __init__(self, client: Client) -> None:
        self.client = client

    def save_turn(self, user_id: str, user_message: str, assistant_message: str) -> bool:
        try:
            self.client.table(self.table).insert(
                {
                    "user_id": user_id,
                    "user_message": user_message,
                    "assistant_message": assistant_message,
                }
            ).execute()
        except (APIError, httpx.HTTPError) as exc:
            logger.error("Failed to save chat turn for %s: %s", user_id, exc)
            return False
        return True

    def list_turns(
        self, user_id: str, limit: Optional[int] = None, newest_first: bool = False
    ) -> List[Dict[str, Any]]:
        query = (
            self.client.table(self.table)
            .select("id, user_id, user_message, assistant_message, created_at")
            .eq("user_id", user_id)
            .order("created_at", desc=newest_first)
        )
        if limit:
            query = query.limit(limit)
        rows = query.execute().data or []
        return [dict(row, timestamp=row.get("created_at")) for row in rows]
