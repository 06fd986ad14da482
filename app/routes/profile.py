from __future__ import annotations

import logging
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from postgrest.exceptions import APIError

from app.dependencies import Services, get_services, resolve_user_id
from app.schemas import MemorySearchRequest
from trendseer.core.db import is_missing_table_error
from trendseer.core.memory import UserContext, consolidate_memories


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["profile"])


@router.get("/user/profile")
def user_profile(
    request: Request,
    user_id: Optional[str] = Query(default=None, alias="userId"),
    services: Services = Depends(get_services),
):
    user_id = resolve_user_id(request, user_id)
    logger.info("Profile requested for %s", user_id)

    if services.settings.app_env.lower() == "preview":
        logger.warning("Skipping Supabase query in preview environment")
        return {
            "userId": user_id,
            "profile": UserContext().as_profile(),
            "memoryCount": 0,
            "databaseStatus": "skipped_build",
        }

    try:
        services.database.table("users").select("id").eq("id", user_id).limit(1).execute()
        memories = services.memory.fetch_memories(user_id)
    except APIError as exc:
        if is_missing_table_error(exc):
            logger.error("Profile lookup failed, table missing - likely setup issue: %s", exc)
            return JSONResponse(
                {
                    "error": (
                        "Database not set up properly. Please run the sql/schema.sql "
                        "script in your Supabase project."
                    ),
                    "setupRequired": True,
                },
                status_code=500,
            )
        logger.error("Profile query error: %s", exc)
        raise HTTPException(status_code=500, detail="Database error")
    except httpx.HTTPError as exc:
        logger.error("Profile query could not reach the database: %s", exc)
        raise HTTPException(status_code=500, detail="Database error")

    return {
        "userId": user_id,
        "profile": consolidate_memories(memories).as_profile(),
        "memoryCount": len(memories),
        "databaseStatus": "ready",
    }


@router.post("/memories/search")
def search_memories(
    req: MemorySearchRequest,
    request: Request,
    services: Services = Depends(get_services),
):
    user_id = resolve_user_id(request, req.user_id)
    if not req.query.strip():
        raise HTTPException(status_code=400, detail="Query is required")
    matches = services.memory.search_similar_memories(user_id, req.query, limit=req.limit)
    return {"userId": user_id, "memories": matches}
