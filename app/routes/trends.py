from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor

from fastapi import APIRouter, Depends, HTTPException

from app.dependencies import Services, get_services
from app.schemas import TrendAnalysisRequest
from trendseer.agent import analyze_trend
from trendseer.tools import NEWS_TOOL, SEARCH_TOOL


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/trends", tags=["trends"])


@router.post("/analyze")
def analyze(req: TrendAnalysisRequest, services: Services = Depends(get_services)):
    topic = (req.topic or "").strip()
    if not topic:
        raise HTTPException(status_code=400, detail="Topic is required")

    payload = {"query": topic, "industries": req.industries}
    try:
        with ThreadPoolExecutor(max_workers=2) as pool:
            news_future = pool.submit(services.tools[NEWS_TOOL].invoke, payload)
            search_future = pool.submit(services.tools[SEARCH_TOOL].invoke, payload)
            news_data = news_future.result()
            search_data = search_future.result()

        analysis = analyze_trend(services.llm, topic, news_data, search_data)
    except Exception:
        logger.exception("Error in trend analysis route")
        raise HTTPException(status_code=500, detail="An error occurred during the request")

    logger.info(
        "Trend analysis for %r built from %s articles and %s search results",
        topic,
        len(news_data.get("articles") or []),
        len(search_data.get("results") or []),
    )
    return {
        "topic": topic,
        "analysis": analysis,
        "sources": {
            "news": len(news_data.get("articles") or []),
            "search": len(search_data.get("results") or []),
        },
    }
