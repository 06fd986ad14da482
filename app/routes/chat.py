from __future__ import annotations

import json
import logging
from typing import Any, Dict, Iterator, List, Optional, Tuple

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse, StreamingResponse
from postgrest.exceptions import APIError
from starlette.background import BackgroundTask

from app.dependencies import Services, get_services, resolve_user_id
from app.schemas import ChatRequest
from trendseer.agent import generate_reply, stream_reply, summarize_conversation
from trendseer.core.memory import UserContext
from trendseer.core.router import determine_tools_to_use, fetch_real_time_data


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chat", tags=["chat"])


def _sse(payload: Dict[str, Any]) -> str:
    return f"data: {json.dumps(payload)}\n\n"


def prepare_turn(
    services: Services, user_id: str, messages: List[Dict[str, str]]
) -> Tuple[UserContext, Dict[str, Any]]:
    """Load the user's memory and whatever live data the last message asks for."""
    context = services.memory.get_user_context(user_id)
    last_message = messages[-1]["content"]

    real_time_data: Dict[str, Any] = {}
    if services.settings.enable_real_time_data:
        tools = determine_tools_to_use(last_message)
        logger.info("Tools selected for %s: %s", user_id, tools or "none")
        real_time_data = fetch_real_time_data(tools, last_message, context, services.tools)
    return context, real_time_data


def remember_turn(
    services: Services, user_id: str, messages: List[Dict[str, str]], reply: str
) -> None:
    """Persist the turn to chat history and fold its summary into memory."""
    if not reply:
        return
    try:
        user_message = next(
            (m["content"] for m in reversed(messages) if m["role"] == "user"),
            messages[-1]["content"],
        )
        services.history.save_turn(user_id, user_message, reply)

        if not services.settings.enable_memory:
            return
        summary = summarize_conversation(
            services.llm, [*messages, {"role": "assistant", "content": reply}]
        )
        if summary.is_empty():
            logger.info("Nothing worth remembering for %s", user_id)
            return
        services.memory.update_memory(user_id, summary.model_dump())
    except Exception:
        logger.exception("Error persisting chat turn for %s", user_id)


class TurnRecorder:
    """Collects streamed tokens and persists the turn at most once."""

    def __init__(self, services: Services, user_id: str, messages: List[Dict[str, str]]) -> None:
        self.services = services
        self.user_id = user_id
        self.messages = messages
        self.parts: List[str] = []
        self.saved = False

    def save(self) -> None:
        if self.saved:
            return
        self.saved = True
        remember_turn(self.services, self.user_id, self.messages, "".join(self.parts))


def stream_events(
    services: Services,
    recorder: TurnRecorder,
    context: UserContext,
    real_time_data: Dict[str, Any],
) -> Iterator[str]:
    delivered = False
    try:
        try:
            for token in stream_reply(services.llm, context, real_time_data, recorder.messages):
                recorder.parts.append(token)
                yield _sse({"token": token})
        except Exception:
            logger.exception("Streaming failed for %s", recorder.user_id)
            recorder.parts.clear()
            yield _sse({"error": "An error occurred during the request"})
            return
        yield _sse({"done": True})
        delivered = True
    finally:
        # The response's background task is skipped when the client disconnects.
        if not delivered:
            recorder.save()


def _validated_messages(req: ChatRequest) -> List[Dict[str, str]]:
    messages = [{"role": m.role, "content": m.content} for m in req.messages]
    if not messages:
        raise HTTPException(status_code=400, detail="At least one message is required")
    return messages


@router.post("")
def chat(
    req: ChatRequest,
    request: Request,
    services: Services = Depends(get_services),
) -> StreamingResponse:
    user_id = resolve_user_id(request, req.user_id)
    messages = _validated_messages(req)
    logger.info("Streaming chat for %s: history_turns=%s", user_id, len(messages))

    try:
        context, real_time_data = prepare_turn(services, user_id, messages)
    except Exception:
        logger.exception("Error in chat route")
        raise HTTPException(status_code=500, detail="An error occurred during the request")

    recorder = TurnRecorder(services, user_id, messages)
    return StreamingResponse(
        stream_events(services, recorder, context, real_time_data),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
        background=BackgroundTask(recorder.save),
    )


@router.post("/simple")
def simple_chat(
    req: ChatRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    services: Services = Depends(get_services),
):
    user_id = resolve_user_id(request, req.user_id)
    messages = _validated_messages(req)
    logger.info("Simple chat for %s: history_turns=%s", user_id, len(messages))

    try:
        context, real_time_data = prepare_turn(services, user_id, messages)
    except Exception:
        logger.exception("Error in simple chat route")
        raise HTTPException(status_code=500, detail="An error occurred during the request")

    try:
        reply = generate_reply(services.llm, context, real_time_data, messages)
    except Exception as exc:
        logger.exception("Error generating content with Gemini")
        return JSONResponse(
            {"error": "Failed to generate response", "details": str(exc)}, status_code=500
        )

    background_tasks.add_task(remember_turn, services, user_id, messages, reply)
    logger.info("Model responded with %s chars", len(reply))
    return {"role": "assistant", "content": reply}


@router.get("/history")
def chat_history(
    request: Request,
    user_id: Optional[str] = Query(default=None, alias="userId"),
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    services: Services = Depends(get_services),
):
    user_id = resolve_user_id(request, user_id)
    try:
        # With a limit, keep the most recent turns but still return them oldest first.
        rows = services.history.list_turns(user_id, limit=limit, newest_first=bool(limit))
    except APIError as exc:
        logger.error("Error fetching chat history: %s", exc)
        raise HTTPException(status_code=500, detail="Failed to fetch chat history")
    if limit:
        rows.reverse()
    return {"chatHistory": rows}
