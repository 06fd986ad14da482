from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, List, Optional, Sequence, Union

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_core.prompts import ChatPromptTemplate, MessagesPlaceholder
from langchain_google_genai import ChatGoogleGenerativeAI, GoogleGenerativeAIEmbeddings

from config.settings import Settings, get_settings
from trendseer.core.memory import MemorySummary, UserContext
from trendseer.core.parsing import parse_json_object
from trendseer.core.prompt import (
    SUMMARY_PROMPT,
    SYSTEM_PROMPT,
    TREND_ANALYSIS_PROMPT,
    system_prompt_variables,
    to_json_block,
)


logger = logging.getLogger(__name__)


def build_llm(settings: Optional[Settings] = None) -> ChatGoogleGenerativeAI:
    settings = settings or get_settings()
    if not settings.google_api_key:
        raise RuntimeError(
            "GOOGLE_API_KEY not set. Please configure it in environment or .env"
        )

    return ChatGoogleGenerativeAI(
        model=settings.gemini_model,
        google_api_key=settings.google_api_key,
        temperature=settings.temperature,
        top_p=settings.top_p,
        top_k=settings.top_k,
        max_output_tokens=settings.max_output_tokens,
    )


def build_embeddings(settings: Optional[Settings] = None) -> GoogleGenerativeAIEmbeddings:
    settings = settings or get_settings()
    if not settings.google_api_key:
        raise RuntimeError(
            "GOOGLE_API_KEY not set. Please configure it in environment or .env"
        )
    return GoogleGenerativeAIEmbeddings(
        model=settings.embedding_model,
        google_api_key=settings.google_api_key,
    )


def build_chat_prompt() -> ChatPromptTemplate:
    return ChatPromptTemplate.from_messages(
        [
            ("system", SYSTEM_PROMPT),
            MessagesPlaceholder("chat_history"),
        ]
    )


def to_lc_messages(history: Sequence[dict], limit: Optional[int] = None) -> List[BaseMessage]:
    turns = list(history or [])
    if limit:
        turns = turns[-limit:]
    messages: List[BaseMessage] = []
    for item in turns:
        role = (item.get("role") or "").lower()
        content = item.get("content") or ""
        if not content:
            continue
        if role in ("user", "human"):
            messages.append(HumanMessage(content=content))
        elif role in ("assistant", "ai", "bot"):
            messages.append(AIMessage(content=content))
        elif role == "system":
            messages.append(SystemMessage(content=content))
        else:
            # Unknown roles are sent as user turns
            messages.append(HumanMessage(content=content))
    return messages


def format_transcript(messages: Sequence[dict]) -> str:
    return "\n".join(f"{m.get('role')}: {m.get('content')}" for m in messages)


def message_text(content: Union[str, List[Any], None]) -> str:
    """Flatten message content that may arrive as a list of parts."""
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    parts = []
    for part in content:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type", "text") == "text":
            parts.append(part.get("text") or "")
    return "".join(parts)


def _chat_inputs(
    context: UserContext, real_time_data: Dict[str, Any], messages: Sequence[dict]
) -> Dict[str, Any]:
    payload: Dict[str, Any] = dict(system_prompt_variables(context, real_time_data))
    payload["chat_history"] = to_lc_messages(messages)
    return payload


def generate_reply(
    llm: BaseChatModel,
    context: UserContext,
    real_time_data: Dict[str, Any],
    messages: Sequence[dict],
) -> str:
    chain = build_chat_prompt() | llm
    result = chain.invoke(_chat_inputs(context, real_time_data, messages))
    return message_text(result.content)


def stream_reply(
    llm: BaseChatModel,
    context: UserContext,
    real_time_data: Dict[str, Any],
    messages: Sequence[dict],
) -> Iterator[str]:
    chain = build_chat_prompt() | llm
    for chunk in chain.stream(_chat_inputs(context, real_time_data, messages)):
        text = message_text(chunk.content)
        if text:
            yield text


def summarize_conversation(llm: BaseChatModel, messages: Sequence[dict]) -> MemorySummary:
    prompt = SUMMARY_PROMPT.format(transcript=format_transcript(messages))
    try:
        text = message_text(llm.invoke(prompt).content)
    except Exception:
        logger.exception("Error in summarize_conversation")
        return MemorySummary()

    if not text:
        logger.error("Empty response from summarization")
        return MemorySummary()

    parsed = parse_json_object(text)
    if parsed is None:
        logger.warning("Summary was not valid JSON: %s", text[:200])
        return MemorySummary()
    return MemorySummary.model_validate(parsed)


def analyze_trend(
    llm: BaseChatModel,
    topic: str,
    news: Dict[str, Any],
    search: Dict[str, Any],
) -> Union[Dict[str, Any], str]:
    prompt = TREND_ANALYSIS_PROMPT.format(
        topic=topic, news=to_json_block(news), search=to_json_block(search)
    )
    text = message_text(llm.invoke(prompt).content)
    parsed = parse_json_object(text)
    return parsed if parsed is not None else text
