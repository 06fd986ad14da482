from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ChatMessage(BaseModel):
    id: Optional[str] = None
    role: str = Field(..., description="'user', 'assistant' or 'system'")
    content: str


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    messages: List[ChatMessage] = Field(default_factory=list)
    user_id: Optional[str] = Field(
        default=None, alias="userId", description="Unique identifier for the user"
    )


class TrendAnalysisRequest(BaseModel):
    topic: Optional[str] = Field(default=None, description="Trend topic to analyze")
    industries: List[str] = Field(default_factory=list)


class MemorySearchRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(default=None, alias="userId")
    query: str
    limit: Optional[int] = Field(default=None, ge=1, le=50)
