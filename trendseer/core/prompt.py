from __future__ import annotations

import json
from typing import Any, Dict

from trendseer.core.memory import UserContext


SYSTEM_PROMPT = """You are TrendSeer AI, an advanced trend analysis assistant.

USER CONTEXT:
Industries of interest: {industries}
Target audience: {audience}
Content strategy goals: {goals}
Previously discussed trends: {previous_trends}

REAL-TIME DATA:
{real_time_data}

Your task is to analyze trends based on the user's query and provide insightful analysis.
Compare current trends with historical patterns when relevant.
Be specific and actionable in your recommendations."""


SUMMARY_PROMPT = """Analyze this conversation and extract the following information:
1. Industries mentioned
2. Target audience demographics
3. Content strategy goals
4. Trends discussed

Format your response as JSON with these keys: industries, audience, goals, trends.
industries and trends are lists of short strings; audience and goals are strings.

Conversation:
{transcript}"""


TREND_ANALYSIS_PROMPT = """Analyze this trend topic: "{topic}"

NEWS DATA:
{news}

SEARCH DATA:
{search}

Provide a comprehensive trend analysis with the following sections:
1. Overview of the trend
2. Current popularity and reach
3. Key influencers or thought leaders
4. Predicted longevity and future impact
5. Recommendations for content creators

Format your response as JSON with these keys: overview, popularity, influencers, longevity, recommendations."""


def to_json_block(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


def system_prompt_variables(context: UserContext, real_time_data: Dict[str, Any]) -> Dict[str, str]:
    return {
        "industries": ", ".join(context.industries) or "Not specified yet",
        "audience": context.audience or "Not specified yet",
        "goals": context.goals or "Not specified yet",
        "previous_trends": ", ".join(context.previous_trends) or "None yet",
        "real_time_data": to_json_block(real_time_data),
    }


def render_system_prompt(context: UserContext, real_time_data: Dict[str, Any]) -> str:
    return SYSTEM_PROMPT.format(**system_prompt_variables(context, real_time_data))
