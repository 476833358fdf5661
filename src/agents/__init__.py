"""AI agents package."""

from src.agents.ai_agents import (
    AIGatewayError,
    AnnotationAgentInterface,
    GeminiAnnotationAgent,
    JournalAnalysisResponse,
    parse_analysis_response,
)
from src.agents.prompts import (
    AIRequest,
    AITask,
    asset_trends_request,
    career_summary_request,
    entry_analysis_request,
    goal_coaching_request,
    journal_trends_request,
    personality_request,
    render_prompt,
    resume_request,
)
from src.agents.request_tokens import RequestTokenRegistry

__all__ = [
    "AIGatewayError",
    "AnnotationAgentInterface",
    "GeminiAnnotationAgent",
    "JournalAnalysisResponse",
    "parse_analysis_response",
    "AIRequest",
    "AITask",
    "asset_trends_request",
    "career_summary_request",
    "entry_analysis_request",
    "goal_coaching_request",
    "journal_trends_request",
    "personality_request",
    "render_prompt",
    "resume_request",
    "RequestTokenRegistry",
]
