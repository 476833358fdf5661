"""
AI Requests and Prompts

Each AI task is described by an AIRequest: the task kind plus the slice of
the document it needs, already serialized as text. Building the request is
deterministic and separate from talking to the model, so what gets sent
can be tested without a network.
"""

import json
from enum import Enum
from typing import Iterable

from pydantic import BaseModel, Field

from src.aggregates.assets import recent_records
from src.aggregates.journal import recent_entries_for_trend
from src.models.app_data import AssetRecord, BudgetProfile, Goal, JournalEntry, UserProfile


class AITask(str, Enum):
    """Kinds of requests sent to the AI service."""
    ANALYZE_ENTRY = "analyze_entry"
    JOURNAL_TRENDS = "journal_trends"
    RESUME = "resume"
    PERSONALITY = "personality"
    CAREER_SUMMARY = "career_summary"
    ASSET_TRENDS = "asset_trends"
    GOAL_COACHING = "goal_coaching"


class AIRequest(BaseModel):
    """A task plus its serialized payload."""
    task: AITask
    payload: str = Field(..., description="Relevant document slice as text")


def _dumps(value) -> str:
    return json.dumps(value, ensure_ascii=False)


def _or_unset(value: str) -> str:
    return value or "Not provided"


# =============================================================================
# REQUEST BUILDERS
# =============================================================================

def entry_analysis_request(content: str) -> AIRequest:
    return AIRequest(task=AITask.ANALYZE_ENTRY, payload=content)


def journal_trends_request(journal: Iterable[JournalEntry], window: int = 15) -> AIRequest:
    """Date, content and themes of the last `window` entries."""
    rows = [
        {
            "date": e.date,
            "content": e.content,
            "themes": e.analysis.themes if e.analysis else [],
        }
        for e in recent_entries_for_trend(journal, window)
    ]
    return AIRequest(task=AITask.JOURNAL_TRENDS, payload=_dumps(rows))


def resume_request(profile: UserProfile) -> AIRequest:
    payload = _dumps({
        "name": profile.name,
        "mbti": profile.mbti,
        "strengths": profile.filled_strengths,
        "skills": profile.skills,
        "interests": profile.interests,
        "values": profile.values,
        "history": profile.history,
    })
    return AIRequest(task=AITask.RESUME, payload=payload)


def personality_request(mbti: str, strengths: Iterable[str]) -> AIRequest:
    """MBTI type plus the non-empty strengths."""
    payload = _dumps({
        "mbti": mbti,
        "strengths": [s for s in strengths if s],
    })
    return AIRequest(task=AITask.PERSONALITY, payload=payload)


def career_summary_request(profile: UserProfile) -> AIRequest:
    payload = _dumps({
        "mbti": profile.mbti,
        "strengths": profile.filled_strengths,
        "careerStrengths": profile.career_strengths,
        "skills": profile.skills,
        "interests": profile.interests,
        "values": profile.values,
        "environment": profile.environment,
    })
    return AIRequest(task=AITask.CAREER_SUMMARY, payload=payload)


def asset_trends_request(
    assets: Iterable[AssetRecord],
    budget: BudgetProfile,
    window: int = 24,
) -> AIRequest:
    """Asset records sorted by month (last `window`) plus the budget profile."""
    payload = _dumps({
        "assets": [r.model_dump(mode="json", by_alias=True) for r in recent_records(assets, window)],
        "budget": budget.model_dump(mode="json", by_alias=True),
    })
    return AIRequest(task=AITask.ASSET_TRENDS, payload=payload)


def goal_coaching_request(goals: Iterable[Goal]) -> AIRequest:
    payload = _dumps([g.model_dump(mode="json", by_alias=True) for g in goals])
    return AIRequest(task=AITask.GOAL_COACHING, payload=payload)


# =============================================================================
# PROMPTS
# =============================================================================

_PROMPTS: dict[AITask, str] = {
    AITask.ANALYZE_ENTRY: """Analyze the following journal entry written by the user.

Score each emotion from 0.0 to 1.0 (joy, anger, sadness, anxiety, calm), list the
main themes, list the concrete actions the user took or plans to take, and add
one short, warm comment for the user.

Respond with ONLY a JSON object in this exact format:
{{"emotions": {{"joy": 0.0, "anger": 0.0, "sadness": 0.0, "anxiety": 0.0, "calm": 0.0}},
 "themes": ["..."], "actions": ["..."], "aiComment": "..."}}

Journal entry: "{payload}"
""",

    AITask.JOURNAL_TRENDS: """You are an AI partner supporting the user's mental health and growth.
Analyze the journal data below (up to the 15 most recent entries, in time order)
and write feedback in the style of a monthly report.

## What to cover
1. **Emotional trends**: Which emotions dominate lately? How has that changed?
2. **Main themes**: Which worries or interests keep coming back?
3. **Concrete advice**: What should the user focus on next month? Which good habits should continue?

Use a warm, encouraging tone. Structure the answer in Markdown with headings.

Data:
{payload}
""",

    AITask.RESUME: """You are a professional career consultant.
Write a formal, compelling resume in Markdown from the user profile below.

## Instructions
1. The career history notes may be prose, bullet points or messy memos. Reorder
   them chronologically and restructure them into company, period, role, main
   responsibilities and achievements.
2. Fill missing details (such as exact dates) naturally from context, or leave
   placeholders such as 20XX.
3. Add a self-promotion section that ties the MBTI type, strengths and values
   to concrete experience.
4. Use Markdown headings (#, ##) so the result is easy to read.

## Profile (JSON)
{payload}
""",

    AITask.PERSONALITY: """Act as an expert in psychology and career development.
Explain this person's strengths of character and how to use them at work.

Analyze concretely how the basic traits of the MBTI type interact with the top
strength themes (synergies and so on). Keep it under 300 words, positive and
insightful.

## Input (JSON)
{payload}
""",

    AITask.CAREER_SUMMARY: """Act as a career coach.
Combine the fragments below (strengths, skills, interests, values, ideal
environment) into a self-integration summary: what kind of person this is and
in which environment they shine.

## Output
- 150 to 250 words.
- Start with "At the core of your career is..." and name the links between the
  elements (for example where strengths and values meet).
- End with one hint about roles or ways of working that suit this person.

## Input (JSON)
{payload}
""",

    AITask.ASSET_TRENDS: """You are an experienced financial planner.
Analyze the user's asset history (up to 24 months) and monthly budget, and
write a report in Markdown.

## What to cover
1. **Long-term trend**: Over the whole period, are assets growing steadily or stalling?
2. **Year-over-year change**: If data exists, compare with the same time last year.
3. **Portfolio**: Comment on the cash versus investment balance, if the data shows it.
4. **Advice**: Encouragement for building assets, or a caution if there was a sharp drop.

Do not recommend specific investment products. Give feedback on balance and trend only.

## Data (JSON)
{payload}
""",

    AITask.GOAL_COACHING: """You are a supportive life coach. Look at the goal list below and give
a short encouraging summary plus one concrete piece of advice for moving
forward. Be polite and friendly. Keep it under 120 words.

Goals (JSON): {payload}
""",
}


def render_prompt(request: AIRequest) -> str:
    """Full prompt text for a request."""
    return _PROMPTS[request.task].format(payload=request.payload)
