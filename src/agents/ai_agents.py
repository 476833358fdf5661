"""
AI Annotation Agent for Tarushiru

The AI service is an external collaborator reached through a narrow
contract: a task plus the relevant slice of the document goes out,
structured data (entry analysis) or free text (reports) comes back.

CRITICAL BOUNDARIES:
- The agent NEVER touches the document. It returns results; the
  controller decides whether (and where) to attach them.
- Responses are stored verbatim. Emotion scores are not range-checked.
- There is no retry and no fallback content. Any failure (network,
  quota, empty or malformed response) raises AIGatewayError and the
  caller shows it.
"""

import json
from abc import ABC, abstractmethod
from typing import Optional

import google.generativeai as genai
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from src.agents.prompts import AIRequest, AITask, entry_analysis_request, render_prompt
from src.config import GeminiSettings, get_settings
from src.models.app_data import EmotionScore, JournalAnalysis


# Tasks whose callers supply their own text when the model returns nothing
TASKS_ALLOWING_EMPTY = frozenset({AITask.GOAL_COACHING})


class AIGatewayError(Exception):
    """The AI service could not produce a usable result."""

    def __init__(self, task: AITask, message: str):
        super().__init__(f"{task.value}: {message}")
        self.task = task
        self.message = message


class JournalAnalysisResponse(BaseModel):
    """Structured result of analyzing one journal entry (camelCase JSON)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    emotions: EmotionScore = Field(default_factory=EmotionScore)
    themes: list[str] = Field(default_factory=list)
    actions: list[str] = Field(default_factory=list)
    ai_comment: Optional[str] = None

    def to_analysis(self) -> JournalAnalysis:
        return JournalAnalysis(
            emotions=self.emotions,
            themes=self.themes,
            actions=self.actions,
        )


class AnnotationAgentInterface(ABC):
    """What the controller needs from an AI backend."""

    @abstractmethod
    async def analyze_journal_entry(self, content: str) -> JournalAnalysisResponse:
        """
        Score emotions and extract themes and actions from one entry.

        Raises:
            AIGatewayError: If no usable analysis came back
        """
        pass

    @abstractmethod
    async def complete(self, request: AIRequest) -> str:
        """
        Run a free-text task and return Markdown.

        Raises:
            AIGatewayError: If the service failed, or returned nothing for a
                task that needs text
        """
        pass


class GeminiAnnotationAgent(AnnotationAgentInterface):
    """
    Gemini-backed implementation.

    One GenerativeModel is configured per agent. Entry analysis asks for
    a JSON response; every other task gets plain text back.
    """

    def __init__(self, settings: Optional[GeminiSettings] = None):
        self._settings = settings or get_settings().gemini
        self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            }
        )

    async def _generate(
        self,
        task: AITask,
        prompt: str,
        json_mode: bool = False,
        allow_empty: bool = False,
    ) -> str:
        kwargs = {}
        if json_mode:
            kwargs["generation_config"] = {
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
                "response_mime_type": "application/json",
            }

        try:
            response = await self._model.generate_content_async(prompt, **kwargs)
            text = response.text
        except Exception as e:
            raise AIGatewayError(task, f"{type(e).__name__}: {e}") from e

        text = (text or "").strip()
        if not text and not allow_empty:
            raise AIGatewayError(task, "empty response")
        return text

    async def analyze_journal_entry(self, content: str) -> JournalAnalysisResponse:
        request = entry_analysis_request(content)
        text = await self._generate(request.task, render_prompt(request), json_mode=True)
        return parse_analysis_response(text)

    async def complete(self, request: AIRequest) -> str:
        return await self._generate(
            request.task,
            render_prompt(request),
            allow_empty=request.task in TASKS_ALLOWING_EMPTY,
        )


def parse_analysis_response(text: str) -> JournalAnalysisResponse:
    """
    Parse the model's JSON answer for an entry analysis.

    The object is cut out between the first '{' and the last '}' so a
    stray code fence around it does not matter.
    """
    start = text.find("{")
    end = text.rfind("}") + 1
    if start < 0 or end <= start:
        raise AIGatewayError(AITask.ANALYZE_ENTRY, "response contained no JSON object")

    try:
        data = json.loads(text[start:end])
        return JournalAnalysisResponse.model_validate(data)
    except (ValueError, ValidationError) as e:
        raise AIGatewayError(AITask.ANALYZE_ENTRY, f"malformed analysis: {e}") from e
