"""
Tests for AI request building and response parsing (no network).
"""

import json

import pytest

from src.agents import (
    AIGatewayError,
    AIRequest,
    AITask,
    asset_trends_request,
    goal_coaching_request,
    journal_trends_request,
    parse_analysis_response,
    personality_request,
    render_prompt,
    resume_request,
)
from src.models.app_data import (
    AssetRecord,
    BudgetProfile,
    Goal,
    JournalAnalysis,
    JournalEntry,
    UserProfile,
)


class TestRequestBuilders:
    """Tests for the document slices sent with each task."""

    def test_journal_trends_last_fifteen(self):
        """Test only the 15 most recent entries are sent."""
        journal = [
            JournalEntry(
                id=str(i),
                date=f"2024-06-{i + 1:02d}T00:00:00.000Z",
                content=f"entry {i}",
                analysis=JournalAnalysis(themes=["work"]) if i == 19 else None,
            )
            for i in range(20)
        ]
        request = journal_trends_request(journal)
        rows = json.loads(request.payload)
        assert request.task == AITask.JOURNAL_TRENDS
        assert len(rows) == 15
        assert rows[0]["content"] == "entry 5"
        assert rows[-1] == {"date": "2024-06-20T00:00:00.000Z", "content": "entry 19", "themes": ["work"]}
        assert rows[0]["themes"] == []

    def test_personality_drops_empty_strengths(self):
        """Test only filled strength slots are sent."""
        request = personality_request("INFP", ["Empathy", "", "Input"])
        assert json.loads(request.payload) == {"mbti": "INFP", "strengths": ["Empathy", "Input"]}

    def test_asset_trends_sorted_and_windowed(self):
        """Test assets are sent sorted by month, last 24 only."""
        records = [AssetRecord(month=f"{2020 + i // 12}-{i % 12 + 1:02d}", values={}) for i in range(30)]
        records.reverse()
        payload = json.loads(asset_trends_request(records, BudgetProfile(monthly_income=1)).payload)
        months = [r["month"] for r in payload["assets"]]
        assert len(months) == 24
        assert months == sorted(months)
        assert months[-1] == "2022-06"
        assert payload["budget"]["monthlyIncome"] == 1

    def test_resume_request(self):
        """Test the profile fields sent for a resume."""
        profile = UserProfile(name="hana", strengths=["Empathy", ""], history="Bakery 2019-2023")
        payload = json.loads(resume_request(profile).payload)
        assert payload["strengths"] == ["Empathy"]
        assert payload["history"] == "Bakery 2019-2023"

    def test_goal_coaching_request(self):
        """Test goals are sent in stored shape."""
        payload = json.loads(goal_coaching_request([Goal(id="g1", title="Run")]).payload)
        assert payload[0]["title"] == "Run"
        assert payload[0]["category"] == "work"

    def test_render_prompt_includes_payload(self):
        """Test the payload is embedded in the prompt."""
        request = personality_request("INFP", ["Empathy"])
        prompt = render_prompt(request)
        assert request.payload in prompt

    def test_render_prompt_every_task(self):
        """Test every task has a prompt template."""
        for task in AITask:
            assert "{payload}" not in render_prompt(AIRequest(task=task, payload="{x}"))


class TestParseAnalysisResponse:
    """Tests for reading the entry analysis JSON."""

    def test_plain_json(self):
        """Test a well-formed response."""
        text = json.dumps({
            "emotions": {"joy": 0.8, "anger": 0, "sadness": 0.1, "anxiety": 0.2, "calm": 0.5},
            "themes": ["family"],
            "actions": ["called mom"],
            "aiComment": "Lovely day!",
        })
        result = parse_analysis_response(text)
        assert result.emotions.joy == 0.8
        assert result.ai_comment == "Lovely day!"
        assert result.to_analysis().themes == ["family"]

    def test_fenced_json(self):
        """Test a response wrapped in a code fence."""
        result = parse_analysis_response('```json\n{"themes": ["work"]}\n```')
        assert result.themes == ["work"]
        assert result.ai_comment is None

    def test_scores_stored_verbatim(self):
        """Test out-of-range scores are not clamped."""
        result = parse_analysis_response('{"emotions": {"joy": 3}}')
        assert result.emotions.joy == 3

    @pytest.mark.parametrize("text", ["no json here", '{"themes": "oops"', '{"themes": 5}'])
    def test_malformed(self, text):
        """Test unusable responses raise AIGatewayError."""
        with pytest.raises(AIGatewayError) as exc_info:
            parse_analysis_response(text)
        assert exc_info.value.task == AITask.ANALYZE_ENTRY
