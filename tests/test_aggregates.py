"""
Tests for derived aggregates (assets, budget, journal, goals).
"""

import pytest

from src.aggregates import (
    asset_trend_series,
    budget_surplus,
    category_breakdown,
    completion_rate,
    emotion_trend,
    entries_for_display,
    flow_breakdown,
    goals_in_category,
    month_over_month_delta,
    previous_month,
    recent_entries_for_trend,
    same_month_last_year,
    summarize_budget,
    summarize_month,
    total_assets,
    total_expenses,
    total_fixed_costs,
    year_over_year_delta,
)
from src.aggregates.assets import recent_records
from src.models.app_data import (
    AssetRecord,
    BudgetProfile,
    EmotionScore,
    FixedCostItem,
    Goal,
    GoalCategory,
    JournalAnalysis,
    JournalEntry,
)


CATEGORIES = ["Cash & Deposits", "Stocks & Funds", "Crypto"]


@pytest.fixture
def records():
    return [
        AssetRecord(month="2024-05", values={"Cash & Deposits": 500, "Stocks & Funds": 300}),
        AssetRecord(month="2023-05", values={"Cash & Deposits": 600}),
        AssetRecord(month="2024-04", values={"Cash & Deposits": 450, "Stocks & Funds": 250}),
    ]


class TestMonthArithmetic:
    """Tests for month key helpers."""

    def test_previous_month(self):
        """Test stepping back one month."""
        assert previous_month("2024-05") == "2024-04"

    def test_previous_month_year_boundary(self):
        """Test January steps back into December."""
        assert previous_month("2024-01") == "2023-12"

    def test_same_month_last_year(self):
        """Test stepping back one year."""
        assert same_month_last_year("2024-02") == "2023-02"


class TestAssetAggregates:
    """Tests for totals and deltas."""

    def test_total_assets(self, records):
        """Test the monthly total."""
        assert total_assets(records, "2024-05") == 800

    def test_total_without_record(self, records):
        """Test that a month without record totals 0."""
        assert total_assets(records, "2024-06") == 0

    def test_month_over_month(self, records):
        """Test the delta against last month."""
        assert month_over_month_delta(records, "2024-05") == 100

    def test_year_over_year(self, records):
        """Test the delta against the same month last year."""
        assert year_over_year_delta(records, "2024-05") == 200

    def test_delta_absent_without_comparison_record(self, records):
        """Test that a missing comparison month gives no delta, not a delta from 0."""
        assert month_over_month_delta(records, "2023-05") is None
        assert year_over_year_delta(records, "2024-04") is None

    def test_delta_for_month_without_record(self, records):
        """Test a current month with no record against a recorded month."""
        assert month_over_month_delta(records, "2024-06") == -800

    def test_breakdown_order_and_zero_values(self):
        """Test configured order first, extra keys after, zeros skipped."""
        records = [AssetRecord(month="2024-05", values={
            "Gold": 100,
            "Crypto": 0,
            "Stocks & Funds": 300,
            "Cash & Deposits": 600,
        })]
        breakdown = category_breakdown(records, "2024-05", CATEGORIES)
        assert [s.category for s in breakdown] == ["Cash & Deposits", "Stocks & Funds", "Gold"]
        assert breakdown[0].share == pytest.approx(0.6)

    def test_breakdown_empty_when_total_zero(self):
        """Test that an all-zero month has no breakdown."""
        records = [AssetRecord(month="2024-05", values={"Cash & Deposits": 0})]
        assert category_breakdown(records, "2024-05", CATEGORIES) == []

    def test_trend_series_sorted(self, records):
        """Test the trend is ascending by month."""
        series = asset_trend_series(records)
        assert [p.month for p in series] == ["2023-05", "2024-04", "2024-05"]
        assert [p.total for p in series] == [600, 700, 800]

    def test_recent_records(self, records):
        """Test the analysis window keeps the latest months."""
        assert [r.month for r in recent_records(records, 2)] == ["2024-04", "2024-05"]

    def test_summarize_month(self, records):
        """Test the combined summary."""
        summary = summarize_month(records, "2024-05", CATEGORIES)
        assert summary.total == 800
        assert summary.has_record
        assert summary.month_over_month == 100
        assert summary.year_over_year == 200
        assert len(summary.breakdown) == 2

    def test_summarize_empty_month(self):
        """Test a summary with no data at all."""
        summary = summarize_month([], "2024-05", CATEGORIES)
        assert summary.total == 0
        assert not summary.has_record
        assert summary.month_over_month is None
        assert summary.breakdown == []


class TestBudgetAggregates:
    """Tests for cash flow arithmetic."""

    def test_surplus_scenario(self):
        """Test income 300000, fixed 80000 + 20000, variable 50000."""
        budget = BudgetProfile(
            monthly_income=300000,
            fixed_costs=[
                FixedCostItem(id="1", name="Rent", amount=80000),
                FixedCostItem(id="2", name="Phone", amount=20000),
            ],
            variable_budget=50000,
        )
        assert total_fixed_costs(budget) == 100000
        assert total_expenses(budget) == 150000
        assert budget_surplus(budget) == 150000

    def test_negative_surplus(self):
        """Test that a deficit is reported as is."""
        budget = BudgetProfile(monthly_income=100, variable_budget=300)
        summary = summarize_budget(budget)
        assert summary.surplus == -200
        assert summary.is_deficit

    def test_flow_chart_clamps_surplus(self):
        """Test the chart never shows a negative surplus bar."""
        slices = flow_breakdown(BudgetProfile(monthly_income=100, variable_budget=300))
        assert [(s.label, s.amount) for s in slices] == [
            ("Income", 100),
            ("Expenses", 300),
            ("Surplus", 0),
        ]

    def test_empty_budget(self):
        """Test the default budget."""
        summary = summarize_budget(BudgetProfile())
        assert (summary.income, summary.expenses, summary.surplus) == (0, 0, 0)


def analyzed(entry_id: str, date: str, joy: float) -> JournalEntry:
    return JournalEntry(
        id=entry_id,
        date=date,
        content=entry_id,
        analysis=JournalAnalysis(emotions=EmotionScore(joy=joy)),
    )


class TestJournalAggregates:
    """Tests for journal display and trends."""

    def test_display_newest_first(self):
        """Test entries are shown by timestamp, newest first."""
        journal = [
            JournalEntry(id="a", date="2024-06-02T10:00:00.000Z"),
            JournalEntry(id="b", date="2024-06-01T10:00:00.000Z"),
            JournalEntry(id="c", date="2024-06-03T10:00:00.000Z"),
        ]
        assert [e.id for e in entries_for_display(journal)] == ["c", "a", "b"]
        assert [e.id for e in journal] == ["a", "b", "c"]

    def test_display_mixed_timezone_formats(self):
        """Test naive and offset timestamps sort together."""
        journal = [
            JournalEntry(id="a", date="2024-06-01T10:00"),
            JournalEntry(id="b", date="2024-06-01T09:00:00+00:00"),
            JournalEntry(id="c", date="not a date"),
        ]
        assert [e.id for e in entries_for_display(journal)] == ["a", "b", "c"]

    def test_emotion_trend_window(self):
        """Test only the last analyzed entries are charted."""
        journal = [analyzed(str(i), f"2024-06-{i + 1:02d}T00:00:00.000Z", i / 20) for i in range(20)]
        journal.append(JournalEntry(id="plain", date="2024-07-01T00:00:00.000Z"))
        points = emotion_trend(journal, window=14)
        assert len(points) == 14
        assert points[0].entry_id == "6"
        assert points[-1].entry_id == "19"

    def test_recent_entries_for_trend(self):
        """Test the last 15 entries in insertion order."""
        journal = [JournalEntry(id=str(i), date="2024-06-01T00:00:00.000Z") for i in range(20)]
        recent = recent_entries_for_trend(journal)
        assert [e.id for e in recent] == [str(i) for i in range(5, 20)]


class TestGoalAggregates:
    """Tests for goal grouping."""

    def test_goals_in_category(self):
        """Test filtering by category."""
        goals = [Goal(id="1", category=GoalCategory.LIFE), Goal(id="2")]
        assert [g.id for g in goals_in_category(goals, GoalCategory.WORK)] == ["2"]

    def test_completion_rate(self):
        """Test the done share."""
        goals = [Goal(id="1", progress=100), Goal(id="2"), Goal(id="3"), Goal(id="4", progress=100)]
        assert completion_rate(goals) == 0.5
        assert completion_rate([]) == 0.0
