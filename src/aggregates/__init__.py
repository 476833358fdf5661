"""
Derived Aggregates

Pure calculations over the document. Nothing here is cached or stored.
"""

from src.aggregates.assets import (
    CategoryShare,
    MonthlyAssetSummary,
    TrendPoint,
    asset_trend_series,
    category_breakdown,
    find_record,
    month_over_month_delta,
    previous_month,
    same_month_last_year,
    summarize_month,
    total_assets,
    year_over_year_delta,
)
from src.aggregates.budget import (
    BudgetSummary,
    FlowSlice,
    budget_surplus,
    flow_breakdown,
    summarize_budget,
    total_expenses,
    total_fixed_costs,
)
from src.aggregates.goals import completion_rate, goals_in_category
from src.aggregates.journal import (
    EmotionPoint,
    emotion_trend,
    entries_for_display,
    recent_entries_for_trend,
)

__all__ = [
    "CategoryShare",
    "MonthlyAssetSummary",
    "TrendPoint",
    "asset_trend_series",
    "category_breakdown",
    "find_record",
    "month_over_month_delta",
    "previous_month",
    "same_month_last_year",
    "summarize_month",
    "total_assets",
    "year_over_year_delta",
    "BudgetSummary",
    "FlowSlice",
    "budget_surplus",
    "flow_breakdown",
    "summarize_budget",
    "total_expenses",
    "total_fixed_costs",
    "completion_rate",
    "goals_in_category",
    "EmotionPoint",
    "emotion_trend",
    "entries_for_display",
    "recent_entries_for_trend",
]
