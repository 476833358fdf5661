"""
Data Models Package

This package contains all Pydantic models used in Tarushiru.
The persisted document and everything in it conforms to these schemas.
"""

from src.models.app_data import (
    DEFAULT_ASSET_CATEGORIES,
    DEFAULT_GOAL_CATEGORY,
    AppData,
    AssetRecord,
    BudgetProfile,
    EmotionScore,
    FixedCostItem,
    Goal,
    GoalCategory,
    JournalAnalysis,
    JournalEntry,
    MoneyConfig,
    UserProfile,
    ViewState,
)
from src.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Document models
    "DEFAULT_ASSET_CATEGORIES",
    "DEFAULT_GOAL_CATEGORY",
    "AppData",
    "AssetRecord",
    "BudgetProfile",
    "EmotionScore",
    "FixedCostItem",
    "Goal",
    "GoalCategory",
    "JournalAnalysis",
    "JournalEntry",
    "MoneyConfig",
    "UserProfile",
    "ViewState",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
