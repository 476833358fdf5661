"""
Core Data Models for Tarushiru

These models define the schema of the single persisted document (AppData)
and every record inside it.

DESIGN DECISION: Python field names are snake_case, but the persisted
document uses camelCase keys. An alias generator maps between them so
documents written by older versions of the app load unchanged, and
documents written by this version stay readable by them.

Validation is deliberately lenient here. Stored documents are repaired by
the normalizer before they reach these models, and user input is parsed at
the boundary (see src.validation). AI responses are stored verbatim, so
emotion scores are not range-checked.
"""

import json
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class ViewState(str, Enum):
    """Screens the controller can show."""
    AUTH = "AUTH"
    JOURNAL = "JOURNAL"
    MONEY = "MONEY"
    GOALS = "GOALS"
    PROFILE = "PROFILE"


class GoalCategory(str, Enum):
    """
    Goal categories.

    Goals saved before categories existed are upgraded to WORK
    by the normalizer.
    """
    BEING = "being"            # How I want to be
    LIFE = "life"              # Health, hobbies, home
    WORK = "work"              # Mid/long term career goals
    WORK_SHORT = "work_short"  # Near-term tasks, any genre


DEFAULT_GOAL_CATEGORY = GoalCategory.WORK

DEFAULT_ASSET_CATEGORIES = ["現金・預金", "株式・投信", "暗号資産"]  # cash, stocks/funds, crypto


class _DocumentModel(BaseModel):
    """Base for everything stored in the document (camelCase on disk)."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


# =============================================================================
# JOURNAL
# =============================================================================

class EmotionScore(_DocumentModel):
    """Five-dimensional emotion score, nominally each in [0, 1]."""
    joy: float = 0.0
    anger: float = 0.0
    sadness: float = 0.0
    anxiety: float = 0.0
    calm: float = 0.0


class JournalAnalysis(_DocumentModel):
    """AI annotation attached to a journal entry."""
    emotions: EmotionScore = Field(default_factory=EmotionScore)
    themes: list[str] = Field(default_factory=list)
    actions: list[str] = Field(default_factory=list)


class JournalEntry(_DocumentModel):
    """
    A free-text diary entry.

    The id is stable for the lifetime of the entry. Edits replace the
    entry in place (same id), they never create a second one.
    """
    id: str = Field(..., min_length=1)
    date: str = Field(
        ...,
        description="ISO timestamp of the entry"
    )
    content: str = ""
    analysis: Optional[JournalAnalysis] = None
    ai_comment: Optional[str] = Field(
        default=None,
        description="One-line positive comment from the AI"
    )


# =============================================================================
# GOALS
# =============================================================================

class Goal(_DocumentModel):
    """A categorized goal. Progress is binary (0 or 100) in practice."""
    id: str = Field(..., min_length=1)
    title: str = ""
    description: str = ""
    deadline: str = ""
    progress: int = 0
    category: GoalCategory = DEFAULT_GOAL_CATEGORY

    @property
    def is_done(self) -> bool:
        return self.progress >= 100


# =============================================================================
# MONEY
# =============================================================================

class AssetRecord(_DocumentModel):
    """
    Asset balances for one calendar month.

    At most one record exists per month. The mutation helpers keep that
    invariant; the model itself does not know about other records.
    """
    month: str = Field(
        ...,
        description="Calendar month, zero-padded YYYY-MM"
    )
    values: dict[str, int] = Field(default_factory=dict)


class MoneyConfig(_DocumentModel):
    """User-defined asset category names, in display order."""
    asset_categories: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ASSET_CATEGORIES)
    )


class FixedCostItem(_DocumentModel):
    """A recurring monthly cost."""
    id: str = Field(..., min_length=1)
    name: str = ""
    amount: int = 0


class BudgetProfile(_DocumentModel):
    """
    Monthly income/expense structure.

    Surplus is always derived (see src.aggregates.budget), never stored.
    """
    monthly_income: int = 0
    fixed_costs: list[FixedCostItem] = Field(default_factory=list)
    variable_budget: int = 0


# =============================================================================
# PROFILE
# =============================================================================

class UserProfile(_DocumentModel):
    """
    Identity and career profile of the single user.

    The password is a soft gate only. It is stored in plain form inside
    the same document it protects.
    """
    name: str = ""
    email: str = ""
    password: Optional[str] = None
    mbti: str = ""
    strengths: list[str] = Field(
        default_factory=list,
        description="Ordered strength themes, up to 5"
    )
    skills: list[str] = Field(default_factory=list)
    history: str = Field(
        default="",
        description="Free-text career history notes"
    )

    # AI generated text
    resume_markdown: Optional[str] = None
    personality_analysis: Optional[str] = None
    career_summary: Optional[str] = None

    # Self description
    career_strengths: str = ""
    interests: str = ""
    values: str = ""
    environment: str = ""

    @property
    def filled_strengths(self) -> list[str]:
        """Strengths with empty slots removed."""
        return [s for s in self.strengths if s]


# =============================================================================
# ROOT DOCUMENT
# =============================================================================

class AppData(_DocumentModel):
    """
    The root document holding all persisted state.

    It is replaced wholesale on every mutation (copy-on-write), and
    written to storage as a whole, never patched.
    """
    user: Optional[UserProfile] = None
    journal: list[JournalEntry] = Field(default_factory=list)
    goals: list[Goal] = Field(default_factory=list)
    assets: list[AssetRecord] = Field(default_factory=list)
    money_config: MoneyConfig = Field(default_factory=MoneyConfig)
    budget_profile: BudgetProfile = Field(default_factory=BudgetProfile)

    def to_document(self) -> dict:
        """
        Convert to the persisted (camelCase) dictionary shape.
        """
        return self.model_dump(mode="json", by_alias=True)

    def to_json(self) -> str:
        """
        Serialize to the text written to storage.
        """
        return json.dumps(self.to_document(), ensure_ascii=False)
