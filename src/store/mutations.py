"""
Document Mutation Helpers

Every helper takes the current AppData plus a change and returns a NEW
AppData. Inputs are never modified, so the store can swap documents and
persist the new one without worrying about shared references.

These helpers do not validate payloads. Parse user input with
src.validation first.

Journal "save" is deliberately two operations (append, replace by id).
The caller decides which one applies; nothing here silently branches on
whether an id already exists.
"""

from typing import Iterable, Optional
from uuid import uuid4

from src.models.app_data import (
    AppData,
    AssetRecord,
    BudgetProfile,
    FixedCostItem,
    Goal,
    GoalCategory,
    JournalAnalysis,
    JournalEntry,
    MoneyConfig,
    UserProfile,
)


class EntityNotFoundError(LookupError):
    """No entity with the given id/month exists in the document."""

    def __init__(self, entity_type: str, entity_id: str):
        super().__init__(f"{entity_type} not found: {entity_id}")
        self.entity_type = entity_type
        self.entity_id = entity_id


def new_id() -> str:
    return uuid4().hex


# =============================================================================
# JOURNAL
# =============================================================================

def has_journal_entry(data: AppData, entry_id: str) -> bool:
    return any(e.id == entry_id for e in data.journal)


def get_journal_entry(data: AppData, entry_id: str) -> JournalEntry:
    for entry in data.journal:
        if entry.id == entry_id:
            return entry
    raise EntityNotFoundError("journal_entry", entry_id)


def append_journal_entry(data: AppData, entry: JournalEntry) -> AppData:
    """Append a new entry at the end (insertion order)."""
    return data.model_copy(update={"journal": [*data.journal, entry]})


def replace_journal_entry_by_id(data: AppData, entry: JournalEntry) -> AppData:
    """
    Replace the entry with the same id, keeping its position.

    Raises:
        EntityNotFoundError: If no entry has this id
    """
    if not has_journal_entry(data, entry.id):
        raise EntityNotFoundError("journal_entry", entry.id)
    journal = [entry if e.id == entry.id else e for e in data.journal]
    return data.model_copy(update={"journal": journal})


def attach_journal_analysis(
    data: AppData,
    entry_id: str,
    analysis: JournalAnalysis,
    ai_comment: Optional[str],
) -> AppData:
    entry = get_journal_entry(data, entry_id)
    updated = entry.model_copy(update={"analysis": analysis, "ai_comment": ai_comment})
    return replace_journal_entry_by_id(data, updated)


# =============================================================================
# GOALS
# =============================================================================

def set_goals(data: AppData, goals: Iterable[Goal]) -> AppData:
    """Swap in the full next goal collection."""
    return data.model_copy(update={"goals": list(goals)})


def add_goal(goals: list[Goal], title: str, category: GoalCategory) -> list[Goal]:
    goal = Goal(
        id=new_id(),
        title=title,
        description="",
        deadline="",
        progress=0,
        category=category,
    )
    return [*goals, goal]


def toggle_goal_progress(goals: list[Goal], goal_id: str) -> list[Goal]:
    """Done goals go back to 0, anything else becomes done (100)."""
    _require_goal(goals, goal_id)
    return [
        g.model_copy(update={"progress": 0 if g.progress == 100 else 100})
        if g.id == goal_id else g
        for g in goals
    ]


def rename_goal(goals: list[Goal], goal_id: str, title: str) -> list[Goal]:
    _require_goal(goals, goal_id)
    return [g.model_copy(update={"title": title}) if g.id == goal_id else g for g in goals]


def remove_goal(goals: list[Goal], goal_id: str) -> list[Goal]:
    _require_goal(goals, goal_id)
    return [g for g in goals if g.id != goal_id]


def _require_goal(goals: list[Goal], goal_id: str) -> None:
    if not any(g.id == goal_id for g in goals):
        raise EntityNotFoundError("goal", goal_id)


# =============================================================================
# ASSETS
# =============================================================================

def set_assets(data: AppData, assets: Iterable[AssetRecord]) -> AppData:
    """Swap in the full next asset collection."""
    return data.model_copy(update={"assets": list(assets)})


def set_asset_value(data: AppData, month: str, category: str, amount: int) -> AppData:
    """
    Set one category balance for one month.

    The asset list is rebuilt as (records for other months) + (the
    updated record for this month), so there is never more than one
    record per month and the latest write wins.
    """
    current = next(
        (r for r in data.assets if r.month == month),
        AssetRecord(month=month, values={}),
    )
    updated = AssetRecord(month=month, values={**current.values, category: amount})
    others = [r for r in data.assets if r.month != month]
    return set_assets(data, [*others, updated])


# =============================================================================
# MONEY CONFIG
# =============================================================================

def set_money_config(data: AppData, config: MoneyConfig) -> AppData:
    return data.model_copy(update={"money_config": config})


def add_asset_category(config: MoneyConfig, name: str) -> MoneyConfig:
    """Append a category. Blank or duplicate names leave the config as is."""
    if not name or name in config.asset_categories:
        return config
    return config.model_copy(update={"asset_categories": [*config.asset_categories, name]})


def remove_asset_category(config: MoneyConfig, name: str) -> MoneyConfig:
    """
    Remove a category from the config.

    Recorded balances for it stay in the asset records.
    """
    return config.model_copy(
        update={"asset_categories": [c for c in config.asset_categories if c != name]}
    )


# =============================================================================
# BUDGET
# =============================================================================

def set_budget_profile(data: AppData, budget: BudgetProfile) -> AppData:
    return data.model_copy(update={"budget_profile": budget})


def set_monthly_income(budget: BudgetProfile, amount: int) -> BudgetProfile:
    return budget.model_copy(update={"monthly_income": amount})


def set_variable_budget(budget: BudgetProfile, amount: int) -> BudgetProfile:
    return budget.model_copy(update={"variable_budget": amount})


def add_fixed_cost(budget: BudgetProfile, name: str, amount: int) -> BudgetProfile:
    item = FixedCostItem(id=new_id(), name=name, amount=amount)
    return budget.model_copy(update={"fixed_costs": [*budget.fixed_costs, item]})


def remove_fixed_cost(budget: BudgetProfile, item_id: str) -> BudgetProfile:
    if not any(item.id == item_id for item in budget.fixed_costs):
        raise EntityNotFoundError("fixed_cost", item_id)
    return budget.model_copy(
        update={"fixed_costs": [item for item in budget.fixed_costs if item.id != item_id]}
    )


# =============================================================================
# PROFILE
# =============================================================================

def set_user_profile(data: AppData, profile: Optional[UserProfile]) -> AppData:
    return data.model_copy(update={"user": profile})


def update_user_profile(data: AppData, **fields) -> AppData:
    """
    Change selected profile fields.

    Raises:
        EntityNotFoundError: If no profile exists yet
    """
    if data.user is None:
        raise EntityNotFoundError("profile", "user")
    return set_user_profile(data, data.user.model_copy(update=fields))
