"""
Document Normalizer

Turns whatever is in storage (nothing, a document written by an older
version of the app, or garbage) into a fully populated AppData.

DESIGN DECISION: Normalization is an ordered list of small, named steps.
Each step is a pure function from a camelCase document dict to a new
dict. Steps never raise on odd shapes; they repair what they recognize
and leave the rest for model validation.

ITEM SALVAGE: After the steps, every collection item and profile object
is validated on its own. Fields that still fail are removed so their
defaults apply; an item that stays invalid (no id, no date) is dropped.
Each repair is reported and audited, the rest of the document loads.

FAILURE SEMANTICS:
- Unparseable text, a non-object document, or a document that still
  fails validation after all steps degrades to the default document.
- The failure is audited, never raised.
- The persisted copy is NOT overwritten here. It stays on disk until the
  next explicit mutation, so a corrupt-but-recoverable document is not
  destroyed just by opening the app.
"""

import copy
import json
import math
import re
from enum import Enum
from typing import Callable, Optional

from pydantic import BaseModel, Field, ValidationError

from src.audit import AuditLogger
from src.models.app_data import (
    DEFAULT_ASSET_CATEGORIES,
    DEFAULT_GOAL_CATEGORY,
    AppData,
    AssetRecord,
    BudgetProfile,
    FixedCostItem,
    Goal,
    GoalCategory,
    JournalEntry,
    MoneyConfig,
    UserProfile,
)


MigrationStep = Callable[[dict], dict]

PROFILE_TEXT_FIELDS = (
    "name",
    "email",
    "mbti",
    "history",
    "careerStrengths",
    "interests",
    "values",
    "environment",
)

COLLECTION_KEYS = ("journal", "goals", "assets")

_GOAL_CATEGORY_VALUES = {c.value for c in GoalCategory}

# JSON escapes can decode to unpaired surrogates, which UTF-8 cannot encode
_LONE_SURROGATE = re.compile("[\ud800-\udfff]")

# Validated item by item after the steps
ITEM_MODELS: tuple[tuple[str, type[BaseModel]], ...] = (
    ("journal", JournalEntry),
    ("goals", Goal),
    ("assets", AssetRecord),
)
OBJECT_MODELS: tuple[tuple[str, type[BaseModel]], ...] = (
    ("user", UserProfile),
    ("moneyConfig", MoneyConfig),
    ("budgetProfile", BudgetProfile),
)


def default_document() -> dict:
    """The document a brand-new installation starts from (camelCase)."""
    return AppData().to_document()


# =============================================================================
# STEPS
# =============================================================================

def adopt_asset_categories(doc: dict) -> dict:
    """
    Documents saved before money settings existed have balances but no
    category list. Their balance names join the defaults so they stay
    visible. A stored list is left alone, since removed categories keep
    their balances on purpose.
    """
    if not isinstance(doc, dict) or "moneyConfig" in doc:
        return doc

    categories = list(DEFAULT_ASSET_CATEGORIES)
    assets = doc.get("assets")
    for record in assets if isinstance(assets, list) else []:
        values = record.get("values") if isinstance(record, dict) else None
        for name in values if isinstance(values, dict) else {}:
            if str(name) not in categories:
                categories.append(str(name))
    return {**doc, "moneyConfig": {"assetCategories": categories}}


def merge_over_defaults(doc: dict) -> dict:
    """Shallow-merge the stored top-level keys over the default document."""
    merged = default_document()
    if isinstance(doc, dict):
        merged.update(copy.deepcopy(doc))
    return merged


def replace_lone_surrogates(doc: dict) -> dict:
    """Unpaired surrogates in any text or key become U+FFFD."""
    def fix(value):
        if isinstance(value, str):
            return _LONE_SURROGATE.sub("\ufffd", value)
        if isinstance(value, dict):
            return {fix(k): fix(v) for k, v in value.items()}
        if isinstance(value, list):
            return [fix(v) for v in value]
        return value

    return fix(doc)


def ensure_collections(doc: dict) -> dict:
    """
    Make the collections lists of objects and the user an object or None.

    Items that are not objects cannot be recognized and are dropped.
    """
    doc = dict(doc)
    for key in COLLECTION_KEYS:
        value = doc.get(key)
        if not isinstance(value, list):
            doc[key] = []
        else:
            doc[key] = [item for item in value if isinstance(item, dict)]

    if doc.get("user") is not None and not isinstance(doc["user"], dict):
        doc["user"] = None
    return doc


def coerce_legacy_strengths(doc: dict) -> dict:
    """Older versions stored strengths as one string."""
    user = doc.get("user")
    if not isinstance(user, dict):
        return doc

    user = dict(user)
    strengths = user.get("strengths")
    if isinstance(strengths, str):
        user["strengths"] = [strengths]
    elif isinstance(strengths, list):
        user["strengths"] = ["" if s is None else str(s) for s in strengths]
    else:
        user["strengths"] = []
    return {**doc, "user": user}


def default_profile_fields(doc: dict) -> dict:
    """Profile text fields added over time default to the empty string."""
    user = doc.get("user")
    if not isinstance(user, dict):
        return doc

    user = dict(user)
    for field in PROFILE_TEXT_FIELDS:
        value = user.get(field)
        if value is None:
            user[field] = ""
        elif not isinstance(value, str):
            user[field] = str(value)
    return {**doc, "user": user}


def ensure_skills_list(doc: dict) -> dict:
    user = doc.get("user")
    if not isinstance(user, dict):
        return doc

    skills = user.get("skills")
    if isinstance(skills, list):
        skills = [str(s) for s in skills if s is not None]
    else:
        skills = []
    return {**doc, "user": {**user, "skills": skills}}


def default_goal_category(doc: dict) -> dict:
    """Goals from before categories existed become work goals (one-way)."""
    goals = []
    for goal in doc.get("goals", []):
        goal = dict(goal)
        if goal.get("category") not in _GOAL_CATEGORY_VALUES:
            goal["category"] = DEFAULT_GOAL_CATEGORY.value
        goals.append(goal)
    return {**doc, "goals": goals}


def merge_money_config(doc: dict) -> dict:
    """Merge key-by-key so keys added later never go missing."""
    merged = default_document()["moneyConfig"]
    stored = doc.get("moneyConfig")
    if isinstance(stored, dict):
        merged.update(stored)
    if not isinstance(merged.get("assetCategories"), list):
        merged["assetCategories"] = default_document()["moneyConfig"]["assetCategories"]
    return {**doc, "moneyConfig": merged}


def merge_budget_profile(doc: dict) -> dict:
    merged = default_document()["budgetProfile"]
    stored = doc.get("budgetProfile")
    if isinstance(stored, dict):
        merged.update(stored)
    if not isinstance(merged.get("fixedCosts"), list):
        merged["fixedCosts"] = []
    merged["fixedCosts"] = [item for item in merged["fixedCosts"] if isinstance(item, dict)]
    return {**doc, "budgetProfile": merged}


def stringify_ids(doc: dict) -> dict:
    """Ids were timestamps; some builds stored them as numbers."""
    def fix(items: list) -> list:
        fixed = []
        for item in items:
            if "id" in item and item["id"] is not None and not isinstance(item["id"], str):
                item = {**item, "id": str(item["id"])}
            fixed.append(item)
        return fixed

    budget = doc.get("budgetProfile") or {}
    return {
        **doc,
        "journal": fix(doc.get("journal", [])),
        "goals": fix(doc.get("goals", [])),
        "budgetProfile": {**budget, "fixedCosts": fix(budget.get("fixedCosts", []))},
    }


def repair_numeric_values(doc: dict) -> dict:
    """
    Turn stored amounts back into integers.

    Older versions let non-numeric input through; NaN was then
    serialized as null. Those values become 0.
    """
    assets = []
    for record in doc.get("assets", []):
        if not isinstance(record.get("month"), str):
            continue
        values = record.get("values")
        if not isinstance(values, dict):
            values = {}
        assets.append({
            **record,
            "values": {str(k): coerce_stored_amount(v) for k, v in values.items()},
        })

    budget = dict(doc.get("budgetProfile") or {})
    budget["monthlyIncome"] = coerce_stored_amount(budget.get("monthlyIncome"))
    budget["variableBudget"] = coerce_stored_amount(budget.get("variableBudget"))
    budget["fixedCosts"] = [
        {**item, "amount": coerce_stored_amount(item.get("amount"))}
        for item in budget.get("fixedCosts", [])
    ]

    goals = [
        {**goal, "progress": coerce_stored_amount(goal.get("progress"))}
        for goal in doc.get("goals", [])
    ]

    return {**doc, "assets": assets, "budgetProfile": budget, "goals": goals}


def coerce_stored_amount(value) -> int:
    """Best-effort integer for a value read back from storage."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else 0
    if isinstance(value, str):
        try:
            number = float(value.strip().replace(",", ""))
        except ValueError:
            return 0
        return int(number) if math.isfinite(number) else 0
    return 0


MIGRATION_STEPS: tuple[MigrationStep, ...] = (
    adopt_asset_categories,
    merge_over_defaults,
    replace_lone_surrogates,
    ensure_collections,
    coerce_legacy_strengths,
    default_profile_fields,
    ensure_skills_list,
    default_goal_category,
    merge_money_config,
    merge_budget_profile,
    stringify_ids,
    repair_numeric_values,
)


# =============================================================================
# PIPELINE
# =============================================================================

def run_migrations(raw: Optional[dict]) -> dict:
    """Apply every step in order and return the repaired document dict."""
    doc = raw if isinstance(raw, dict) else {}
    for step in MIGRATION_STEPS:
        doc = step(doc)
    return doc


# =============================================================================
# ITEM SALVAGE
# =============================================================================

class ItemRepair(BaseModel):
    """One stored object that did not fit the schema on its own."""
    section: str
    index: Optional[int] = None
    fields: list[str] = Field(default_factory=list)  # reset to their defaults
    dropped: bool = False
    error: str = ""


def _summarize(error: ValidationError) -> str:
    details = "; ".join(
        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
        for err in error.errors()[:3]
    )
    return f"{error.error_count()} validation error(s): {details}"


def _stored_key(model: type[BaseModel], item: dict, name) -> Optional[str]:
    """The key in the stored object an error location points at."""
    if name in item:
        return name
    for field_name, info in model.model_fields.items():
        if name in (field_name, info.alias):
            for key in (field_name, info.alias):
                if key in item:
                    return key
    return None


def salvage_item(model: type[BaseModel], item: dict) -> tuple[Optional[dict], list[str], str]:
    """
    Validate one stored object, removing the fields that fail.

    Returns:
        (object or None when it cannot be made valid, removed fields,
        first validation error or "")
    """
    candidate = dict(item)
    removed: list[str] = []
    first_error = ""
    while True:
        try:
            model.model_validate(candidate)
            return candidate, removed, first_error
        except ValidationError as e:
            first_error = first_error or _summarize(e)
            bad = {
                _stored_key(model, candidate, err["loc"][0])
                for err in e.errors()
                if err["loc"]
            }
            bad.discard(None)
            if not bad:
                return None, removed, first_error
            for key in sorted(bad):
                del candidate[key]
                removed.append(key)


def _salvage_list(
    section: str,
    model: type[BaseModel],
    items: list,
    repairs: list[ItemRepair],
) -> list:
    kept = []
    for index, item in enumerate(items):
        fixed, removed, error = salvage_item(model, item)
        if fixed is None:
            repairs.append(ItemRepair(section=section, index=index, fields=removed, dropped=True, error=error))
            continue
        if removed:
            repairs.append(ItemRepair(section=section, index=index, fields=removed, error=error))
        kept.append(fixed)
    return kept


def salvage_items(doc: dict) -> tuple[dict, list[ItemRepair]]:
    """
    Validate collection items and profile objects one at a time so a
    single bad value costs that value (or that item), not the document.
    """
    repairs: list[ItemRepair] = []
    doc = dict(doc)
    for section, model in ITEM_MODELS:
        doc[section] = _salvage_list(section, model, doc.get(section, []), repairs)

    budget = dict(doc.get("budgetProfile") or {})
    budget["fixedCosts"] = _salvage_list(
        "budgetProfile.fixedCosts", FixedCostItem, budget.get("fixedCosts", []), repairs
    )
    doc["budgetProfile"] = budget

    for section, model in OBJECT_MODELS:
        value = doc.get(section)
        if not isinstance(value, dict):
            continue
        fixed, removed, error = salvage_item(model, value)
        if fixed is None:
            repairs.append(ItemRepair(section=section, fields=removed, dropped=True, error=error))
            doc[section] = None if section == "user" else {}
        elif removed:
            repairs.append(ItemRepair(section=section, fields=removed, error=error))
            doc[section] = fixed
    return doc, repairs


def repair_document(raw: Optional[dict]) -> tuple[dict, list[ItemRepair]]:
    """Run the migration steps, then salvage what still does not fit."""
    return salvage_items(run_migrations(raw))


# =============================================================================
# ENTRY POINTS
# =============================================================================

def normalize_document(raw: Optional[dict]) -> AppData:
    """
    Normalize a parsed document into AppData.

    Items that cannot be repaired are left out.

    Raises:
        ValidationError: If the repaired document still does not fit the schema
    """
    doc, _ = repair_document(raw)
    return AppData.model_validate(doc)


class LoadSource(str, Enum):
    """Where the in-memory document came from."""
    EMPTY = "empty"          # Nothing stored yet
    STORED = "stored"        # Stored document, normalized
    RECOVERED = "recovered"  # Stored document unusable, defaults used


class LoadResult(BaseModel):
    """Result of loading the stored document."""
    data: AppData
    source: LoadSource
    error: Optional[str] = None
    repairs: list[ItemRepair] = Field(default_factory=list)

    @property
    def recovered_from_error(self) -> bool:
        return self.source == LoadSource.RECOVERED

    @property
    def dropped_count(self) -> int:
        return sum(1 for r in self.repairs if r.dropped)


def load_document(
    text: Optional[str],
    audit_logger: Optional[AuditLogger] = None,
) -> LoadResult:
    """
    Parse and normalize stored text. Never raises.
    """
    if text is None or not text.strip():
        return LoadResult(data=AppData(), source=LoadSource.EMPTY)

    try:
        raw = json.loads(text)
    except ValueError as e:
        return _recover(f"Invalid JSON: {e}", "parse", audit_logger)

    if not isinstance(raw, dict):
        return _recover(
            f"Expected a JSON object, got {type(raw).__name__}", "shape", audit_logger
        )

    try:
        doc, repairs = repair_document(raw)
        data = AppData.model_validate(doc)
    except ValidationError as e:
        return _recover(str(e), "schema", audit_logger)
    except Exception as e:
        return _recover(f"{type(e).__name__}: {e}", "normalize", audit_logger)

    if audit_logger:
        for repair in repairs:
            audit_logger.log_document_item_repaired(
                section=repair.section,
                index=repair.index,
                fields=repair.fields,
                dropped=repair.dropped,
                error=repair.error,
            )
    return LoadResult(data=data, source=LoadSource.STORED, repairs=repairs)


def _recover(
    error: str,
    stage: str,
    audit_logger: Optional[AuditLogger],
) -> LoadResult:
    if audit_logger:
        audit_logger.log_document_parse_failed(error=error, stage=stage)
    return LoadResult(data=AppData(), source=LoadSource.RECOVERED, error=error)
