"""
Tests for the document normalizer.

Each step is tested against small before/after fixtures, then the whole
pipeline against realistic stored documents from older app versions.
"""

import json

import pytest

from src.audit import AuditLogger
from src.migration import LoadSource, default_document, load_document, normalize_document
from src.migration.normalizer import (
    MIGRATION_STEPS,
    adopt_asset_categories,
    coerce_legacy_strengths,
    coerce_stored_amount,
    default_goal_category,
    default_profile_fields,
    ensure_collections,
    ensure_skills_list,
    merge_budget_profile,
    merge_money_config,
    merge_over_defaults,
    repair_numeric_values,
    replace_lone_surrogates,
    salvage_item,
    salvage_items,
    stringify_ids,
)
from src.models.app_data import DEFAULT_ASSET_CATEGORIES, AppData, GoalCategory, JournalEntry, UserProfile
from src.models.audit import AuditEventType
from src.services.storage import InMemoryAuditStorage


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


LEGACY_DOCUMENT = {
    "user": {
        "name": "hana",
        "email": "hana@example.com",
        "password": "pw",
        "mbti": "INFP",
        "strengths": "Empathy",
        "history": "Worked at a bakery",
    },
    "journal": [
        {"id": 1700000000000, "date": "2023-11-14T22:13:20.000Z", "content": "Tired"},
    ],
    "goals": [
        {"id": "g1", "title": "Run 5k", "description": "", "deadline": "", "progress": 0},
    ],
    "assets": [
        {"month": "2023-10", "values": {"Cash": 1000, "Stocks": None}},
    ],
    "budgetProfile": {"monthlyIncome": 300000},
}


class TestMigrationSteps:
    """Tests for the individual named steps."""

    def test_steps_run_in_order(self):
        """Test the step order around the default merge."""
        assert MIGRATION_STEPS[0] is adopt_asset_categories
        assert MIGRATION_STEPS[1] is merge_over_defaults
        assert MIGRATION_STEPS[2] is replace_lone_surrogates
        assert MIGRATION_STEPS[-1] is repair_numeric_values

    def test_merge_over_defaults_fills_missing_keys(self):
        """Test that missing top-level keys come from the defaults."""
        merged = merge_over_defaults({"goals": [{"id": "g1"}]})
        assert merged["goals"] == [{"id": "g1"}]
        assert merged["journal"] == []
        assert merged["moneyConfig"]["assetCategories"] == DEFAULT_ASSET_CATEGORIES

    def test_merge_over_defaults_does_not_alias_input(self):
        """Test that the stored dict is not modified."""
        stored = {"goals": [{"id": "g1"}]}
        merged = merge_over_defaults(stored)
        merged["goals"][0]["id"] = "changed"
        assert stored["goals"][0]["id"] == "g1"

    def test_adopt_asset_categories(self):
        """Test balance names join the defaults when no category list was stored."""
        doc = adopt_asset_categories({"assets": [
            {"month": "2024-01", "values": {"Cash": 1, DEFAULT_ASSET_CATEGORIES[0]: 2}},
            {"month": "2024-02", "values": {"Gold": 3, "Cash": 4}},
            "junk",
        ]})
        assert doc["moneyConfig"]["assetCategories"] == DEFAULT_ASSET_CATEGORIES + ["Cash", "Gold"]

    def test_adopt_asset_categories_keeps_stored_list(self):
        """Test a stored category list is never extended."""
        doc = {"moneyConfig": {"assetCategories": ["Gold"]}, "assets": [{"month": "2024-01", "values": {"Cash": 1}}]}
        assert adopt_asset_categories(doc) == doc

    def test_replace_lone_surrogates(self):
        """Test unpaired surrogates in values and keys become replacement characters."""
        doc = replace_lone_surrogates({
            "journal": [{"content": "a\ud800b", "themes": ["\udfff"]}],
            "assets": [{"values": {"\ud83d": 1}}],
            "user": {"name": "はな 😀"},
        })
        assert doc["journal"][0]["content"] == "a\ufffdb"
        assert doc["journal"][0]["themes"] == ["\ufffd"]
        assert doc["assets"][0]["values"] == {"\ufffd": 1}
        assert doc["user"]["name"] == "はな 😀"

    def test_ensure_collections(self):
        """Test that non-list collections become empty lists."""
        doc = ensure_collections({"journal": "oops", "goals": None, "assets": [1, {"month": "2024-01"}]})
        assert doc["journal"] == []
        assert doc["goals"] == []
        assert doc["assets"] == [{"month": "2024-01"}]

    def test_ensure_collections_drops_non_object_user(self):
        """Test that a user that is not an object is dropped."""
        assert ensure_collections({"user": "hana"})["user"] is None

    def test_legacy_strengths_string(self):
        """Test that a single strength string becomes a one-element list."""
        doc = coerce_legacy_strengths({"user": {"strengths": "Achiever"}})
        assert doc["user"]["strengths"] == ["Achiever"]

    def test_legacy_strengths_other_type(self):
        """Test that strengths that are neither string nor list become empty."""
        doc = coerce_legacy_strengths({"user": {"strengths": 5}})
        assert doc["user"]["strengths"] == []

    def test_strengths_without_user(self):
        """Test that a missing user is left alone."""
        assert coerce_legacy_strengths({"user": None}) == {"user": None}

    def test_default_profile_fields(self):
        """Test that profile text added later defaults to empty strings."""
        doc = default_profile_fields({"user": {"name": "hana", "values": None}})
        user = doc["user"]
        assert user["name"] == "hana"
        assert user["values"] == ""
        assert user["careerStrengths"] == ""
        assert user["interests"] == ""
        assert user["environment"] == ""

    def test_ensure_skills_list(self):
        """Test that non-list skills become empty."""
        assert ensure_skills_list({"user": {"skills": "python"}})["user"]["skills"] == []
        assert ensure_skills_list({"user": {"skills": ["python"]}})["user"]["skills"] == ["python"]

    def test_default_goal_category(self):
        """Test that goals without a category become work goals."""
        doc = default_goal_category({"goals": [{"id": "g1"}, {"id": "g2", "category": "life"}]})
        assert doc["goals"][0]["category"] == "work"
        assert doc["goals"][1]["category"] == "life"

    def test_unknown_goal_category(self):
        """Test that an unrecognized category also becomes work."""
        doc = default_goal_category({"goals": [{"id": "g1", "category": "hobby"}]})
        assert doc["goals"][0]["category"] == "work"

    def test_merge_money_config_missing_categories(self):
        """Test that a money config without categories gets the defaults."""
        doc = merge_money_config({"moneyConfig": {}})
        assert doc["moneyConfig"]["assetCategories"] == DEFAULT_ASSET_CATEGORIES

    def test_merge_money_config_keeps_stored(self):
        """Test that stored categories win."""
        doc = merge_money_config({"moneyConfig": {"assetCategories": ["Gold"]}})
        assert doc["moneyConfig"]["assetCategories"] == ["Gold"]

    def test_merge_budget_profile(self):
        """Test key-by-key merge of the budget profile."""
        doc = merge_budget_profile({"budgetProfile": {"monthlyIncome": 100}})
        assert doc["budgetProfile"] == {"monthlyIncome": 100, "fixedCosts": [], "variableBudget": 0}

    def test_stringify_ids(self):
        """Test that numeric ids become strings."""
        doc = stringify_ids({
            "journal": [{"id": 1700000000000}],
            "goals": [{"id": "g1"}],
            "budgetProfile": {"fixedCosts": [{"id": 7}]},
        })
        assert doc["journal"][0]["id"] == "1700000000000"
        assert doc["goals"][0]["id"] == "g1"
        assert doc["budgetProfile"]["fixedCosts"][0]["id"] == "7"

    def test_repair_numeric_values(self):
        """Test that null and text amounts become integers."""
        doc = repair_numeric_values({
            "assets": [{"month": "2024-01", "values": {"Cash": None, "Stocks": "1,500"}}],
            "budgetProfile": {"monthlyIncome": "300000", "variableBudget": None, "fixedCosts": [
                {"id": "f1", "name": "Rent", "amount": 80000.0},
            ]},
            "goals": [{"id": "g1", "progress": None}],
        })
        assert doc["assets"][0]["values"] == {"Cash": 0, "Stocks": 1500}
        assert doc["budgetProfile"]["monthlyIncome"] == 300000
        assert doc["budgetProfile"]["variableBudget"] == 0
        assert doc["budgetProfile"]["fixedCosts"][0]["amount"] == 80000
        assert doc["goals"][0]["progress"] == 0

    def test_repair_drops_assets_without_month(self):
        """Test that records without a month key are dropped."""
        doc = repair_numeric_values({"assets": [{"values": {"Cash": 1}}], "goals": []})
        assert doc["assets"] == []

    @pytest.mark.parametrize("value,expected", [
        (None, 0),
        ("abc", 0),
        ("nan", 0),
        (float("inf"), 0),
        ("42", 42),
        (12.0, 12),
        (7, 7),
    ])
    def test_coerce_stored_amount(self, value, expected):
        """Test best-effort integer conversion of stored values."""
        assert coerce_stored_amount(value) == expected


class TestItemSalvage:
    """Tests for validating stored objects one at a time."""

    def test_valid_item_untouched(self):
        """Test a valid entry passes through unchanged."""
        item = {"id": "j1", "date": "2024-06-01T00:00:00.000Z", "content": "ok"}
        assert salvage_item(JournalEntry, item) == (item, [], "")

    def test_bad_field_removed(self):
        """Test a field that fails is removed so its default applies."""
        item = {"id": "j1", "date": "2024-06-01", "content": None, "aiComment": 5}
        fixed, removed, error = salvage_item(JournalEntry, item)
        assert fixed == {"id": "j1", "date": "2024-06-01"}
        assert sorted(removed) == ["aiComment", "content"]
        assert "validation error" in error

    def test_bad_nested_value_resets_field(self):
        """Test a bad theme inside the analysis resets the analysis only."""
        item = {"id": "j1", "date": "2024-06-01", "content": "text", "analysis": {"themes": [1, None]}}
        fixed, removed, _ = salvage_item(JournalEntry, item)
        assert fixed == {"id": "j1", "date": "2024-06-01", "content": "text"}
        assert removed == ["analysis"]

    def test_missing_required_field_drops(self):
        """Test an item without a required field cannot be saved."""
        fixed, removed, error = salvage_item(JournalEntry, {"id": "", "date": "2024-06-01"})
        assert fixed is None
        assert removed == ["id"]
        assert error

    def test_snake_case_keys(self):
        """Test fields stored under their Python names are found too."""
        fixed, removed, _ = salvage_item(UserProfile, {"name": "hana", "resume_markdown": 3})
        assert fixed == {"name": "hana"}
        assert removed == ["resume_markdown"]

    def test_salvage_items_reports(self):
        """Test every section is checked and each repair reported."""
        doc, repairs = salvage_items({
            "user": {"name": "hana", "password": 123},
            "journal": [],
            "goals": [{"id": "g1", "title": None}, {"title": "no id"}],
            "assets": [{"month": "2024-01", "values": {}}],
            "moneyConfig": {"assetCategories": ["Gold", 1]},
            "budgetProfile": {"monthlyIncome": 0, "fixedCosts": [{"name": "Rent", "amount": 1}]},
        })
        assert doc["user"] == {"name": "hana"}
        assert doc["goals"] == [{"id": "g1"}]
        assert doc["moneyConfig"] == {}
        assert doc["budgetProfile"]["fixedCosts"] == []
        assert [(r.section, r.index, r.dropped) for r in repairs] == [
            ("goals", 0, False),
            ("goals", 1, True),
            ("budgetProfile.fixedCosts", 0, True),
            ("user", None, False),
            ("moneyConfig", None, False),
        ]

    def test_salvaged_document_validates(self):
        """Test the repaired sections load with their defaults."""
        data = normalize_document({"moneyConfig": {"assetCategories": [None]}, "goals": [{"id": "g1", "title": 7}]})
        assert data.money_config.asset_categories == DEFAULT_ASSET_CATEGORIES
        assert data.goals[0].title == ""


class TestNormalizeDocument:
    """Tests for the whole pipeline."""

    def test_empty_document_gives_defaults(self):
        """Test that an empty stored object becomes the default document."""
        assert normalize_document({}) == AppData()

    def test_legacy_document(self):
        """Test a document saved by an older version."""
        data = normalize_document(LEGACY_DOCUMENT)
        assert data.user.strengths == ["Empathy"]
        assert data.user.skills == []
        assert data.user.career_strengths == ""
        assert data.journal[0].id == "1700000000000"
        assert data.goals[0].category == GoalCategory.WORK
        assert data.assets[0].values == {"Cash": 1000, "Stocks": 0}
        assert data.money_config.asset_categories == DEFAULT_ASSET_CATEGORIES + ["Cash", "Stocks"]
        assert data.budget_profile.monthly_income == 300000
        assert data.budget_profile.variable_budget == 0

    def test_normalize_is_idempotent(self):
        """Test that normalizing a normalized document changes nothing."""
        once = normalize_document(LEGACY_DOCUMENT)
        twice = normalize_document(once.to_document())
        assert twice == once
        assert twice.to_document() == once.to_document()

    def test_input_not_modified(self):
        """Test that the raw document is left as it was."""
        raw = json.loads(json.dumps(LEGACY_DOCUMENT))
        normalize_document(raw)
        assert raw == LEGACY_DOCUMENT

    def test_unrepairable_entry_left_out(self):
        """Test that an entry without id or date is dropped, not the document."""
        data = normalize_document({"journal": [{"content": "no id or date"}], "user": {"name": "hana"}})
        assert data.journal == []
        assert data.user.name == "hana"

    def test_surrogates_serialize(self):
        """Test a loaded document with surrogate escapes can be written as UTF-8."""
        data = normalize_document(json.loads('{"user": {"name": "\\ud800"}}'))
        data.to_json().encode("utf-8")
        assert data.user.name == "\ufffd"

    def test_default_document_shape(self):
        """Test the default document keys."""
        assert default_document()["budgetProfile"] == {
            "monthlyIncome": 0,
            "fixedCosts": [],
            "variableBudget": 0,
        }


class TestLoadDocument:
    """Tests for loading stored text."""

    def test_nothing_stored(self, audit_storage, audit_logger):
        """Test first start with no stored document."""
        result = load_document(None, audit_logger)
        assert result.source == LoadSource.EMPTY
        assert result.data == AppData()
        assert audit_storage.events == []

    def test_blank_text(self):
        """Test that whitespace counts as nothing stored."""
        assert load_document("   ").source == LoadSource.EMPTY

    def test_stored_document(self):
        """Test a normal stored document."""
        result = load_document(json.dumps(LEGACY_DOCUMENT))
        assert result.source == LoadSource.STORED
        assert not result.recovered_from_error
        assert result.data.user.name == "hana"

    def test_corrupt_json_recovers(self, audit_storage, audit_logger):
        """Test that unparseable text falls back to defaults and is audited."""
        result = load_document("{not json", audit_logger)
        assert result.source == LoadSource.RECOVERED
        assert result.recovered_from_error
        assert result.data == AppData()
        assert result.error
        assert audit_storage.events[0].event_type == AuditEventType.DOCUMENT_PARSE_FAILED
        assert audit_storage.events[0].details["stage"] == "parse"

    def test_non_object_recovers(self, audit_storage, audit_logger):
        """Test that a JSON array is not accepted as a document."""
        result = load_document("[1, 2, 3]", audit_logger)
        assert result.source == LoadSource.RECOVERED
        assert audit_storage.events[0].details["stage"] == "shape"

    def test_bad_item_audited_rest_loaded(self, audit_storage, audit_logger):
        """Test one invalid entry is dropped and audited while the rest loads."""
        raw = {
            "user": {"name": "hana"},
            "journal": [
                {"id": "j1", "date": "2024-06-01T00:00:00.000Z", "content": "kept"},
                {"content": "x"},
            ],
            "goals": [{"id": "g1", "title": "Run"}],
        }
        result = load_document(json.dumps(raw), audit_logger)
        assert result.source == LoadSource.STORED
        assert [e.id for e in result.data.journal] == ["j1"]
        assert result.data.goals[0].title == "Run"
        assert result.data.user.name == "hana"
        assert result.dropped_count == 1
        event = audit_storage.events[0]
        assert event.event_type == AuditEventType.DOCUMENT_ITEM_REPAIRED
        assert event.details == {"section": "journal", "index": 1, "fields": [], "dropped": True}

    def test_schema_failure_recovers(self, audit_storage, audit_logger, monkeypatch):
        """Test that a document still failing validation falls back to defaults."""
        monkeypatch.setattr(
            "src.migration.normalizer.repair_document",
            lambda raw: ({"journal": [{"content": "x"}]}, []),
        )
        result = load_document(json.dumps({"user": {"name": "hana"}}), audit_logger)
        assert result.source == LoadSource.RECOVERED
        assert audit_storage.events[0].details["stage"] == "schema"

    def test_unexpected_failure_recovers(self, audit_storage, audit_logger, monkeypatch):
        """Test that any other failure while normalizing is recovered from."""
        def broken(raw):
            raise RuntimeError("boom")

        monkeypatch.setattr("src.migration.normalizer.repair_document", broken)
        result = load_document("{}", audit_logger)
        assert result.source == LoadSource.RECOVERED
        assert audit_storage.events[0].details["stage"] == "normalize"

    def test_recover_without_logger(self):
        """Test that recovery works without an audit logger."""
        assert load_document("null").source == LoadSource.RECOVERED
