"""Document normalization package."""

from src.migration.normalizer import (
    MIGRATION_STEPS,
    ItemRepair,
    LoadResult,
    LoadSource,
    default_document,
    load_document,
    normalize_document,
    repair_document,
    run_migrations,
)

__all__ = [
    "MIGRATION_STEPS",
    "ItemRepair",
    "LoadResult",
    "LoadSource",
    "default_document",
    "load_document",
    "normalize_document",
    "repair_document",
    "run_migrations",
]
