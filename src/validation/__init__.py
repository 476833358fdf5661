"""Input validation package."""

from src.validation.validator import (
    MAX_AMOUNT,
    MAX_STRENGTHS,
    BackupFormatError,
    InputValidationError,
    format_entry_date_input,
    parse_amount,
    parse_entry_date,
    parse_month,
    parse_skills,
    require_text,
    validate_backup_document,
    validate_strength_index,
)

__all__ = [
    "MAX_AMOUNT",
    "MAX_STRENGTHS",
    "BackupFormatError",
    "InputValidationError",
    "format_entry_date_input",
    "parse_amount",
    "parse_entry_date",
    "parse_month",
    "parse_skills",
    "require_text",
    "validate_backup_document",
    "validate_strength_index",
]
