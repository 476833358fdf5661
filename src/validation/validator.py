"""
Input Validation

DESIGN DECISION: User input is parsed at the boundary, BEFORE any
mutation runs. Amounts become real integers or the input is rejected.
Nothing invalid ever reaches the document, so derived sums can never be
poisoned by text that "looked like" a number.

The mutation helpers downstream do not validate. If something gets past
this module, that is a bug here, not there.

IMPORTANT: Validation NEVER silently fixes issues (no clamping of
negative income, no guessing of months). It reports them so the UI can
show a one-line message.
"""

import json
import math
import re
from datetime import datetime, timezone, tzinfo
from decimal import Decimal, InvalidOperation
from typing import Optional, Union


MAX_STRENGTHS = 5

# Largest amount accepted from input (a quadrillion in any currency)
MAX_AMOUNT = 10 ** 15

_MONTH_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")

# Digits with optional thousands separators and currency marks around them
_AMOUNT_NOISE = re.compile(r"[,\s¥$€£₹]")


class InputValidationError(ValueError):
    """User input rejected at the boundary."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message


class BackupFormatError(ValueError):
    """A backup file does not look like a Tarushiru document."""
    pass


def parse_amount(
    value: Union[str, int, float, None],
    field: str = "amount",
    *,
    blank_as_zero: bool = False,
    allow_negative: bool = False,
) -> int:
    """
    Parse a money amount typed by the user into an integer.

    Args:
        value: Raw input ("150000", "150,000", 150000, 1.5e5 ...)
        field: Field name used in the error
        blank_as_zero: Treat empty input as 0 (clearing a field)
        allow_negative: Accept amounts below zero

    Raises:
        InputValidationError: If the input is not a whole, finite number, or
            its size exceeds MAX_AMOUNT
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        if blank_as_zero:
            return 0
        raise InputValidationError(field, f"{field} is required")

    if isinstance(value, bool):
        raise InputValidationError(field, f"{field} must be a number")

    if isinstance(value, int):
        number = Decimal(value)
    elif isinstance(value, float):
        if not math.isfinite(value):
            raise InputValidationError(field, f"{field} must be a finite number")
        number = Decimal(str(value))
    else:
        text = _AMOUNT_NOISE.sub("", str(value))
        try:
            number = Decimal(text)
        except InvalidOperation:
            raise InputValidationError(field, f"{field} must be a number, got '{value}'")
        if not number.is_finite():
            raise InputValidationError(field, f"{field} must be a finite number")

    if abs(number) > MAX_AMOUNT:
        raise InputValidationError(field, f"{field} is too large (max {MAX_AMOUNT:,})")

    if number != number.to_integral_value():
        raise InputValidationError(field, f"{field} must be a whole number")

    if number < 0 and not allow_negative:
        raise InputValidationError(field, f"{field} cannot be negative")

    return int(number)


def parse_month(value: str, field: str = "month") -> str:
    """
    Validate a calendar month key (zero-padded YYYY-MM).

    The zero padding matters: trend series sort month keys as strings.
    """
    value = (value or "").strip()
    match = _MONTH_PATTERN.match(value)
    if not match:
        raise InputValidationError(field, f"{field} must look like YYYY-MM, got '{value}'")

    month = int(match.group(2))
    if not 1 <= month <= 12:
        raise InputValidationError(field, f"{field} has an invalid month number: {month}")
    return value


def parse_entry_date(
    value: Union[str, datetime],
    field: str = "date",
    local_tz: Optional[tzinfo] = None,
) -> str:
    """
    Validate a journal entry timestamp and return it as a UTC ISO string.

    Accepts full ISO timestamps and the shorter "YYYY-MM-DDTHH:MM"
    form produced by datetime pickers. Naive values are wall-clock time
    in local_tz (the machine's zone when not given).
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        text = (value or "").strip()
        if not text:
            raise InputValidationError(field, f"{field} is required")
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            raise InputValidationError(field, f"{field} is not a valid date/time: '{text}'")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=local_tz) if local_tz else parsed.astimezone()
    return parsed.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def format_entry_date_input(value: str, local_tz: Optional[tzinfo] = None) -> str:
    """
    Render a stored entry timestamp as local "YYYY-MM-DDTHH:MM" for editing.

    The inverse of parse_entry_date for naive input, so saving an entry
    without touching its date leaves the stored instant unchanged.
    Unparseable values are returned as they are.
    """
    try:
        parsed = datetime.fromisoformat((value or "").replace("Z", "+00:00"))
    except ValueError:
        return value
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(local_tz).strftime("%Y-%m-%dT%H:%M")


def require_text(value: Optional[str], field: str) -> str:
    """Reject blank text. Returns the text stripped."""
    text = (value or "").strip()
    if not text:
        raise InputValidationError(field, f"{field} cannot be empty")
    return text


def parse_skills(text: str) -> list[str]:
    """Comma-separated skills, blanks dropped."""
    return [s.strip() for s in (text or "").split(",") if s.strip()]


def validate_strength_index(index: int) -> int:
    if not 0 <= index < MAX_STRENGTHS:
        raise InputValidationError(
            "strengths",
            f"strength slot must be between 1 and {MAX_STRENGTHS}",
        )
    return index


def validate_backup_document(text: str) -> dict:
    """
    Minimal shape check for an imported backup.

    The file must be a JSON object with a user in it. Everything else is
    left to the normalizer when the app reloads.

    Raises:
        BackupFormatError: If the file cannot be used
    """
    try:
        parsed = json.loads(text)
    except (TypeError, ValueError) as e:
        raise BackupFormatError(f"Backup is not valid JSON: {e}")

    if not isinstance(parsed, dict):
        raise BackupFormatError("Backup must contain a JSON object")
    if not parsed.get("user"):
        raise BackupFormatError("Backup has no user profile (invalid data format)")
    return parsed
