"""
Journal Aggregates

Display ordering and emotion trends. The stored journal stays in
insertion order; only the views here are sorted.
"""

from datetime import datetime, timezone
from typing import Iterable

from pydantic import BaseModel

from src.models.app_data import JournalEntry


class EmotionPoint(BaseModel):
    """One analyzed entry on the emotion chart."""
    entry_id: str
    date: str
    joy: float
    anxiety: float
    calm: float


def parse_entry_timestamp(value: str) -> datetime:
    """
    Parse a stored entry date for sorting.

    Unreadable dates sort as the oldest possible value instead of
    failing the whole list.
    """
    try:
        parsed = datetime.fromisoformat((value or "").replace("Z", "+00:00"))
    except ValueError:
        return datetime.min.replace(tzinfo=timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def entries_for_display(journal: Iterable[JournalEntry]) -> list[JournalEntry]:
    """Newest first by entry timestamp."""
    return sorted(journal, key=lambda e: parse_entry_timestamp(e.date), reverse=True)


def recent_entries_for_trend(journal: Iterable[JournalEntry], window: int = 15) -> list[JournalEntry]:
    """The last `window` entries in insertion order."""
    entries = list(journal)
    return entries[-window:] if window > 0 else []


def emotion_trend(journal: Iterable[JournalEntry], window: int = 14) -> list[EmotionPoint]:
    """Joy, anxiety and calm of the last `window` analyzed entries, in insertion order."""
    analyzed = [e for e in journal if e.analysis is not None]
    recent = analyzed[-window:] if window > 0 else []
    return [
        EmotionPoint(
            entry_id=e.id,
            date=e.date,
            joy=e.analysis.emotions.joy,
            anxiety=e.analysis.emotions.anxiety,
            calm=e.analysis.emotions.calm,
        )
        for e in recent
    ]
