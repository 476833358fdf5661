"""
Asset Aggregates

Month arithmetic, totals and deltas over the monthly asset records.

All functions are pure and recompute from the records on every call.
A month that has no record contributes a total of 0, but a delta
against a month with no record is None (nothing to compare against),
never a difference from 0.
"""

from typing import Iterable, Optional

from pydantic import BaseModel, Field

from src.models.app_data import AssetRecord


class CategoryShare(BaseModel):
    """One slice of the category breakdown."""
    category: str
    value: int
    share: float = Field(..., description="Fraction of the month total, 0..1")


class TrendPoint(BaseModel):
    """Total assets for one month, for the trend chart."""
    month: str
    total: int


class MonthlyAssetSummary(BaseModel):
    """Everything the money screen shows for the selected month."""
    month: str
    total: int
    has_record: bool
    month_over_month: Optional[int] = None
    year_over_year: Optional[int] = None
    breakdown: list[CategoryShare] = Field(default_factory=list)


def _split(month: str) -> tuple[int, int]:
    year, mon = month.split("-")
    return int(year), int(mon)


def previous_month(month: str) -> str:
    """'2024-01' -> '2023-12'"""
    year, mon = _split(month)
    if mon == 1:
        return f"{year - 1:04d}-12"
    return f"{year:04d}-{mon - 1:02d}"


def same_month_last_year(month: str) -> str:
    year, mon = _split(month)
    return f"{year - 1:04d}-{mon:02d}"


def find_record(records: Iterable[AssetRecord], month: str) -> Optional[AssetRecord]:
    for record in records:
        if record.month == month:
            return record
    return None


def total_for_record(record: Optional[AssetRecord]) -> int:
    if record is None:
        return 0
    return sum(record.values.values())


def total_assets(records: Iterable[AssetRecord], month: str) -> int:
    """Sum of all category values for the month, 0 if it has no record."""
    return total_for_record(find_record(records, month))


def _delta_against(records: list[AssetRecord], month: str, other: str) -> Optional[int]:
    other_record = find_record(records, other)
    if other_record is None:
        return None
    return total_assets(records, month) - total_for_record(other_record)


def month_over_month_delta(records: Iterable[AssetRecord], month: str) -> Optional[int]:
    records = list(records)
    return _delta_against(records, month, previous_month(month))


def year_over_year_delta(records: Iterable[AssetRecord], month: str) -> Optional[int]:
    records = list(records)
    return _delta_against(records, month, same_month_last_year(month))


def category_breakdown(
    records: Iterable[AssetRecord],
    month: str,
    categories: list[str],
) -> list[CategoryShare]:
    """
    Non-zero category values for the month with their share of the total.

    Configured categories come first in configured order, followed by
    keys that are still in the record but no longer configured.
    """
    record = find_record(records, month)
    total = total_for_record(record)
    if record is None or total == 0:
        return []

    ordered = [c for c in categories if c in record.values]
    ordered += [c for c in record.values if c not in categories]

    return [
        CategoryShare(category=c, value=record.values[c], share=record.values[c] / total)
        for c in ordered
        if record.values[c] != 0
    ]


def asset_trend_series(records: Iterable[AssetRecord]) -> list[TrendPoint]:
    """Monthly totals sorted ascending by month key."""
    return [
        TrendPoint(month=r.month, total=total_for_record(r))
        for r in sorted(records, key=lambda r: r.month)
    ]


def recent_records(records: Iterable[AssetRecord], window: int) -> list[AssetRecord]:
    """The last `window` months of records, oldest first."""
    ordered = sorted(records, key=lambda r: r.month)
    return ordered[-window:] if window > 0 else []


def summarize_month(
    records: Iterable[AssetRecord],
    month: str,
    categories: list[str],
) -> MonthlyAssetSummary:
    records = list(records)
    return MonthlyAssetSummary(
        month=month,
        total=total_assets(records, month),
        has_record=find_record(records, month) is not None,
        month_over_month=month_over_month_delta(records, month),
        year_over_year=year_over_year_delta(records, month),
        breakdown=category_breakdown(records, month, categories),
    )
