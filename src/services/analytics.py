"""Fuel analytics pipeline: sequencing, interval metrics and year summaries.

The pipeline is a pure function of ``(records, year)``:

    raw records -> sorted records -> interval metrics + totals -> report

Nothing here touches the database or the request context, so it can be run
from routes, the CLI, or tests with plain ``RefuelRecord`` values.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from functools import reduce
from typing import Any, Iterable, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RefuelRecord:
    """One refueling event as the pipeline sees it."""

    id: Any
    user_id: Any
    timestamp: Optional[datetime]
    odometer: Optional[float] = None
    volume: float = 0.0
    amount: float = 0.0
    price_per_unit: Optional[float] = None
    fuel_grade: str = ""
    remark: str = ""
    is_full_tank: bool = False
    warning_light: bool = False
    has_previous_record: bool = False

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "odometer": self.odometer,
            "volume": self.volume,
            "amount": self.amount,
            "price_per_unit": self.price_per_unit,
            "fuel_grade": self.fuel_grade,
            "remark": self.remark,
            "is_full_tank": self.is_full_tank,
            "warning_light": self.warning_light,
            "has_previous_record": self.has_previous_record,
        }


@dataclass(frozen=True)
class IntervalMetrics:
    """Deltas between a record and its immediate chronological predecessor."""

    distance: Optional[float] = None
    consumption_rate: Optional[float] = None
    cost_per_distance: Optional[float] = None


@dataclass(frozen=True)
class IntervalTotals:
    """Accumulator carried through the interval fold."""

    total_amount: float = 0.0
    total_volume: float = 0.0
    total_interval_distance: float = 0.0
    total_volume_for_distance: float = 0.0
    first_odometer: Optional[float] = None
    last_odometer: Optional[float] = None


@dataclass(frozen=True)
class AugmentedRecord:
    """A record with its interval metrics and a short display label."""

    record: RefuelRecord
    metrics: IntervalMetrics
    label: str

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        data = self.record.to_dict()
        data.update({
            "label": self.label,
            "distance": self.metrics.distance,
            "consumption_rate": self.metrics.consumption_rate,
            "cost_per_distance": self.metrics.cost_per_distance,
        })
        return data


@dataclass(frozen=True)
class YearSummary:
    """Year-level aggregates over the filtered record set."""

    year: int
    record_count: int = 0
    total_amount: float = 0.0
    total_volume: float = 0.0
    average_price: float = 0.0
    total_interval_distance: float = 0.0
    average_consumption_rate: float = 0.0
    coverage_distance: float = 0.0

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "year": self.year,
            "record_count": self.record_count,
            "total_amount": self.total_amount,
            "total_volume": self.total_volume,
            "average_price": self.average_price,
            "total_interval_distance": self.total_interval_distance,
            "average_consumption_rate": self.average_consumption_rate,
            "coverage_distance": self.coverage_distance,
        }


@dataclass(frozen=True)
class YearReport:
    """Summary plus display-ordered (newest first) records."""

    summary: YearSummary
    records: list[AugmentedRecord] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "summary": self.summary.to_dict(),
            "records": [r.to_dict() for r in self.records],
        }


# --- Sequencer ---


def year_window(year: int) -> tuple[datetime, datetime]:
    """Return the ``[start, end)`` datetimes covering ``year``."""
    return datetime(year, 1, 1), datetime(year + 1, 1, 1)


def _identifier_key(identifier: Any) -> tuple:
    # Integers order numerically; anything else by its string form.
    if isinstance(identifier, int) and not isinstance(identifier, bool):
        return (0, identifier, "")
    return (1, 0, str(identifier))


def sequence_records(records: Iterable[RefuelRecord], year: int) -> list[RefuelRecord]:
    """
    Filter records to ``year`` and order them chronologically.

    Records without a timestamp cannot be placed in a chronology and are
    dropped. Ties on timestamp are broken by identifier so the result does
    not depend on input order.

    Args:
        records: Records for a single user
        year: Calendar year to keep

    Returns:
        Records within the year, oldest first
    """
    start, end = year_window(year)
    kept = []
    undated = 0
    for record in records:
        if record.timestamp is None:
            undated += 1
            continue
        if start <= record.timestamp < end:
            kept.append(record)

    if undated:
        logger.debug("Dropped %d record(s) without a usable timestamp", undated)

    return sorted(kept, key=lambda r: (r.timestamp, _identifier_key(r.id)))


# --- Interval Calculator ---


def calculate_interval(
    previous: Optional[RefuelRecord], current: RefuelRecord
) -> IntervalMetrics:
    """
    Compute metrics for ``current`` relative to its direct predecessor.

    Distance is only set when both odometer readings exist and the delta is
    strictly positive. Consumption and cost need a distance plus a positive
    volume or amount on the current record.
    """
    if previous is None or previous.odometer is None or current.odometer is None:
        return IntervalMetrics()

    # Gaps that round to 0.00 are too small to report as a distance
    distance = round(current.odometer - previous.odometer, 2)
    if distance <= 0:
        return IntervalMetrics()

    consumption_rate = None
    cost_per_distance = None
    if current.volume > 0:
        consumption_rate = round(current.volume / distance * 100, 2)
    if current.amount > 0:
        cost_per_distance = round(current.amount / distance, 2)

    return IntervalMetrics(
        distance=distance,
        consumption_rate=consumption_rate,
        cost_per_distance=cost_per_distance,
    )


def _accumulate(
    totals: IntervalTotals, step: tuple[RefuelRecord, IntervalMetrics]
) -> IntervalTotals:
    record, metrics = step

    first_odometer = totals.first_odometer
    last_odometer = totals.last_odometer
    if record.odometer is not None:
        if first_odometer is None:
            first_odometer = record.odometer
        last_odometer = record.odometer

    interval_distance = totals.total_interval_distance
    volume_for_distance = totals.total_volume_for_distance
    if metrics.distance is not None:
        interval_distance += metrics.distance
        if metrics.consumption_rate is not None:
            volume_for_distance += record.volume

    return IntervalTotals(
        total_amount=totals.total_amount + record.amount,
        total_volume=totals.total_volume + record.volume,
        total_interval_distance=interval_distance,
        total_volume_for_distance=volume_for_distance,
        first_odometer=first_odometer,
        last_odometer=last_odometer,
    )


def calculate_intervals(
    ordered: list[RefuelRecord],
) -> tuple[list[IntervalMetrics], IntervalTotals]:
    """
    Walk an ordered sequence once, returning per-record metrics and totals.

    Each record is compared only with the record directly before it, so one
    bad odometer reading invalidates exactly the interval it ends.

    Args:
        ordered: Records sorted oldest first (see ``sequence_records``)

    Returns:
        Tuple of (metrics aligned with ``ordered``, final totals)
    """
    predecessors = [None, *ordered[:-1]]
    metrics = [calculate_interval(p, c) for p, c in zip(predecessors, ordered)]
    totals = reduce(_accumulate, zip(ordered, metrics), IntervalTotals())
    return metrics, totals


# --- Aggregator & Presenter ---


def summarize(year: int, record_count: int, totals: IntervalTotals) -> YearSummary:
    """Fold interval totals into the year summary."""
    average_price = 0.0
    if totals.total_volume > 0:
        average_price = round(totals.total_amount / totals.total_volume, 2)

    average_consumption_rate = 0.0
    if totals.total_interval_distance > 0:
        average_consumption_rate = round(
            totals.total_volume_for_distance / totals.total_interval_distance * 100, 2
        )

    first, last = totals.first_odometer, totals.last_odometer
    if first is not None and last is not None and last > first:
        coverage_distance = last - first
    else:
        coverage_distance = totals.total_interval_distance

    return YearSummary(
        year=year,
        record_count=record_count,
        total_amount=round(totals.total_amount, 2),
        total_volume=round(totals.total_volume, 2),
        average_price=average_price,
        total_interval_distance=round(totals.total_interval_distance, 2),
        average_consumption_rate=average_consumption_rate,
        coverage_distance=round(coverage_distance, 2),
    )


def month_day_label(timestamp: datetime) -> str:
    """Short display label, e.g. ``3/7`` for March 7th."""
    return f"{timestamp.month}/{timestamp.day}"


def present(
    ordered: list[RefuelRecord], metrics: list[IntervalMetrics]
) -> list[AugmentedRecord]:
    """Pair records with their metrics, newest first."""
    augmented = [
        AugmentedRecord(record=r, metrics=m, label=month_day_label(r.timestamp))
        for r, m in zip(ordered, metrics)
    ]
    augmented.reverse()
    return augmented


def build_year_report(records: Iterable[RefuelRecord], year: int) -> YearReport:
    """
    Run the full pipeline for one user's records and one year.

    Args:
        records: All records for a single user (any order, any year)
        year: Calendar year to report on

    Returns:
        YearReport with summary and newest-first augmented records
    """
    ordered = sequence_records(records, year)
    metrics, totals = calculate_intervals(ordered)
    return YearReport(
        summary=summarize(year, len(ordered), totals),
        records=present(ordered, metrics),
    )
