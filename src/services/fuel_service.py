"""Conversion of raw refuel data into pipeline records, and year reports."""

import math
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional

from services.analytics import RefuelRecord, YearReport, build_year_report

UTC = timezone.utc

DATE_FORMAT = "%Y-%m-%d"
TIME_FORMATS = ("%H:%M", "%H:%M:%S")
DEFAULT_TIME = "00:00"

MIN_YEAR = 1900
MAX_YEAR = 9999


class FuelService:
    """Service for turning stored or submitted refuels into year reports."""

    @staticmethod
    def parse_year(raw: Optional[str], today: Optional[datetime] = None) -> int:
        """
        Parse the ``year`` query selector.

        Args:
            raw: Raw selector value, or None when the parameter was absent
            today: Reference date for the default (defaults to now, UTC)

        Returns:
            The selected year

        Raises:
            ValueError: If a value is present but is not a plausible year
        """
        if raw is None or not str(raw).strip():
            return (today or datetime.now(UTC)).year

        value = str(raw).strip()
        if not value.isdigit() or len(value) != 4:
            raise ValueError(f"Invalid year: {raw!r}")

        year = int(value)
        if not MIN_YEAR <= year <= MAX_YEAR:
            raise ValueError(f"Year out of range: {year}")
        return year

    @staticmethod
    def combine_timestamp(date_value: Any, time_value: Any = None) -> Optional[datetime]:
        """
        Combine a date and a time-of-day into one naive datetime.

        Returns None if either part cannot be parsed; such records cannot be
        placed in a chronology.
        """
        if not date_value:
            return None
        try:
            day = datetime.strptime(str(date_value).strip(), DATE_FORMAT)
        except ValueError:
            return None

        time_text = str(time_value).strip() if time_value else DEFAULT_TIME
        for fmt in TIME_FORMATS:
            try:
                clock = datetime.strptime(time_text, fmt)
            except ValueError:
                continue
            return day.replace(hour=clock.hour, minute=clock.minute, second=clock.second)
        return None

    @staticmethod
    def parse_reading(value: Any) -> Optional[float]:
        """Coerce an odometer reading; absent, malformed or negative gives None."""
        if value is None or isinstance(value, bool):
            return None
        try:
            reading = float(value)
        except (TypeError, ValueError):
            return None
        if math.isnan(reading) or math.isinf(reading) or reading < 0:
            return None
        return reading

    @staticmethod
    def parse_quantity(value: Any) -> float:
        """Coerce a volume or amount; anything unusable counts as zero."""
        reading = FuelService.parse_reading(value)
        return reading if reading is not None else 0.0

    @staticmethod
    def record_from_payload(payload: Mapping[str, Any]) -> RefuelRecord:
        """
        Build a RefuelRecord from a JSON-style payload.

        Expected keys mirror the API body: ``id``, ``user_id``, ``date``,
        ``time``, ``odometer``, ``volume``, ``amount``, ``price_per_unit``,
        ``fuel_grade``, ``remark``, ``is_full_tank``, ``warning_light``,
        ``has_previous_record``.
        """
        return RefuelRecord(
            id=payload.get("id"),
            user_id=payload.get("user_id"),
            timestamp=FuelService.combine_timestamp(payload.get("date"), payload.get("time")),
            odometer=FuelService.parse_reading(payload.get("odometer")),
            volume=FuelService.parse_quantity(payload.get("volume")),
            amount=FuelService.parse_quantity(payload.get("amount")),
            price_per_unit=FuelService.parse_reading(payload.get("price_per_unit")),
            fuel_grade=payload.get("fuel_grade") or "",
            remark=payload.get("remark") or "",
            is_full_tank=bool(payload.get("is_full_tank")),
            warning_light=bool(payload.get("warning_light")),
            has_previous_record=bool(payload.get("has_previous_record")),
        )

    @staticmethod
    def year_report(records: Iterable[RefuelRecord], year: int) -> YearReport:
        """Run the analytics pipeline for one user's records."""
        return build_year_report(records, year)
