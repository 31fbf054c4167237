"""Tests for the fuel analytics pipeline."""

import random
import pytest
from datetime import datetime

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from services.analytics import (
    IntervalMetrics,
    RefuelRecord,
    build_year_report,
    calculate_interval,
    calculate_intervals,
    month_day_label,
    sequence_records,
    year_window,
)


def make_record(id, when, odometer=None, volume=0.0, amount=0.0, user_id="u1"):
    """Build a record with only the fields the pipeline reads."""
    return RefuelRecord(
        id=id,
        user_id=user_id,
        timestamp=when,
        odometer=odometer,
        volume=volume,
        amount=amount,
    )


@pytest.fixture
def scenario_a():
    """Two clean fill-ups 400 km apart."""
    return [
        make_record(1, datetime(2025, 4, 1, 9, 0), odometer=1000, volume=40, amount=320),
        make_record(2, datetime(2025, 4, 15, 18, 20), odometer=1400, volume=35, amount=280),
    ]


@pytest.fixture
def scenario_b():
    """Three fill-ups where the middle odometer reading went backwards."""
    return [
        make_record(1, datetime(2025, 5, 1), odometer=1000, volume=40, amount=320),
        make_record(2, datetime(2025, 5, 10), odometer=990, volume=30, amount=240),
        make_record(3, datetime(2025, 5, 20), odometer=1390, volume=36, amount=288),
    ]


class TestSequencer:
    """Test year filtering and chronological ordering."""

    def test_year_window(self):
        """Test window is Jan 1 inclusive to next Jan 1 exclusive."""
        start, end = year_window(2025)
        assert start == datetime(2025, 1, 1)
        assert end == datetime(2026, 1, 1)

    def test_sorts_ascending(self):
        """Test records come out oldest first."""
        records = [
            make_record(1, datetime(2025, 6, 1)),
            make_record(2, datetime(2025, 2, 1)),
            make_record(3, datetime(2025, 9, 1)),
        ]
        ordered = sequence_records(records, 2025)
        assert [r.id for r in ordered] == [2, 1, 3]

    def test_timestamp_ties_broken_by_id(self):
        """Test same-instant records order by identifier, not input order."""
        when = datetime(2025, 3, 3, 12, 0)
        records = [make_record(10, when), make_record(2, when), make_record(7, when)]
        ordered = sequence_records(records, 2025)
        assert [r.id for r in ordered] == [2, 7, 10]

    def test_string_ids_tie_break(self):
        """Test non-integer identifiers still give a deterministic order."""
        when = datetime(2025, 3, 3)
        records = [make_record("b", when), make_record("a", when)]
        assert [r.id for r in sequence_records(records, 2025)] == ["a", "b"]

    def test_excludes_other_years(self):
        """Test boundary instants: Jan 1 kept, next Jan 1 dropped."""
        records = [
            make_record(1, datetime(2024, 12, 31, 23, 59)),
            make_record(2, datetime(2025, 1, 1, 0, 0)),
            make_record(3, datetime(2025, 12, 31, 23, 59)),
            make_record(4, datetime(2026, 1, 1, 0, 0)),
        ]
        assert [r.id for r in sequence_records(records, 2025)] == [2, 3]

    def test_drops_records_without_timestamp(self):
        """Test undated records are excluded from the analytic set."""
        records = [make_record(1, None), make_record(2, datetime(2025, 1, 5))]
        assert [r.id for r in sequence_records(records, 2025)] == [2]


class TestIntervalCalculator:
    """Test per-interval metrics."""

    def test_first_record_has_no_metrics(self):
        """Test record without predecessor yields all nulls."""
        current = make_record(1, datetime(2025, 1, 1), odometer=1000, volume=40, amount=300)
        assert calculate_interval(None, current) == IntervalMetrics()

    def test_valid_interval(self, scenario_a):
        """Test distance, consumption and cost for a clean interval."""
        metrics = calculate_interval(*scenario_a)
        assert metrics.distance == 400
        assert metrics.consumption_rate == 8.75
        assert metrics.cost_per_distance == 0.70

    def test_missing_previous_odometer(self):
        """Test missing predecessor reading gives no distance."""
        previous = make_record(1, datetime(2025, 1, 1), odometer=None)
        current = make_record(2, datetime(2025, 1, 9), odometer=1400, volume=35, amount=280)
        assert calculate_interval(previous, current) == IntervalMetrics()

    def test_missing_current_odometer(self):
        """Test missing current reading gives no distance."""
        previous = make_record(1, datetime(2025, 1, 1), odometer=1000)
        current = make_record(2, datetime(2025, 1, 9), odometer=None, volume=35)
        assert calculate_interval(previous, current).distance is None

    def test_zero_distance_is_null(self):
        """Test equal readings are not treated as a zero-length interval."""
        previous = make_record(1, datetime(2025, 1, 1), odometer=1000)
        current = make_record(2, datetime(2025, 1, 2), odometer=1000, volume=10, amount=80)
        metrics = calculate_interval(previous, current)
        assert metrics.distance is None
        assert metrics.consumption_rate is None
        assert metrics.cost_per_distance is None

    def test_zero_volume_and_amount(self):
        """Test distance is kept but rates need positive volume and amount."""
        previous = make_record(1, datetime(2025, 1, 1), odometer=1000)
        current = make_record(2, datetime(2025, 1, 2), odometer=1250, volume=0, amount=0)
        metrics = calculate_interval(previous, current)
        assert metrics.distance == 250
        assert metrics.consumption_rate is None
        assert metrics.cost_per_distance is None

    def test_rounding(self):
        """Test rates are rounded to two decimals."""
        previous = make_record(1, datetime(2025, 1, 1), odometer=1000)
        current = make_record(2, datetime(2025, 1, 2), odometer=1300, volume=20, amount=100)
        metrics = calculate_interval(previous, current)
        assert metrics.consumption_rate == 6.67
        assert metrics.cost_per_distance == 0.33

    def test_fractional_odometer_distance_rounded(self):
        """Test float subtraction noise does not leak into the distance."""
        previous = make_record(1, datetime(2025, 1, 1), odometer=1000.1)
        current = make_record(2, datetime(2025, 1, 2), odometer=1400.3, volume=30)
        assert calculate_interval(previous, current).distance == 400.2

    def test_sub_hundredth_gap_is_null(self):
        """Test a positive gap that rounds to zero yields no distance."""
        previous = make_record(1, datetime(2025, 1, 1), odometer=1000.001, volume=40, amount=300)
        current = make_record(2, datetime(2025, 1, 2), odometer=1000.004, volume=5, amount=40)
        assert calculate_interval(previous, current) == IntervalMetrics()

        summary = build_year_report([previous, current], 2025).summary
        assert summary.total_interval_distance == 0
        assert summary.average_consumption_rate == 0
        assert summary.total_amount == 340

    def test_glitch_only_breaks_its_own_interval(self, scenario_b):
        """Test the record after a bad reading compares against the bad reading."""
        metrics, totals = calculate_intervals(scenario_b)
        assert metrics[0] == IntervalMetrics()
        assert metrics[1].distance is None
        assert metrics[2].distance == 400
        assert metrics[2].consumption_rate == 9.0
        assert metrics[2].cost_per_distance == 0.72
        assert totals.total_interval_distance == 400
        assert totals.total_volume_for_distance == 36

    def test_tracks_first_and_last_odometer(self):
        """Test first/last valid readings skip records without an odometer."""
        records = [
            make_record(1, datetime(2025, 1, 1), odometer=None),
            make_record(2, datetime(2025, 1, 2), odometer=500),
            make_record(3, datetime(2025, 1, 3), odometer=800),
            make_record(4, datetime(2025, 1, 4), odometer=None),
        ]
        _, totals = calculate_intervals(records)
        assert totals.first_odometer == 500
        assert totals.last_odometer == 800

    def test_totals_include_every_record(self):
        """Test amount and volume sum over records without valid intervals."""
        records = [
            make_record(1, datetime(2025, 1, 1), odometer=None, volume=10, amount=80),
            make_record(2, datetime(2025, 1, 2), odometer=None, volume=20, amount=160),
        ]
        _, totals = calculate_intervals(records)
        assert totals.total_volume == 30
        assert totals.total_amount == 240
        assert totals.total_interval_distance == 0

    def test_volume_for_distance_needs_consumption(self):
        """Test zero-volume intervals add distance but no volume."""
        records = [
            make_record(1, datetime(2025, 1, 1), odometer=1000, volume=40),
            make_record(2, datetime(2025, 1, 2), odometer=1200, volume=0),
            make_record(3, datetime(2025, 1, 3), odometer=1500, volume=24),
        ]
        _, totals = calculate_intervals(records)
        assert totals.total_interval_distance == 500
        assert totals.total_volume_for_distance == 24

    def test_empty_sequence(self):
        """Test no records gives no metrics and zero totals."""
        metrics, totals = calculate_intervals([])
        assert metrics == []
        assert totals.total_amount == 0
        assert totals.first_odometer is None


class TestYearReport:
    """Test summary aggregation and presentation."""

    def test_scenario_a(self, scenario_a):
        """Test two clean fill-ups."""
        report = build_year_report(scenario_a, 2025)
        summary = report.summary

        assert summary.record_count == 2
        assert summary.total_amount == 600
        assert summary.total_volume == 75
        assert summary.average_price == 8.00
        assert summary.total_interval_distance == 400
        assert summary.average_consumption_rate == 8.75
        assert summary.coverage_distance == 400

        newest = report.records[0]
        assert newest.record.id == 2
        assert newest.metrics.distance == 400
        assert newest.metrics.consumption_rate == 8.75
        assert newest.metrics.cost_per_distance == 0.70

    def test_scenario_b_sensor_glitch(self, scenario_b):
        """Test a backwards reading drops one interval; fallback coverage is in test_coverage_falls_back_after_odometer_reset."""
        summary = build_year_report(scenario_b, 2025).summary
        assert summary.total_interval_distance == 400
        assert summary.total_amount == 848
        assert summary.total_volume == 106
        assert summary.average_consumption_rate == 9.0
        # 1390 is still above the first reading of 1000
        assert summary.coverage_distance == 390

    def test_coverage_falls_back_after_odometer_reset(self):
        """Test coverage uses interval sum when last reading is not above first."""
        records = [
            make_record(1, datetime(2025, 2, 1), odometer=1000, volume=40),
            make_record(2, datetime(2025, 2, 8), odometer=1300, volume=21),
            make_record(3, datetime(2025, 2, 15), odometer=900, volume=30),
        ]
        summary = build_year_report(records, 2025).summary
        assert summary.total_interval_distance == 300
        assert summary.coverage_distance == 300
        assert summary.average_consumption_rate == 7.0

    def test_coverage_prefers_odometer_span(self):
        """Test coverage uses last - first when readings are usable."""
        records = [
            make_record(1, datetime(2025, 1, 1), odometer=1000, volume=40),
            make_record(2, datetime(2025, 1, 5), odometer=None, volume=20),
            make_record(3, datetime(2025, 1, 9), odometer=1600, volume=30),
        ]
        summary = build_year_report(records, 2025).summary
        # Both intervals touch the missing reading
        assert summary.total_interval_distance == 0
        assert summary.coverage_distance == 600
        assert summary.average_consumption_rate == 0

    def test_scenario_c_year_filter(self, scenario_a):
        """Test a previous-year record is excluded from records and summary."""
        old = make_record(99, datetime(2024, 12, 20), odometer=600, volume=50, amount=400)
        report = build_year_report([old, *scenario_a], 2025)

        assert [r.record.id for r in report.records] == [2, 1]
        assert report.summary.record_count == 2
        assert report.summary.total_amount == 600
        # The first 2025 record has no predecessor inside the year
        assert report.records[-1].metrics == IntervalMetrics()

    def test_empty_input(self):
        """Test no records gives an all-zero summary."""
        report = build_year_report([], 2025)
        assert report.records == []
        assert report.summary.to_dict() == {
            "year": 2025,
            "record_count": 0,
            "total_amount": 0,
            "total_volume": 0,
            "average_price": 0,
            "total_interval_distance": 0,
            "average_consumption_rate": 0,
            "coverage_distance": 0,
        }

    def test_single_record(self):
        """Test single record has null metrics and zero coverage."""
        record = make_record(1, datetime(2025, 7, 4), odometer=5000, volume=30, amount=240)
        report = build_year_report([record], 2025)

        assert report.records[0].metrics == IntervalMetrics()
        assert report.summary.total_amount == 240
        assert report.summary.total_volume == 30
        assert report.summary.average_price == 8.0
        assert report.summary.coverage_distance == 0

    def test_zero_volume_average_price(self):
        """Test average price is zero when nothing was dispensed."""
        record = make_record(1, datetime(2025, 7, 4), volume=0, amount=10)
        assert build_year_report([record], 2025).summary.average_price == 0

    def test_shuffled_input_gives_same_report(self, scenario_b):
        """Test output does not depend on input order."""
        expected = build_year_report(scenario_b, 2025).to_dict()
        shuffled = list(scenario_b)
        random.Random(7).shuffle(shuffled)
        assert build_year_report(shuffled, 2025).to_dict() == expected
        assert build_year_report(list(reversed(scenario_b)), 2025).to_dict() == expected

    def test_report_is_repeatable(self, scenario_a):
        """Test running twice over the same input gives the same output."""
        assert build_year_report(scenario_a, 2025) == build_year_report(scenario_a, 2025)

    def test_records_newest_first_with_labels(self, scenario_b):
        """Test display order and month/day labels."""
        records = build_year_report(scenario_b, 2025).records
        assert [r.record.id for r in records] == [3, 2, 1]
        assert [r.label for r in records] == ["5/20", "5/10", "5/1"]

    def test_to_dict_keeps_null_fields(self, scenario_b):
        """Test unset metrics serialize as explicit None, not missing keys."""
        data = build_year_report(scenario_b, 2025).to_dict()
        oldest = data["records"][-1]
        assert "distance" in oldest and oldest["distance"] is None
        assert oldest["consumption_rate"] is None
        assert oldest["cost_per_distance"] is None
        assert oldest["timestamp"] == "2025-05-01T00:00:00"
        assert data["summary"]["year"] == 2025

    def test_month_day_label_not_padded(self):
        """Test labels drop leading zeros."""
        assert month_day_label(datetime(2025, 3, 7)) == "3/7"
        assert month_day_label(datetime(2025, 12, 25)) == "12/25"
