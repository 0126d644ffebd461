"""
Test Suite: 30-day normalized monthly projection
"""

from datetime import date, datetime

import pytest

from metertrack.engine.models import Confidence, ProjectionStatus, Reading
from metertrack.engine.projection import (
    days_between,
    dedupe_same_day,
    previous_month,
    project_month,
    shift_month,
)


PAST_TODAY = date(2025, 6, 1)

CONFIDENCE_RANK = {
    Confidence.INSUFFICIENT: 0,
    Confidence.VERY_LOW: 1,
    Confidence.LOW: 2,
    Confidence.MEDIUM: 3,
    Confidence.HIGH: 4,
}


class TestInsufficientData:
    """Months that cannot be projected"""

    def test_empty_month(self, gas_config):
        result = project_month([], gas_config, 2025, 3, today=PAST_TODAY)

        assert result.status == ProjectionStatus.INSUFFICIENT_DATA
        assert result.confidence == Confidence.INSUFFICIENT
        assert result.consumption_30_days == 0
        assert result.photos_count == 0
        assert result.days_observed == 0
        assert result.is_projected is False

    def test_single_reading_without_previous_month(self, gas_config, make_reading):
        readings = [
            make_reading(1000, 2025, 3, 10),
            # Two months back does not count as "previous month"
            make_reading(900, 2025, 1, 20),
        ]

        result = project_month(readings, gas_config, 2025, 3, today=PAST_TODAY)

        assert result.status == ProjectionStatus.INSUFFICIENT_DATA
        assert result.consumption_30_days == 0
        assert result.photos_count == 1

    def test_two_same_day_readings_only(self, gas_config, make_reading):
        readings = [
            make_reading(1000, 2025, 3, 10, hour=8),
            make_reading(1004, 2025, 3, 10, hour=20),
        ]

        result = project_month(readings, gas_config, 2025, 3, today=PAST_TODAY)

        assert result.status == ProjectionStatus.INSUFFICIENT_DATA
        assert result.confidence == Confidence.INSUFFICIENT
        assert result.photos_count == 2
        assert result.days_observed == 0

    def test_decreasing_values_give_no_consumption(self, gas_config, make_reading):
        readings = [
            make_reading(1000, 2025, 3, 1),
            make_reading(990, 2025, 3, 6),
        ]

        result = project_month(readings, gas_config, 2025, 3, today=PAST_TODAY)

        assert result.status == ProjectionStatus.INSUFFICIENT_DATA
        assert result.consumption_30_days == 0
        assert result.observed_consumption == 0
        assert result.days_observed == 5

    def test_other_years_are_ignored(self, gas_config, make_reading):
        readings = [
            make_reading(1000, 2024, 3, 1),
            make_reading(1100, 2024, 3, 20),
            make_reading(2000, 2025, 3, 5),
        ]

        result = project_month(readings, gas_config, 2025, 3, today=PAST_TODAY)

        # Only one reading in March 2025 and nothing in February 2025
        assert result.status == ProjectionStatus.INSUFFICIENT_DATA
        assert result.photos_count == 1


class TestCrossMonthProjection:
    """Single reading in the month projected from the previous month's last reading"""

    def test_reference_example(self, gas_config, make_reading):
        readings = [
            make_reading(1000, 2025, 3, 27),
            make_reading(1050, 2025, 4, 6),
        ]

        result = project_month(readings, gas_config, 2025, 4, today=date(2025, 4, 20))

        assert result.status == ProjectionStatus.CROSS_MONTH
        assert result.confidence == Confidence.VERY_LOW
        assert result.is_projected is True
        assert result.cross_month_projection is True
        assert result.photos_count == 1
        assert result.observed_consumption_raw == 50.0
        assert result.observed_consumption == 525.0
        assert result.total_days_span == 10
        assert result.consumption_30_days == 1575.0
        # April 1st -> April 6th
        assert result.days_observed == 5

    def test_uses_last_reading_of_previous_month(self, gas_config, make_reading):
        readings = [
            make_reading(900, 2025, 3, 2),
            make_reading(1000, 2025, 3, 27),
            make_reading(1050, 2025, 4, 6),
        ]

        result = project_month(readings, gas_config, 2025, 4, today=PAST_TODAY)

        assert result.observed_consumption_raw == 50.0
        assert result.total_days_span == 10

    def test_january_looks_at_previous_december(self, electricity_config, make_reading):
        readings = [
            make_reading(5000, 2024, 12, 31),
            make_reading(5020, 2025, 1, 2),
        ]

        result = project_month(readings, electricity_config, 2025, 1, today=PAST_TODAY)

        assert result.status == ProjectionStatus.CROSS_MONTH
        assert result.total_days_span == 2
        assert result.consumption_30_days == 300.0

    def test_reading_on_first_day_counts_one_day(self, electricity_config, make_reading):
        readings = [
            make_reading(5000, 2025, 2, 25),
            make_reading(5040, 2025, 3, 1),
        ]

        result = project_month(readings, electricity_config, 2025, 3, today=PAST_TODAY)

        assert result.days_observed == 1
        assert result.total_days_span == 4
        assert result.consumption_30_days == 300.0

    def test_negative_delta_clamped(self, gas_config, make_reading):
        readings = [
            make_reading(1000, 2025, 3, 27),
            make_reading(990, 2025, 4, 6),
        ]

        result = project_month(readings, gas_config, 2025, 4, today=PAST_TODAY)

        assert result.status == ProjectionStatus.CROSS_MONTH
        assert result.consumption_30_days == 0
        assert result.observed_consumption_raw == 0


class TestWithinMonthProjection:
    """Two or more readings inside the target month"""

    def test_reference_example(self, gas_config, make_reading):
        readings = [
            make_reading(1000, 2025, 3, 1),
            make_reading(1050, 2025, 3, 16),
        ]

        result = project_month(readings, gas_config, 2025, 3, today=PAST_TODAY)

        assert result.days_observed == 15
        assert result.observed_consumption_raw == 50.0
        assert result.observed_consumption == 525.0
        assert result.consumption_30_days == 1050.0
        assert result.confidence == Confidence.HIGH
        assert result.status == ProjectionStatus.PROJECTED
        assert result.is_projected is True

    def test_same_day_keeps_latest_reading(self, gas_config, make_reading):
        readings = [
            make_reading(1000, 2025, 3, 1, hour=8),
            make_reading(1010, 2025, 3, 1, hour=20),
            make_reading(1060, 2025, 3, 11),
        ]

        result = project_month(readings, gas_config, 2025, 3, today=PAST_TODAY)

        assert result.observed_consumption_raw == 50.0
        assert result.days_observed == 10
        assert result.consumption_30_days == 1575.0
        # Photo count is taken before deduplication
        assert result.photos_count == 3

    def test_input_order_does_not_matter(self, gas_config, make_reading):
        readings = [
            make_reading(1050, 2025, 3, 16),
            make_reading(1020, 2025, 3, 8),
            make_reading(1000, 2025, 3, 1),
        ]

        result = project_month(readings, gas_config, 2025, 3, today=PAST_TODAY)

        assert result.observed_consumption_raw == 50.0
        assert result.days_observed == 15

    def test_time_of_day_is_ignored(self, electricity_config, make_reading):
        readings = [
            make_reading(100, 2025, 3, 1, hour=23, minute=59),
            make_reading(110, 2025, 3, 2, hour=0, minute=1),
        ]

        result = project_month(readings, electricity_config, 2025, 3, today=PAST_TODAY)

        assert result.days_observed == 1
        assert result.consumption_30_days == 300.0

    def test_electricity_values_are_not_converted(self, electricity_config, make_reading):
        readings = [
            make_reading(100, 2025, 3, 1),
            make_reading(200, 2025, 3, 8),
        ]

        result = project_month(readings, electricity_config, 2025, 3, today=PAST_TODAY)

        assert result.observed_consumption == 100.0
        assert result.observed_consumption_raw == 100.0
        # 100 / 7 * 30 = 428.5714...
        assert result.consumption_30_days == 428.57

    def test_past_month_fully_observed_is_complete(self, electricity_config, make_reading):
        readings = [
            make_reading(100, 2025, 3, 1),
            make_reading(400, 2025, 3, 31),
        ]

        result = project_month(readings, electricity_config, 2025, 3, today=PAST_TODAY)

        assert result.status == ProjectionStatus.COMPLETE
        assert result.confidence == Confidence.HIGH
        assert result.is_projected is False
        assert result.consumption_30_days == 300.0

    def test_current_month_not_complete_before_month_end(self, electricity_config, make_reading):
        readings = [
            make_reading(100, 2025, 3, 1),
            make_reading(350, 2025, 3, 26),
        ]

        # 25 days observed would be "complete" for a past month
        past = project_month(readings, electricity_config, 2025, 3, today=PAST_TODAY)
        running = project_month(readings, electricity_config, 2025, 3, today=date(2025, 3, 26))

        assert past.status == ProjectionStatus.COMPLETE
        assert running.status == ProjectionStatus.PROJECTED
        assert running.confidence == Confidence.HIGH
        assert running.is_projected is True

    def test_readings_outside_month_do_not_count(self, gas_config, make_reading):
        readings = [
            make_reading(900, 2025, 2, 20),
            make_reading(1000, 2025, 3, 1),
            make_reading(1050, 2025, 3, 16),
            make_reading(1200, 2025, 4, 2),
        ]

        result = project_month(readings, gas_config, 2025, 3, today=PAST_TODAY)

        assert result.photos_count == 2
        assert result.observed_consumption_raw == 50.0


class TestConfidenceMonotonicity:
    """Same daily rate, growing observation window"""

    TODAY = date(2025, 3, 31)

    @pytest.mark.parametrize("last_day,expected_status,expected_confidence,projected", [
        (7, ProjectionStatus.PROJECTED, Confidence.LOW, True),       # 6 days
        (8, ProjectionStatus.PROJECTED, Confidence.MEDIUM, True),    # 7 days
        (16, ProjectionStatus.PROJECTED, Confidence.HIGH, True),     # 15 days
        (30, ProjectionStatus.COMPLETE, Confidence.HIGH, False),     # 29 days, month end
    ])
    def test_thresholds(self, electricity_config, make_reading,
                        last_day, expected_status, expected_confidence, projected):
        readings = [
            make_reading(1000, 2025, 3, 1),
            make_reading(1000 + 10 * (last_day - 1), 2025, 3, last_day),
        ]

        result = project_month(readings, electricity_config, 2025, 3, today=self.TODAY)

        assert result.status == expected_status
        assert result.confidence == expected_confidence
        assert result.is_projected is projected
        assert result.consumption_30_days == 300.0

    def test_confidence_never_decreases(self, electricity_config, make_reading):
        ranks = []
        for last_day in (7, 8, 16, 30):
            readings = [
                make_reading(1000, 2025, 3, 1),
                make_reading(1000 + 10 * (last_day - 1), 2025, 3, last_day),
            ]
            result = project_month(readings, electricity_config, 2025, 3, today=self.TODAY)
            ranks.append(CONFIDENCE_RANK[result.confidence])

        assert ranks[0] < ranks[1] < ranks[2]
        assert ranks[3] == ranks[2]


class TestDateHelpers:
    def test_days_between_ignores_time(self):
        assert days_between(datetime(2025, 3, 1, 23, 0), datetime(2025, 3, 2, 1, 0)) == 1
        assert days_between(datetime(2025, 3, 1), datetime(2025, 3, 1, 22, 0)) == 0

    def test_previous_month_wraps_year(self):
        assert previous_month(2025, 1) == (2024, 12)
        assert previous_month(2025, 7) == (2025, 6)

    def test_shift_month(self):
        assert shift_month(2025, 2, -5) == (2024, 9)
        assert shift_month(2024, 11, 3) == (2025, 2)
        assert shift_month(2025, 6, 0) == (2025, 6)

    def test_dedupe_same_day(self):
        readings = [
            Reading(timestamp=datetime(2025, 3, 1, 20), value=2, id="late"),
            Reading(timestamp=datetime(2025, 3, 1, 8), value=1, id="early"),
            Reading(timestamp=datetime(2025, 3, 2, 8), value=3, id="next"),
        ]

        unique = dedupe_same_day(readings)

        assert [r.id for r in unique] == ["late", "next"]


def test_projection_is_pure(gas_config, make_reading):
    readings = [
        make_reading(1000, 2025, 3, 1),
        make_reading(1050, 2025, 3, 16),
    ]
    snapshot = [r.to_dict() for r in readings]

    first = project_month(readings, gas_config, 2025, 3, today=PAST_TODAY)
    second = project_month(readings, gas_config, 2025, 3, today=PAST_TODAY)

    assert first == second
    assert [r.to_dict() for r in readings] == snapshot
