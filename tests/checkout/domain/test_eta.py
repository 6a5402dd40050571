"""Tests for delivery ETA estimation."""

from checkout.pricing.eta import DEFAULT_ESTIMATOR, FixedBaseEstimator, format_duration


class TestFormatDuration:
    def test_under_an_hour(self):
        assert format_duration(45) == "45 mins"

    def test_hours_and_minutes(self):
        assert format_duration(65) == "1h 5m"

    def test_whole_hours(self):
        assert format_duration(120) == "2h"


class TestFixedBaseEstimator:
    def test_unknown_distance(self):
        assert DEFAULT_ESTIMATOR.estimate(None) == "N/A"

    def test_zero_distance_is_base_window(self):
        assert DEFAULT_ESTIMATOR.estimate(0.0) == "1h"

    def test_started_kilometres_round_up(self):
        assert DEFAULT_ESTIMATOR.estimate_minutes(4.2) == 65

    def test_five_km(self):
        assert DEFAULT_ESTIMATOR.estimate(5.0) == "1h 5m"

    def test_custom_rates(self):
        estimator = FixedBaseEstimator(base_minutes=20, minutes_per_km=3)
        assert estimator.estimate(5.0) == "35 mins"
