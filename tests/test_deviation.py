"""
Tests for the deviation scorer and explanation text.
"""
from datetime import date
from types import SimpleNamespace

import pytest

from app.services.deviation import (
    DailyObservation,
    _grouped,
    compose_explanation,
    score_observation,
    z_score,
)

DAY = date(2026, 10, 18)


def _baseline(**kw):
    fields = dict(sleep_mean=None, sleep_sd=None, steps_mean=None, steps_sd=None,
                  unlocks_mean=None, unlocks_sd=None)
    fields.update(kw)
    return SimpleNamespace(**fields)


def _obs(**kw):
    return DailyObservation(user_id="u", day=DAY, **kw)


class TestZScore:
    def test_uses_absolute_difference(self):
        assert z_score(-3.0, 1.5) == 2.0

    def test_zero_sd_gives_zero(self):
        assert z_score(5.0, 0.0) == 0.0

    def test_missing_sd_gives_zero(self):
        assert z_score(5.0, None) == 0.0


class TestScoreObservation:
    def test_short_sleep(self):
        report = score_observation(_obs(sleep_hours=5.3), _baseline(sleep_mean=8.2, sleep_sd=0.6))

        assert report.significant_count == 1
        delta = report.deltas[0]
        assert delta.metric == "sleep"
        assert delta.direction == "down"
        assert delta.value == "2.9"
        assert delta.unit == "hours below normal"
        assert delta.z_score == pytest.approx(4.8333, abs=1e-3)

    def test_extra_steps(self):
        report = score_observation(_obs(steps=9200), _baseline(steps_mean=7500, steps_sd=1200))

        delta = report.deltas[0]
        assert delta.metric == "steps"
        assert delta.direction == "up"
        assert delta.value == "1,700"
        assert delta.unit == "steps above average"
        assert delta.z_score == pytest.approx(1.4167, abs=1e-3)

    def test_screen_unlocks_below(self):
        report = score_observation(_obs(screen_unlocks=40), _baseline(unlocks_mean=85.0, unlocks_sd=20.0))

        delta = report.deltas[0]
        assert delta.metric == "screen"
        assert delta.direction == "down"
        assert delta.value == "45.0"
        assert delta.unit == "below usual usage"

    def test_screen_unlocks_above(self):
        report = score_observation(_obs(screen_unlocks=130), _baseline(unlocks_mean=85.0, unlocks_sd=20.0))
        assert report.deltas[0].unit == "above usual usage"

    def test_exactly_one_sd_is_not_significant(self):
        report = score_observation(_obs(sleep_hours=7.0), _baseline(sleep_mean=8.0, sleep_sd=1.0))
        assert report.significant_count == 0

    def test_zero_sd_never_significant(self):
        report = score_observation(_obs(steps=100), _baseline(steps_mean=9000, steps_sd=0.0))
        assert report.deltas == []

    def test_null_baseline_metric_skipped(self):
        report = score_observation(
            _obs(sleep_hours=3.0, steps=20000),
            _baseline(steps_mean=5000, steps_sd=1000),
        )
        assert [d.metric for d in report.deltas] == ["steps"]

    def test_missing_observation_skipped(self):
        report = score_observation(_obs(), _baseline(sleep_mean=8.0, sleep_sd=0.5))
        assert report.significant_count == 0

    def test_several_metrics_in_fixed_order(self):
        report = score_observation(
            _obs(sleep_hours=4.0, steps=1000, screen_unlocks=200),
            _baseline(sleep_mean=8.0, sleep_sd=1.0, steps_mean=8000, steps_sd=2000,
                      unlocks_mean=80, unlocks_sd=30),
        )
        assert [d.metric for d in report.deltas] == ["sleep", "steps", "screen"]
        assert report.significant_count == 3


class TestGrouped:
    @pytest.mark.parametrize("value,expected", [
        (1700.0, "1,700"),
        (12.0, "12"),
        (1234567.0, "1,234,567"),
        (1500.25, "1,500.25"),
        (0.12345, "0.123"),
    ])
    def test_format(self, value, expected):
        assert _grouped(value) == expected


class TestComposeExplanation:
    def test_red_today(self):
        text = compose_explanation(2, "red", DAY, today=DAY)
        assert text == (
            "Your metrics today show 2 significant departures "
            "from your personal baseline patterns."
        )

    def test_amber_past_day(self):
        text = compose_explanation(1, "amber", DAY, today=date(2026, 10, 19))
        assert text == (
            "Your data on 2026-10-18 shows 1 moderate deviation "
            "from your established patterns."
        )

    def test_other_tiers(self):
        assert compose_explanation(0, "green", DAY) == (
            "Analysis shows 0 notable changes in your health metrics."
        )
        assert compose_explanation(1, None, DAY) == (
            "Analysis shows 1 notable change in your health metrics."
        )
