"""
Unit tests for daily aggregation (no database needed for most cases).
"""
from datetime import date, datetime, timedelta, timezone

from app.models.sensor_sample import SensorSample
from app.services.aggregation import aggregate_daily, as_utc, filter_to_window, fetch_samples


def _sample(metric, value, when):
    return SensorSample(user_id="u", metric_type=metric, metric_value=value, sample_time=when)


T0 = datetime(2026, 10, 1, 8, 0, tzinfo=timezone.utc)


class TestAggregateDaily:
    def test_same_day_values_are_averaged(self):
        samples = [
            _sample("sleep_hours", 6.0, T0),
            _sample("sleep_hours", 8.0, T0 + timedelta(hours=3)),
        ]
        result = aggregate_daily(samples)
        assert len(result["sleep_hours"]) == 1
        agg = result["sleep_hours"][0]
        assert agg.day == date(2026, 10, 1)
        assert agg.value == 7.0
        assert agg.sample_count == 2

    def test_grouped_by_metric_then_day(self):
        samples = [
            _sample("steps", 1000, T0),
            _sample("steps", 3000, T0 + timedelta(days=1)),
            _sample("unlocks", 40, T0),
        ]
        result = aggregate_daily(samples)
        assert set(result) == {"steps", "unlocks"}
        assert [a.value for a in result["steps"]] == [1000.0, 3000.0]

    def test_missing_metric_is_absent_not_error(self):
        result = aggregate_daily([_sample("steps", 10, T0)])
        assert "sleep_hours" not in result

    def test_empty_input(self):
        assert aggregate_daily([]) == {}

    def test_days_ordered_oldest_first(self):
        samples = [_sample("steps", v, T0 - timedelta(days=v)) for v in (3, 1, 2)]
        days = [a.day for a in aggregate_daily(samples)["steps"]]
        assert days == sorted(days)

    def test_local_calendar_day_uses_timezone(self):
        # 23:30 UTC and 02:00 UTC next day are the same evening at UTC-5.
        late = datetime(2026, 10, 18, 23, 30, tzinfo=timezone.utc)
        early = datetime(2026, 10, 19, 2, 0, tzinfo=timezone.utc)
        samples = [_sample("unlocks", 10, late), _sample("unlocks", 30, early)]

        utc_days = aggregate_daily(samples)["unlocks"]
        assert len(utc_days) == 2

        minus5 = timezone(timedelta(hours=-5))
        local_days = aggregate_daily(samples, minus5)["unlocks"]
        assert len(local_days) == 1
        assert local_days[0].day == date(2026, 10, 18)
        assert local_days[0].value == 20.0

    def test_naive_timestamps_read_as_utc(self):
        naive = datetime(2026, 10, 1, 23, 0)
        result = aggregate_daily([_sample("steps", 5, naive)], timezone(timedelta(hours=2)))
        assert result["steps"][0].day == date(2026, 10, 2)


class TestWindowFilter:
    def test_keeps_samples_at_or_after_start(self):
        start = T0
        samples = [
            _sample("steps", 1, T0 - timedelta(seconds=1)),
            _sample("steps", 2, T0),
            _sample("steps", 3, T0 + timedelta(days=1)),
        ]
        kept = filter_to_window(samples, start)
        assert [s.metric_value for s in kept] == [2, 3]

    def test_as_utc_converts_offsets(self):
        plus2 = datetime(2026, 1, 1, 2, 0, tzinfo=timezone(timedelta(hours=2)))
        assert as_utc(plus2) == datetime(2026, 1, 1, 0, 0, tzinfo=timezone.utc)


class TestFetchSamples:
    def test_only_user_and_horizon(self, db, user_id, add_samples, now):
        add_samples(user_id, "steps", [100] * 10)
        add_samples("someone-else-" + user_id, "steps", [1] * 10)

        rows = fetch_samples(db, user_id, now - timedelta(days=4, hours=1))
        assert len(rows) == 5
        assert all(r.user_id == user_id for r in rows)
        times = [r.sample_time for r in rows]
        assert times == sorted(times)
