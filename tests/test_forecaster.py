from datetime import date

import pytest

from spendwise.utils import forecaster, scheduler
from spendwise.utils.forecaster import (
    ForecastCache,
    ForecastTrainingError,
    fit_linear_trend,
    forecast_cache,
    monthly_series,
    predict_next,
    train_category_forecasts,
)
from spendwise.utils.insights import Confidence, bucket_by_month_category, compute_insights

NOW = date(2025, 6, 15)


def expense(category, amount, day):
    return {"category": category, "amount": amount, "date": day}


rising_travel = [
    expense("Travel", 100.0, "2025-01-05"),
    expense("Travel", 120.0, "2025-02-05"),
    expense("Travel", 140.0, "2025-03-05"),
    expense("Travel", 160.0, "2025-04-05"),
    expense("Travel", 180.0, "2025-05-05"),
    expense("Travel", 200.0, "2025-06-05"),
]


def test_monthly_series_is_oldest_first_with_gaps_as_zero():
    buckets = bucket_by_month_category([
        expense("Travel", 50.0, "2025-02-01"),
        expense("Travel", 70.0, "2025-06-01"),
        expense("Travel", 999.0, "2024-11-01"),
    ])

    assert monthly_series(buckets, "Travel", "2025-06", window=6) == [0.0, 50.0, 0.0, 0.0, 0.0, 70.0]


def test_fit_linear_trend_recovers_a_straight_line():
    slope, intercept = fit_linear_trend([100.0, 120.0, 140.0, 160.0, 180.0, 200.0])

    assert slope == pytest.approx(20.0, rel=1e-3)
    assert intercept == pytest.approx(100.0, rel=1e-3)


def test_predict_next_extends_the_trend():
    assert predict_next([100.0, 120.0, 140.0, 160.0, 180.0, 200.0]) == pytest.approx(220.0, rel=1e-3)


def test_predict_next_never_goes_negative():
    assert predict_next([500.0, 400.0, 300.0, 200.0, 100.0, 0.0]) == 0.0


def test_explicit_zero_options_are_respected():
    values = [100.0, 120.0, 140.0, 160.0, 180.0, 200.0]

    assert fit_linear_trend(values, epochs=0) == (0.0, 0.0)
    assert fit_linear_trend(values, learning_rate=0.0) == (0.0, 0.0)


def test_too_few_non_zero_months_is_rejected():
    with pytest.raises(ForecastTrainingError):
        fit_linear_trend([0.0, 0.0, 0.0, 0.0, 80.0, 90.0])


def test_diverging_training_is_rejected():
    with pytest.raises(ForecastTrainingError):
        fit_linear_trend([10.0, 500.0, 20.0, 800.0, 30.0, 900.0], learning_rate=50.0)


def test_train_category_forecasts():
    expenses = rising_travel + [
        # only two non-zero months
        expense("Shopping", 90.0, "2025-05-10"),
        expense("Shopping", 95.0, "2025-06-10"),
        # outside the six month window
        expense("Education", 300.0, "2024-10-10"),
    ]

    predictions = train_category_forecasts(expenses, now=NOW)

    assert set(predictions) == {"Travel"}
    assert predictions["Travel"] == pytest.approx(220.0, rel=1e-3)


def test_training_failure_falls_back_to_moving_average(monkeypatch):
    def broken_fit(values, **options):
        raise ForecastTrainingError("simulated failure")

    monkeypatch.setattr(forecaster, "fit_linear_trend", broken_fit)
    expenses = [
        expense("Travel", 50.0, "2025-01-05"),
        expense("Travel", 60.0, "2025-02-05"),
        expense("Travel", 80.0, "2025-03-05"),
        expense("Travel", 100.0, "2025-04-05"),
        expense("Travel", 200.0, "2025-05-05"),
        expense("Travel", 240.0, "2025-06-05"),
    ]

    predictions = train_category_forecasts(expenses, now=NOW)
    result = compute_insights(expenses, [], now=NOW, forecast_lookup=predictions.get)

    assert predictions == {}
    forecast = result.forecasts[0]
    assert forecast.predicted == pytest.approx((240.0 + 200.0 + 100.0) / 3)
    # variance = 40 + 100
    assert forecast.confidence is Confidence.MEDIUM


def test_regression_prediction_feeds_the_engine():
    predictions = train_category_forecasts(rising_travel, now=NOW)

    result = compute_insights(rising_travel, [], now=NOW, forecast_lookup=predictions.get)

    assert result.forecasts[0].predicted == pytest.approx(220.0, rel=1e-3)
    assert result.forecasts[0].confidence is Confidence.HIGH


def test_cache_drops_stale_results():
    cache = ForecastCache()
    first = cache.begin("u1")
    second = cache.begin("u1")

    assert cache.publish("u1", second, {"Travel": 10.0}, "2025-06") is True
    assert cache.publish("u1", first, {"Travel": 99.0}, "2025-06") is False
    assert cache.lookup("u1")("Travel") == 10.0


def test_cache_lookup_is_a_snapshot_per_user():
    cache = ForecastCache()
    cache.publish("u1", cache.begin("u1"), {"Travel": 10.0}, "2025-06")
    lookup = cache.lookup("u1")

    cache.publish("u1", cache.begin("u1"), {"Travel": 20.0}, "2025-06")

    assert lookup("Travel") == 10.0
    assert cache.lookup("u1")("Travel") == 20.0
    assert cache.lookup("u2")("Travel") is None
    assert not cache.has("u2")


def test_schedule_training_runs_inline_without_scheduler():
    assert scheduler.scheduler is None

    scheduler.schedule_forecast_training("u1", rising_travel, now=NOW)

    assert forecast_cache.has("u1")
    assert forecast_cache.snapshot("u1")["Travel"] == pytest.approx(220.0, rel=1e-3)


def test_training_job_error_publishes_empty_table(monkeypatch):
    def explode(expenses, now=None):
        raise RuntimeError("boom")

    monkeypatch.setattr(scheduler, "train_category_forecasts", explode)
    token = forecast_cache.begin("u1")

    assert scheduler.forecast_training_job("u1", token, rising_travel) == {}
    assert forecast_cache.has("u1")
    assert forecast_cache.snapshot("u1") == {}


def test_cache_only_serves_the_month_it_was_trained_for():
    cache = ForecastCache()
    cache.publish("u1", cache.begin("u1"), {"Travel": 10.0}, "2025-05")

    assert cache.has("u1")
    assert not cache.has("u1", "2025-06")
    assert cache.anchor("u1") == "2025-05"
    assert cache.lookup("u1", "2025-05")("Travel") == 10.0
    assert cache.lookup("u1", "2025-06")("Travel") is None


def test_cache_tracks_runs_in_flight():
    cache = ForecastCache()
    assert not cache.in_flight("u1")

    first = cache.begin("u1")
    second = cache.begin("u1")
    assert cache.in_flight("u1")

    cache.publish("u1", first, {"Travel": 1.0}, "2025-06")
    assert cache.in_flight("u1")

    cache.publish("u1", second, {"Travel": 2.0}, "2025-06")
    assert not cache.in_flight("u1")


def test_training_job_tags_table_with_its_month():
    scheduler.schedule_forecast_training("u1", rising_travel, now=NOW)

    assert forecast_cache.anchor("u1") == "2025-06"


def test_training_pending_only_with_a_running_scheduler(monkeypatch):
    class RunningScheduler:
        running = True

    token = forecast_cache.begin("u1")
    assert not scheduler.training_pending("u1")

    monkeypatch.setattr(scheduler, "scheduler", RunningScheduler())
    assert scheduler.training_pending("u1")

    scheduler.forecast_training_job("u1", token, rising_travel, now=NOW)
    assert not scheduler.training_pending("u1")
