import random
import unittest
from datetime import date
from unittest.mock import MagicMock

from bikerental.analytics_db import ForecastPoint, InMemoryAnalyticsStore, PredictionRecord
from bikerental.db import InMemoryDbClient
from bikerental.maintenance import (
    DEMO_BIKE_NAMES,
    apply_training_result,
    forecast_summary,
    next_month_window,
    request_training,
    seed_forecast_demo,
    sorted_predictions,
)


class ForecastSummaryTests(unittest.TestCase):
    def test_next_month_window(self):
        self.assertEqual(
            next_month_window(date(2025, 1, 31)), (date(2025, 2, 1), date(2025, 3, 1))
        )
        self.assertEqual(
            next_month_window(date(2025, 12, 15)), (date(2026, 1, 1), date(2026, 2, 1))
        )

    def test_sums_weeks_starting_next_month(self):
        points = [
            ForecastPoint(week_start="2025-03-31", yhat=1.0, yhat_plus_sim=1.0),
            ForecastPoint(week_start="2025-04-07", yhat=2.0, yhat_plus_sim=2.5),
            ForecastPoint(week_start="2025-04-28T00:00:00", yhat=1.0, yhat_plus_sim=1.25),
            ForecastPoint(week_start="2025-05-05", yhat=9.0, yhat_plus_sim=9.0),
            ForecastPoint(week_start="soon", yhat=5.0, yhat_plus_sim=5.0),
        ]
        summary = forecast_summary(points, date(2025, 3, 12))
        self.assertEqual(
            summary,
            {"start": "2025-04-01", "end": "2025-05-01", "weeks": 2, "expectedMaintenance": 3.75},
        )

    def test_sorted_predictions_puts_unknown_last(self):
        predictions = [
            PredictionRecord(bike_id="a", predicted_km_until_maintenance=None),
            PredictionRecord(bike_id="b", predicted_km_until_maintenance=50.0),
            PredictionRecord(bike_id="c", predicted_km_until_maintenance=10.0),
        ]
        self.assertEqual([p.bike_id for p in sorted_predictions(predictions)], ["c", "b", "a"])


class TrainingResultTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryAnalyticsStore()

    def test_apply_training_result(self):
        stored = apply_training_result(
            self.store,
            {
                "metrics": {"mae": "1.5", "mse": 3, "r2": ""},
                "predictions": [
                    {"bikeId": "b1", "predictedKmUntilMaintenance": "42",
                     "updatedAt": "2025-03-01T00:00:00Z"},
                    {"bikeId": "", "predictedKmUntilMaintenance": 1},
                    {"bikeId": "b2", "predictedKmUntilMaintenance": None},
                ],
                "forecast": [
                    {"weekStart": "2025-04-07T00:00:00Z", "yhat": 2},
                    {"weekStart": "2025-03-31", "yhat": 1, "yhat_plus_sim": 3},
                    {"yhat": 7},
                ],
            },
            now=1_800_000_000.0,
        )
        self.assertEqual(stored, {"metrics": 1, "predictions": 2, "forecast": 2})

        metrics = self.store.latest_metrics()
        self.assertEqual((metrics.mae, metrics.mse, metrics.r2), (1.5, 3.0, None))
        self.assertEqual(self.store.predictions["b1"].predicted_km_until_maintenance, 42.0)
        self.assertEqual(self.store.predictions["b2"].updated_at, 1_800_000_000.0)
        forecast = self.store.list_forecast()
        self.assertEqual([p.week_start for p in forecast], ["2025-03-31", "2025-04-07"])
        self.assertEqual(forecast[1].yhat_plus_sim, 2.0)

    def test_older_prediction_does_not_overwrite(self):
        self.store.upsert_prediction(
            PredictionRecord(bike_id="b1", predicted_km_until_maintenance=5.0, updated_at=200.0)
        )
        apply_training_result(
            self.store,
            {"predictions": [{"bikeId": "b1", "predictedKmUntilMaintenance": 99,
                              "updatedAt": 100}]},
        )
        self.assertEqual(self.store.predictions["b1"].predicted_km_until_maintenance, 5.0)

    def test_missing_sections_are_left_alone(self):
        self.store.replace_forecast([ForecastPoint("2025-01-06", 1.0, 1.0)])
        stored = apply_training_result(self.store, {})
        self.assertEqual(stored, {"metrics": 0, "predictions": 0, "forecast": 0})
        self.assertEqual(len(self.store.list_forecast()), 1)

    def test_request_training(self):
        session = MagicMock()
        session.post.return_value.json.return_value = {"metrics": {}}
        self.assertEqual(request_training("http://svc/", session=session), {"metrics": {}})
        session.post.assert_called_once_with("http://svc/train", timeout=300)
        session.post.return_value.raise_for_status.assert_called_once()


class SeedDemoTests(unittest.TestCase):
    def test_seed_forecast_demo(self):
        db = InMemoryDbClient()
        store = InMemoryAnalyticsStore()
        today = date(2025, 3, 12)
        result = seed_forecast_demo(db, store, today=today, rng=random.Random(7))

        self.assertEqual(result["bikes"], 5)
        self.assertEqual(result["rides"], 40)
        self.assertEqual(result["predictions"], 5)
        self.assertEqual(result["forecastWeeks"], 8)
        self.assertTrue(20 <= result["issues"] <= 40)
        self.assertEqual(sorted(b.name for b in db.list_bikes()), DEMO_BIKE_NAMES)

        summary = forecast_summary(store.list_forecast(), today)
        self.assertEqual(summary["weeks"], 4)
        self.assertGreaterEqual(summary["expectedMaintenance"], 12.0)

        seed_forecast_demo(db, store, today=today, rng=random.Random(7))
        self.assertEqual(len(db.bikes), 5)


if __name__ == "__main__":
    unittest.main()
