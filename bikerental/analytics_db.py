"""
Secondary analytical store: rental history, ride logs and maintenance
model output (predictions, metrics, weekly demand forecast).
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field, fields
from typing import Any, Iterable, Optional, Protocol

from sqlalchemy import Column, Float, Integer, String, create_engine, delete, select
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from bikerental.types import iso


class AnalyticsStore(Protocol):
    """Interface for the rental/ride/maintenance tables."""

    def add_rental(self, rental: "RentalRecord") -> "RentalRecord":
        ...

    def list_rentals(
        self, *, user_id: Optional[str] = None, email: Optional[str] = None
    ) -> list["RentalRecord"]:
        ...

    def add_ride(self, ride: "RideRecord") -> "RideRecord":
        ...

    def list_rides(
        self, *, bike_id: Optional[str] = None, bike_name: Optional[str] = None
    ) -> list["RideRecord"]:
        ...

    def upsert_prediction(self, prediction: "PredictionRecord") -> None:
        ...

    def list_predictions(self) -> list["PredictionRecord"]:
        ...

    def save_metrics(self, metrics: "ModelMetricsRecord") -> None:
        ...

    def latest_metrics(self) -> Optional["ModelMetricsRecord"]:
        ...

    def replace_forecast(self, points: list["ForecastPoint"]) -> None:
        ...

    def list_forecast(self) -> list["ForecastPoint"]:
        ...


@dataclass
class RentalRecord:
    user_id: Optional[str]
    email: Optional[str]
    bike_id: Optional[str]
    start_date: Optional[float]
    end_date: Optional[float] = None
    status: str = "completed"
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    application_id: Optional[str] = None
    bike_name: Optional[str] = None
    college: Optional[str] = None
    total_cost: Optional[float] = None
    created_at: float = field(default_factory=lambda: time.time())

    @property
    def is_completed(self) -> bool:
        return (self.status or "").lower() == "completed" or self.end_date is not None

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "email": self.email,
            "applicationId": self.application_id,
            "bikeId": self.bike_id,
            "bikeName": self.bike_name,
            "college": self.college,
            "startDate": iso(self.start_date),
            "endDate": iso(self.end_date),
            "status": self.status,
            "totalCost": self.total_cost,
            "createdAt": iso(self.created_at),
        }


@dataclass
class RideRecord:
    ride_date: float
    distance_km: float
    bike_id: Optional[str] = None
    bike_name: Optional[str] = None
    duration_min: Optional[float] = None
    avg_speed_kmh: Optional[float] = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)


@dataclass
class PredictionRecord:
    bike_id: str
    predicted_km_until_maintenance: Optional[float]
    updated_at: float = field(default_factory=lambda: time.time())

    def as_dict(self) -> dict:
        return {
            "bikeId": self.bike_id,
            "predictedKmUntilMaintenance": self.predicted_km_until_maintenance,
            "updatedAt": iso(self.updated_at),
        }


@dataclass
class ModelMetricsRecord:
    mae: Optional[float]
    mse: Optional[float]
    r2: Optional[float]
    updated_at: float = field(default_factory=lambda: time.time())

    def as_dict(self) -> dict:
        return {
            "mae": self.mae,
            "mse": self.mse,
            "r2": self.r2,
            "updatedAt": iso(self.updated_at),
        }


@dataclass
class ForecastPoint:
    week_start: str
    yhat: float
    yhat_plus_sim: float

    def as_dict(self) -> dict:
        return {
            "weekStart": self.week_start,
            "yhat": self.yhat,
            "yhat_plus_sim": self.yhat_plus_sim,
        }


class InMemoryAnalyticsStore:
    """In-memory analytical store for development and tests."""

    def __init__(self):
        self.rentals: list[RentalRecord] = []
        self.rides: list[RideRecord] = []
        self.predictions: dict[str, PredictionRecord] = {}
        self.metrics: list[ModelMetricsRecord] = []
        self.forecast: list[ForecastPoint] = []

    def reset(self) -> None:
        self.rentals.clear()
        self.rides.clear()
        self.predictions.clear()
        self.metrics.clear()
        self.forecast.clear()

    def add_rental(self, rental: RentalRecord) -> RentalRecord:
        self.rentals.append(rental)
        return rental

    def list_rentals(
        self, *, user_id: Optional[str] = None, email: Optional[str] = None
    ) -> list[RentalRecord]:
        return [
            r
            for r in self.rentals
            if (user_id is None or r.user_id == user_id)
            and (email is None or r.email == email)
        ]

    def add_ride(self, ride: RideRecord) -> RideRecord:
        self.rides.append(ride)
        return ride

    def list_rides(
        self, *, bike_id: Optional[str] = None, bike_name: Optional[str] = None
    ) -> list[RideRecord]:
        return [
            r
            for r in self.rides
            if (bike_id is None or r.bike_id == bike_id)
            and (bike_name is None or r.bike_name == bike_name)
        ]

    def upsert_prediction(self, prediction: PredictionRecord) -> None:
        current = self.predictions.get(prediction.bike_id)
        if current is None or prediction.updated_at >= current.updated_at:
            self.predictions[prediction.bike_id] = prediction

    def list_predictions(self) -> list[PredictionRecord]:
        return list(self.predictions.values())

    def save_metrics(self, metrics: ModelMetricsRecord) -> None:
        self.metrics.append(metrics)

    def latest_metrics(self) -> Optional[ModelMetricsRecord]:
        if not self.metrics:
            return None
        return max(self.metrics, key=lambda m: m.updated_at)

    def replace_forecast(self, points: list[ForecastPoint]) -> None:
        self.forecast = sorted(points, key=lambda p: p.week_start)

    def list_forecast(self) -> list[ForecastPoint]:
        return list(self.forecast)


def _to_record(row: Any, record_cls: type) -> Any:
    return record_cls(**{f.name: getattr(row, f.name) for f in fields(record_cls)})


class SqlAnalyticsStore:
    """SQLAlchemy-backed analytical store (Postgres in production)."""

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("A database URL is required for SqlAnalyticsStore")
        self.engine = create_engine(database_url, future=True, pool_pre_ping=True)
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        AnalyticsBase.metadata.create_all(self.engine)

    def _all(self, stmt, record_cls: type) -> list:
        with self.Session() as session:
            rows: Iterable = session.execute(stmt).scalars().all()
            return [_to_record(row, record_cls) for row in rows]

    def add_rental(self, rental: RentalRecord) -> RentalRecord:
        with self.Session() as session:
            session.add(RentalRow(**{f.name: getattr(rental, f.name) for f in fields(rental)}))
            session.commit()
        return rental

    def list_rentals(
        self, *, user_id: Optional[str] = None, email: Optional[str] = None
    ) -> list[RentalRecord]:
        stmt = select(RentalRow)
        if user_id is not None:
            stmt = stmt.where(RentalRow.user_id == user_id)
        if email is not None:
            stmt = stmt.where(RentalRow.email == email)
        return self._all(stmt, RentalRecord)

    def add_ride(self, ride: RideRecord) -> RideRecord:
        with self.Session() as session:
            session.add(RideRow(**{f.name: getattr(ride, f.name) for f in fields(ride)}))
            session.commit()
        return ride

    def list_rides(
        self, *, bike_id: Optional[str] = None, bike_name: Optional[str] = None
    ) -> list[RideRecord]:
        stmt = select(RideRow)
        if bike_id is not None:
            stmt = stmt.where(RideRow.bike_id == bike_id)
        if bike_name is not None:
            stmt = stmt.where(RideRow.bike_name == bike_name)
        return self._all(stmt.order_by(RideRow.ride_date.asc()), RideRecord)

    def upsert_prediction(self, prediction: PredictionRecord) -> None:
        with self.Session() as session:
            row = session.get(PredictionRow, prediction.bike_id)
            if row is None:
                session.add(
                    PredictionRow(
                        bike_id=prediction.bike_id,
                        predicted_km_until_maintenance=prediction.predicted_km_until_maintenance,
                        updated_at=prediction.updated_at,
                    )
                )
            elif prediction.updated_at >= (row.updated_at or 0):
                row.predicted_km_until_maintenance = (
                    prediction.predicted_km_until_maintenance
                )
                row.updated_at = prediction.updated_at
            session.commit()

    def list_predictions(self) -> list[PredictionRecord]:
        return self._all(select(PredictionRow), PredictionRecord)

    def save_metrics(self, metrics: ModelMetricsRecord) -> None:
        with self.Session() as session:
            session.add(
                MetricsRow(
                    mae=metrics.mae,
                    mse=metrics.mse,
                    r2=metrics.r2,
                    updated_at=metrics.updated_at,
                )
            )
            session.commit()

    def latest_metrics(self) -> Optional[ModelMetricsRecord]:
        stmt = select(MetricsRow).order_by(MetricsRow.updated_at.desc()).limit(1)
        items = self._all(stmt, ModelMetricsRecord)
        return items[0] if items else None

    def replace_forecast(self, points: list[ForecastPoint]) -> None:
        with self.Session() as session:
            session.execute(delete(ForecastRow))
            for point in points:
                session.add(
                    ForecastRow(
                        week_start=point.week_start,
                        yhat=point.yhat,
                        yhat_plus_sim=point.yhat_plus_sim,
                    )
                )
            session.commit()

    def list_forecast(self) -> list[ForecastPoint]:
        stmt = select(ForecastRow).order_by(ForecastRow.week_start.asc())
        return self._all(stmt, ForecastPoint)


AnalyticsBase = declarative_base()


class RentalRow(AnalyticsBase):
    __tablename__ = "rental_history"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=True, index=True)
    email = Column(String, nullable=True, index=True)
    application_id = Column(String, nullable=True)
    bike_id = Column(String, nullable=True, index=True)
    bike_name = Column(String, nullable=True)
    college = Column(String, nullable=True)
    start_date = Column(Float, nullable=True)
    end_date = Column(Float, nullable=True)
    status = Column(String, nullable=False, default="completed")
    total_cost = Column(Float, nullable=True)
    created_at = Column(Float, nullable=False)


class RideRow(AnalyticsBase):
    __tablename__ = "ride_logs"

    id = Column(String, primary_key=True)
    bike_id = Column(String, nullable=True, index=True)
    bike_name = Column(String, nullable=True, index=True)
    ride_date = Column(Float, nullable=False)
    distance_km = Column(Float, nullable=False)
    duration_min = Column(Float, nullable=True)
    avg_speed_kmh = Column(Float, nullable=True)


class PredictionRow(AnalyticsBase):
    __tablename__ = "maintenance_predictions"

    bike_id = Column(String, primary_key=True)
    predicted_km_until_maintenance = Column(Float, nullable=True)
    updated_at = Column(Float, nullable=False)


class MetricsRow(AnalyticsBase):
    __tablename__ = "maintenance_model_metrics"

    id = Column(Integer, primary_key=True, autoincrement=True)
    mae = Column(Float, nullable=True)
    mse = Column(Float, nullable=True)
    r2 = Column(Float, nullable=True)
    updated_at = Column(Float, nullable=False)


class ForecastRow(AnalyticsBase):
    __tablename__ = "maintenance_forecast"

    week_start = Column(String, primary_key=True)
    yhat = Column(Float, nullable=False)
    yhat_plus_sim = Column(Float, nullable=False)
