"""
Dependency wiring for the FastAPI app and the worker.
"""

from __future__ import annotations

from typing import Optional

from bikerental.analytics_db import AnalyticsStore, InMemoryAnalyticsStore, SqlAnalyticsStore
from bikerental.config import get_settings
from bikerental.db import DbClient, InMemoryDbClient, PostgresDbClient
from bikerental.mailer import InMemoryMailer, Mailer, SmtpMailer
from bikerental.mapbox import MapboxClient
from bikerental.queue import InMemoryJobQueue, JobQueue, RedisJobQueue
from bikerental.storage import InMemoryStorageClient, S3StorageClient, StorageClient
from bikerental.telemetry_store import (
    InMemoryTelemetryStore,
    RedisTelemetryStore,
    TelemetryStore,
)

_db_client: DbClient | None = None
_analytics_store: AnalyticsStore | None = None
_storage_client: StorageClient | None = None
_queue_client: JobQueue | None = None
_telemetry_store: TelemetryStore | None = None
_mailer: Mailer | None = None
_mapbox_client: MapboxClient | None = None


def get_db_client() -> DbClient:
    """
    Return a singleton DB client so users, applications and jobs persist
    across requests.
    """
    global _db_client
    if _db_client:
        return _db_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.database_url:
        _db_client = InMemoryDbClient()
    else:
        _db_client = PostgresDbClient(settings.database_url)
    return _db_client


def get_analytics_store() -> AnalyticsStore:
    """Rental history, ride logs and maintenance output."""
    global _analytics_store
    if _analytics_store:
        return _analytics_store

    settings = get_settings()
    url = settings.analytics_database_url or settings.database_url
    if settings.use_in_memory_backends or not url:
        _analytics_store = InMemoryAnalyticsStore()
    else:
        _analytics_store = SqlAnalyticsStore(url)
    return _analytics_store


def get_storage_client() -> StorageClient:
    global _storage_client
    if _storage_client:
        return _storage_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.storage_bucket:
        _storage_client = InMemoryStorageClient()
    else:
        _storage_client = S3StorageClient(
            bucket=settings.storage_bucket,
            region=settings.storage_region or "",
            endpoint=settings.storage_endpoint or "",
            access_key_id=settings.aws_access_key_id or "",
            secret_access_key=settings.aws_secret_access_key or "",
        )
    return _storage_client


def get_queue_client() -> JobQueue:
    """
    Return a singleton queue client for dispatching jobs to workers.
    """
    global _queue_client
    if _queue_client:
        return _queue_client

    settings = get_settings()
    if settings.redis_url and not settings.use_in_memory_backends:
        _queue_client = RedisJobQueue(
            url=settings.redis_url,
            queue_key=settings.redis_queue_key,
        )
    else:
        _queue_client = InMemoryJobQueue()
    return _queue_client


def get_telemetry_store() -> TelemetryStore:
    global _telemetry_store
    if _telemetry_store:
        return _telemetry_store

    settings = get_settings()
    if settings.redis_url and not settings.use_in_memory_backends:
        _telemetry_store = RedisTelemetryStore(
            url=settings.redis_url, prefix=settings.telemetry_key_prefix
        )
    else:
        _telemetry_store = InMemoryTelemetryStore()
    return _telemetry_store


def get_mailer() -> Mailer:
    global _mailer
    if _mailer:
        return _mailer

    settings = get_settings()
    if settings.email_user and not settings.use_in_memory_backends:
        _mailer = SmtpMailer(
            host=settings.email_server,
            port=settings.email_port,
            username=settings.email_user,
            password=settings.email_pass,
        )
    else:
        _mailer = InMemoryMailer()
    return _mailer


def get_mapbox_client() -> Optional[MapboxClient]:
    """None when no Mapbox token is configured; snapping is then skipped."""
    global _mapbox_client
    if _mapbox_client:
        return _mapbox_client

    settings = get_settings()
    if not settings.mapbox_token:
        return None
    _mapbox_client = MapboxClient(token=settings.mapbox_token)
    return _mapbox_client
