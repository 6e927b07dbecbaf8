"""
Backend package for the campus bike rental service.

This package provides a FastAPI application with storage, database and
telemetry abstractions so the same code runs against Postgres/Redis/S3 in
production and in-memory backends during development and tests.
"""
